"""Alternative package names tried when a lookup under the original name fails."""


class PyPiFallback:
    """PyPI treats '-' and '_' as equivalent; the risk API does not."""

    def apply(self, name: str) -> str | None:
        if '-' in name:
            return name.replace('-', '_')
        if '_' in name:
            return name.replace('_', '-')
        return None


def apply_fallback(package_type: str, name: str) -> str | None:
    """Return the name to retry with after a 404, or None when there is none."""
    if package_type == 'python':
        return PyPiFallback().apply(name)
    return None
