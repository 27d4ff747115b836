from dataclasses import dataclass

from scagate.models.package_manager import PackageManager


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


@dataclass(frozen=True)
class FileLayout:
    """Structured layout hints the host derives from a repository path."""
    organization: str | None = None
    module: str | None = None
    base_revision: str | None = None
    file_integration_revision: str | None = None

    @property
    def is_valid(self) -> bool:
        return not (
            _is_blank(self.organization)
            or _is_blank(self.module)
            or _is_blank(self.base_revision)
        )


@dataclass(frozen=True)
class ArtifactCoordinate:
    """The (ecosystem, name, version) triple identifying a package."""
    package_manager: PackageManager
    name: str | None = None
    version: str | None = None

    @classmethod
    def invalid(cls, package_manager: PackageManager) -> 'ArtifactCoordinate':
        return cls(package_manager, None, None)

    @property
    def package_type(self) -> str | None:
        return self.package_manager.package_type

    @property
    def is_valid(self) -> bool:
        return not (
            _is_blank(self.package_type)
            or _is_blank(self.name)
            or _is_blank(self.version)
        )

    def __str__(self) -> str:
        return f"{self.package_type}:{self.name}@{self.version}"
