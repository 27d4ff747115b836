from dataclasses import dataclass


@dataclass(frozen=True)
class Decision:
    """Outcome of the policy gate for one artifact."""
    allowed: bool
    reason: str | None = None
    code: int | None = None

    @classmethod
    def allow(cls) -> 'Decision':
        return cls(allowed=True)

    @classmethod
    def block(cls, reason: str, code: int = 403) -> 'Decision':
        return cls(allowed=False, reason=reason, code=code)

    @property
    def blocked(self) -> bool:
        return not self.allowed
