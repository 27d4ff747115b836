from enum import Enum


class SecurityRiskThreshold(str, Enum):
    NONE = 'none'
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    CRITICAL = 'critical'

    def __str__(self) -> str:
        return self.value

    @property
    def rank(self) -> int:
        return list(SecurityRiskThreshold).index(self)

    @classmethod
    def parse(cls, value: str) -> 'SecurityRiskThreshold':
        """Parse a configured threshold. Raises ValueError when unknown."""
        return cls(value.strip().lower())
