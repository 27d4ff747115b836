"""Configuration management for scagate."""
import os
from dataclasses import dataclass
from dataclasses import field

import structlog

from scagate.models.threshold import SecurityRiskThreshold
from scagate.models.token import Credentials

logger = structlog.get_logger('config')

DEFAULT_EXPIRATION_TIME = 21600
MINIMUM_EXPIRATION_TIME = 1800


@dataclass
class ApiConfig:
    api_url: str = field(
        default_factory=lambda: os.getenv(
            'SCA_API_URL', 'https://api-sca.checkmarx.net',
        ),
    )
    authentication_url: str = field(
        default_factory=lambda: os.getenv(
            'SCA_AUTHENTICATION_URL', 'https://platform.checkmarx.net/',
        ),
    )
    packagist_url: str = field(
        default_factory=lambda: os.getenv(
            'PACKAGIST_REPOSITORY', 'https://packagist.org',
        ),
    )
    timeout: float = field(
        default_factory=lambda: float(os.getenv('SCA_HTTP_TIMEOUT', '30')),
    )
    registry_cache_ttl: int = 60 * 60  # 1 hour in seconds


@dataclass
class AuthConfig:
    account: str | None = field(default_factory=lambda: os.getenv('SCA_ACCOUNT'))
    username: str | None = field(
        default_factory=lambda: os.getenv('SCA_USERNAME'),
    )
    password: str | None = field(
        default_factory=lambda: os.getenv('SCA_PASSWORD'),
    )

    def __repr__(self) -> str:
        return (
            f"AuthConfig(account={self.account!r}, username={self.username!r}, "
            f"password='*****')"
        )

    @property
    def is_configured(self) -> bool:
        return self.missing_fields() == []

    def missing_fields(self) -> list[str]:
        values = {
            'SCA_ACCOUNT': self.account,
            'SCA_USERNAME': self.username,
            'SCA_PASSWORD': self.password,
        }
        return [key for key, value in values.items() if not value]

    def get_credentials(self) -> Credentials | None:
        """
        Build the credentials used for the password grant.

        The password setting may name another environment variable that
        holds the actual secret. Returns None unless all three values are set.
        """
        missing = self.missing_fields()
        if len(missing) == 3:
            return None
        if missing:
            logger.error(
                'A mandatory authentication configuration is missing',
                missing=', '.join(missing),
            )
            logger.info('Working without authentication.')
            return None

        password = os.getenv(self.password, self.password)
        return Credentials(
            username=self.username,
            password=password,
            tenant=self.account,
        )


@dataclass
class ScanConfig:
    expiration_time: str = field(
        default_factory=lambda: os.getenv(
            'SCA_DATA_EXPIRATION_TIME', str(DEFAULT_EXPIRATION_TIME),
        ),
    )

    @property
    def expiration_seconds(self) -> int:
        """TTL of a scan record, never below MINIMUM_EXPIRATION_TIME."""
        try:
            value = int(str(self.expiration_time).strip())
        except (TypeError, ValueError) as e:
            logger.warning(
                "Error converting the 'SCA_DATA_EXPIRATION_TIME' configuration value, the default value will be used",
                value=self.expiration_time, error=str(e),
            )
            return DEFAULT_EXPIRATION_TIME

        if value < MINIMUM_EXPIRATION_TIME:
            logger.warning(
                "The value of 'SCA_DATA_EXPIRATION_TIME' is lower than the minimum allowed, the minimum will be used",
                value=value, minimum=MINIMUM_EXPIRATION_TIME,
            )
            return MINIMUM_EXPIRATION_TIME
        return value


@dataclass
class PolicyConfig:
    security_risk_threshold: str = field(
        default_factory=lambda: os.getenv('SCA_SECURITY_RISK_THRESHOLD', 'None'),
    )
    licenses_allowed: str = field(
        default_factory=lambda: os.getenv('SCA_LICENSES_ALLOWED', ''),
    )

    @property
    def threshold(self) -> SecurityRiskThreshold:
        return SecurityRiskThreshold.parse(self.security_risk_threshold)

    @property
    def allowed_licenses(self) -> set[str]:
        """De-duplicated, trimmed allow-list parsed from a comma separated value."""
        if not self.licenses_allowed:
            return set()
        return {
            name.strip()
            for name in self.licenses_allowed.split(',')
            if name.strip()
        }


@dataclass
class ScaConfig:
    api: ApiConfig = field(default_factory=ApiConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)

    def validate(self) -> None:
        """
        Normalize values that have a safe fallback and reject the rest.

        Raises:
            ValueError if the security risk threshold is unknown
        """
        self.scan.expiration_time = str(self.scan.expiration_seconds)
        try:
            self.policy.threshold
        except ValueError:
            logger.error(
                "Invalid 'SCA_SECURITY_RISK_THRESHOLD' configuration value",
                value=self.policy.security_risk_threshold,
                allowed=[str(t) for t in SecurityRiskThreshold],
            )
            raise

    @classmethod
    def load(cls) -> 'ScaConfig':
        config = cls()
        config.validate()
        return config


_config: ScaConfig | None = None


def get_config() -> ScaConfig:
    global _config
    if _config is None:
        _config = ScaConfig.load()
    return _config
