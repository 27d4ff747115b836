"""Dependency Injection Container."""
from typing import Optional

import structlog

from scagate.core.config import get_config
from scagate.core.config import ScaConfig
from scagate.core.storage import PropertyStore
from scagate.services.composer_service import ComposerRegistryClient
from scagate.services.coordinate_resolver import CoordinateResolver
from scagate.services.plugin import ScaPlugin
from scagate.services.policy_gate import PolicyGate
from scagate.services.risk_client import RiskAggregationClient
from scagate.services.risk_filler import RiskFiller
from scagate.services.scan_cache import ScanCache
from scagate.services.suggestion_service import PrivatePackageSuggestion
from scagate.services.token_manager import AccessTokenManager

logger = structlog.get_logger('container')


class Container:
    """Composition root: one instance of each service per process."""

    _instance: Optional['Container'] = None

    def __init__(self, config: ScaConfig | None = None) -> None:
        self.config: ScaConfig = config or get_config()
        self._token_manager: AccessTokenManager | None = None
        self._risk_client: RiskAggregationClient | None = None
        self._resolver: CoordinateResolver | None = None
        self._authentication_attempted = False

    @classmethod
    def get_instance(cls) -> 'Container':
        if cls._instance is None:
            cls._instance = Container()
        return cls._instance

    # -- Services (Singletons) --

    def get_token_manager(self) -> AccessTokenManager:
        if not self._token_manager:
            self._token_manager = AccessTokenManager(
                authentication_url=self.config.api.authentication_url,
                timeout=self.config.api.timeout,
            )
        return self._token_manager

    def authenticate(self) -> bool:
        """Authenticate once if credentials are configured. Never raises."""
        token_manager = self.get_token_manager()
        if self._authentication_attempted:
            return token_manager.has_token
        self._authentication_attempted = True

        credentials = self.config.auth.get_credentials()
        if credentials is None:
            logger.info('No credentials configured. Working without authentication.')
            return False
        return token_manager.authenticate(credentials)

    def get_risk_client(self) -> RiskAggregationClient:
        if not self._risk_client:
            self._risk_client = RiskAggregationClient(
                api_url=self.config.api.api_url,
                token_manager=self.get_token_manager(),
                timeout=self.config.api.timeout,
            )
        return self._risk_client

    def get_resolver(self) -> CoordinateResolver:
        if not self._resolver:
            composer = ComposerRegistryClient(
                base_url=self.config.api.packagist_url,
                timeout=self.config.api.timeout,
            )
            self._resolver = CoordinateResolver(composer)
        return self._resolver

    # -- Factories (bound to a property store) --

    def create_plugin(self, store: PropertyStore) -> ScaPlugin:
        """Wire the pipeline around the host's property store."""
        self.authenticate()
        resolver = self.get_resolver()
        client = self.get_risk_client()
        filler = RiskFiller(
            store, resolver, client, ScanCache(store, self.config.scan),
        )
        gate = PolicyGate(store, self.config.policy)
        suggestion = PrivatePackageSuggestion(
            store, resolver, client, self.get_token_manager(),
        )
        return ScaPlugin(filler, gate, suggestion)

# Global Accessor


def get_container() -> Container:
    return Container.get_instance()
