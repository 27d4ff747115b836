import requests
import structlog

from scagate.core.exceptions import CoordinateInvalid
from scagate.core.exceptions import ScaError
from scagate.core.storage import PropertyStore
from scagate.models import scan_record
from scagate.models.coordinate import FileLayout
from scagate.models.package_manager import PackageManager
from scagate.services.coordinate_resolver import CoordinateResolver
from scagate.services.coordinate_resolver import should_ignore
from scagate.services.risk_client import RiskAggregationClient
from scagate.services.token_manager import AccessTokenManager

logger = structlog.get_logger('suggestion_service')


class PrivatePackageSuggestion:
    """Reports artifacts uploaded to local repositories as private packages."""

    def __init__(
        self,
        store: PropertyStore,
        resolver: CoordinateResolver,
        client: RiskAggregationClient,
        token_manager: AccessTokenManager | None,
    ):
        self.store = store
        self.resolver = resolver
        self.client = client
        self.token_manager = token_manager

    def is_suggested(self, location: str) -> bool:
        value = self.store.get_property(location, scan_record.PRIVATE_PACKAGE_SUGGESTED)
        return (value or '').strip().lower() == 'true'

    def suggest(
        self,
        path: str,
        location: str,
        package_manager: PackageManager,
        layout: FileLayout | None = None,
        deadline: float | None = None,
    ) -> bool:
        """
        Suggest the artifact at `location` once.

        Returns:
            True if the suggestion was accepted during this call
        """
        if self.token_manager is None or not self.token_manager.has_token:
            logger.debug('Private package suggestion requires authentication', path=path)
            return False

        if should_ignore(path, package_manager) or self.is_suggested(location):
            return False

        coordinate = self.resolver.resolve(path, layout, package_manager, deadline)
        if not coordinate.is_valid:
            logger.error(str(CoordinateInvalid(coordinate)), path=path)
            return False

        try:
            self.client.suggest_private_package(coordinate, deadline=deadline)
        except (ScaError, requests.RequestException) as e:
            logger.error(
                'Failed to suggest private package',
                artifact=str(coordinate), error=str(e),
            )
            return False

        try:
            self.store.set_property(location, scan_record.PRIVATE_PACKAGE_SUGGESTED, 'true')
        except Exception as e:
            logger.error(
                'Failed to mark the private package suggestion',
                location=location, error=str(e),
            )
        logger.info('Private package suggested', artifact=str(coordinate))
        return True
