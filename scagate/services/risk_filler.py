import threading
from collections.abc import Iterator
from collections.abc import Sequence
from contextlib import contextmanager

import requests
import structlog

from scagate.core.exceptions import CoordinateInvalid
from scagate.core.exceptions import ScaError
from scagate.core.storage import PropertyStore
from scagate.models import scan_record
from scagate.models.coordinate import ArtifactCoordinate
from scagate.models.coordinate import FileLayout
from scagate.models.package_manager import PackageManager
from scagate.services.coordinate_resolver import CoordinateResolver
from scagate.services.coordinate_resolver import should_ignore
from scagate.services.risk_client import RiskAggregationClient
from scagate.services.scan_cache import ScanCache

logger = structlog.get_logger('risk_filler')


class RiskFiller:
    """
    Makes sure every location of an artifact carries a current scan record.

    Remote failures are logged and reported as False; they never reach the
    caller, so a broken risk API does not block downloads.
    """

    def __init__(
        self,
        store: PropertyStore,
        resolver: CoordinateResolver,
        client: RiskAggregationClient,
        cache: ScanCache,
    ):
        self.store = store
        self.resolver = resolver
        self.client = client
        self.cache = cache

        # coordinate -> (lock, number of callers holding or waiting for it)
        self._locks: dict[str, tuple[threading.Lock, int]] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _single_flight(self, coordinate: ArtifactCoordinate) -> Iterator[None]:
        """Serialize callers for one coordinate; the lock is dropped with its last user."""
        key = str(coordinate)
        with self._locks_guard:
            lock, holders = self._locks.get(key, (None, 0))
            lock = lock or threading.Lock()
            self._locks[key] = (lock, holders + 1)
        try:
            with lock:
                yield
        finally:
            with self._locks_guard:
                lock, holders = self._locks[key]
                if holders == 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, holders - 1)

    def add_risks(
        self,
        path: str,
        locations: Sequence[str],
        package_manager: PackageManager,
        layout: FileLayout | None = None,
        deadline: float | None = None,
    ) -> bool:
        """
        Returns:
            True when every location holds a fresh scan record afterwards
        """
        if should_ignore(path, package_manager):
            logger.debug('Not a package artifact, skipping', path=path)
            return False

        if not locations:
            logger.warning('No physical location for the artifact', path=path)
            return False

        if self.cache.is_fresh(locations):
            logger.debug('Scan record still valid', path=path)
            return True

        coordinate = self.resolver.resolve(path, layout, package_manager, deadline)
        if not coordinate.is_valid:
            logger.error(str(CoordinateInvalid(coordinate)), path=path)
            return False

        with self._single_flight(coordinate):
            # A concurrent request for the same coordinate may have filled it
            if self.cache.is_fresh(locations):
                return True
            return self._fill(coordinate, locations, deadline)

    def _fill(
        self,
        coordinate: ArtifactCoordinate,
        locations: Sequence[str],
        deadline: float | None,
    ) -> bool:
        logger.info('Scanning artifact', artifact=str(coordinate))
        try:
            info = self.client.get_artifact_info(
                coordinate.package_type, coordinate.name, coordinate.version,
                deadline=deadline,
            )
            risks = self.client.get_risk_aggregation(
                info.type or coordinate.package_type,
                info.name or coordinate.name,
                info.version or coordinate.version,
                deadline=deadline,
            )
        except (ScaError, requests.RequestException) as e:
            logger.error(
                'Failed to get the artifact risks',
                artifact=str(coordinate), error=str(e),
            )
            return False

        properties = scan_record.to_properties(risks)
        if info.id:
            properties[scan_record.PACKAGE_ID] = info.id

        written = 0
        for location in locations:
            try:
                self.store.set_properties(location, properties)
                written += 1
            except Exception as e:
                logger.error(
                    'Failed to store the scan record',
                    artifact=str(coordinate), location=location, error=str(e),
                )

        logger.info(
            'Scan record stored',
            artifact=str(coordinate), locations=written,
            risks=properties[scan_record.TOTAL_RISKS_COUNT],
        )
        return written == len(locations)
