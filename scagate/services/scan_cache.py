from collections.abc import Callable
from collections.abc import Iterable
from datetime import datetime
from datetime import timedelta
from datetime import timezone

import structlog

from scagate.core.config import ScanConfig
from scagate.core.storage import PropertyStore
from scagate.models.scan_record import LAST_SCAN
from scagate.models.scan_record import parse_timestamp
from scagate.models.scan_record import REQUIRED_KEYS

logger = structlog.get_logger('scan_cache')


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScanCache:
    """Decides whether the scan records on an artifact's locations can be reused."""

    def __init__(
        self,
        store: PropertyStore,
        config: ScanConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.config = config or ScanConfig()
        self._clock = clock

    def is_fresh(self, locations: Iterable[str], ttl_seconds: int | None = None) -> bool:
        """
        True only if every location exists, carries a complete scan record
        and was scanned less than `ttl_seconds` ago.
        """
        locations = list(locations)
        if not locations:
            return False

        if ttl_seconds is None:
            ttl_seconds = self.config.expiration_seconds
        ttl = timedelta(seconds=ttl_seconds)

        try:
            now = self._clock()
            return all(self._is_location_fresh(location, ttl, now) for location in locations)
        except Exception as e:
            logger.error('Failed to check the scan cache', locations=locations, error=str(e))
            return False

    def _is_location_fresh(self, location: str, ttl: timedelta, now: datetime) -> bool:
        if not self.store.exists(location):
            logger.debug('Location does not exist', location=location)
            return False

        properties = self.store.get_all_properties(location)
        missing = [key for key in REQUIRED_KEYS if not properties.get(key)]
        if missing:
            logger.debug('Scan record incomplete', location=location, missing=missing)
            return False

        try:
            last_scan = parse_timestamp(properties[LAST_SCAN])
        except ValueError:
            logger.warning(
                'Unparsable scan date', location=location, value=properties[LAST_SCAN],
            )
            return False

        return last_scan + ttl > now
