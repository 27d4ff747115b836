from collections.abc import Sequence

import structlog

from scagate.core.config import PolicyConfig
from scagate.core.exceptions import ScanRecordIncomplete
from scagate.core.storage import PropertyStore
from scagate.models import scan_record
from scagate.models.decision import Decision
from scagate.models.threshold import SecurityRiskThreshold

logger = structlog.get_logger('policy_gate')

# Counters that block at each threshold: anything strictly above it.
SEVERITY_COUNTERS = (
    (SecurityRiskThreshold.MEDIUM, scan_record.MEDIUM_RISKS_COUNT),
    (SecurityRiskThreshold.HIGH, scan_record.HIGH_RISKS_COUNT),
    (SecurityRiskThreshold.CRITICAL, scan_record.CRITICAL_RISKS_COUNT),
)

NO_LICENSE_ALLOWED = 'none'


def threshold_message(artifact_name: str) -> str:
    return (
        'Artifact has risks that do not comply with the security risk threshold. '
        f"Artifact Name: {artifact_name}"
    )


def license_message(artifact_name: str) -> str:
    return f"License allowance not compliant for the artifact: {artifact_name}"


def exceeds_threshold(threshold: SecurityRiskThreshold, counts: dict[str, int]) -> bool:
    """
    Whether a risk-count vector violates `threshold`.

    LOW blocks on any risk, using the total count.
    """
    if threshold == SecurityRiskThreshold.NONE:
        return False
    if threshold == SecurityRiskThreshold.LOW:
        return counts[scan_record.TOTAL_RISKS_COUNT] > 0
    return any(
        counts[key] > 0
        for severity, key in SEVERITY_COUNTERS
        if severity.rank >= threshold.rank
    )


def violates_license_policy(allowed: set[str], licenses: set[str]) -> bool:
    if not allowed:
        return False
    if len(allowed) == 1 and next(iter(allowed)).lower() == NO_LICENSE_ALLOWED:
        return True
    return allowed.isdisjoint(licenses)


class PolicyGate:
    """Evaluates the security risk threshold and license allow-list."""

    def __init__(self, store: PropertyStore, config: PolicyConfig | None = None):
        self.store = store
        self.config = config or PolicyConfig()

    def evaluate(self, artifact_name: str, locations: Sequence[str]) -> Decision:
        """Threshold first, then license. The first block wins."""
        decision = self.check_threshold(artifact_name, locations)
        if decision.blocked:
            return decision
        return self.check_license(artifact_name, locations)

    def check_threshold(self, artifact_name: str, locations: Sequence[str]) -> Decision:
        threshold = self.config.threshold
        if threshold == SecurityRiskThreshold.NONE or not locations:
            return Decision.allow()

        if self._is_ignored(locations, scan_record.IGNORE_THRESHOLD):
            return Decision.allow()

        location = self._first_location(locations)
        counts = {
            key: self._read_count(location, key)
            for key in (
                scan_record.TOTAL_RISKS_COUNT,
                scan_record.MEDIUM_RISKS_COUNT,
                scan_record.HIGH_RISKS_COUNT,
                scan_record.CRITICAL_RISKS_COUNT,
            )
        }

        if exceeds_threshold(threshold, counts):
            logger.info(
                'Security risk threshold exceeded',
                artifact=artifact_name, threshold=str(threshold), location=location,
            )
            return Decision.block(threshold_message(artifact_name))
        return Decision.allow()

    def check_license(self, artifact_name: str, locations: Sequence[str]) -> Decision:
        allowed = self.config.allowed_licenses
        if not allowed or not locations:
            return Decision.allow()

        if self._is_ignored(locations, scan_record.IGNORE_LICENSE):
            return Decision.allow()

        location = self._first_location(locations)
        value = self.store.get_property(location, scan_record.LICENSES) or ''
        licenses = {name.strip() for name in value.split(',') if name.strip()}

        if violates_license_policy(allowed, licenses):
            logger.info(
                'License not allowed',
                artifact=artifact_name, licenses=sorted(licenses), location=location,
            )
            return Decision.block(license_message(artifact_name))
        return Decision.allow()

    def _is_ignored(self, locations: Sequence[str], ignore_key: str) -> bool:
        """Scan every location for `ignore_key` set to true, matching keys case-insensitively."""
        wanted = ignore_key.lower()
        for location in locations:
            for key, value in self.store.get_all_properties(location).items():
                if key.lower() == wanted and value.strip().lower() == 'true':
                    logger.warning(
                        'Policy check ignored for artifact',
                        property=key, location=location,
                    )
                    return True
        return False

    @staticmethod
    def _first_location(locations: Sequence[str]) -> str:
        if len(locations) > 1:
            logger.warning(
                'More than one location found for the artifact, only the first is evaluated',
                locations=list(locations),
            )
        return locations[0]

    def _read_count(self, location: str, key: str) -> int:
        value = self.store.get_property(location, key)
        if value is None:
            raise ScanRecordIncomplete(location, key)
        try:
            return int(value)
        except ValueError:
            raise ScanRecordIncomplete(location, key)
