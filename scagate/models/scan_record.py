from datetime import datetime
from datetime import timezone

from scagate.models.risk import RiskAggregation

PREFIX = 'SCA'

PACKAGE_ID = f'{PREFIX}.PackageIdentification'
TOTAL_RISKS_COUNT = f'{PREFIX}.TotalRisksCount'
LOW_RISKS_COUNT = f'{PREFIX}.LowRisksCount'
MEDIUM_RISKS_COUNT = f'{PREFIX}.MediumRisksCount'
HIGH_RISKS_COUNT = f'{PREFIX}.HighRisksCount'
CRITICAL_RISKS_COUNT = f'{PREFIX}.CriticalRisksCount'
RISK_SCORE = f'{PREFIX}.RiskScore'
RISK_LEVEL = f'{PREFIX}.RiskLevel'
LICENSES = f'{PREFIX}.Licenses'
LAST_SCAN = f'{PREFIX}.LastScan'

IGNORE_THRESHOLD = f'{PREFIX}.IgnoreThreshold'
IGNORE_LICENSE = f'{PREFIX}.IgnoreLicense'
PRIVATE_PACKAGE_SUGGESTED = f'{PREFIX}.PrivatePackageSuggested'

# A location carries a complete scan record only when all of these are set.
REQUIRED_KEYS = (
    TOTAL_RISKS_COUNT,
    LOW_RISKS_COUNT,
    MEDIUM_RISKS_COUNT,
    HIGH_RISKS_COUNT,
    CRITICAL_RISKS_COUNT,
    RISK_SCORE,
    RISK_LEVEL,
    LAST_SCAN,
)


def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 scan date. Naive values are taken as UTC."""
    moment = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def to_properties(
    risks: RiskAggregation,
    scanned_at: datetime | None = None,
) -> dict[str, str]:
    """Render a risk aggregation as the property set stored on a location."""
    scanned_at = scanned_at or datetime.now(timezone.utc)
    aggregation = risks.vulnerabilities
    return {
        TOTAL_RISKS_COUNT: str(aggregation.vulnerabilities_count),
        LOW_RISKS_COUNT: str(aggregation.low_risk_count),
        MEDIUM_RISKS_COUNT: str(aggregation.medium_risk_count),
        HIGH_RISKS_COUNT: str(aggregation.high_risk_count),
        CRITICAL_RISKS_COUNT: str(aggregation.critical_risk_count),
        RISK_SCORE: str(aggregation.max_risk_score),
        RISK_LEVEL: aggregation.max_risk_severity,
        LICENSES: ','.join(risks.licenses),
        LAST_SCAN: format_timestamp(scanned_at),
    }
