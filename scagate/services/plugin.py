from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field

import structlog

from scagate.core.exceptions import PolicyViolation
from scagate.models.coordinate import FileLayout
from scagate.models.decision import Decision
from scagate.models.package_manager import PackageManager
from scagate.services.policy_gate import PolicyGate
from scagate.services.risk_filler import RiskFiller
from scagate.services.suggestion_service import PrivatePackageSuggestion

logger = structlog.get_logger('plugin')


@dataclass(frozen=True)
class ArtifactEvent:
    """A download or upload observed by the host repository."""
    path: str
    package_type: str | None
    layout: FileLayout | None = None
    locations: Sequence[str] = field(default_factory=tuple)

    @property
    def package_manager(self) -> PackageManager:
        return PackageManager.from_package_type(self.package_type)


class ScaPlugin:
    """
    Host-facing boundary of the pipeline.

    Only a policy block escapes as PolicyViolation; every other failure is
    logged and the transfer goes ahead.
    """

    def __init__(
        self,
        filler: RiskFiller,
        gate: PolicyGate,
        suggestion: PrivatePackageSuggestion | None = None,
    ):
        self.filler = filler
        self.gate = gate
        self.suggestion = suggestion

    def before_download(self, event: ArtifactEvent, deadline: float | None = None) -> Decision:
        """
        Scan the artifact if needed and apply the policy gate.

        Raises:
            PolicyViolation if the artifact is blocked
        """
        decision = self.check(event, deadline)
        if decision.blocked:
            logger.warning(
                'Artifact blocked', path=event.path, reason=decision.reason,
            )
            raise PolicyViolation(decision.reason, decision.code or 403)
        return decision

    def check(self, event: ArtifactEvent, deadline: float | None = None) -> Decision:
        """Same as before_download, but return a blocking Decision instead of raising."""
        try:
            available = self.filler.add_risks(
                event.path, event.locations, event.package_manager,
                event.layout, deadline,
            )
            if not available:
                logger.debug('No scan record available, allowing', path=event.path)
                return Decision.allow()
            return self.gate.evaluate(event.path, event.locations)
        except Exception as e:
            logger.error(
                'Risk check failed, allowing the artifact',
                path=event.path, error=str(e),
            )
            return Decision.allow()

    def after_create(self, event: ArtifactEvent, deadline: float | None = None) -> None:
        if self.suggestion is None:
            return
        for location in event.locations:
            try:
                self.suggestion.suggest(
                    event.path, location, event.package_manager,
                    event.layout, deadline,
                )
            except Exception as e:
                logger.error(
                    'Private package suggestion failed',
                    path=event.path, location=location, error=str(e),
                )
