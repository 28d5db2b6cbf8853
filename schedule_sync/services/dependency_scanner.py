# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Dependency scanning — who still points at a schedule.

Open incidents are found through the schedule's teams. The API has no direct
schedule -> incident link, so this over-reports incidents of unrelated services
on the same team and misses incidents on teams not attached to the schedule.
A schedule without teams sends no team filter at all, so every open incident
in the account blocks its deletion.
"""

from dataclasses import dataclass, field

from schedule_sync.core.logging import get_logger
from schedule_sync.core.retry import RetryPolicy
from schedule_sync.models.pagerduty import PDSchedule
from schedule_sync.services.gateway import ScheduleGateway

logger = get_logger(__name__)

OPEN_INCIDENT_STATUSES: tuple[str, ...] = ("triggered", "acknowledged")


@dataclass
class DependencyReport:
    schedule_id: str
    escalation_policy_ids: set[str] = field(default_factory=set)
    open_incident_urls: list[str] = field(default_factory=list)


class DependencyScanner:
    """Discovers escalation policies and open incidents tied to a schedule."""

    def __init__(self, gateway: ScheduleGateway, retry: RetryPolicy) -> None:
        self._gateway = gateway
        self._retry = retry

    def _fetch_schedule(self, schedule_id: str) -> PDSchedule:
        return self._retry.call(
            lambda: self._gateway.get_schedule(schedule_id),
            timeout=self._retry.lookup_timeout,
            description="get schedule",
        )

    def _policies_of(self, schedule: PDSchedule) -> set[str]:
        return {ep.id for ep in schedule.escalation_policies}

    def _open_incidents_of(self, schedule: PDSchedule) -> list[str]:
        team_ids = [t.id for t in schedule.teams]
        incidents = self._retry.call(
            lambda: self._gateway.list_open_incidents(
                team_ids, statuses=OPEN_INCIDENT_STATUSES, date_range="all"
            ),
            timeout=self._retry.lookup_timeout,
            description="list incidents",
        )
        return [i.html_url for i in incidents]

    # ── Queries ──

    def find_escalation_policies(self, schedule_id: str) -> set[str]:
        return self._policies_of(self._fetch_schedule(schedule_id))

    def find_open_incidents(self, schedule_id: str) -> list[str]:
        return self._open_incidents_of(self._fetch_schedule(schedule_id))

    def scan(self, schedule_id: str) -> DependencyReport:
        """Both lookups from a single schedule fetch."""
        schedule = self._fetch_schedule(schedule_id)
        report = DependencyReport(
            schedule_id=schedule_id,
            escalation_policy_ids=self._policies_of(schedule),
            open_incident_urls=self._open_incidents_of(schedule),
        )
        logger.info(
            "Dependencies of schedule %s: %d escalation policies, %d open incidents",
            schedule_id,
            len(report.escalation_policy_ids),
            len(report.open_incident_urls),
        )
        return report
