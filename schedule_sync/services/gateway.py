# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""ScheduleGateway protocol — the remote operations the reconciler depends on."""

from typing import Protocol, runtime_checkable

from schedule_sync.models.pagerduty import EscalationPolicy, Incident, PDSchedule


@runtime_checkable
class ScheduleGateway(Protocol):
    """
    Remote scheduling service contract.

    Implementations raise the RemoteError family from schedule_sync.core.errors:
    NotFoundError for 404, TransientRemoteError for network/429/5xx failures,
    RemoteError (with the `errors` list from the payload) for everything else.
    """

    def create_schedule(self, schedule: PDSchedule, overflow: bool = False) -> PDSchedule:
        ...

    def get_schedule(self, schedule_id: str) -> PDSchedule:
        ...

    def update_schedule(
        self, schedule_id: str, schedule: PDSchedule, overflow: bool = False
    ) -> PDSchedule:
        """Full-document replace: every layer must be supplied."""
        ...

    def delete_schedule(self, schedule_id: str) -> None:
        ...

    def get_escalation_policy(self, policy_id: str) -> EscalationPolicy:
        ...

    def update_escalation_policy(
        self, policy_id: str, policy: EscalationPolicy
    ) -> EscalationPolicy:
        ...

    def list_open_incidents(
        self,
        team_ids: list[str],
        statuses: tuple[str, ...] = ("triggered", "acknowledged"),
        date_range: str = "all",
    ) -> list[Incident]:
        ...
