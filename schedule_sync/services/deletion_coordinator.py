# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Schedule deletion.

    scan ─► blocked (open incidents, nothing deleted)
    scan ─► attempt ─► deleted
               │  ▲
               ▼  │ 400 "used by escalation policies"
           detach schedule from escalation policies

Any other non-400 failure is retried until the write deadline; any other 400
fails immediately.
"""

from schedule_sync.core.errors import (
    BlockedByOpenIncidents,
    ConflictError,
    NotFoundError,
    PolicyDetachError,
    RemoteError,
    ScheduleSyncError,
)
from schedule_sync.core.logging import get_logger
from schedule_sync.core.retry import RetryPolicy
from schedule_sync.metrics.prometheus import DELETIONS_BLOCKED, POLICIES_DETACHED
from schedule_sync.models.pagerduty import EscalationPolicy
from schedule_sync.services.dependency_scanner import DependencyScanner
from schedule_sync.services.gateway import ScheduleGateway

logger = get_logger(__name__)

SCHEDULE_IN_USE_MESSAGE = "Schedule can't be deleted if it's being used by escalation policies"


def is_schedule_in_use_by_escalation_policies_conflict(error: Exception) -> bool:
    """
    True for the HTTP 400 the API returns while escalation policies still use
    the schedule: the error list must be exactly that one message.
    """
    return (
        isinstance(error, RemoteError)
        and error.status_code == 400
        and list(error.errors) == [SCHEDULE_IN_USE_MESSAGE]
    )


def _is_retryable_delete_error(error: Exception) -> bool:
    if isinstance(error, ConflictError):
        return True
    return not (isinstance(error, RemoteError) and error.status_code == 400)


def _not_found_is_final(error: Exception) -> bool:
    return not isinstance(error, NotFoundError)


def remove_schedule_from_policy(
    policy: EscalationPolicy, schedule_id: str
) -> tuple[EscalationPolicy, bool]:
    """
    Drop every target referencing `schedule_id`. A rule left without targets is
    dropped entirely. Returns the rewritten policy and whether anything changed.
    """
    rules = []
    changed = False
    for rule in policy.escalation_rules:
        targets = [
            t for t in rule.targets if not (t.type.is_schedule and t.id == schedule_id)
        ]
        if len(targets) == len(rule.targets):
            rules.append(rule)
            continue
        changed = True
        if targets:
            rules.append(rule.model_copy(update={"targets": targets}))
    return policy.model_copy(update={"escalation_rules": rules}), changed


class DeletionCoordinator:
    """Deletes a schedule once nothing blocks it, detaching escalation policies if asked to."""

    def __init__(
        self,
        gateway: ScheduleGateway,
        scanner: DependencyScanner,
        retry: RetryPolicy,
    ) -> None:
        self._gateway = gateway
        self._scanner = scanner
        self._retry = retry

    def delete(self, schedule_id: str) -> None:
        logger.info("Starting deletion of schedule %s", schedule_id)
        report = self._scanner.scan(schedule_id)

        if report.open_incident_urls:
            DELETIONS_BLOCKED.inc()
            logger.warning(
                "Deletion of schedule %s blocked by %d open incidents",
                schedule_id,
                len(report.open_incident_urls),
                extra={"schedule_id": schedule_id, "action": "delete"},
            )
            raise BlockedByOpenIncidents(schedule_id, report.open_incident_urls)

        self._retry.call(
            lambda: self._attempt(schedule_id, report.escalation_policy_ids),
            timeout=self._retry.write_timeout,
            retryable=_is_retryable_delete_error,
            description="delete schedule",
        )
        logger.info("Schedule deleted: %s", schedule_id)

    def _attempt(self, schedule_id: str, policy_ids: set[str]) -> None:
        try:
            self._gateway.delete_schedule(schedule_id)
        except NotFoundError:
            logger.info("Schedule %s already absent", schedule_id)
        except RemoteError as exc:
            if not is_schedule_in_use_by_escalation_policies_conflict(exc):
                raise
            logger.info(
                "Dissociating escalation policies that use schedule %s", schedule_id
            )
            try:
                self.detach_from_policies(schedule_id, policy_ids)
            except ScheduleSyncError as detach_exc:
                raise ConflictError(exc, detach_exc) from detach_exc
            raise ConflictError(exc) from exc

    # ── Compensation ──

    def detach_from_policies(self, schedule_id: str, policy_ids: set[str]) -> None:
        for policy_id in sorted(policy_ids):
            try:
                self._detach_from_policy(schedule_id, policy_id)
            except ScheduleSyncError as exc:
                raise PolicyDetachError(schedule_id, policy_id, exc) from exc

    def _detach_from_policy(self, schedule_id: str, policy_id: str) -> None:
        try:
            policy = self._retry.call(
                lambda: self._gateway.get_escalation_policy(policy_id),
                timeout=self._retry.lookup_timeout,
                retryable=_not_found_is_final,
                description="get escalation policy",
            )
        except NotFoundError:
            logger.info("Escalation policy %s already gone", policy_id)
            return

        updated, changed = remove_schedule_from_policy(policy, schedule_id)
        if not changed:
            return

        try:
            self._retry.call(
                lambda: self._gateway.update_escalation_policy(policy_id, updated),
                timeout=self._retry.lookup_timeout,
                retryable=_not_found_is_final,
                description="update escalation policy",
            )
        except NotFoundError:
            logger.info("Escalation policy %s deleted while detaching", policy_id)
            return
        POLICIES_DETACHED.inc()
        logger.info(
            "Schedule %s removed from escalation policy %s (%d rules left)",
            schedule_id,
            policy_id,
            len(updated.escalation_rules),
            extra={"schedule_id": schedule_id, "policy_id": policy_id, "action": "detach"},
        )
