# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Schedule lifecycle — create, read, update, plan, import, delete.
Coordinates the remote gateway with the state store, the layer reconciler
and the deletion coordinator.
"""

from datetime import datetime
from typing import Any, Callable

from schedule_sync.core.errors import NotFoundError, TransientRemoteError
from schedule_sync.core.logging import get_logger
from schedule_sync.core.retry import RetryPolicy, is_transient
from schedule_sync.metrics.prometheus import (
    LAYERS_ENDED,
    MANAGED_SCHEDULES,
    SCHEDULE_OPERATIONS,
)
from schedule_sync.models.domain import ScheduleDefinition
from schedule_sync.models.pagerduty import PDSchedule
from schedule_sync.repositories.schedule_repository import ScheduleRepository
from schedule_sync.services.deletion_coordinator import DeletionCoordinator
from schedule_sync.services.gateway import ScheduleGateway
from schedule_sync.services.layer_reconciler import diff_layers, ended_layers, reconcile
from schedule_sync.services.schedule_mapper import (
    build_schedule,
    flatten_schedule,
    layers_from_state,
)
from schedule_sync.services.time_normalizer import utc_now

logger = get_logger(__name__)

SCHEDULE_FIELDS: tuple[str, ...] = ("name", "time_zone", "description", "teams", "overflow")


def _transient_or_missing(exc: Exception) -> bool:
    # a freshly created schedule may not be readable yet
    return isinstance(exc, (TransientRemoteError, NotFoundError))


def _has_changes(changes: dict[str, Any]) -> bool:
    layers = changes["layers"]
    return bool(changes["fields"] or layers["created"] or layers["changed"] or layers["ended"])


class ScheduleService:
    """Business logic for keeping declared schedules in sync with PagerDuty."""

    def __init__(
        self,
        gateway: ScheduleGateway,
        schedule_repo: ScheduleRepository,
        coordinator: DeletionCoordinator,
        retry: RetryPolicy,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._gateway = gateway
        self._schedules = schedule_repo
        self._coordinator = coordinator
        self._retry = retry
        self._clock = clock

    # ── Commands ──

    def create_schedule(self, definition: ScheduleDefinition) -> dict[str, Any]:
        document = build_schedule(definition, list(definition.layer))
        logger.info("Creating schedule: %s", definition.name)
        created = self._retry.call(
            lambda: self._gateway.create_schedule(document, overflow=definition.overflow),
            timeout=self._retry.write_timeout,
            description="create schedule",
        )
        SCHEDULE_OPERATIONS.labels(operation="create").inc()
        return self._refresh(created.id, definition.overflow, allow_missing=True)

    def update_schedule(
        self, schedule_id: str, definition: ScheduleDefinition
    ) -> dict[str, Any]:
        """
        Full replace against the schedule as it is now remotely. Layers dropped
        from the declaration are end-dated, never removed.
        """
        prior_state = self._current_state(schedule_id)
        changes = self._diff(definition, prior_state)
        if not _has_changes(changes):
            logger.info("Schedule %s already up to date", schedule_id)
            return prior_state

        write_set = reconcile(
            definition.layer, layers_from_state(prior_state), now=self._clock()
        )
        for layer in ended_layers(write_set, definition.layer):
            LAYERS_ENDED.inc()
            logger.info(
                "Ending layer %s of schedule %s at %s",
                layer.id,
                schedule_id,
                layer.end,
                extra={"schedule_id": schedule_id, "action": "update"},
            )

        document = build_schedule(definition, write_set)
        logger.info("Updating schedule: %s", schedule_id)
        self._retry.call(
            lambda: self._gateway.update_schedule(
                schedule_id, document, overflow=definition.overflow
            ),
            timeout=self._retry.write_timeout,
            description="update schedule",
        )
        SCHEDULE_OPERATIONS.labels(operation="update").inc()
        return self._refresh(schedule_id, definition.overflow)

    def import_schedule(self, schedule_id: str) -> dict[str, Any]:
        """Adopt an existing remote schedule by id."""
        logger.info("Importing schedule: %s", schedule_id)
        state = self._refresh(schedule_id, overflow=False)
        SCHEDULE_OPERATIONS.labels(operation="import").inc()
        return state

    def delete_schedule(self, schedule_id: str) -> dict[str, str]:
        try:
            self._coordinator.delete(schedule_id)
        except NotFoundError:
            logger.info("Schedule %s no longer exists remotely", schedule_id)
        self._schedules.delete(schedule_id)
        MANAGED_SCHEDULES.set(self._schedules.count())
        SCHEDULE_OPERATIONS.labels(operation="delete").inc()
        return {"status": "deleted", "id": schedule_id}

    # ── Queries ──

    def get_schedule(self, schedule_id: str) -> dict[str, Any]:
        """Read the remote schedule. A 404 forgets the stored state and propagates."""
        logger.info("Reading schedule: %s", schedule_id)
        stored = self._schedules.get(schedule_id)
        overflow = stored["overflow"] if stored else False
        try:
            return self._refresh(schedule_id, overflow)
        except NotFoundError:
            self._schedules.delete(schedule_id)
            MANAGED_SCHEDULES.set(self._schedules.count())
            raise

    def plan_schedule(
        self, schedule_id: str, definition: ScheduleDefinition
    ) -> dict[str, Any]:
        """What an update would change, without writing anything."""
        changes = self._diff(definition, self._current_state(schedule_id))
        return {"id": schedule_id, "has_changes": _has_changes(changes), "changes": changes}

    def list_schedules(self) -> list[dict[str, Any]]:
        return self._schedules.get_all()

    # ── Internals ──

    def _current_state(self, schedule_id: str) -> dict[str, Any]:
        # always the remote view: changes made outside this service must be converged too
        return self.get_schedule(schedule_id)

    def _fetch(self, schedule_id: str, allow_missing: bool = False) -> PDSchedule:
        return self._retry.call(
            lambda: self._gateway.get_schedule(schedule_id),
            timeout=self._retry.read_timeout,
            retryable=_transient_or_missing if allow_missing else is_transient,
            description="get schedule",
        )

    def _refresh(
        self, schedule_id: str, overflow: bool, allow_missing: bool = False
    ) -> dict[str, Any]:
        schedule = self._fetch(schedule_id, allow_missing=allow_missing)
        state = flatten_schedule(schedule, overflow=overflow, now=self._clock())
        self._schedules.save(schedule_id, state)
        MANAGED_SCHEDULES.set(self._schedules.count())
        return state

    def _diff(self, definition: ScheduleDefinition, state: dict[str, Any]) -> dict[str, Any]:
        declared = definition.model_dump()
        fields = [f for f in SCHEDULE_FIELDS if declared[f] != state.get(f)]
        return {
            "fields": fields,
            "layers": diff_layers(definition.layer, layers_from_state(state)),
        }
