# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Field mapping between declared schedules and PagerDuty documents.
Pure functions — no I/O.
"""

from datetime import datetime
from typing import Any, Optional

from schedule_sync.models.domain import ScheduleDefinition, ScheduleLayer
from schedule_sync.models.pagerduty import (
    PDRestriction,
    PDSchedule,
    PDScheduleLayer,
    Reference,
    ReferenceType,
    SubSchedule,
    UserReferenceWrapper,
)
from schedule_sync.services.layer_reconciler import active_layers
from schedule_sync.services.time_normalizer import normalize


def render_rounded_percentage(value: Optional[float]) -> str:
    return f"{value or 0.0:.2f}"


def expand_layer(layer: ScheduleLayer) -> PDScheduleLayer:
    """Declared layer -> wire layer. rotation_virtual_start is sent in UTC."""
    return PDScheduleLayer(
        id=layer.id,
        name=layer.name,
        start=layer.start,
        end=layer.end,
        rotation_virtual_start=normalize(layer.rotation_virtual_start),
        rotation_turn_length_seconds=layer.rotation_turn_length_seconds,
        users=[
            UserReferenceWrapper(user=Reference(id=user_id, type=ReferenceType.USER_REFERENCE))
            for user_id in layer.users
        ],
        restrictions=[
            PDRestriction(
                type=r.type.value,
                start_time_of_day=r.start_time_of_day,
                start_day_of_week=r.start_day_of_week,
                duration_seconds=r.duration_seconds,
            )
            for r in layer.restriction
        ],
    )


def build_schedule(definition: ScheduleDefinition, layers: list[ScheduleLayer]) -> PDSchedule:
    """Full replacement document for create/update."""
    return PDSchedule(
        name=definition.name,
        time_zone=definition.time_zone,
        description=definition.description,
        schedule_layers=[expand_layer(layer) for layer in layers],
        teams=[Reference(id=t, type=ReferenceType.TEAM_REFERENCE) for t in definition.teams],
    )


def flatten_restriction(restriction: PDRestriction) -> dict[str, Any]:
    flat: dict[str, Any] = {
        "type": restriction.type,
        "start_time_of_day": restriction.start_time_of_day,
        "duration_seconds": restriction.duration_seconds,
    }
    # zero means "not applicable", never a real day
    if restriction.start_day_of_week:
        flat["start_day_of_week"] = restriction.start_day_of_week
    return flat


def flatten_layer(layer: PDScheduleLayer) -> dict[str, Any]:
    return {
        "id": layer.id,
        "name": layer.name,
        "start": layer.start,
        "end": layer.end or "",
        "rotation_virtual_start": layer.rotation_virtual_start,
        "rotation_turn_length_seconds": layer.rotation_turn_length_seconds,
        "users": [u.user.id for u in layer.users],
        "restriction": [flatten_restriction(r) for r in layer.restrictions],
        "rendered_coverage_percentage": render_rounded_percentage(
            layer.rendered_coverage_percentage
        ),
    }


def flatten_schedule(
    schedule: PDSchedule, overflow: bool = False, now: Optional[datetime] = None
) -> dict[str, Any]:
    """Materialized state view: active layers only, most recently added first."""
    final = schedule.final_schedule or SubSchedule()
    return {
        "id": schedule.id,
        "name": schedule.name,
        "time_zone": schedule.time_zone,
        "description": schedule.description,
        "overflow": overflow,
        "layer": [flatten_layer(layer) for layer in active_layers(schedule.schedule_layers, now)],
        "teams": [t.id for t in schedule.teams],
        "escalation_policies": [ep.id for ep in schedule.escalation_policies],
        "final_schedule": {
            "name": final.name,
            "rendered_coverage_percentage": render_rounded_percentage(
                final.rendered_coverage_percentage
            ),
        },
    }


def layers_from_state(state: dict[str, Any]) -> list[ScheduleLayer]:
    """Rebuild declared-layer models from a stored state view."""
    return [ScheduleLayer.model_validate(layer) for layer in state.get("layer", [])]
