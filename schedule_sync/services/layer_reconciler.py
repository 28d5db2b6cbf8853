# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Layer reconciliation — pure computation, no I/O.

The remote service never deletes a schedule layer; a layer stops applying only
once it has an end timestamp in the past. Writes therefore carry the desired
layers plus every previously known layer that was dropped, end-dated to now.
Reads apply the inverse filter.
"""

from datetime import datetime
from typing import Any, Iterable, Optional, Sequence, TypeVar

from schedule_sync.models.domain import Restriction, ScheduleLayer
from schedule_sync.services.time_normalizer import format_utc, same_instant, to_utc, utc_now

L = TypeVar("L")


def reconcile(
    desired: Sequence[ScheduleLayer],
    prior: Iterable[ScheduleLayer],
    now: Optional[datetime] = None,
) -> list[ScheduleLayer]:
    """
    Return the layer set to send as the full replacement document.

    Every desired layer is kept as-is. A prior layer whose id is missing from
    `desired` is appended with `end` set to `now`. Layers match on id only.
    """
    cutoff = format_utc(now or utc_now())
    desired_ids = {layer.id for layer in desired if layer.id}
    write_set = list(desired)
    for layer in prior:
        if not layer.id or layer.id in desired_ids:
            continue
        write_set.append(layer.model_copy(update={"end": cutoff}))
    return write_set


def ended_layers(write_set: Sequence[ScheduleLayer], desired: Sequence[ScheduleLayer]) -> list[ScheduleLayer]:
    """Layers added to the write set by `reconcile` (the ones being closed)."""
    return list(write_set[len(desired):])


def is_active(layer: Any, now: Optional[datetime] = None) -> bool:
    if not layer.end:
        return True
    return to_utc(layer.end) > (now or utc_now())


def active_layers(layers: Sequence[L], now: Optional[datetime] = None) -> list[L]:
    """Drop layers that already ended; most recently added layer first."""
    moment = now or utc_now()
    return [layer for layer in reversed(layers) if is_active(layer, moment)]


# ── Plan / diff suppression ──


def _restriction_key(restriction: Restriction) -> tuple:
    return (
        restriction.type.value,
        restriction.start_time_of_day,
        restriction.start_day_of_week or 0,
        restriction.duration_seconds,
    )


def layer_changes(desired: ScheduleLayer, current: ScheduleLayer) -> list[str]:
    """Fields that really differ; offset-only timestamp differences are ignored."""
    changes: list[str] = []
    if desired.name and desired.name != current.name:
        changes.append("name")
    for field in ("start", "end", "rotation_virtual_start"):
        if not same_instant(getattr(desired, field), getattr(current, field)):
            changes.append(field)
    if desired.rotation_turn_length_seconds != current.rotation_turn_length_seconds:
        changes.append("rotation_turn_length_seconds")
    if desired.users != current.users:
        changes.append("users")
    if [_restriction_key(r) for r in desired.restriction] != [
        _restriction_key(r) for r in current.restriction
    ]:
        changes.append("restriction")
    return changes


def diff_layers(
    desired: Sequence[ScheduleLayer], current: Sequence[ScheduleLayer]
) -> dict[str, list]:
    """Compare declared layers against the active remote layers."""
    current_by_id = {layer.id: layer for layer in current if layer.id}
    desired_ids = {layer.id for layer in desired if layer.id}

    created: list[str] = []
    changed: list[dict[str, Any]] = []
    for index, layer in enumerate(desired):
        existing = current_by_id.get(layer.id) if layer.id else None
        if existing is None:
            created.append(layer.id or layer.name or f"layer[{index}]")
            continue
        fields = layer_changes(layer, existing)
        if fields:
            changed.append({"id": layer.id, "fields": fields})

    ended = [layer.id for layer in current if layer.id and layer.id not in desired_ids]
    return {"created": created, "changed": changed, "ended": ended}
