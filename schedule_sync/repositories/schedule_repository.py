# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Applied schedule state.
Holds the last materialized state per schedule id, and the overflow flag
declared with it. NO business rules here — pure CRUD.
"""

from typing import Any, Optional


class ScheduleRepository:
    """In-memory state store keyed by remote schedule id."""

    def __init__(self) -> None:
        self._store: dict[str, dict[str, Any]] = {}

    # ── Read ──

    def get_all(self) -> list[dict[str, Any]]:
        return list(self._store.values())

    def get(self, schedule_id: str) -> Optional[dict[str, Any]]:
        return self._store.get(schedule_id)

    def exists(self, schedule_id: str) -> bool:
        return schedule_id in self._store

    def count(self) -> int:
        return len(self._store)

    # ── Write ──

    def save(self, schedule_id: str, state: dict[str, Any]) -> None:
        self._store[schedule_id] = state

    def delete(self, schedule_id: str) -> Optional[dict[str, Any]]:
        return self._store.pop(schedule_id, None)
