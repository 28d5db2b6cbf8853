# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas — API contract definitions.
These are Pydantic models used ONLY at the controller (HTTP) boundary.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schedule_sync.models.domain import ScheduleDefinition


class ScheduleApplyRequest(ScheduleDefinition):
    """Declared schedule for POST /api/v1/schedules and PUT /api/v1/schedules/{id}."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Primary rotation",
                "time_zone": "Europe/Paris",
                "teams": ["PTEAM01"],
                "layer": [
                    {
                        "name": "Weekdays",
                        "start": "2026-01-05T09:00:00+01:00",
                        "rotation_virtual_start": "2026-01-05T09:00:00+01:00",
                        "rotation_turn_length_seconds": 604800,
                        "users": ["PUSER01", "PUSER02"],
                        "restriction": [
                            {
                                "type": "daily_restriction",
                                "start_time_of_day": "09:00:00",
                                "duration_seconds": 32400,
                            }
                        ],
                    }
                ],
            }
        }
    )


class ScheduleImportRequest(BaseModel):
    id: str = Field(..., min_length=1, description="Existing remote schedule id")


class LayerPlan(BaseModel):
    created: list[str]
    changed: list[dict]
    ended: list[str]


class PlanChanges(BaseModel):
    fields: list[str]
    layers: LayerPlan


class SchedulePlanResponse(BaseModel):
    id: str
    has_changes: bool
    changes: PlanChanges


class ScheduleDeleteResponse(BaseModel):
    status: str
    id: str


class BlockedDeletionResponse(BaseModel):
    detail: str
    schedule_id: str
    incidents: list[str]
    error: Optional[str] = "blocked_by_open_incidents"
