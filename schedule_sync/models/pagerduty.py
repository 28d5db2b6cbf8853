# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Wire models for the PagerDuty REST API v2.

Lenient on input (unknown fields ignored, remote values not re-validated);
`to_payload()` produces the JSON body the API expects on writes.
"""

from enum import Enum
from typing import Any, Optional, get_origin

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ReferenceType(str, Enum):
    SCHEDULE_REFERENCE = "schedule_reference"
    SCHEDULE = "schedule"
    USER_REFERENCE = "user_reference"
    USER = "user"
    TEAM_REFERENCE = "team_reference"
    ESCALATION_POLICY_REFERENCE = "escalation_policy_reference"

    @property
    def is_schedule(self) -> bool:
        return self in (ReferenceType.SCHEDULE_REFERENCE, ReferenceType.SCHEDULE)


class PDModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def null_to_empty(cls, data: Any) -> Any:
        """JSON null on a string or list field reads as "" or []."""
        if not isinstance(data, dict):
            return data
        cleaned = dict(data)
        for name, field in cls.model_fields.items():
            if name not in cleaned or cleaned[name] is not None:
                continue
            if field.annotation is str:
                cleaned[name] = ""
            elif get_origin(field.annotation) is list:
                cleaned[name] = []
        return cleaned


class Reference(PDModel):
    id: str
    type: ReferenceType
    summary: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type.value}


class UserReferenceWrapper(PDModel):
    user: Reference

    def to_payload(self) -> dict[str, Any]:
        return {"user": self.user.to_payload()}


class PDRestriction(PDModel):
    type: str
    start_time_of_day: str
    start_day_of_week: Optional[int] = None
    duration_seconds: int

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": self.type,
            "start_time_of_day": self.start_time_of_day,
            "duration_seconds": self.duration_seconds,
        }
        if self.start_day_of_week:
            payload["start_day_of_week"] = self.start_day_of_week
        return payload


class PDScheduleLayer(PDModel):
    id: str = ""
    name: str = ""
    start: str
    end: Optional[str] = None
    rotation_virtual_start: str
    rotation_turn_length_seconds: int
    users: list[UserReferenceWrapper] = Field(default_factory=list)
    restrictions: list[PDRestriction] = Field(default_factory=list)
    rendered_coverage_percentage: Optional[float] = None

    def to_payload(self) -> dict[str, Any]:
        # `end` is always sent: null is how an open-ended layer is expressed.
        payload: dict[str, Any] = {
            "start": self.start,
            "end": self.end or None,
            "rotation_virtual_start": self.rotation_virtual_start,
            "rotation_turn_length_seconds": self.rotation_turn_length_seconds,
            "users": [u.to_payload() for u in self.users],
            "restrictions": [r.to_payload() for r in self.restrictions],
        }
        if self.id:
            payload["id"] = self.id
        if self.name:
            payload["name"] = self.name
        return payload


class SubSchedule(PDModel):
    name: str = ""
    rendered_coverage_percentage: Optional[float] = None


class PDSchedule(PDModel):
    id: str = ""
    type: str = "schedule"
    name: str = ""
    time_zone: str
    description: str = ""
    schedule_layers: list[PDScheduleLayer] = Field(default_factory=list)
    teams: list[Reference] = Field(default_factory=list)
    escalation_policies: list[Reference] = Field(default_factory=list)
    final_schedule: Optional[SubSchedule] = None
    html_url: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": "schedule",
            "name": self.name,
            "time_zone": self.time_zone,
            "schedule_layers": [layer.to_payload() for layer in self.schedule_layers],
        }
        if self.description:
            payload["description"] = self.description
        if self.teams:
            payload["teams"] = [t.to_payload() for t in self.teams]
        return payload


class EscalationRule(PDModel):
    id: str = ""
    escalation_delay_in_minutes: int = 30
    targets: list[Reference] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "escalation_delay_in_minutes": self.escalation_delay_in_minutes,
            "targets": [t.to_payload() for t in self.targets],
        }
        if self.id:
            payload["id"] = self.id
        return payload


class EscalationPolicy(PDModel):
    id: str
    type: str = "escalation_policy"
    name: str = ""
    description: Optional[str] = None
    num_loops: int = 0
    on_call_handoff_notifications: Optional[str] = None
    escalation_rules: list[EscalationRule] = Field(default_factory=list)
    teams: list[Reference] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": "escalation_policy",
            "name": self.name,
            "num_loops": self.num_loops,
            "escalation_rules": [r.to_payload() for r in self.escalation_rules],
            "teams": [t.to_payload() for t in self.teams],
        }
        if self.description is not None:
            payload["description"] = self.description
        if self.on_call_handoff_notifications:
            payload["on_call_handoff_notifications"] = self.on_call_handoff_notifications
        return payload


class Incident(PDModel):
    id: str
    status: str
    html_url: str = ""
    title: Optional[str] = None
    teams: list[Reference] = Field(default_factory=list)
