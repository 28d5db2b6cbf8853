# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models — the declared schedule document, NO FastAPI dependency.
Validation here runs before any remote call is made.
"""

from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from schedule_sync.core.config import settings
from schedule_sync.core.errors import ScheduleValidationError
from schedule_sync.services.time_normalizer import to_utc

SECONDS_PER_DAY = 24 * 3600
MIN_TURN_LENGTH_SECONDS = 3600
MAX_TURN_LENGTH_SECONDS = 365 * SECONDS_PER_DAY
MAX_RESTRICTION_DURATION_SECONDS = 7 * SECONDS_PER_DAY - 1


class RestrictionType(str, Enum):
    DAILY = "daily_restriction"
    WEEKLY = "weekly_restriction"


class Restriction(BaseModel):
    """A recurring window limiting when a layer's rotation applies."""

    type: RestrictionType
    start_time_of_day: str = Field(
        ...,
        pattern=r"^([0-1][0-9]|2[0-3]):[0-5][0-9]:[0-5][0-9]$",
        description="Start of the window, HH:MM:SS",
    )
    start_day_of_week: Optional[int] = Field(
        default=None, ge=0, le=7, description="1 (Monday) to 7; weekly restrictions only"
    )
    duration_seconds: int = Field(..., ge=1, le=MAX_RESTRICTION_DURATION_SECONDS)

    @field_validator("start_day_of_week")
    @classmethod
    def zero_means_unset(cls, v: Optional[int]) -> Optional[int]:
        return v or None

    @model_validator(mode="after")
    def check_daily_restriction(self) -> "Restriction":
        if self.type is RestrictionType.DAILY:
            if self.start_day_of_week:
                raise ScheduleValidationError(
                    "start_day_of_week must only be set for a weekly_restriction"
                )
            if self.duration_seconds >= SECONDS_PER_DAY:
                raise ScheduleValidationError(
                    "duration_seconds for a daily_restriction must be shorter than a day"
                )
        return self


class ScheduleLayer(BaseModel):
    """One rotation of on-call users inside a schedule."""

    id: str = Field(default="", description="Assigned by the remote service")
    name: str = Field(default="", max_length=255)
    start: str
    end: Optional[str] = Field(default=None, description="Empty means open-ended")
    rotation_virtual_start: str
    rotation_turn_length_seconds: int = Field(
        ..., ge=MIN_TURN_LENGTH_SECONDS, le=MAX_TURN_LENGTH_SECONDS
    )
    users: list[str] = Field(..., min_length=1)
    restriction: list[Restriction] = Field(default_factory=list)

    @field_validator("id", "name", mode="before")
    @classmethod
    def none_to_empty(cls, v: Optional[str]) -> str:
        return v or ""

    @field_validator("end", mode="before")
    @classmethod
    def empty_end_is_open(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator("start", "end", "rotation_virtual_start")
    @classmethod
    def check_rfc3339(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            to_utc(v)
        return v


class ScheduleDefinition(BaseModel):
    """The declared state of one schedule."""

    name: str = Field(default="", max_length=255)
    time_zone: str
    overflow: bool = False
    description: str = Field(default_factory=lambda: settings.DEFAULT_DESCRIPTION)
    layer: list[ScheduleLayer] = Field(..., min_length=1)
    teams: list[str] = Field(default_factory=list)

    @field_validator("time_zone")
    @classmethod
    def check_time_zone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
            raise ScheduleValidationError(f"unknown time zone {v!r}") from exc
        return v
