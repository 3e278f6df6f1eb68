# realty_booking/schemas/availability.py
from __future__ import annotations
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from realty_booking.models.booking_settings import (
    DEFAULT_BUFFER_MIN,
    DEFAULT_LEAD_TIME_MIN,
    DEFAULT_MAX_ADVANCE_DAYS,
    MAX_ADVANCE_DAYS_LIMIT,
    MAX_BUFFER_MIN,
    MAX_LEAD_TIME_MIN,
)
from realty_booking.schemas.base import CamelModel
from realty_booking.utils.validators import coerce_non_negative_int, validate_time_zone

MINUTES_PER_DAY = 1440


class RuleCreate(CamelModel):
    """Weekly availability window"""
    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday ... 6=Saturday")
    start_minutes: int = Field(..., ge=0, lt=MINUTES_PER_DAY, description="Minutes since local midnight")
    end_minutes: int = Field(..., gt=0, le=MINUTES_PER_DAY)
    time_zone: Optional[str] = Field(None, description="IANA zone, defaults to the admin's")
    active: bool = True

    @field_validator("time_zone")
    @classmethod
    def check_time_zone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_time_zone(v)

    @model_validator(mode="after")
    def check_window(self) -> "RuleCreate":
        if self.start_minutes >= self.end_minutes:
            raise ValueError("startMinutes must be before endMinutes")
        return self


class RuleUpdate(CamelModel):
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_minutes: Optional[int] = Field(None, ge=0, lt=MINUTES_PER_DAY)
    end_minutes: Optional[int] = Field(None, gt=0, le=MINUTES_PER_DAY)
    time_zone: Optional[str] = None
    active: Optional[bool] = None

    @field_validator("time_zone")
    @classmethod
    def check_time_zone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_time_zone(v)


class RuleResponse(CamelModel):
    id: UUID
    day_of_week: int
    start_minutes: int
    end_minutes: int
    time_zone: str
    active: bool


class BlackoutCreate(CamelModel):
    start: datetime
    end: datetime
    reason: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def check_window(self) -> "BlackoutCreate":
        if self.start >= self.end:
            raise ValueError("start must be before end")
        return self


class BlackoutUpdate(CamelModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    reason: Optional[str] = Field(None, max_length=255)


class BlackoutResponse(CamelModel):
    id: UUID
    start: datetime
    end: datetime
    reason: Optional[str] = None


class BookingSettingsUpsert(CamelModel):
    """
    Loose settings input. Integers are coerced rather than rejected so a
    partially filled form never leaves the admin without usable settings.
    """
    time_zone: Optional[str] = None
    lead_time_min: Any = None
    max_advance_days: Any = None
    default_buffer_min: Any = None

    @field_validator("time_zone")
    @classmethod
    def check_time_zone(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not str(v).strip():
            return None
        return validate_time_zone(v)

    @field_validator("lead_time_min")
    @classmethod
    def coerce_lead_time(cls, v: Any) -> int:
        return coerce_non_negative_int(v, DEFAULT_LEAD_TIME_MIN, MAX_LEAD_TIME_MIN)

    @field_validator("max_advance_days")
    @classmethod
    def coerce_max_advance(cls, v: Any) -> int:
        return coerce_non_negative_int(v, DEFAULT_MAX_ADVANCE_DAYS, MAX_ADVANCE_DAYS_LIMIT)

    @field_validator("default_buffer_min")
    @classmethod
    def coerce_buffer(cls, v: Any) -> int:
        return coerce_non_negative_int(v, DEFAULT_BUFFER_MIN, MAX_BUFFER_MIN)


class SettingsResponse(CamelModel):
    time_zone: str
    lead_time_min: int
    max_advance_days: int
    default_buffer_min: int
    external_calendar_id: Optional[str] = None
