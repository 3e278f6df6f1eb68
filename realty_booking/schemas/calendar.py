# realty_booking/schemas/calendar.py
from __future__ import annotations
from typing import List, Optional

from pydantic import Field

from realty_booking.schemas.base import CamelModel


class CalendarStatusResponse(CamelModel):
    connected: bool
    provider: str = "google"
    calendar_id: Optional[str] = Field(None, description="Selected calendar, None means primary")


class CalendarItem(CamelModel):
    id: str
    display_name: str
    is_primary: bool = False


class CalendarListResponse(CamelModel):
    calendars: List[CalendarItem]


class CalendarSelect(CamelModel):
    calendar_id: Optional[str] = Field(None, max_length=255)


class AuthorizationUrlResponse(CamelModel):
    authorization_url: str
