# realty_booking/schemas/booking.py
from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from realty_booking.models.booking import BookingStatus
from realty_booking.schemas.base import CamelModel
from realty_booking.utils.validators import validate_email


class ContactInfo(CamelModel):
    """Who the booking is for"""
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    company: Optional[str] = Field(None, max_length=255)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return validate_email(v)


class SlotRequest(CamelModel):
    start: datetime
    end: datetime
    service_ids: List[UUID] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_range(self) -> "SlotRequest":
        if self.start >= self.end:
            raise ValueError("start must be before end")
        return self


class SlotResponse(CamelModel):
    time_zone: str
    occupancy_minutes: int
    step_minutes: int
    slots: List[datetime]
    external_busy_applied: bool = False


class BookingCreate(CamelModel):
    """Public booking submission"""
    start: datetime
    service_ids: List[UUID] = Field(..., min_length=1)
    contact: ContactInfo
    property_address: Optional[str] = Field(None, max_length=500)
    property_size_sqft: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None
    promo_code: Optional[str] = Field(None, max_length=64)


class BookingUpdate(CamelModel):
    status: Optional[BookingStatus] = None
    start: Optional[datetime] = None
    notes: Optional[str] = None


class BookingServiceItem(CamelModel):
    id: UUID
    name: str
    duration_min: int
    buffer_before_min: int
    buffer_after_min: int
    price_cents: int


class BookingResponse(CamelModel):
    id: UUID
    admin_id: UUID
    status: BookingStatus
    start: datetime
    end: datetime
    time_zone: str
    contact_name: str
    contact_email: str
    contact_phone: Optional[str] = None
    company: Optional[str] = None
    property_address: Optional[str] = None
    property_size_sqft: Optional[int] = None
    notes: Optional[str] = None
    subtotal_cents: int
    tax_cents: int
    discount_cents: int = 0
    total_cents: int
    applied_promo_code_id: Optional[UUID] = None
    external_event_id: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    services: List[BookingServiceItem] = Field(default_factory=list)


class SyncResponse(CamelModel):
    booking: BookingResponse
    event: Dict[str, Any]
