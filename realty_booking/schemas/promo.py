# realty_booking/schemas/promo.py
from __future__ import annotations
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from realty_booking.models.promo_code import DiscountType
from realty_booking.schemas.base import CamelModel
from realty_booking.utils.validators import ensure_aware_utc

FULL_RATE_BPS = 10_000


def _strip_code(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("code must not be blank")
    return v


class PromoCodeCreate(CamelModel):
    display_name: str = Field(..., min_length=1, max_length=200)
    code: str = Field(..., min_length=1, max_length=64)
    discount_type: DiscountType
    discount_value_cents: Optional[int] = Field(None, ge=0)
    discount_rate_bps: Optional[int] = Field(None, gt=0, le=FULL_RATE_BPS, description="10000 = 100%")
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_uses_total: Optional[int] = Field(None, ge=1)
    max_uses_per_client: Optional[int] = Field(None, ge=1)
    active: bool = True
    service_ids: List[UUID] = Field(default_factory=list, description="Empty applies to every service")

    @field_validator("code")
    @classmethod
    def check_code(cls, v: Optional[str]) -> Optional[str]:
        return _strip_code(v)

    @field_validator("start_date", "end_date")
    @classmethod
    def check_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware_utc(v) if v else v

    @model_validator(mode="after")
    def check_discount(self) -> "PromoCodeCreate":
        if self.discount_type == DiscountType.AMOUNT and self.discount_value_cents is None:
            raise ValueError("discountValueCents is required for AMOUNT codes")
        if self.discount_type == DiscountType.PERCENT and self.discount_rate_bps is None:
            raise ValueError("discountRateBps is required for PERCENT codes")
        if self.start_date and self.end_date and self.start_date >= self.end_date:
            raise ValueError("startDate must be before endDate")
        return self


class PromoCodeUpdate(CamelModel):
    display_name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, min_length=1, max_length=64)
    discount_type: Optional[DiscountType] = None
    discount_value_cents: Optional[int] = Field(None, ge=0)
    discount_rate_bps: Optional[int] = Field(None, gt=0, le=FULL_RATE_BPS)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_uses_total: Optional[int] = Field(None, ge=1)
    max_uses_per_client: Optional[int] = Field(None, ge=1)
    active: Optional[bool] = None
    service_ids: Optional[List[UUID]] = None

    @field_validator("code")
    @classmethod
    def check_code(cls, v: Optional[str]) -> Optional[str]:
        return _strip_code(v)

    @field_validator("start_date", "end_date")
    @classmethod
    def check_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware_utc(v) if v else v


class PromoCodeResponse(CamelModel):
    id: UUID
    display_name: str
    code: str
    discount_type: DiscountType
    discount_value_cents: Optional[int] = None
    discount_rate_bps: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_uses_total: Optional[int] = None
    max_uses_per_client: Optional[int] = None
    active: bool
    service_ids: List[UUID] = Field(default_factory=list)


class PromoValidateRequest(CamelModel):
    """Public pre-check of a code against the services picked so far"""
    code: str = Field(..., min_length=1, max_length=64)
    service_ids: List[UUID] = Field(..., min_length=1)
    contact_email: Optional[str] = Field(None, max_length=255)

    @field_validator("code")
    @classmethod
    def check_code(cls, v: Optional[str]) -> Optional[str]:
        return _strip_code(v)


class PromoValidateResponse(CamelModel):
    promo_id: UUID
    discount_cents: int
    applies_to_service_ids: List[UUID]
    warning: Optional[str] = None
