# realty_booking/schemas/catalog.py
from __future__ import annotations
from typing import List, Optional
from uuid import UUID

from pydantic import Field, model_validator

from realty_booking.schemas.base import CamelModel
from realty_booking.schemas.availability import BlackoutResponse, RuleResponse, SettingsResponse


# ============================================================================
# Tax rates
# ============================================================================

class TaxRateCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    rate_bps: int = Field(..., ge=0, le=100_000, description="Basis points, 1300 = 13%")
    active: bool = True


class TaxRateUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    rate_bps: Optional[int] = Field(None, ge=0, le=100_000)
    active: Optional[bool] = None


class TaxRateResponse(CamelModel):
    id: UUID
    name: str
    rate_bps: int
    active: bool


# ============================================================================
# Categories
# ============================================================================

class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    sort_order: int = 0
    active: bool = True


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    sort_order: Optional[int] = None
    active: Optional[bool] = None


class CategoryResponse(CamelModel):
    id: UUID
    name: str
    description: Optional[str] = None
    sort_order: int
    active: bool


# ============================================================================
# Services
# ============================================================================

class ServiceCreate(CamelModel):
    category_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    duration_min: int = Field(..., gt=0, description="Duration in minutes")
    buffer_before_min: int = Field(0, ge=0)
    buffer_after_min: int = Field(0, ge=0)
    price_cents: int = Field(0, ge=0)
    tax_rate_ids: List[UUID] = Field(default_factory=list)
    min_sqft: Optional[int] = Field(None, ge=0)
    max_sqft: Optional[int] = Field(None, ge=0)
    sort_order: int = 0
    active: bool = True

    @model_validator(mode="after")
    def check_sqft_bounds(self) -> "ServiceCreate":
        if self.min_sqft is not None and self.max_sqft is not None and self.min_sqft > self.max_sqft:
            raise ValueError("minSqft must not exceed maxSqft")
        return self


class ServiceUpdate(CamelModel):
    category_id: Optional[UUID] = None
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    duration_min: Optional[int] = Field(None, gt=0)
    buffer_before_min: Optional[int] = Field(None, ge=0)
    buffer_after_min: Optional[int] = Field(None, ge=0)
    price_cents: Optional[int] = Field(None, ge=0)
    tax_rate_ids: Optional[List[UUID]] = None
    min_sqft: Optional[int] = Field(None, ge=0)
    max_sqft: Optional[int] = Field(None, ge=0)
    sort_order: Optional[int] = None
    active: Optional[bool] = None


class ServiceResponse(CamelModel):
    id: UUID
    category_id: UUID
    name: str
    description: Optional[str] = None
    duration_min: int
    buffer_before_min: int
    buffer_after_min: int
    formatted_duration: str
    price_cents: int
    min_sqft: Optional[int] = None
    max_sqft: Optional[int] = None
    sort_order: int
    active: bool
    tax_rates: List[TaxRateResponse] = Field(default_factory=list)


# ============================================================================
# Public catalog
# ============================================================================

class PublicCategory(CategoryResponse):
    services: List[ServiceResponse] = Field(default_factory=list)


class PublicAdmin(CamelModel):
    id: UUID
    full_name: Optional[str] = None
    admin_slug: Optional[str] = None


class PublicCatalogResponse(CamelModel):
    admin: PublicAdmin
    settings: SettingsResponse
    rules: List[RuleResponse]
    blackouts: List[BlackoutResponse]
    categories: List[PublicCategory]
