# ============================================================================
# FILE: realty_booking/api/v1/dashboard/catalog.py
# Tax rates, categories, services and promo codes - admin scoped CRUD
# ============================================================================
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from realty_booking.api.dependencies import get_current_principal
from realty_booking.config.database import get_db
from realty_booking.core.principal import Principal
from realty_booking.schemas.catalog import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
    TaxRateCreate,
    TaxRateResponse,
    TaxRateUpdate,
)
from realty_booking.schemas.promo import PromoCodeCreate, PromoCodeResponse, PromoCodeUpdate
from realty_booking.services.catalog.catalog_service import CatalogService
from realty_booking.services.catalog.promo_service import PromoCodeService

router = APIRouter(tags=["dashboard-catalog"])


# ========== TAX RATES ==========

@router.get("/tax-rates", response_model=List[TaxRateResponse])
def list_tax_rates(
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return CatalogService.list_tax_rates(db, principal.admin_id)


@router.post("/tax-rates", response_model=TaxRateResponse, status_code=status.HTTP_201_CREATED)
def create_tax_rate(
        data: TaxRateCreate,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return CatalogService.create_tax_rate(db, principal.admin_id, data)


@router.patch("/tax-rates/{tax_rate_id}", response_model=TaxRateResponse)
def update_tax_rate(
        tax_rate_id: UUID,
        data: TaxRateUpdate,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return CatalogService.update_tax_rate(db, principal.admin_id, tax_rate_id, data)


@router.delete("/tax-rates/{tax_rate_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tax_rate(
        tax_rate_id: UUID,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    CatalogService.delete_tax_rate(db, principal.admin_id, tax_rate_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ========== CATEGORIES ==========

@router.get("/categories", response_model=List[CategoryResponse])
def list_categories(
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return CatalogService.list_categories(db, principal.admin_id)


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
        data: CategoryCreate,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return CatalogService.create_category(db, principal.admin_id, data)


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
def update_category(
        category_id: UUID,
        data: CategoryUpdate,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return CatalogService.update_category(db, principal.admin_id, category_id, data)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
        category_id: UUID,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    CatalogService.delete_category(db, principal.admin_id, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ========== SERVICES ==========

@router.get("/services", response_model=List[ServiceResponse])
def list_services(
        category_id: Optional[UUID] = Query(None, alias="categoryId"),
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return CatalogService.list_services(db, principal.admin_id, category_id)


@router.post("/services", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
        data: ServiceCreate,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return CatalogService.create_service(db, principal.admin_id, data)


@router.get("/services/{service_id}", response_model=ServiceResponse)
def get_service(
        service_id: UUID,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return CatalogService.get_service(db, principal.admin_id, service_id)


@router.patch("/services/{service_id}", response_model=ServiceResponse)
def update_service(
        service_id: UUID,
        data: ServiceUpdate,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return CatalogService.update_service(db, principal.admin_id, service_id, data)


@router.delete("/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
        service_id: UUID,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    CatalogService.delete_service(db, principal.admin_id, service_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ========== PROMO CODES ==========

@router.get("/promo-codes", response_model=List[PromoCodeResponse])
def list_promo_codes(
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return PromoCodeService.list_promo_codes(db, principal.admin_id)


@router.post("/promo-codes", response_model=PromoCodeResponse, status_code=status.HTTP_201_CREATED)
def create_promo_code(
        data: PromoCodeCreate,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return PromoCodeService.create_promo_code(db, principal.admin_id, data)


@router.patch("/promo-codes/{promo_id}", response_model=PromoCodeResponse)
def update_promo_code(
        promo_id: UUID,
        data: PromoCodeUpdate,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return PromoCodeService.update_promo_code(db, principal.admin_id, promo_id, data)


@router.delete("/promo-codes/{promo_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_promo_code(
        promo_id: UUID,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    PromoCodeService.delete_promo_code(db, principal.admin_id, promo_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
