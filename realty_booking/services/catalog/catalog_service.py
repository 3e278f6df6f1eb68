# ===== realty_booking/services/catalog/catalog_service.py =====
"""
Service catalog: tax rates, categories and services owned by one admin,
plus the read-only public view the booking page renders from.
"""
from typing import Dict, List, Optional, Sequence
from uuid import UUID
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from realty_booking.core.exceptions import NotFoundException, ValidationException
from realty_booking.models.availability import AvailabilityRule, BlackoutDate
from realty_booking.models.booking import booking_services
from realty_booking.models.service import Service, ServiceCategory, TaxRate
from realty_booking.models.user import ADMIN_ROLES, User
from realty_booking.schemas.catalog import (
    CategoryCreate,
    CategoryUpdate,
    ServiceCreate,
    ServiceUpdate,
    TaxRateCreate,
    TaxRateUpdate,
)
from realty_booking.services.availability.settings_service import BookingSettingsService

logger = logging.getLogger(__name__)


class CatalogService:

    # ========== ADMIN RESOLUTION ==========

    @staticmethod
    def resolve_admin(db: Session, slug_or_id: str) -> User:
        """Active admin by public slug, falling back to id"""
        filters = [User.admin_slug == slug_or_id]
        try:
            filters.append(User.id == UUID(str(slug_or_id)))
        except ValueError:
            pass

        admin = db.query(User).filter(
            or_(*filters),
            User.role.in_(ADMIN_ROLES),
            User.is_active == True
        ).first()

        if not admin:
            raise NotFoundException("Admin not found")
        return admin

    # ========== TAX RATES ==========

    @staticmethod
    def list_tax_rates(db: Session, admin_id: UUID) -> List[TaxRate]:
        return db.query(TaxRate).filter(TaxRate.admin_id == admin_id).order_by(TaxRate.name).all()

    @staticmethod
    def _get_tax_rate(db: Session, admin_id: UUID, tax_rate_id: UUID) -> TaxRate:
        tax_rate = db.query(TaxRate).filter(
            TaxRate.id == tax_rate_id,
            TaxRate.admin_id == admin_id
        ).first()
        if not tax_rate:
            raise NotFoundException("Tax rate not found")
        return tax_rate

    @staticmethod
    def create_tax_rate(db: Session, admin_id: UUID, data: TaxRateCreate) -> TaxRate:
        tax_rate = TaxRate(admin_id=admin_id, name=data.name, rate_bps=data.rate_bps, active=data.active)
        db.add(tax_rate)
        db.commit()
        db.refresh(tax_rate)
        logger.info(f"Created tax rate {tax_rate.id} ({tax_rate.name}) for admin {admin_id}")
        return tax_rate

    @staticmethod
    def update_tax_rate(db: Session, admin_id: UUID, tax_rate_id: UUID, data: TaxRateUpdate) -> TaxRate:
        tax_rate = CatalogService._get_tax_rate(db, admin_id, tax_rate_id)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(tax_rate, field, value)
        db.commit()
        db.refresh(tax_rate)
        return tax_rate

    @staticmethod
    def delete_tax_rate(db: Session, admin_id: UUID, tax_rate_id: UUID) -> None:
        tax_rate = CatalogService._get_tax_rate(db, admin_id, tax_rate_id)
        db.delete(tax_rate)
        db.commit()
        logger.info(f"Deleted tax rate {tax_rate_id}")

    @staticmethod
    def _owned_tax_rates(db: Session, admin_id: UUID, tax_rate_ids: Sequence[UUID]) -> List[TaxRate]:
        if not tax_rate_ids:
            return []
        wanted = set(tax_rate_ids)
        rates = db.query(TaxRate).filter(
            TaxRate.admin_id == admin_id,
            TaxRate.id.in_(wanted)
        ).all()
        if len(rates) != len(wanted):
            raise ValidationException("Unknown tax rate", details={"taxRateIds": [str(t) for t in wanted]})
        return rates

    # ========== CATEGORIES ==========

    @staticmethod
    def list_categories(db: Session, admin_id: UUID) -> List[ServiceCategory]:
        return db.query(ServiceCategory).filter(
            ServiceCategory.admin_id == admin_id
        ).order_by(ServiceCategory.sort_order, ServiceCategory.name).all()

    @staticmethod
    def _get_category(db: Session, admin_id: UUID, category_id: UUID) -> ServiceCategory:
        category = db.query(ServiceCategory).filter(
            ServiceCategory.id == category_id,
            ServiceCategory.admin_id == admin_id
        ).first()
        if not category:
            raise NotFoundException("Category not found")
        return category

    @staticmethod
    def create_category(db: Session, admin_id: UUID, data: CategoryCreate) -> ServiceCategory:
        category = ServiceCategory(admin_id=admin_id, **data.model_dump())
        db.add(category)
        db.commit()
        db.refresh(category)
        logger.info(f"Created category {category.id} ({category.name}) for admin {admin_id}")
        return category

    @staticmethod
    def update_category(db: Session, admin_id: UUID, category_id: UUID, data: CategoryUpdate) -> ServiceCategory:
        category = CatalogService._get_category(db, admin_id, category_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field != "description":
                continue
            setattr(category, field, value)
        db.commit()
        db.refresh(category)
        return category

    @staticmethod
    def delete_category(db: Session, admin_id: UUID, category_id: UUID) -> None:
        category = CatalogService._get_category(db, admin_id, category_id)
        if category.services:
            raise ValidationException("Category still has services; move or delete them first")
        db.delete(category)
        db.commit()
        logger.info(f"Deleted category {category_id}")

    # ========== SERVICES ==========

    @staticmethod
    def list_services(db: Session, admin_id: UUID, category_id: Optional[UUID] = None) -> List[Service]:
        query = db.query(Service).filter(Service.admin_id == admin_id)
        if category_id:
            query = query.filter(Service.category_id == category_id)
        return query.order_by(Service.sort_order, Service.name).all()

    @staticmethod
    def get_service(db: Session, admin_id: UUID, service_id: UUID) -> Service:
        service = db.query(Service).filter(
            Service.id == service_id,
            Service.admin_id == admin_id
        ).first()
        if not service:
            raise NotFoundException("Service not found")
        return service

    @staticmethod
    def create_service(db: Session, admin_id: UUID, data: ServiceCreate) -> Service:
        category = CatalogService._get_category(db, admin_id, data.category_id)
        tax_rates = CatalogService._owned_tax_rates(db, admin_id, data.tax_rate_ids)

        fields = data.model_dump(exclude={"tax_rate_ids", "category_id"})
        service = Service(admin_id=admin_id, category_id=category.id, **fields)
        service.tax_rates = tax_rates

        db.add(service)
        db.commit()
        db.refresh(service)

        logger.info(f"Created service {service.id}: {service.name} ({service.occupancy_minutes}m occupancy)")
        return service

    @staticmethod
    def update_service(db: Session, admin_id: UUID, service_id: UUID, data: ServiceUpdate) -> Service:
        service = CatalogService.get_service(db, admin_id, service_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("category_id"):
            service.category_id = CatalogService._get_category(db, admin_id, changes.pop("category_id")).id
        changes.pop("category_id", None)

        if "tax_rate_ids" in changes:
            service.tax_rates = CatalogService._owned_tax_rates(db, admin_id, changes.pop("tax_rate_ids") or [])

        nullable = {"description", "min_sqft", "max_sqft"}
        for field, value in changes.items():
            if value is None and field not in nullable:
                continue
            setattr(service, field, value)

        if service.min_sqft is not None and service.max_sqft is not None and service.min_sqft > service.max_sqft:
            db.rollback()
            raise ValidationException("minSqft must not exceed maxSqft")

        db.commit()
        db.refresh(service)
        logger.info(f"Updated service {service.id}: {sorted(changes)}")
        return service

    @staticmethod
    def delete_service(db: Session, admin_id: UUID, service_id: UUID) -> None:
        """Hard delete; services referenced by bookings can only be deactivated"""
        service = CatalogService.get_service(db, admin_id, service_id)
        in_use = db.query(booking_services).filter(booking_services.c.service_id == service.id).first()
        if in_use:
            raise ValidationException("Service is referenced by bookings; deactivate it instead")

        db.delete(service)
        db.commit()
        logger.info(f"Deleted service {service_id}")

    @staticmethod
    def load_services_for_booking(db: Session, admin_id: UUID, service_ids: Sequence[UUID]) -> List[Service]:
        """
        Active services of this admin, in catalog order.

        Raises:
            ValidationException: If any id is unknown, inactive or another admin's
        """
        wanted = set(service_ids)
        if not wanted:
            return []

        services = db.query(Service).filter(
            Service.admin_id == admin_id,
            Service.id.in_(wanted),
            Service.active == True
        ).order_by(Service.sort_order, Service.name).all()

        if len(services) != len(wanted):
            missing = wanted - {s.id for s in services}
            raise ValidationException(
                "Unknown or inactive service",
                details={"serviceIds": sorted(str(m) for m in missing)}
            )
        return services

    # ========== PUBLIC CATALOG ==========

    @staticmethod
    def public_catalog(db: Session, admin: User) -> Dict:
        """Everything the public booking page needs; inactive records never leave here"""
        settings = BookingSettingsService.get(db, admin.id)

        rules = db.query(AvailabilityRule).filter(
            AvailabilityRule.admin_id == admin.id,
            AvailabilityRule.active == True
        ).order_by(AvailabilityRule.day_of_week, AvailabilityRule.start_minutes).all()

        blackouts = db.query(BlackoutDate).filter(
            BlackoutDate.admin_id == admin.id
        ).order_by(BlackoutDate.start).all()

        categories = db.query(ServiceCategory).filter(
            ServiceCategory.admin_id == admin.id,
            ServiceCategory.active == True
        ).order_by(ServiceCategory.sort_order, ServiceCategory.name).all()

        public_categories = []
        for category in categories:
            services = [s for s in category.services if s.active]
            if not services:
                continue
            public_categories.append({
                "id": category.id,
                "name": category.name,
                "description": category.description,
                "sort_order": category.sort_order,
                "active": category.active,
                "services": [
                    CatalogService._public_service(s) for s in services
                ],
            })

        return {
            "admin": admin,
            "settings": settings,
            "rules": rules,
            "blackouts": blackouts,
            "categories": public_categories,
        }

    @staticmethod
    def _public_service(service: Service) -> Dict:
        return {
            "id": service.id,
            "category_id": service.category_id,
            "name": service.name,
            "description": service.description,
            "duration_min": service.duration_min,
            "buffer_before_min": service.buffer_before_min,
            "buffer_after_min": service.buffer_after_min,
            "formatted_duration": service.formatted_duration,
            "price_cents": service.price_cents,
            "min_sqft": service.min_sqft,
            "max_sqft": service.max_sqft,
            "sort_order": service.sort_order,
            "active": service.active,
            "tax_rates": [t for t in service.tax_rates if t.active],
        }
