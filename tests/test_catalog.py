"""Service catalog administration and the public catalog view"""
from uuid import uuid4

import pytest
from pydantic import ValidationError

from realty_booking.core.exceptions import NotFoundException, ValidationException
from realty_booking.models import ServiceCategory, TaxRate, UserRole
from realty_booking.schemas.availability import BlackoutCreate
from realty_booking.schemas.catalog import (
    CategoryCreate,
    CategoryUpdate,
    PublicCatalogResponse,
    ServiceCreate,
    ServiceUpdate,
    TaxRateCreate,
)
from realty_booking.services.availability.availability_service import AvailabilityService
from realty_booking.services.catalog.catalog_service import CatalogService

from tests.conftest import MONDAY, add_rule, at, book, make_admin, make_service


class TestResolveAdmin:

    def test_by_slug_or_id(self, db, admin):
        assert CatalogService.resolve_admin(db, "acme-media").id == admin.id
        assert CatalogService.resolve_admin(db, str(admin.id)).id == admin.id

    def test_unknown_slug(self, db, admin):
        with pytest.raises(NotFoundException):
            CatalogService.resolve_admin(db, "nobody")

    def test_realtors_and_inactive_admins_are_hidden(self, db):
        make_admin(db, "a-realtor", role=UserRole.REALTOR)
        retired = make_admin(db, "retired-media")
        retired.is_active = False
        db.commit()

        with pytest.raises(NotFoundException):
            CatalogService.resolve_admin(db, "a-realtor")
        with pytest.raises(NotFoundException):
            CatalogService.resolve_admin(db, "retired-media")


class TestServices:

    def test_create_with_tax_rates(self, db, admin):
        category = CatalogService.create_category(db, admin.id, CategoryCreate(name="Photography"))
        rate = CatalogService.create_tax_rate(db, admin.id, TaxRateCreate(name="HST", rate_bps=1300))

        service = CatalogService.create_service(db, admin.id, ServiceCreate(
            category_id=category.id,
            name="Interior photos",
            duration_min=90,
            buffer_after_min=30,
            price_cents=25000,
            tax_rate_ids=[rate.id],
        ))

        assert service.occupancy_minutes == 120
        assert service.formatted_duration == "1h 30m"
        assert [t.id for t in service.tax_rates] == [rate.id]

    def test_foreign_tax_rate_or_category(self, db, admin):
        other = make_admin(db, "other-media")
        foreign_rate = CatalogService.create_tax_rate(db, other.id, TaxRateCreate(name="GST", rate_bps=500))
        foreign_category = CatalogService.create_category(db, other.id, CategoryCreate(name="Video"))
        category = CatalogService.create_category(db, admin.id, CategoryCreate(name="Photography"))

        with pytest.raises(ValidationException):
            CatalogService.create_service(db, admin.id, ServiceCreate(
                category_id=category.id, name="Photos", duration_min=60, tax_rate_ids=[foreign_rate.id]
            ))
        with pytest.raises(NotFoundException):
            CatalogService.create_service(db, admin.id, ServiceCreate(
                category_id=foreign_category.id, name="Photos", duration_min=60
            ))

    def test_sqft_bounds(self, db, admin):
        with pytest.raises(ValidationError):
            ServiceCreate(category_id=uuid4(), name="Plan", duration_min=30, min_sqft=3000, max_sqft=1000)

        service = make_service(db, admin, min_sqft=1000)
        with pytest.raises(ValidationException):
            CatalogService.update_service(db, admin.id, service.id, ServiceUpdate(max_sqft=500))

        assert CatalogService.get_service(db, admin.id, service.id).max_sqft is None

    def test_update_clears_tax_rates(self, db, admin):
        rate = TaxRate(admin_id=admin.id, name="HST", rate_bps=1300)
        db.add(rate)
        db.commit()
        service = make_service(db, admin, tax_rates=[rate])

        updated = CatalogService.update_service(db, admin.id, service.id, ServiceUpdate(tax_rate_ids=[], price_cents=500))

        assert updated.tax_rates == []
        assert updated.price_cents == 500

    def test_booked_service_cannot_be_deleted(self, db, admin):
        add_rule(db, admin)
        service = make_service(db, admin)
        book(db, admin, at(MONDAY, 9), [service])

        with pytest.raises(ValidationException):
            CatalogService.delete_service(db, admin.id, service.id)

        CatalogService.update_service(db, admin.id, service.id, ServiceUpdate(active=False))
        assert CatalogService.get_service(db, admin.id, service.id).active is False

    def test_unbooked_service_is_deleted(self, db, admin):
        service = make_service(db, admin)
        CatalogService.delete_service(db, admin.id, service.id)

        with pytest.raises(NotFoundException):
            CatalogService.get_service(db, admin.id, service.id)

    def test_list_by_category(self, db, admin):
        first = make_service(db, admin, name="Photos")
        extra = CatalogService.create_category(db, admin.id, CategoryCreate(name="Video", sort_order=1))
        CatalogService.create_service(db, admin.id, ServiceCreate(category_id=extra.id, name="Reel", duration_min=45))

        assert len(CatalogService.list_services(db, admin.id)) == 2
        assert [s.id for s in CatalogService.list_services(db, admin.id, category_id=first.category_id)] == [first.id]


class TestCategories:

    def test_category_with_services_cannot_be_deleted(self, db, admin):
        service = make_service(db, admin)

        with pytest.raises(ValidationException):
            CatalogService.delete_category(db, admin.id, service.category_id)

    def test_update_and_delete_empty_category(self, db, admin):
        category = CatalogService.create_category(db, admin.id, CategoryCreate(name="Drone", description="Aerial"))

        updated = CatalogService.update_category(db, admin.id, category.id, CategoryUpdate(description=None, sort_order=5))
        assert updated.description is None
        assert updated.sort_order == 5
        assert updated.name == "Drone"

        CatalogService.delete_category(db, admin.id, category.id)
        assert CatalogService.list_categories(db, admin.id) == []


class TestPublicCatalog:

    def test_inactive_records_are_hidden(self, db, admin):
        add_rule(db, admin)
        add_rule(db, admin, day_of_week=2, active=False)
        AvailabilityService.create_blackout(db, admin.id, BlackoutCreate(start=at(MONDAY, 12), end=at(MONDAY, 13)))

        hst = TaxRate(admin_id=admin.id, name="HST", rate_bps=1300)
        old = TaxRate(admin_id=admin.id, name="Old", rate_bps=100, active=False)
        db.add_all([hst, old])
        db.commit()

        make_service(db, admin, name="Photos", tax_rates=[hst, old])
        make_service(db, admin, name="Retired", active=False)
        hidden = ServiceCategory(admin_id=admin.id, name="Hidden", active=False)
        db.add(hidden)
        db.commit()
        CatalogService.create_service(db, admin.id, ServiceCreate(category_id=hidden.id, name="Secret", duration_min=30))

        catalog = PublicCatalogResponse.model_validate(CatalogService.public_catalog(db, admin))

        assert catalog.admin.admin_slug == "acme-media"
        assert catalog.settings.time_zone == "UTC"
        assert [r.day_of_week for r in catalog.rules] == [1]
        assert len(catalog.blackouts) == 1
        assert [c.name for c in catalog.categories] == ["Media"]
        services = catalog.categories[0].services
        assert [s.name for s in services] == ["Photos"]
        assert [t.name for t in services[0].tax_rates] == ["HST"]

    def test_categories_without_active_services_are_skipped(self, db, admin):
        CatalogService.create_category(db, admin.id, CategoryCreate(name="Empty"))

        catalog = CatalogService.public_catalog(db, admin)

        assert catalog["categories"] == []
