"""Promo codes: discount math, redemption rules and the related endpoints"""
from datetime import timedelta

import pytest

from realty_booking.core.exceptions import NotFoundException, ValidationException
from realty_booking.models import Booking, DiscountType, PromoCode, TaxRate
from realty_booking.schemas.booking import BookingCreate, ContactInfo
from realty_booking.services.booking.booking_service import BookingService, compute_totals
from realty_booking.services.catalog.promo_service import (
    PER_CLIENT_LIMIT_WARNING,
    TOTAL_LIMIT_WARNING,
    PromoCodeService,
    compute_discount,
)

from tests.conftest import FIXED_NOW, MONDAY, add_rule, at, auth_headers, book, make_service

BASE = "/api/v1/public/booking/acme-media"
API = "/api/v1/dashboard/catalog"


def make_promo(db, admin, code="SPRING", services=None, **overrides) -> PromoCode:
    values = dict(display_name="Spring launch", discount_type=DiscountType.AMOUNT, discount_value_cents=3000)
    values.update(overrides)
    promo = PromoCode(admin_id=admin.id, code=code, **values)
    promo.services = services or []
    db.add(promo)
    db.commit()
    return promo


@pytest.fixture
def hst(db, admin):
    rate = TaxRate(admin_id=admin.id, name="HST", rate_bps=1300)
    db.add(rate)
    db.commit()
    return rate


@pytest.fixture
def photo(db, admin, hst):
    add_rule(db, admin)
    return make_service(db, admin, name="Photos", price_cents=10000, tax_rates=[hst])


@pytest.fixture
def video(db, admin, hst):
    return make_service(db, admin, name="Video", duration_min=30, price_cents=5000, tax_rates=[hst])


class TestDiscountMath:

    def test_amount_is_prorated_and_taxed_after_discount(self, db, admin, photo, video):
        quote = compute_discount(make_promo(db, admin), [photo, video])

        assert quote.discount_cents == 3000
        assert quote.shares == {photo.id: 2000, video.id: 1000}
        # 8000 * 13% + 4000 * 13%
        assert compute_totals([photo, video], quote.shares) == (15000, 1560, 13560)

    def test_amount_is_capped_at_eligible_subtotal(self, db, admin, photo, video):
        promo = make_promo(db, admin, discount_value_cents=9000, services=[video])

        quote = compute_discount(promo, [photo, video])

        assert quote.discount_cents == 5000
        assert quote.eligible_service_ids == [video.id]
        assert compute_totals([photo, video], quote.shares) == (15000, 1300, 11300)

    def test_percent_on_a_subset(self, db, admin, photo, video):
        promo = make_promo(db, admin, discount_type=DiscountType.PERCENT, discount_value_cents=None,
                           discount_rate_bps=1000, services=[video])

        quote = compute_discount(promo, [photo, video])

        assert quote.discount_cents == 500
        assert quote.shares == {video.id: 500}
        assert compute_totals([photo, video], quote.shares) == (15000, 1300 + 585, 16385)

    def test_last_service_absorbs_rounding(self, db, admin):
        services = [make_service(db, admin, name=f"Service {n}", price_cents=100) for n in range(3)]

        quote = compute_discount(make_promo(db, admin, discount_value_cents=100), services)

        assert [quote.shares[s.id] for s in services] == [33, 33, 34]

    def test_subset_not_selected(self, db, admin, photo, video):
        promo = make_promo(db, admin, services=[video])

        with pytest.raises(ValidationException) as exc_info:
            compute_discount(promo, [photo])

        assert "does not apply" in exc_info.value.message

    def test_totals_without_discount_are_unchanged(self, db, admin, photo):
        assert compute_totals([photo]) == (10000, 1300, 11300)


class TestRedemption:

    def test_booking_stores_discount(self, db, admin, photo, video):
        promo = make_promo(db, admin)

        booking = book(db, admin, at(MONDAY, 9), [photo, video], promo_code=" SPRING ")

        assert booking.discount_cents == 3000
        assert booking.applied_promo_code_id == promo.id
        assert (booking.subtotal_cents, booking.tax_cents, booking.total_cents) == (15000, 1560, 13560)

    def test_unknown_and_inactive_codes(self, db, admin, photo):
        make_promo(db, admin, code="OFF", active=False)

        for code in ("NOPE", "OFF"):
            with pytest.raises(NotFoundException):
                book(db, admin, at(MONDAY, 9), [photo], promo_code=code)

        assert db.query(Booking).count() == 0

    def test_validity_window(self, db, admin, photo):
        make_promo(db, admin, code="LATER", start_date=FIXED_NOW + timedelta(days=1))
        make_promo(db, admin, code="PAST", end_date=FIXED_NOW - timedelta(days=1))

        with pytest.raises(ValidationException, match="not active yet"):
            book(db, admin, at(MONDAY, 9), [photo], promo_code="LATER")
        with pytest.raises(ValidationException, match="expired"):
            book(db, admin, at(MONDAY, 9), [photo], promo_code="PAST")

    def test_total_limit(self, db, admin, photo):
        make_promo(db, admin, max_uses_total=1)
        book(db, admin, at(MONDAY, 9), [photo], promo_code="SPRING")

        with pytest.raises(ValidationException, match="usage limit"):
            book(db, admin, at(MONDAY, 11), [photo], promo_code="SPRING")

        assert db.query(Booking).count() == 1

    def test_per_client_limit_is_keyed_by_email(self, db, admin, photo):
        make_promo(db, admin, max_uses_per_client=1)
        book(db, admin, at(MONDAY, 9), [photo], promo_code="SPRING")

        with pytest.raises(ValidationException):
            book(db, admin, at(MONDAY, 11), [photo], promo_code="SPRING")

        other = BookingCreate(
            start=at(MONDAY, 11),
            service_ids=[photo.id],
            contact=ContactInfo(name="Sam Agent", email="sam@example.com"),
            promo_code="SPRING",
        )
        booking = BookingService.create_booking(db, admin.id, other, now=FIXED_NOW)
        assert booking.discount_cents == 3000

    def test_validate_only_warns_on_limits(self, db, admin, photo):
        make_promo(db, admin, max_uses_total=1)
        book(db, admin, at(MONDAY, 9), [photo], promo_code="SPRING")

        quote = PromoCodeService.validate(db, admin.id, "SPRING", [photo.id], contact_email="x@example.com",
                                          now=FIXED_NOW)

        assert quote.discount_cents == 3000
        assert quote.warning == TOTAL_LIMIT_WARNING

    def test_deleting_a_code_keeps_booking_discount(self, db, admin, photo):
        promo = make_promo(db, admin)
        booking = book(db, admin, at(MONDAY, 9), [photo], promo_code="SPRING")

        PromoCodeService.delete_promo_code(db, admin.id, promo.id)
        db.refresh(booking)

        assert booking.applied_promo_code_id is None
        assert booking.discount_cents == 3000


class TestPromoRoutes:

    def test_validate(self, client, db, admin, photo, video):
        make_promo(db, admin, services=[video])

        response = client.post(f"{BASE}/promo/validate", json={
            "code": "SPRING",
            "serviceIds": [str(photo.id), str(video.id)],
        })

        assert response.status_code == 200
        data = response.json()
        assert data["discountCents"] == 3000
        assert data["appliesToServiceIds"] == [str(video.id)]
        assert data["warning"] is None

    def test_validate_per_client_warning(self, client, db, admin, photo):
        make_promo(db, admin, max_uses_per_client=1)
        book(db, admin, at(MONDAY, 9), [photo], promo_code="SPRING")

        data = client.post(f"{BASE}/promo/validate", json={
            "code": "SPRING",
            "serviceIds": [str(photo.id)],
            "contactEmail": "JANE@example.com",
        }).json()

        assert data["warning"] == PER_CLIENT_LIMIT_WARNING

    @pytest.mark.parametrize("body, status_code", [
        ({"code": "NOPE"}, 404),
        ({"code": "   "}, 400),
        ({"code": "SPRING", "serviceIds": []}, 400),
    ])
    def test_validate_errors(self, client, db, admin, photo, body, status_code):
        make_promo(db, admin)
        payload = {"serviceIds": [str(photo.id)]}
        payload.update(body)

        assert client.post(f"{BASE}/promo/validate", json=payload).status_code == status_code

    def test_submit_with_promo_code(self, client, db, admin, photo):
        make_promo(db, admin, discount_type=DiscountType.PERCENT, discount_value_cents=None, discount_rate_bps=2500)

        response = client.post(f"{BASE}/bookings", json={
            "start": "2025-03-10T09:00:00Z",
            "serviceIds": [str(photo.id)],
            "contact": {"name": "Jane Realtor", "email": "jane@example.com"},
            "promoCode": "SPRING",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["discountCents"] == 2500
        # 7500 + 13% of 7500
        assert data["totalCents"] == 7500 + 975

    def test_dashboard_crud(self, client, admin, photo):
        headers = auth_headers(admin)
        body = {
            "displayName": "Spring launch",
            "code": "SPRING",
            "discountType": "PERCENT",
            "discountRateBps": 1500,
            "serviceIds": [str(photo.id)],
        }

        created = client.post(f"{API}/promo-codes", headers=headers, json=body)
        assert created.status_code == 201
        promo_id = created.json()["id"]
        assert created.json()["serviceIds"] == [str(photo.id)]

        assert client.post(f"{API}/promo-codes", headers=headers, json=body).status_code == 400

        updated = client.patch(f"{API}/promo-codes/{promo_id}", headers=headers,
                               json={"active": False, "serviceIds": []})
        assert updated.json()["active"] is False
        assert updated.json()["serviceIds"] == []

        assert [p["code"] for p in client.get(f"{API}/promo-codes", headers=headers).json()] == ["SPRING"]
        assert client.delete(f"{API}/promo-codes/{promo_id}", headers=headers).status_code == 204
        assert client.get(f"{API}/promo-codes", headers=headers).json() == []

    @pytest.mark.parametrize("body", [
        {"discountType": "AMOUNT"},
        {"discountType": "PERCENT", "discountRateBps": 20000},
        {"discountType": "AMOUNT", "discountValueCents": 100,
         "startDate": "2025-04-01T00:00:00Z", "endDate": "2025-03-01T00:00:00Z"},
    ])
    def test_invalid_promo_code(self, client, admin, body):
        payload = {"displayName": "Bad", "code": "BAD"}
        payload.update(body)

        response = client.post(f"{API}/promo-codes", headers=auth_headers(admin), json=payload)

        assert response.status_code == 400
