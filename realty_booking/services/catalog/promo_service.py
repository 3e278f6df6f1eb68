# ===== realty_booking/services/catalog/promo_service.py =====
"""
Promo codes: admin CRUD plus the discount a code grants on a set of
selected services.

A code with no services attached applies to every selected service;
otherwise only the selected services it lists are discounted. The discount
is split across the eligible services in proportion to their price so tax
can be charged on what the client actually pays.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence
from uuid import UUID
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from realty_booking.core.exceptions import NotFoundException, ValidationException
from realty_booking.models.booking import Booking
from realty_booking.models.promo_code import DiscountType, PromoCode
from realty_booking.models.service import Service
from realty_booking.models.types import utcnow
from realty_booking.schemas.promo import PromoCodeCreate, PromoCodeUpdate
from realty_booking.services.catalog.catalog_service import CatalogService
from realty_booking.utils.validators import ensure_aware_utc

logger = logging.getLogger(__name__)

PER_CLIENT_LIMIT_WARNING = "This code has already reached the limit for this client and may be rejected on submit."
TOTAL_LIMIT_WARNING = "This code has reached the maximum number of uses and may be rejected on submit."


@dataclass
class PromoQuote:
    """Discount a code grants on one selection of services"""
    promo: PromoCode
    discount_cents: int
    eligible_service_ids: List[UUID]
    shares: Dict[UUID, int] = field(default_factory=dict)
    warning: Optional[str] = None


def compute_discount(promo: PromoCode, services: Sequence[Service]) -> PromoQuote:
    """
    Discount and per-service shares for ``services``. Shares are rounded
    half up and the last eligible service absorbs the remainder.

    Raises:
        ValidationException: No selected service is eligible, or nothing to discount
    """
    configured = set(promo.service_ids)
    eligible = [s for s in services if s.id in configured] if configured else list(services)
    if not eligible:
        raise ValidationException(
            "This promo code does not apply to the selected services",
            details={"code": promo.code}
        )

    eligible_subtotal = sum(s.price_cents or 0 for s in eligible)
    if eligible_subtotal <= 0:
        raise ValidationException("Nothing to discount", details={"code": promo.code})

    if promo.discount_type == DiscountType.AMOUNT:
        discount = max(0, min(promo.discount_value_cents or 0, eligible_subtotal))
    else:
        discount = (eligible_subtotal * (promo.discount_rate_bps or 0) + 5000) // 10000
        discount = min(discount, eligible_subtotal)

    shares: Dict[UUID, int] = {}
    remaining = discount
    for index, service in enumerate(eligible):
        if index == len(eligible) - 1:
            share = remaining
        else:
            price = service.price_cents or 0
            share = min((2 * discount * price + eligible_subtotal) // (2 * eligible_subtotal), remaining)
        shares[service.id] = share
        remaining -= share

    return PromoQuote(
        promo=promo,
        discount_cents=discount,
        eligible_service_ids=[s.id for s in eligible],
        shares=shares,
    )


class PromoCodeService:

    # ========== CRUD ==========

    @staticmethod
    def list_promo_codes(db: Session, admin_id: UUID) -> List[PromoCode]:
        return db.query(PromoCode).filter(PromoCode.admin_id == admin_id).order_by(PromoCode.code).all()

    @staticmethod
    def get_promo_code(db: Session, admin_id: UUID, promo_id: UUID) -> PromoCode:
        promo = db.query(PromoCode).filter(
            PromoCode.id == promo_id,
            PromoCode.admin_id == admin_id
        ).first()
        if not promo:
            raise NotFoundException("Promo code not found")
        return promo

    @staticmethod
    def _owned_services(db: Session, admin_id: UUID, service_ids: Sequence[UUID]) -> List[Service]:
        if not service_ids:
            return []
        wanted = set(service_ids)
        services = db.query(Service).filter(
            Service.admin_id == admin_id,
            Service.id.in_(wanted)
        ).all()
        if len(services) != len(wanted):
            missing = wanted - {s.id for s in services}
            raise ValidationException("Unknown service", details={"serviceIds": sorted(str(m) for m in missing)})
        return services

    @staticmethod
    def _ensure_code_free(db: Session, admin_id: UUID, code: str, exclude_id: Optional[UUID] = None) -> None:
        query = db.query(PromoCode.id).filter(PromoCode.admin_id == admin_id, PromoCode.code == code)
        if exclude_id:
            query = query.filter(PromoCode.id != exclude_id)
        if query.first():
            raise ValidationException("Promo code already exists", details={"code": code})

    @staticmethod
    def create_promo_code(db: Session, admin_id: UUID, data: PromoCodeCreate) -> PromoCode:
        PromoCodeService._ensure_code_free(db, admin_id, data.code)
        services = PromoCodeService._owned_services(db, admin_id, data.service_ids)

        promo = PromoCode(admin_id=admin_id, **data.model_dump(exclude={"service_ids"}))
        promo.services = services
        db.add(promo)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValidationException("Promo code already exists", details={"code": data.code})
        db.refresh(promo)

        logger.info(f"Created promo code {promo.id} ({promo.code}) for admin {admin_id}")
        return promo

    @staticmethod
    def update_promo_code(db: Session, admin_id: UUID, promo_id: UUID, data: PromoCodeUpdate) -> PromoCode:
        promo = PromoCodeService.get_promo_code(db, admin_id, promo_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("code"):
            PromoCodeService._ensure_code_free(db, admin_id, changes["code"], exclude_id=promo.id)
        if "service_ids" in changes:
            promo.services = PromoCodeService._owned_services(db, admin_id, changes.pop("service_ids") or [])

        nullable = {"discount_value_cents", "discount_rate_bps", "start_date", "end_date",
                    "max_uses_total", "max_uses_per_client"}
        for field_name, value in changes.items():
            if value is None and field_name not in nullable:
                continue
            setattr(promo, field_name, value)

        if promo.discount_type == DiscountType.AMOUNT and promo.discount_value_cents is None:
            db.rollback()
            raise ValidationException("discountValueCents is required for AMOUNT codes")
        if promo.discount_type == DiscountType.PERCENT and promo.discount_rate_bps is None:
            db.rollback()
            raise ValidationException("discountRateBps is required for PERCENT codes")
        if promo.start_date and promo.end_date and promo.start_date >= promo.end_date:
            db.rollback()
            raise ValidationException("startDate must be before endDate")

        db.commit()
        db.refresh(promo)
        logger.info(f"Updated promo code {promo.id}: {sorted(changes)}")
        return promo

    @staticmethod
    def delete_promo_code(db: Session, admin_id: UUID, promo_id: UUID) -> None:
        """Bookings keep their stored discount; their reference to the code is cleared"""
        promo = PromoCodeService.get_promo_code(db, admin_id, promo_id)
        db.query(Booking).filter(Booking.applied_promo_code_id == promo.id).update(
            {Booking.applied_promo_code_id: None}, synchronize_session=False
        )
        db.delete(promo)
        db.commit()
        logger.info(f"Deleted promo code {promo_id}")

    # ========== REDEMPTION ==========

    @staticmethod
    def find_usable(db: Session, admin_id: UUID, code: str, now: Optional[datetime] = None) -> PromoCode:
        """
        Active code of this admin whose validity window contains ``now``.

        Raises:
            NotFoundException: Unknown or inactive code
            ValidationException: Not active yet or expired
        """
        now = ensure_aware_utc(now or utcnow())
        promo = db.query(PromoCode).filter(
            PromoCode.admin_id == admin_id,
            PromoCode.code == code.strip()
        ).first()

        if not promo or not promo.active:
            raise NotFoundException("Invalid promo code")
        if promo.start_date and now < ensure_aware_utc(promo.start_date):
            raise ValidationException("This promo code is not active yet", details={"code": promo.code})
        if promo.end_date and now > ensure_aware_utc(promo.end_date):
            raise ValidationException("This promo code has expired", details={"code": promo.code})
        return promo

    @staticmethod
    def usage_counts(db: Session, promo: PromoCode, contact_email: Optional[str] = None) -> Dict[str, int]:
        """Bookings that redeemed the code, in total and for one client email"""
        total = db.query(func.count(Booking.id)).filter(Booking.applied_promo_code_id == promo.id).scalar() or 0

        by_client = 0
        if contact_email:
            by_client = db.query(func.count(Booking.id)).filter(
                Booking.applied_promo_code_id == promo.id,
                func.lower(Booking.contact_email) == contact_email.strip().lower()
            ).scalar() or 0

        return {"total": total, "client": by_client}

    @staticmethod
    def _limit_message(db: Session, promo: PromoCode, contact_email: Optional[str]) -> Optional[str]:
        if not promo.max_uses_total and not promo.max_uses_per_client:
            return None

        used = PromoCodeService.usage_counts(db, promo, contact_email)
        if promo.max_uses_total and used["total"] >= promo.max_uses_total:
            return TOTAL_LIMIT_WARNING
        if promo.max_uses_per_client and contact_email and used["client"] >= promo.max_uses_per_client:
            return PER_CLIENT_LIMIT_WARNING
        return None

    @staticmethod
    def redeem(
            db: Session,
            admin_id: UUID,
            code: str,
            services: Sequence[Service],
            contact_email: Optional[str],
            now: Optional[datetime] = None,
    ) -> PromoQuote:
        """
        Quote for a booking being written. Usage limits are enforced here, so
        callers must hold the admin's booking lock.

        Raises:
            NotFoundException: Unknown or inactive code
            ValidationException: Window, eligibility or usage limit violated
        """
        promo = PromoCodeService.find_usable(db, admin_id, code, now=now)
        quote = compute_discount(promo, services)

        if PromoCodeService._limit_message(db, promo, contact_email):
            raise ValidationException("This promo code has reached its usage limit", details={"code": promo.code})
        return quote

    @staticmethod
    def validate(
            db: Session,
            admin_id: UUID,
            code: str,
            service_ids: Sequence[UUID],
            contact_email: Optional[str] = None,
            now: Optional[datetime] = None,
    ) -> PromoQuote:
        """Preview for the booking page; usage limits only produce a warning"""
        promo = PromoCodeService.find_usable(db, admin_id, code, now=now)
        services = CatalogService.load_services_for_booking(db, admin_id, service_ids)
        quote = compute_discount(promo, services)
        quote.warning = PromoCodeService._limit_message(db, promo, contact_email)
        return quote
