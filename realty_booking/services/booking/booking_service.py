# ===== realty_booking/services/booking/booking_service.py =====
"""
Booking lifecycle: create, reschedule, cancel, and reconcile with the
external calendar.

The booking table is the source of truth; the external calendar is a mirror
that is pushed to best-effort and pulled from only by explicit sync.
"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID
import logging
import threading

from sqlalchemy.orm import Session

from realty_booking.config.settings import get_settings
from realty_booking.core.exceptions import (
    InvalidTransitionException,
    NoLinkedEventException,
    NotConnectedException,
    NotFoundException,
    RemoteEventNotFoundException,
    SlotUnavailableException,
    UpstreamUnavailableException,
    ValidationException,
)
from realty_booking.core.principal import Principal
from realty_booking.models.booking import Booking, BookingStatus, STATUS_TRANSITIONS
from realty_booking.models.booking_settings import BookingSettings
from realty_booking.models.service import Service
from realty_booking.models.types import utcnow
from realty_booking.schemas.booking import BookingCreate, BookingUpdate
from realty_booking.services.availability import slot_engine
from realty_booking.services.availability.availability_service import AvailabilityService
from realty_booking.services.availability.settings_service import BookingSettingsService
from realty_booking.services.calendar.calendar_adapter import (
    CalendarAdapter,
    Disconnected,
    EventDraft,
    RemoteEvent,
)
from realty_booking.services.catalog.catalog_service import CatalogService
from realty_booking.services.catalog.promo_service import PromoCodeService
from realty_booking.utils.validators import ensure_aware_utc

logger = logging.getLogger(__name__)


# ============================================================================
# Per-admin critical section
# ============================================================================
# Check-then-write for one admin runs under a process lock and, inside the
# transaction, a row lock on that admin's settings row. The row lock covers
# multiple processes on databases that support SELECT ... FOR UPDATE.

_locks_guard = threading.Lock()
_admin_locks: Dict[UUID, threading.Lock] = {}


def _admin_lock(admin_id: UUID) -> threading.Lock:
    with _locks_guard:
        return _admin_locks.setdefault(admin_id, threading.Lock())


def _lock_settings_row(db: Session, admin_id: UUID) -> BookingSettings:
    settings = db.query(BookingSettings).filter(
        BookingSettings.admin_id == admin_id
    ).with_for_update().first()

    if settings is None:
        settings = BookingSettings.defaults(admin_id)
        db.add(settings)
        db.flush()
    return settings


# ============================================================================
# Pricing
# ============================================================================

def compute_totals(
        services: Sequence[Service],
        discount_shares: Optional[Dict[UUID, int]] = None,
) -> Tuple[int, int, int]:
    """
    (subtotal, tax, total) in cents. Tax is computed per service and per
    active tax rate on the price less that service's discount share,
    rounding half up. Total is subtotal - discount + tax.
    """
    shares = discount_shares or {}
    subtotal = 0
    tax = 0
    discount = 0
    for service in services:
        price = service.price_cents or 0
        share = min(shares.get(service.id, 0), price)
        subtotal += price
        discount += share
        taxable = max(0, price - share)
        for rate in service.tax_rates:
            if rate.active:
                tax += (taxable * rate.rate_bps + 5000) // 10000
    return subtotal, tax, subtotal - discount + tax


def _check_property_size(services: Sequence[Service], size_sqft: Optional[int]) -> None:
    if size_sqft is None:
        return
    for service in services:
        if service.min_sqft is not None and size_sqft < service.min_sqft:
            raise ValidationException(
                f"{service.name} requires at least {service.min_sqft} sq ft",
                details={"serviceId": str(service.id)}
            )
        if service.max_sqft is not None and size_sqft > service.max_sqft:
            raise ValidationException(
                f"{service.name} is limited to {service.max_sqft} sq ft",
                details={"serviceId": str(service.id)}
            )


class BookingService:

    # ========== QUERIES ==========

    @staticmethod
    def get_booking(db: Session, principal: Principal, booking_id: UUID) -> Booking:
        """Booking visible to the principal; other admins' bookings are reported as missing"""
        query = db.query(Booking).filter(Booking.id == booking_id)
        if not principal.is_superadmin:
            query = query.filter(Booking.admin_id == principal.admin_id)

        booking = query.first()
        if not booking:
            raise NotFoundException("Booking not found")
        return booking

    @staticmethod
    def list_bookings(
            db: Session,
            principal: Principal,
            status: Optional[BookingStatus] = None,
            start: Optional[datetime] = None,
            end: Optional[datetime] = None,
    ) -> List[Booking]:
        query = db.query(Booking)
        if not principal.is_superadmin:
            query = query.filter(Booking.admin_id == principal.admin_id)
        if status:
            query = query.filter(Booking.status == status)
        if start:
            query = query.filter(Booking.end > ensure_aware_utc(start))
        if end:
            query = query.filter(Booking.start < ensure_aware_utc(end))
        return query.order_by(Booking.start).all()

    # ========== CREATE ==========

    @staticmethod
    def create_booking(
            db: Session,
            admin_id: UUID,
            data: BookingCreate,
            now: Optional[datetime] = None,
            status: BookingStatus = BookingStatus.CONFIRMED,
    ) -> Booking:
        """
        Create a booking if ``data.start`` is still a bookable slot.

        Raises:
            ValidationException: Unknown/inactive services or property size out of range
            SlotUnavailableException: The start is no longer in the computable slot set
            NotFoundException: Unknown or inactive promo code
        """
        now = ensure_aware_utc(now or utcnow())
        start = ensure_aware_utc(data.start)

        services = CatalogService.load_services_for_booking(db, admin_id, data.service_ids)
        _check_property_size(services, data.property_size_sqft)
        with _admin_lock(admin_id):
            try:
                quote = None
                if data.promo_code:
                    quote = PromoCodeService.redeem(
                        db, admin_id, data.promo_code, services, data.contact.email, now=now
                    )
                subtotal, tax, total = compute_totals(services, quote.shares if quote else None)

                settings = _lock_settings_row(db, admin_id)
                occupancy = slot_engine.compute_occupancy_minutes(services, settings.default_buffer_min)
                end = start + timedelta(minutes=occupancy)

                rules, blackouts, bookings = AvailabilityService.load_engine_inputs(db, admin_id, start, end)
                available = slot_engine.is_slot_available(
                    start,
                    settings,
                    rules,
                    blackouts,
                    bookings,
                    occupancy_minutes=occupancy,
                    now=now,
                    step_minutes=get_settings().SLOT_STEP_MINUTES,
                )
                if not available:
                    raise SlotUnavailableException(
                        "Selected time is no longer available",
                        details={"start": start.isoformat()}
                    )

                booking = Booking(
                    admin_id=admin_id,
                    status=status,
                    start=start,
                    end=end,
                    time_zone=settings.time_zone,
                    contact_name=data.contact.name,
                    contact_email=data.contact.email,
                    contact_phone=data.contact.phone,
                    company=data.contact.company,
                    property_address=data.property_address,
                    property_size_sqft=data.property_size_sqft,
                    notes=data.notes,
                    subtotal_cents=subtotal,
                    tax_cents=tax,
                    discount_cents=quote.discount_cents if quote else 0,
                    total_cents=total,
                    applied_promo_code_id=quote.promo.id if quote else None,
                )
                booking.services = list(services)
                db.add(booking)
                db.commit()

            except Exception:
                db.rollback()
                raise

        logger.info(
            f"Created booking {booking.id} for admin {admin_id}: "
            f"{booking.start.isoformat()} - {booking.end.isoformat()} ({occupancy}m), total={total}"
        )
        return booking

    # ========== UPDATE / CANCEL ==========

    @staticmethod
    def cancel_booking(
            db: Session,
            principal: Principal,
            booking_id: UUID,
            adapter: Optional[CalendarAdapter] = None,
            now: Optional[datetime] = None,
    ) -> Booking:
        booking = BookingService.get_booking(db, principal, booking_id)
        if not booking.is_active:
            raise InvalidTransitionException(
                f"Cannot cancel a {booking.status.value} booking",
                details={"status": booking.status.value}
            )

        booking.status = BookingStatus.CANCELLED
        booking.cancelled_at = ensure_aware_utc(now or utcnow())
        db.commit()
        logger.info(f"Cancelled booking {booking.id}")

        if adapter is not None and booking.external_event_id:
            BookingService._delete_mirror(db, booking, adapter)

        return booking

    @staticmethod
    def _delete_mirror(db: Session, booking: Booking, adapter: CalendarAdapter) -> None:
        calendar_id = BookingSettingsService.get(db, booking.admin_id).external_calendar_id
        try:
            adapter.delete_event(booking.admin_id, calendar_id, booking.external_event_id)
        except RemoteEventNotFoundException:
            logger.info(f"Mirrored event {booking.external_event_id} already gone")
        except (UpstreamUnavailableException, NotConnectedException) as e:
            logger.warning(f"Could not delete mirrored event for booking {booking.id}: {e.message}")
            return

        booking.external_event_id = None
        db.commit()

    @staticmethod
    def update_booking(
            db: Session,
            principal: Principal,
            booking_id: UUID,
            data: BookingUpdate,
            adapter: Optional[CalendarAdapter] = None,
            now: Optional[datetime] = None,
    ) -> Booking:
        """
        Status transition and/or reschedule.

        A new start is validated against the slot engine with the booking's own
        occupancy excluded, and the end is recomputed from its services.
        Confirming a booking or moving a mirrored one pushes it to the calendar.
        """
        now = ensure_aware_utc(now or utcnow())
        booking = BookingService.get_booking(db, principal, booking_id)

        if data.status == BookingStatus.CANCELLED and booking.status != BookingStatus.CANCELLED:
            return BookingService.cancel_booking(db, principal, booking_id, adapter=adapter, now=now)

        if data.status is not None and data.status != booking.status:
            if data.status not in STATUS_TRANSITIONS[booking.status]:
                raise InvalidTransitionException(
                    f"Cannot move booking from {booking.status.value} to {data.status.value}",
                    details={"from": booking.status.value, "to": data.status.value}
                )

        confirmed = data.status == BookingStatus.CONFIRMED and booking.status != BookingStatus.CONFIRMED
        rescheduled = False
        new_start = ensure_aware_utc(data.start) if data.start else None

        if new_start is not None and new_start != booking.start:
            if not booking.is_active:
                raise InvalidTransitionException(f"Cannot reschedule a {booking.status.value} booking")
            BookingService._reschedule(db, booking, new_start, now)
            rescheduled = True

        if data.status is not None:
            booking.status = data.status
        if data.notes is not None:
            booking.notes = data.notes

        db.commit()
        logger.info(f"Updated booking {booking.id}: status={booking.status.value} rescheduled={rescheduled}")

        if adapter is not None and (confirmed or (rescheduled and booking.external_event_id)):
            try:
                BookingService.push_to_calendar(db, booking.id, adapter)
            except (UpstreamUnavailableException, NotConnectedException) as e:
                logger.warning(f"Could not mirror update of booking {booking.id}: {e.message}")

        return booking

    @staticmethod
    def _reschedule(db: Session, booking: Booking, new_start: datetime, now: datetime) -> None:
        with _admin_lock(booking.admin_id):
            try:
                settings = _lock_settings_row(db, booking.admin_id)
                occupancy = slot_engine.compute_occupancy_minutes(booking.services, settings.default_buffer_min)
                new_end = new_start + timedelta(minutes=occupancy)

                rules, blackouts, bookings = AvailabilityService.load_engine_inputs(
                    db, booking.admin_id, new_start, new_end, exclude_booking_id=booking.id
                )
                available = slot_engine.is_slot_available(
                    new_start,
                    settings,
                    rules,
                    blackouts,
                    bookings,
                    occupancy_minutes=occupancy,
                    now=now,
                    step_minutes=get_settings().SLOT_STEP_MINUTES,
                )
                if not available:
                    raise SlotUnavailableException(
                        "Selected time is no longer available",
                        details={"start": new_start.isoformat()}
                    )

                booking.start = new_start
                booking.end = new_end
                db.commit()
            except Exception:
                db.rollback()
                raise

    # ========== EXTERNAL CALENDAR ==========

    @staticmethod
    def sync_from_external_calendar(
            db: Session,
            principal: Principal,
            booking_id: UUID,
            adapter: CalendarAdapter,
            now: Optional[datetime] = None,
    ) -> Tuple[Booking, RemoteEvent]:
        """
        Pull the linked remote event and make it authoritative.

        A cancelled remote event cancels the booking. Otherwise the remote start
        replaces the local one and the end is recomputed from the booking's
        services plus the admin's current default buffer, so a shortened
        remote event never shrinks buffers. Nothing is written until the remote
        fetch has succeeded.

        Raises:
            NoLinkedEventException: Booking has no external event id
            UpstreamUnavailableException: Event could not be fetched
            RemoteEventNotFoundException: Event no longer exists remotely
        """
        booking = BookingService.get_booking(db, principal, booking_id)
        if not booking.external_event_id:
            raise NoLinkedEventException("Booking has no linked calendar event")

        settings = BookingSettingsService.get(db, booking.admin_id)
        try:
            event = adapter.get_event(booking.admin_id, settings.external_calendar_id, booking.external_event_id)
        except NotConnectedException as e:
            raise UpstreamUnavailableException(e.message)

        if event.is_cancelled:
            if booking.is_active:
                booking.status = BookingStatus.CANCELLED
                booking.cancelled_at = ensure_aware_utc(now or utcnow())
                logger.info(f"Booking {booking.id} cancelled from calendar event {event.id}")
        else:
            new_start = event.start_instant(settings.time_zone) or booking.start
            new_end = slot_engine.compute_booking_end(new_start, booking.services, settings.default_buffer_min)
            if new_start != booking.start or new_end != booking.end:
                logger.info(
                    f"Booking {booking.id} moved by calendar sync: "
                    f"{booking.start.isoformat()} -> {new_start.isoformat()}"
                )
            booking.start = new_start
            booking.end = new_end

        db.commit()
        return booking, event

    @staticmethod
    def push_to_calendar(db: Session, booking_id: UUID, adapter: CalendarAdapter) -> Optional[str]:
        """
        Create or update the mirrored event. The event spans service time only;
        buffers stay internal.

        Returns:
            The event id, or None when the admin has no calendar connected or
            the booking is no longer active
        """
        booking = db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise NotFoundException("Booking not found")
        if not booking.is_active:
            return None

        status = adapter.connection_status(booking.admin_id)
        if isinstance(status, Disconnected):
            logger.info(f"No calendar connected for admin {booking.admin_id}, skipping push of {booking.id}")
            return None

        work_minutes = slot_engine.compute_work_minutes(booking.services)
        event_end = booking.start + timedelta(minutes=work_minutes) if work_minutes else booking.end
        service_names = ", ".join(s.name for s in booking.services)

        draft = EventDraft(
            summary=f"{service_names} - {booking.contact_name}" if service_names else booking.contact_name,
            start=booking.start,
            end=event_end,
            time_zone=booking.time_zone,
            description=booking.notes,
            location=booking.property_address,
            attendees=[booking.contact_email] if booking.contact_email else [],
        )

        if booking.external_event_id:
            try:
                adapter.update_event(booking.admin_id, status.calendar_id, booking.external_event_id, draft)
                return booking.external_event_id
            except RemoteEventNotFoundException:
                logger.info(f"Mirrored event {booking.external_event_id} missing, recreating")

        booking.external_event_id = adapter.create_event(booking.admin_id, status.calendar_id, draft)
        db.commit()
        logger.info(f"Mirrored booking {booking.id} to calendar event {booking.external_event_id}")
        return booking.external_event_id

