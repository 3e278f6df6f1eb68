# ============================================================================
# FILE: realty_booking/api/v1/public/booking.py
# Public booking flow - no authentication, admin resolved from the URL
# ============================================================================
from datetime import datetime, timedelta
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from realty_booking.api.dependencies import get_calendar_adapter, get_clock
from realty_booking.config.database import get_db
from realty_booking.config.settings import get_settings
from realty_booking.core.exceptions import NotConnectedException, UpstreamUnavailableException
from realty_booking.schemas.booking import BookingCreate, BookingResponse, SlotRequest, SlotResponse
from realty_booking.schemas.catalog import PublicCatalogResponse
from realty_booking.schemas.promo import PromoValidateRequest, PromoValidateResponse
from realty_booking.services.availability.availability_service import AvailabilityService
from realty_booking.services.availability.settings_service import BookingSettingsService
from realty_booking.services.booking.booking_service import BookingService
from realty_booking.services.calendar.calendar_adapter import CalendarAdapter, Connected
from realty_booking.services.catalog.catalog_service import CatalogService
from realty_booking.services.catalog.promo_service import PromoCodeService
from realty_booking.tasks.calendar_tasks import push_booking_to_calendar
from realty_booking.utils.validators import ensure_aware_utc

settings = get_settings()

logger = logging.getLogger(__name__)

router = APIRouter(tags=["public-booking"])


@router.get("/{admin_slug}/catalog", response_model=PublicCatalogResponse)
def public_catalog(admin_slug: str, db: Session = Depends(get_db)):
    """Settings, active rules, blackouts and active services with their tax rates"""
    admin = CatalogService.resolve_admin(db, admin_slug)
    return CatalogService.public_catalog(db, admin)


@router.post("/{admin_slug}/slots", response_model=SlotResponse)
def available_slots(
        admin_slug: str,
        data: SlotRequest,
        db: Session = Depends(get_db),
        adapter: CalendarAdapter = Depends(get_calendar_adapter),
        now: datetime = Depends(get_clock)
):
    """
    Bookable start times for the selected services.

    The range is capped at MAX_SLOT_RANGE_DAYS. When the admin has a calendar
    connected its busy time is excluded too; if the provider cannot be reached
    slots are computed from internal data only.
    """
    admin = CatalogService.resolve_admin(db, admin_slug)
    booking_settings = BookingSettingsService.get(db, admin.id)

    range_start = ensure_aware_utc(data.start)
    range_end = min(ensure_aware_utc(data.end), range_start + timedelta(days=settings.MAX_SLOT_RANGE_DAYS))

    busy = []
    busy_applied = False
    connection = adapter.connection_status(admin.id)
    if isinstance(connection, Connected):
        try:
            busy = adapter.get_busy(admin.id, connection.calendar_id, range_start, range_end)
            busy_applied = True
        except (UpstreamUnavailableException, NotConnectedException) as e:
            logger.warning(f"Free/busy unavailable for admin {admin.id}, using internal data only: {e.message}")

    slots, occupancy = AvailabilityService.get_available_slots(
        db,
        admin.id,
        data.service_ids,
        range_start,
        range_end,
        now=now,
        busy=busy,
        settings=booking_settings,
    )

    return SlotResponse(
        time_zone=booking_settings.time_zone,
        occupancy_minutes=occupancy,
        step_minutes=settings.SLOT_STEP_MINUTES,
        slots=slots,
        external_busy_applied=busy_applied,
    )


@router.post("/{admin_slug}/promo/validate", response_model=PromoValidateResponse)
def validate_promo_code(
        admin_slug: str,
        data: PromoValidateRequest,
        db: Session = Depends(get_db),
        now: datetime = Depends(get_clock)
):
    """
    Preview the discount a code gives on the selected services. Usage limits
    are enforced on submit; here they only produce a warning.
    """
    admin = CatalogService.resolve_admin(db, admin_slug)
    quote = PromoCodeService.validate(
        db, admin.id, data.code, data.service_ids, contact_email=data.contact_email, now=now
    )
    return PromoValidateResponse(
        promo_id=quote.promo.id,
        discount_cents=quote.discount_cents,
        applies_to_service_ids=quote.eligible_service_ids,
        warning=quote.warning,
    )


@router.post("/{admin_slug}/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def submit_booking(
        admin_slug: str,
        data: BookingCreate,
        db: Session = Depends(get_db),
        adapter: CalendarAdapter = Depends(get_calendar_adapter),
        now: datetime = Depends(get_clock)
):
    """
    Book a slot. 409 with code ``slot_unavailable`` means the client should
    refetch slots. The calendar mirror is best-effort and never fails the request.
    """
    admin = CatalogService.resolve_admin(db, admin_slug)
    booking = BookingService.create_booking(db, admin.id, data, now=now)

    try:
        BookingService.push_to_calendar(db, booking.id, adapter)
    except (UpstreamUnavailableException, NotConnectedException) as e:
        logger.warning(f"Booking {booking.id} saved but not mirrored to calendar: {e.message}")
        try:
            push_booking_to_calendar.delay(str(booking.id))
        except Exception as queue_error:
            logger.error(f"Could not queue calendar push for booking {booking.id}: {queue_error}")

    return booking
