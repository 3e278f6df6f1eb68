# ===== realty_booking/tasks/calendar_tasks.py =====
from datetime import timedelta
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from realty_booking.config.celery_config import celery_app
from realty_booking.config.database import SessionLocal
from realty_booking.config.settings import get_settings
from realty_booking.core.exceptions import (
    NoLinkedEventException,
    NotFoundException,
    RemoteEventNotFoundException,
    UpstreamUnavailableException,
)
from realty_booking.core.principal import Principal
from realty_booking.models.booking import ACTIVE_STATUSES, Booking
from realty_booking.models.calendar_integration import CalendarIntegration
from realty_booking.models.types import utcnow
from realty_booking.models.user import UserRole
from realty_booking.services.booking.booking_service import BookingService
from realty_booking.services.calendar.calendar_adapter import CalendarAdapter
from realty_booking.services.calendar.google_calendar_service import GoogleCalendarAdapter

settings = get_settings()

logger = logging.getLogger(__name__)


def get_calendar_adapter(db: Session) -> CalendarAdapter:
    return GoogleCalendarAdapter(db)


def _owner(booking: Booking) -> Principal:
    return Principal(id=booking.admin_id, role=UserRole.ADMIN)


@celery_app.task(bind=True, max_retries=settings.MAX_RETRY_ATTEMPTS)
def push_booking_to_calendar(self, booking_id: str):
    """Mirror a booking to the admin's external calendar (push operation)"""
    db = SessionLocal()
    try:
        event_id = BookingService.push_to_calendar(db, UUID(booking_id), get_calendar_adapter(db))
        if event_id is None:
            return {"status": "skipped", "reason": "not_connected_or_inactive"}
        return {"status": "synced", "event_id": event_id}

    except NotFoundException:
        logger.error(f"Booking {booking_id} not found")
        return {"status": "failed", "reason": "booking_not_found"}

    except UpstreamUnavailableException as exc:
        logger.warning(f"Calendar push failed for booking {booking_id}: {exc.message}")
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))

    finally:
        db.close()


@celery_app.task(bind=True, max_retries=settings.MAX_RETRY_ATTEMPTS)
def sync_booking_from_calendar(self, booking_id: str):
    """Pull one booking's linked event and reconcile it"""
    db = SessionLocal()
    try:
        booking = db.query(Booking).filter(Booking.id == UUID(booking_id)).first()
        if not booking:
            logger.error(f"Booking {booking_id} not found")
            return {"status": "failed", "reason": "booking_not_found"}

        booking, event = BookingService.sync_from_external_calendar(
            db, _owner(booking), booking.id, get_calendar_adapter(db)
        )
        return {"status": "synced", "booking_status": booking.status.value, "event_status": event.status}

    except NoLinkedEventException:
        return {"status": "skipped", "reason": "no_linked_event"}

    except RemoteEventNotFoundException:
        logger.warning(f"Linked event for booking {booking_id} no longer exists")
        return {"status": "failed", "reason": "remote_event_not_found"}

    except UpstreamUnavailableException as exc:
        logger.warning(f"Calendar sync failed for booking {booking_id}: {exc.message}")
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))

    finally:
        db.close()


@celery_app.task
def sync_linked_bookings():
    """Reconcile every upcoming linked booking; one failure does not stop the rest"""
    db = SessionLocal()
    try:
        now = utcnow()
        horizon = now + timedelta(days=settings.CALENDAR_SYNC_LOOKAHEAD_DAYS)

        bookings = db.query(Booking).filter(
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.external_event_id.isnot(None),
            Booking.end > now,
            Booking.start < horizon
        ).order_by(Booking.start).all()

        adapter = get_calendar_adapter(db)
        results = {"synced": 0, "failed": 0}
        outcome_by_admin = {}

        for booking in bookings:
            try:
                BookingService.sync_from_external_calendar(db, _owner(booking), booking.id, adapter, now=now)
                results["synced"] += 1
                outcome_by_admin.setdefault(booking.admin_id, "success")
            except (UpstreamUnavailableException, RemoteEventNotFoundException) as e:
                db.rollback()
                results["failed"] += 1
                outcome_by_admin[booking.admin_id] = "failed"
                logger.warning(f"Skipping booking {booking.id} during calendar sync: {e.message}")

        for admin_id, outcome in outcome_by_admin.items():
            integration = db.query(CalendarIntegration).filter(
                CalendarIntegration.admin_id == admin_id,
                CalendarIntegration.is_active == True
            ).first()
            if integration:
                integration.last_sync_at = now
                integration.last_sync_status = outcome
        db.commit()

        logger.info(f"Calendar sync finished: {results['synced']} synced, {results['failed']} failed")
        return results

    finally:
        db.close()
