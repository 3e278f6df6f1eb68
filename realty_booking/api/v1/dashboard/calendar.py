# ============================================================================
# FILE: realty_booking/api/v1/dashboard/calendar.py
# Calendar connection endpoints - thin HTTP layer over the calendar adapter
# IMPORTANT: Specific routes MUST come before parameterized routes
# ============================================================================
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from realty_booking.api.dependencies import get_calendar_adapter, get_current_principal
from realty_booking.config.database import get_db
from realty_booking.core.exceptions import ValidationException
from realty_booking.core.principal import Principal
from realty_booking.schemas.calendar import (
    AuthorizationUrlResponse,
    CalendarItem,
    CalendarListResponse,
    CalendarSelect,
    CalendarStatusResponse,
)
from realty_booking.services.availability.settings_service import BookingSettingsService
from realty_booking.services.calendar.calendar_adapter import CalendarAdapter, Connected
from realty_booking.services.calendar.google_calendar_service import GoogleCalendarAdapter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard-calendar"])


@router.get("/status", response_model=CalendarStatusResponse)
def calendar_status(
        principal: Principal = Depends(get_current_principal),
        adapter: CalendarAdapter = Depends(get_calendar_adapter)
):
    status = adapter.connection_status(principal.admin_id)
    if isinstance(status, Connected):
        return CalendarStatusResponse(connected=True, calendar_id=status.calendar_id)
    return CalendarStatusResponse(connected=False)


@router.get("/calendars", response_model=CalendarListResponse)
def list_calendars(
        principal: Principal = Depends(get_current_principal),
        adapter: CalendarAdapter = Depends(get_calendar_adapter)
):
    calendars = adapter.list_calendars(principal.admin_id)
    return CalendarListResponse(calendars=[
        CalendarItem(id=c.id, display_name=c.display_name, is_primary=c.is_primary)
        for c in calendars
    ])


@router.post("/select", response_model=CalendarStatusResponse)
def select_calendar(
        data: CalendarSelect,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db),
        adapter: CalendarAdapter = Depends(get_calendar_adapter)
):
    """
    Pick the calendar bookings are mirrored to; null selects the primary calendar.
    The selection is stored even without a connection and applies once connected.
    """
    if data.calendar_id:
        known = {c.id for c in adapter.list_calendars(principal.admin_id)}
        if data.calendar_id not in known:
            raise ValidationException("Unknown calendar", details={"calendarId": data.calendar_id})

    settings = BookingSettingsService.set_external_calendar(db, principal.admin_id, data.calendar_id)
    connected = isinstance(adapter.connection_status(principal.admin_id), Connected)
    return CalendarStatusResponse(connected=connected, calendar_id=settings.external_calendar_id)


@router.post("/disconnect", response_model=CalendarStatusResponse)
def disconnect_calendar(
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db),
        adapter: CalendarAdapter = Depends(get_calendar_adapter)
):
    adapter.disconnect(principal.admin_id)
    BookingSettingsService.set_external_calendar(db, principal.admin_id, None)
    return CalendarStatusResponse(connected=False)


# ========== GOOGLE OAUTH ==========

@router.post("/google/authorize", response_model=AuthorizationUrlResponse)
def initiate_google_auth(
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    """Returns authorization URL for the admin to visit"""
    service = GoogleCalendarAdapter(db)
    return AuthorizationUrlResponse(authorization_url=service.generate_authorization_url(principal.admin_id))


@router.get("/google/callback", response_class=HTMLResponse)
def google_callback(
        code: str,
        state: str,
        db: Session = Depends(get_db)
):
    """
    Google redirects here after authorization.
    This endpoint does NOT require authentication; the signed state identifies the admin.
    """
    integration = GoogleCalendarAdapter(db).handle_oauth_callback(code, state)
    logger.info(f"Google Calendar connected for admin {integration.admin_id}")

    # Return HTML to close the popup window
    return """
    <html>
        <head><title>Authorization Successful</title></head>
        <body style="font-family: sans-serif; text-align: center; padding-top: 4rem;">
            <h1>Google Calendar connected</h1>
            <p>You can close this window and return to your booking settings.</p>
            <script>setTimeout(function () { window.close(); }, 2000);</script>
        </body>
    </html>
    """
