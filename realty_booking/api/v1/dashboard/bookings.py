# ============================================================================
# FILE: realty_booking/api/v1/dashboard/bookings.py
# Admin booking management and calendar reconciliation
# IMPORTANT: Specific routes MUST come before parameterized routes
# ============================================================================
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from realty_booking.api.dependencies import get_calendar_adapter, get_clock, get_current_principal
from realty_booking.config.database import get_db
from realty_booking.core.principal import Principal
from realty_booking.models.booking import BookingStatus
from realty_booking.schemas.booking import BookingResponse, BookingUpdate, SyncResponse
from realty_booking.services.booking.booking_service import BookingService
from realty_booking.services.calendar.calendar_adapter import CalendarAdapter

router = APIRouter(tags=["dashboard-bookings"])


@router.get("", response_model=List[BookingResponse])
def list_bookings(
        status: Optional[BookingStatus] = Query(None),
        start: Optional[datetime] = Query(None, description="Only bookings ending after this instant"),
        end: Optional[datetime] = Query(None, description="Only bookings starting before this instant"),
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return BookingService.list_bookings(db, principal, status=status, start=start, end=end)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
        booking_id: UUID,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return BookingService.get_booking(db, principal, booking_id)


@router.patch("/{booking_id}", response_model=BookingResponse)
def update_booking(
        booking_id: UUID,
        data: BookingUpdate,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db),
        adapter: CalendarAdapter = Depends(get_calendar_adapter),
        now: datetime = Depends(get_clock)
):
    return BookingService.update_booking(db, principal, booking_id, data, adapter=adapter, now=now)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
        booking_id: UUID,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db),
        adapter: CalendarAdapter = Depends(get_calendar_adapter),
        now: datetime = Depends(get_clock)
):
    return BookingService.cancel_booking(db, principal, booking_id, adapter=adapter, now=now)


@router.post("/{booking_id}/sync-from-google", response_model=SyncResponse)
def sync_from_google(
        booking_id: UUID,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db),
        adapter: CalendarAdapter = Depends(get_calendar_adapter),
        now: datetime = Depends(get_clock)
):
    """
    Make the linked Google event authoritative for this booking.
    409 when nothing is linked, 502 when Google cannot be reached.
    """
    booking, event = BookingService.sync_from_external_calendar(db, principal, booking_id, adapter, now=now)
    return SyncResponse(booking=BookingResponse.model_validate(booking), event=event.raw)
