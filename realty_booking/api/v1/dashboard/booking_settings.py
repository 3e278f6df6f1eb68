# realty_booking/api/v1/dashboard/booking_settings.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from realty_booking.api.dependencies import get_current_principal
from realty_booking.config.database import get_db
from realty_booking.core.principal import Principal
from realty_booking.schemas.availability import BookingSettingsUpsert, SettingsResponse
from realty_booking.services.availability.settings_service import BookingSettingsService

router = APIRouter(tags=["dashboard-booking-settings"])


@router.get("", response_model=SettingsResponse)
def get_booking_settings(
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    """Stored settings, or defaults when the admin never saved any"""
    return BookingSettingsService.get(db, principal.admin_id)


@router.put("", response_model=SettingsResponse)
def upsert_booking_settings(
        data: BookingSettingsUpsert,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    return BookingSettingsService.upsert(db, principal.admin_id, data)
