# ===== realty_booking/services/availability/settings_service.py =====
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from realty_booking.models.booking_settings import BookingSettings
from realty_booking.schemas.availability import BookingSettingsUpsert

logger = logging.getLogger(__name__)


class BookingSettingsService:
    """Per-admin booking settings, created lazily on first write"""

    @staticmethod
    def find(db: Session, admin_id: UUID) -> Optional[BookingSettings]:
        return db.query(BookingSettings).filter(BookingSettings.admin_id == admin_id).first()

    @staticmethod
    def get(db: Session, admin_id: UUID) -> BookingSettings:
        """Stored settings, or an unsaved defaults instance. Never writes."""
        settings = BookingSettingsService.find(db, admin_id)
        if settings is None:
            return BookingSettings.defaults(admin_id)
        return settings

    @staticmethod
    def get_or_create(db: Session, admin_id: UUID) -> BookingSettings:
        """Settings row attached to the session (flushed, not committed)"""
        settings = BookingSettingsService.find(db, admin_id)
        if settings is None:
            settings = BookingSettings.defaults(admin_id)
            db.add(settings)
            db.flush()
        return settings

    @staticmethod
    def upsert(db: Session, admin_id: UUID, data: BookingSettingsUpsert) -> BookingSettings:
        """
        Apply loosely validated settings.

        Fields absent from the payload keep their stored value (or the default
        when the row is new). Invalid integers were already coerced to defaults.
        """
        settings = BookingSettingsService.get_or_create(db, admin_id)

        for field in ("time_zone", "lead_time_min", "max_advance_days", "default_buffer_min"):
            value = getattr(data, field)
            if value is not None:
                setattr(settings, field, value)

        db.commit()
        db.refresh(settings)

        logger.info(
            f"Booking settings saved for admin {admin_id}: tz={settings.time_zone} "
            f"lead={settings.lead_time_min} advance={settings.max_advance_days} "
            f"buffer={settings.default_buffer_min}"
        )
        return settings

    @staticmethod
    def set_external_calendar(db: Session, admin_id: UUID, calendar_id: Optional[str]) -> BookingSettings:
        settings = BookingSettingsService.get_or_create(db, admin_id)
        settings.external_calendar_id = calendar_id or None
        db.commit()
        db.refresh(settings)
        logger.info(f"External calendar for admin {admin_id} set to {settings.external_calendar_id or 'primary'}")
        return settings
