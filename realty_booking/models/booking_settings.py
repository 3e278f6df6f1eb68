# ===== realty_booking/models/booking_settings.py =====
from sqlalchemy import Column, String, Integer, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
import uuid

from realty_booking.models.base import Base
from realty_booking.models.types import UTCDateTime, utcnow

DEFAULT_TIME_ZONE = "UTC"
DEFAULT_LEAD_TIME_MIN = 0
DEFAULT_MAX_ADVANCE_DAYS = 60
DEFAULT_BUFFER_MIN = 0

# Upper bounds for coerced input
MAX_LEAD_TIME_MIN = 60 * 24 * 365
MAX_ADVANCE_DAYS_LIMIT = 365 * 10
MAX_BUFFER_MIN = 60 * 24


class BookingSettings(Base):
    """Per-admin booking configuration (one row per admin, created lazily).

    The row doubles as the admin's booking lock: booking creation selects it
    FOR UPDATE before checking for conflicts.
    """
    __tablename__ = "booking_settings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    admin_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    time_zone = Column(String(64), nullable=False, default=DEFAULT_TIME_ZONE)
    lead_time_min = Column(Integer, nullable=False, default=DEFAULT_LEAD_TIME_MIN)
    max_advance_days = Column(Integer, nullable=False, default=DEFAULT_MAX_ADVANCE_DAYS)
    default_buffer_min = Column(Integer, nullable=False, default=DEFAULT_BUFFER_MIN)

    # Selected external calendar (None means the provider's primary calendar)
    external_calendar_id = Column(String, nullable=True)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    @classmethod
    def defaults(cls, admin_id) -> "BookingSettings":
        """Unsaved instance carrying the default configuration"""
        return cls(
            admin_id=admin_id,
            time_zone=DEFAULT_TIME_ZONE,
            lead_time_min=DEFAULT_LEAD_TIME_MIN,
            max_advance_days=DEFAULT_MAX_ADVANCE_DAYS,
            default_buffer_min=DEFAULT_BUFFER_MIN,
            external_calendar_id=None,
        )
