# ===== realty_booking/models/availability.py =====
from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
import uuid

from realty_booking.models.base import Base
from realty_booking.models.types import UTCDateTime, utcnow


class AvailabilityRule(Base):
    """Weekly recurring window during which an admin accepts bookings"""
    __tablename__ = "availability_rules"
    __table_args__ = (
        CheckConstraint("start_minutes < end_minutes", name="ck_availability_rule_window"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    admin_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    day_of_week = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    start_minutes = Column(Integer, nullable=False)  # minutes since local midnight
    end_minutes = Column(Integer, nullable=False)  # up to 1440
    time_zone = Column(String(64), nullable=False, default="UTC")

    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return (
            f"<AvailabilityRule(day={self.day_of_week}, "
            f"{self.start_minutes}-{self.end_minutes}, active={self.active})>"
        )


class BlackoutDate(Base):
    """Absolute exclusion window (holidays, time-off) overriding all rules"""
    __tablename__ = "blackout_dates"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    admin_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    start = Column(UTCDateTime, nullable=False)
    end = Column(UTCDateTime, nullable=False)
    reason = Column(String, nullable=True)  # "Holiday", "Vacation", etc.

    created_at = Column(UTCDateTime, default=utcnow)
