# ===== realty_booking/models/booking.py =====
from sqlalchemy import Column, String, Integer, Text, ForeignKey, Table, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import enum
import uuid

from realty_booking.models.base import Base
from realty_booking.models.types import UTCDateTime, utcnow


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Statuses that occupy the admin's calendar
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)

# Allowed status moves; anything else is an invalid transition
STATUS_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}


# Services selected at booking time. The booking references them, it does not own them.
booking_services = Table(
    "booking_services",
    Base.metadata,
    Column("booking_id", UUID(as_uuid=True), ForeignKey("bookings.id", ondelete="CASCADE"), primary_key=True),
    Column("service_id", UUID(as_uuid=True), ForeignKey("services.id", ondelete="RESTRICT"), primary_key=True),
)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    admin_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(SQLEnum(BookingStatus), nullable=False, default=BookingStatus.PENDING, index=True)

    # [start, end) in UTC, end is buffer-inclusive
    start = Column(UTCDateTime, nullable=False, index=True)
    end = Column(UTCDateTime, nullable=False)
    time_zone = Column(String(64), nullable=False, default="UTC")

    # Contact info
    contact_name = Column(String(255), nullable=False)
    contact_email = Column(String(255), nullable=False)
    contact_phone = Column(String(50), nullable=True)
    company = Column(String(255), nullable=True)

    # Property
    property_address = Column(String(500), nullable=True)
    property_size_sqft = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    # Totals in cents
    subtotal_cents = Column(Integer, nullable=False, default=0)
    tax_cents = Column(Integer, nullable=False, default=0)
    discount_cents = Column(Integer, nullable=False, default=0)
    total_cents = Column(Integer, nullable=False, default=0)

    applied_promo_code_id = Column(
        UUID(as_uuid=True), ForeignKey("promo_codes.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Calendar mirror
    external_event_id = Column(String, nullable=True)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)
    cancelled_at = Column(UTCDateTime, nullable=True)

    services = relationship("Service", secondary=booking_services, lazy="selectin", order_by="Service.sort_order")

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def __repr__(self):
        return f"<Booking(id={self.id}, status={self.status}, start={self.start}, end={self.end})>"
