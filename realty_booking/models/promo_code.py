# realty_booking/models/promo_code.py
"""
Promo codes an admin hands out to clients. A code discounts either a fixed
amount or a percentage of the eligible services; with no services attached
it applies to everything in the booking.
"""
from sqlalchemy import Column, String, Integer, ForeignKey, Boolean, Table, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import enum
import uuid

from realty_booking.models.base import Base
from realty_booking.models.types import UTCDateTime, utcnow


class DiscountType(str, enum.Enum):
    AMOUNT = "AMOUNT"
    PERCENT = "PERCENT"


promo_code_services = Table(
    "promo_code_services",
    Base.metadata,
    Column("promo_code_id", UUID(as_uuid=True), ForeignKey("promo_codes.id", ondelete="CASCADE"), primary_key=True),
    Column("service_id", UUID(as_uuid=True), ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
)


class PromoCode(Base):
    __tablename__ = "promo_codes"
    __table_args__ = (
        UniqueConstraint("admin_id", "code", name="uq_promo_codes_admin_code"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    admin_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    display_name = Column(String(200), nullable=False)
    code = Column(String(64), nullable=False)

    discount_type = Column(SQLEnum(DiscountType), nullable=False)
    discount_value_cents = Column(Integer, nullable=True)  # AMOUNT
    discount_rate_bps = Column(Integer, nullable=True)  # PERCENT, 10000 = 100%

    # Validity window, either end open
    start_date = Column(UTCDateTime, nullable=True)
    end_date = Column(UTCDateTime, nullable=True)

    # None means unlimited
    max_uses_total = Column(Integer, nullable=True)
    max_uses_per_client = Column(Integer, nullable=True)

    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    services = relationship("Service", secondary=promo_code_services, lazy="selectin")

    @property
    def service_ids(self):
        return [s.id for s in self.services]

    def __repr__(self):
        return f"<PromoCode(code={self.code}, type={self.discount_type}, active={self.active})>"
