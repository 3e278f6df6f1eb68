# realty_booking/models/service.py
"""
Service catalog models - categories, services and the tax rates applied to them.
Durations and buffers feed slot computation; prices and taxes feed booking totals.
"""
from sqlalchemy import Column, String, Integer, ForeignKey, Boolean, Text, Table
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid

from realty_booking.models.base import Base
from realty_booking.models.types import UTCDateTime, utcnow


service_tax_rates = Table(
    "service_tax_rates",
    Base.metadata,
    Column("service_id", UUID(as_uuid=True), ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
    Column("tax_rate_id", UUID(as_uuid=True), ForeignKey("tax_rates.id", ondelete="CASCADE"), primary_key=True),
)


class TaxRate(Base):
    __tablename__ = "tax_rates"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    admin_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    rate_bps = Column(Integer, nullable=False, default=0)  # 1300 = 13%
    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(UTCDateTime, default=utcnow)

    def __repr__(self):
        return f"<TaxRate(name={self.name}, rate_bps={self.rate_bps})>"


class ServiceCategory(Base):
    __tablename__ = "service_categories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    admin_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    services = relationship(
        "Service",
        back_populates="category",
        order_by="Service.sort_order",
    )

    def __repr__(self):
        return f"<ServiceCategory(id={self.id}, name={self.name})>"


class Service(Base):
    """
    Bookable service. Occupancy on the calendar is
    duration_min + buffer_before_min + buffer_after_min.
    """
    __tablename__ = "services"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    admin_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(
        UUID(as_uuid=True),
        ForeignKey("service_categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    duration_min = Column(Integer, nullable=False)
    buffer_before_min = Column(Integer, nullable=False, default=0)
    buffer_after_min = Column(Integer, nullable=False, default=0)

    price_cents = Column(Integer, nullable=False, default=0)

    # Property size the service applies to (square feet)
    min_sqft = Column(Integer, nullable=True)
    max_sqft = Column(Integer, nullable=True)

    sort_order = Column(Integer, default=0, nullable=False)
    active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    category = relationship("ServiceCategory", back_populates="services")
    tax_rates = relationship("TaxRate", secondary=service_tax_rates, lazy="selectin")

    @property
    def occupancy_minutes(self) -> int:
        return self.duration_min + (self.buffer_before_min or 0) + (self.buffer_after_min or 0)

    @property
    def formatted_duration(self) -> str:
        """Return human-readable duration string"""
        hours = self.duration_min // 60
        minutes = self.duration_min % 60

        if hours > 0 and minutes > 0:
            return f"{hours}h {minutes}m"
        elif hours > 0:
            return f"{hours}h"
        else:
            return f"{minutes}m"

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name}, admin_id={self.admin_id})>"
