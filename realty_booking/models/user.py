# ============================================================================
# FILE: realty_booking/models/user.py
# Admins own availability, services and bookings; realtors consume them
# ============================================================================
from sqlalchemy import Column, String, Boolean, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
import uuid
import enum

from realty_booking.models.base import Base
from realty_booking.models.types import UTCDateTime, utcnow


class UserRole(str, enum.Enum):
    """Platform-level user roles."""
    SUPERADMIN = "SUPERADMIN"  # Can see every admin's bookings
    ADMIN = "ADMIN"            # Tenant owner of availability, services, bookings
    REALTOR = "REALTOR"        # Client of an admin, no dashboard access


ADMIN_ROLES = (UserRole.ADMIN, UserRole.SUPERADMIN)


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)

    role = Column(
        SQLEnum(UserRole),
        default=UserRole.ADMIN,
        nullable=False,
        index=True
    )

    # Public handle used by /public/booking/{admin_slug}
    admin_slug = Column(String(100), unique=True, nullable=True, index=True)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
