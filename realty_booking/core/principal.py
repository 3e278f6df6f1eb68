"""Resolved caller identity passed explicitly into every service operation"""
from dataclasses import dataclass
from uuid import UUID

from realty_booking.models.user import UserRole


@dataclass(frozen=True)
class Principal:
    id: UUID
    role: UserRole

    @property
    def is_superadmin(self) -> bool:
        return self.role == UserRole.SUPERADMIN

    @property
    def admin_id(self) -> UUID:
        """Tenant the principal writes to; admins own their own data"""
        return self.id
