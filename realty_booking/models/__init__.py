# realty_booking/models/__init__.py
from .base import Base
from .user import User, UserRole, ADMIN_ROLES
from .availability import AvailabilityRule, BlackoutDate
from .booking_settings import BookingSettings
from .service import Service, ServiceCategory, TaxRate, service_tax_rates
from .booking import Booking, BookingStatus, ACTIVE_STATUSES, STATUS_TRANSITIONS, booking_services
from .calendar_integration import CalendarIntegration
from .promo_code import PromoCode, DiscountType, promo_code_services

__all__ = [
    "Base",
    "User",
    "UserRole",
    "ADMIN_ROLES",
    "AvailabilityRule",
    "BlackoutDate",
    "BookingSettings",
    "Service",
    "ServiceCategory",
    "TaxRate",
    "service_tax_rates",
    "Booking",
    "BookingStatus",
    "ACTIVE_STATUSES",
    "STATUS_TRANSITIONS",
    "booking_services",
    "CalendarIntegration",
    "PromoCode",
    "DiscountType",
    "promo_code_services",
]
