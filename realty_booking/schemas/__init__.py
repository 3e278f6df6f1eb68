# realty_booking/schemas/__init__.py
from .base import CamelModel

from .availability import (
    RuleCreate,
    RuleUpdate,
    RuleResponse,
    BlackoutCreate,
    BlackoutUpdate,
    BlackoutResponse,
    BookingSettingsUpsert,
    SettingsResponse,
)

from .catalog import (
    TaxRateCreate,
    TaxRateUpdate,
    TaxRateResponse,
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    ServiceCreate,
    ServiceUpdate,
    ServiceResponse,
    PublicCatalogResponse,
)

from .booking import (
    ContactInfo,
    SlotRequest,
    SlotResponse,
    BookingCreate,
    BookingUpdate,
    BookingResponse,
    SyncResponse,
)

from .promo import (
    PromoCodeCreate,
    PromoCodeUpdate,
    PromoCodeResponse,
    PromoValidateRequest,
    PromoValidateResponse,
)

from .calendar import (
    CalendarStatusResponse,
    CalendarItem,
    CalendarListResponse,
    CalendarSelect,
    AuthorizationUrlResponse,
)
