"""
API v1 router setup
Organized into: public (no auth) and dashboard (JWT, admin roles) routes
"""
from fastapi import APIRouter

from realty_booking.api.v1.dashboard import availability, booking_settings, bookings, calendar, catalog
from realty_booking.api.v1.public import booking as public_booking

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (No authentication required)
# ============================================================================
api_v1_router.include_router(
    public_booking.router,
    prefix="/public/booking",
    tags=["Public"]
)

# ============================================================================
# DASHBOARD ROUTES (JWT authentication required)
# ============================================================================
api_v1_router.include_router(
    availability.router,
    prefix="/dashboard/availability",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    booking_settings.router,
    prefix="/dashboard/booking-settings",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    catalog.router,
    prefix="/dashboard/catalog",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    bookings.router,
    prefix="/dashboard/bookings",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    calendar.router,
    prefix="/dashboard/calendar",
    tags=["Dashboard"]
)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """API information and route groups by authentication type"""
    return {
        "version": "1.0",
        "authentication": {
            "public": "No authentication required",
            "dashboard": "JWT Bearer token required (ADMIN or SUPERADMIN)"
        }
    }
