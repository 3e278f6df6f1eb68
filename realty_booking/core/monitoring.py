"""Health checks and monitoring endpoints"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from realty_booking.config.database import get_db
from realty_booking.models.calendar_integration import CalendarIntegration

logger = logging.getLogger(__name__)

health_router = APIRouter()


@health_router.get("/")
async def health_check():
    return {"status": "healthy", "service": "realty-booking-api"}


@health_router.get("/detailed")
def detailed_health_check(db: Session = Depends(get_db)):
    """
    Database reachability plus calendar sync health. A failing last sync for
    some admins degrades the report without making the API unhealthy.
    """
    checks = {"api": "healthy", "database": "unknown", "calendar_sync": "unknown"}

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = f"unhealthy: {str(e)}"

    if checks["database"] == "healthy":
        rows = (
            db.query(CalendarIntegration.last_sync_status, func.count(CalendarIntegration.id))
            .filter(CalendarIntegration.is_active.is_(True))
            .group_by(CalendarIntegration.last_sync_status)
            .all()
        )
        counts = {status or "never": count for status, count in rows}
        checks["calendar_integrations"] = counts
        checks["calendar_sync"] = "degraded" if counts.get("failed") else "healthy"

    statuses = [checks["api"], checks["database"], checks["calendar_sync"]]
    checks["overall"] = "healthy" if all(s == "healthy" for s in statuses) else "degraded"
    return checks
