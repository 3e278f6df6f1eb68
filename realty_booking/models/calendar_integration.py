# ===== realty_booking/models/calendar_integration.py =====
from sqlalchemy import Column, String, Boolean, LargeBinary, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import UUID
import uuid

from realty_booking.models.base import Base
from realty_booking.models.types import UTCDateTime, utcnow


class CalendarIntegration(Base):
    """Stored OAuth credentials for an admin's external calendar account"""
    __tablename__ = "calendar_integrations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    admin_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    provider = Column(String, nullable=False, default="google")
    is_active = Column(Boolean, default=True)

    # OAuth tokens, Fernet encrypted
    access_token_encrypted = Column(LargeBinary)
    refresh_token_encrypted = Column(LargeBinary)
    token_expires_at = Column(UTCDateTime)

    # Provider-specific config, e.g. {"calendar_list": [...]}
    provider_config = Column(JSON, default=dict)

    last_sync_at = Column(UTCDateTime)
    last_sync_status = Column(String)  # 'success', 'failed'

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)
