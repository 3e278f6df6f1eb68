# ============================================================================
# FILE: realty_booking/api/dependencies.py
# Authentication, clock and calendar adapter dependencies
# ============================================================================
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from uuid import UUID

from realty_booking.config.database import get_db
from realty_booking.config.settings import settings
from realty_booking.core.principal import Principal
from realty_booking.models.user import ADMIN_ROLES, User
from realty_booking.services.calendar.calendar_adapter import CalendarAdapter
from realty_booking.services.calendar.google_calendar_service import GoogleCalendarAdapter

ACCESS_TOKEN_TYPE = "access"

# auto_error=False so a missing header is a 401, not FastAPI's default 403
jwt_security = HTTPBearer(
    scheme_name="Admin JWT",
    description="Dashboard access token issued by the identity service",
    auto_error=False
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# ============================================================================
# Access tokens
# ============================================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign an access token. Login lives outside this service; this is used by
    operator scripts and tests. ``data`` must carry ``sub`` (the user id).
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {**data, "iat": issued_at, "exp": issued_at + lifetime, "type": ACCESS_TOKEN_TYPE}
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str) -> UUID:
    """Decode an access token and return its subject; 401 on anything unexpected"""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise _unauthorized(f"Could not validate credentials: {str(e)}")

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise _unauthorized("Invalid token type")

    try:
        return UUID(payload.get("sub") or "")
    except ValueError:
        raise _unauthorized("Invalid user ID in token")


# ============================================================================
# Principal Dependencies
# ============================================================================

def get_current_user(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(jwt_security),
        db: Session = Depends(get_db)
) -> User:
    if credentials is None:
        raise _unauthorized("Not authenticated")

    user_id = verify_access_token(credentials.credentials)

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise _unauthorized("User not found")

    return user


def get_current_principal(current_user: User = Depends(get_current_user)) -> Principal:
    """
    Admin principal for dashboard routes. Every dashboard query is scoped by
    ``principal.admin_id`` unless the principal is a superadmin.

    Raises:
        HTTPException 403: Inactive account or non-admin role
    """
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user account"
        )

    if current_user.role not in ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )

    return Principal(id=current_user.id, role=current_user.role)


# ============================================================================
# Clock and calendar adapter (overridden in tests)
# ============================================================================

def get_clock() -> datetime:
    return datetime.now(timezone.utc)


def get_calendar_adapter(db: Session = Depends(get_db)) -> CalendarAdapter:
    return GoogleCalendarAdapter(db)
