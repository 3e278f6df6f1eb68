"""Shared validation utilities"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def validate_time_zone(name: Optional[str], default: str = "UTC") -> str:
    """
    Validate an IANA time zone name.

    Args:
        name: Time zone such as "America/Toronto"; empty falls back to default

    Returns:
        The stripped time zone name

    Raises:
        ValueError: If the zone is unknown
    """
    if name is None or not str(name).strip():
        return default

    name = str(name).strip()
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown time zone: {name}")
    return name


def coerce_non_negative_int(value: Any, default: int, maximum: Optional[int] = None) -> int:
    """
    Coerce loose input to a non-negative integer.

    Absent or unparseable input yields ``default``; negatives are clamped to 0
    and, when ``maximum`` is given, larger values to ``maximum``.
    Never raises, so settings always stay usable.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str) and not value.strip():
        return default

    try:
        number = float(value)
    except (TypeError, ValueError):
        return default

    if math.isnan(number) or math.isinf(number):
        return default

    number = max(int(number), 0)
    if maximum is not None:
        number = min(number, maximum)
    return number


def ensure_aware_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalize aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email
