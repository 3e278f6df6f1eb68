"""
Domain exceptions for the booking engine.

Services raise these; the API layer turns them into structured JSON responses
(see realty_booking.main). Each carries the HTTP status it maps to and a short
machine-readable code the booking UI can branch on.
"""
from typing import Any, Dict, Optional


class BookingEngineException(Exception):
    """Base class for all expected, recoverable failures"""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        data = {"detail": self.message, "code": self.code}
        if self.details:
            data["details"] = self.details
        return data


class ValidationException(BookingEngineException):
    """Malformed or out-of-range input, rejected before persistence"""
    status_code = 400
    code = "validation_error"


class NotFoundException(BookingEngineException):
    """Referenced record is absent or owned by another admin"""
    status_code = 404
    code = "not_found"


class RemoteEventNotFoundException(NotFoundException):
    """The linked event no longer exists on the external calendar"""
    code = "remote_event_not_found"


class SlotUnavailableException(BookingEngineException):
    """The requested start is no longer bookable; the client should refetch slots"""
    status_code = 409
    code = "slot_unavailable"


class InvalidTransitionException(BookingEngineException):
    status_code = 409
    code = "invalid_transition"


class NoLinkedEventException(BookingEngineException):
    status_code = 409
    code = "no_linked_event"


class NotConnectedException(BookingEngineException):
    """Admin has no usable external calendar connection"""
    status_code = 409
    code = "calendar_not_connected"


class UpstreamUnavailableException(BookingEngineException):
    """External calendar call failed (network, auth, rate limit, timeout)"""
    status_code = 502
    code = "upstream_unavailable"
