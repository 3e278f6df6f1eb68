# ===== realty_booking/services/calendar/calendar_adapter.py =====
"""
Contract between the booking engine and an external calendar provider.

Adapters raise NotConnectedException when the admin has no usable connection,
RemoteEventNotFoundException for a missing event, and UpstreamUnavailableException
for every other provider failure. Nothing else may escape.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional, Union
from uuid import UUID
from zoneinfo import ZoneInfo

from realty_booking.services.availability.intervals import Interval

EVENT_CONFIRMED = "confirmed"
EVENT_CANCELLED = "cancelled"


@dataclass(frozen=True)
class Connected:
    calendar_id: Optional[str]  # None means the provider's primary calendar


@dataclass(frozen=True)
class Disconnected:
    pass


ConnectionStatus = Union[Connected, Disconnected]


@dataclass(frozen=True)
class CalendarSummary:
    id: str
    display_name: str
    is_primary: bool = False


@dataclass
class RemoteEvent:
    """
    A provider event. ``start``/``end`` are aware datetimes for timed events
    and plain dates for all-day events.
    """
    id: str
    status: str
    start: Optional[Union[datetime, date]]
    end: Optional[Union[datetime, date]] = None
    summary: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_cancelled(self) -> bool:
        return self.status == EVENT_CANCELLED

    @property
    def is_all_day(self) -> bool:
        return isinstance(self.start, date) and not isinstance(self.start, datetime)

    def start_instant(self, time_zone: str) -> Optional[datetime]:
        """Start as a UTC instant; an all-day date is local midnight in ``time_zone``"""
        if self.start is None:
            return None
        if isinstance(self.start, datetime):
            if self.start.tzinfo is None:
                return self.start.replace(tzinfo=timezone.utc)
            return self.start.astimezone(timezone.utc)
        midnight = datetime.combine(self.start, time.min, tzinfo=ZoneInfo(time_zone))
        return midnight.astimezone(timezone.utc)


@dataclass
class EventDraft:
    """Event content the engine mirrors to the provider"""
    summary: str
    start: datetime
    end: datetime
    time_zone: str = "UTC"
    description: Optional[str] = None
    location: Optional[str] = None
    attendees: List[str] = field(default_factory=list)


class CalendarAdapter(ABC):

    @abstractmethod
    def connection_status(self, admin_id: UUID) -> ConnectionStatus:
        ...

    @abstractmethod
    def list_calendars(self, admin_id: UUID) -> List[CalendarSummary]:
        ...

    @abstractmethod
    def get_event(self, admin_id: UUID, calendar_id: Optional[str], event_id: str) -> RemoteEvent:
        ...

    @abstractmethod
    def create_event(self, admin_id: UUID, calendar_id: Optional[str], draft: EventDraft) -> str:
        """Returns the provider event id"""

    @abstractmethod
    def update_event(self, admin_id: UUID, calendar_id: Optional[str], event_id: str, draft: EventDraft) -> None:
        ...

    @abstractmethod
    def delete_event(self, admin_id: UUID, calendar_id: Optional[str], event_id: str) -> None:
        ...

    @abstractmethod
    def get_busy(self, admin_id: UUID, calendar_id: Optional[str], start: datetime, end: datetime) -> List[Interval]:
        ...

    @abstractmethod
    def disconnect(self, admin_id: UUID) -> None:
        """Revoke stored credentials; the caller clears the selected calendar"""
