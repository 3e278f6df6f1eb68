"""Shared test fixtures and helpers."""
import os

from cryptography.fernet import Fernet

# Settings are cached on first import, so the environment must be ready first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CALENDAR_ENCRYPTION_KEY"] = Fernet.generate_key().decode()
os.environ["DEBUG"] = "false"
os.environ["GOOGLE_CLIENT_ID"] = ""
os.environ["GOOGLE_CLIENT_SECRET"] = ""

from datetime import date, datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from realty_booking.api.dependencies import create_access_token, get_calendar_adapter, get_clock
from realty_booking.config.database import get_db
from realty_booking.core.exceptions import RemoteEventNotFoundException, UpstreamUnavailableException
from realty_booking.core.principal import Principal
from realty_booking.main import app
from realty_booking.models import (
    AvailabilityRule,
    Base,
    Booking,
    BookingSettings,
    Service,
    ServiceCategory,
    TaxRate,
    User,
    UserRole,
)
from realty_booking.schemas.booking import BookingCreate, ContactInfo
from realty_booking.services.availability.intervals import Interval
from realty_booking.services.booking.booking_service import BookingService
from realty_booking.services.calendar.calendar_adapter import (
    CalendarAdapter,
    CalendarSummary,
    Connected,
    Disconnected,
    EventDraft,
    RemoteEvent,
)

# Sunday noon UTC; most tests book against the following Monday
FIXED_NOW = datetime(2025, 3, 9, 12, 0, tzinfo=timezone.utc)
MONDAY = date(2025, 3, 10)
MONDAY_DOW = 1


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


# ============================================================================
# Fake calendar adapter
# ============================================================================

class FakeCalendarAdapter(CalendarAdapter):
    """In-memory calendar; ``fail`` makes every remote call unavailable"""

    def __init__(self):
        self.connected = True
        self.fail = False
        self.events: Dict[str, RemoteEvent] = {}
        self.busy: List[Interval] = []
        self.drafts: Dict[str, EventDraft] = {}
        self.deleted: List[str] = []
        self.disconnected: List[UUID] = []
        self.calendars = [
            CalendarSummary(id="primary@example.com", display_name="Primary", is_primary=True),
            CalendarSummary(id="shoots@group.calendar.google.com", display_name="Shoots"),
        ]
        self._next_id = 0

    def _check(self):
        if self.fail:
            raise UpstreamUnavailableException("calendar offline")

    def connection_status(self, admin_id):
        return Connected(calendar_id=None) if self.connected else Disconnected()

    def list_calendars(self, admin_id):
        self._check()
        return list(self.calendars)

    def get_event(self, admin_id, calendar_id, event_id):
        self._check()
        if event_id not in self.events:
            raise RemoteEventNotFoundException(f"event {event_id} not found")
        return self.events[event_id]

    def create_event(self, admin_id, calendar_id, draft):
        self._check()
        self._next_id += 1
        event_id = f"evt-{self._next_id}"
        self.drafts[event_id] = draft
        self.events[event_id] = RemoteEvent(
            id=event_id,
            status="confirmed",
            start=draft.start,
            end=draft.end,
            summary=draft.summary,
            raw={"id": event_id, "status": "confirmed"},
        )
        return event_id

    def update_event(self, admin_id, calendar_id, event_id, draft):
        self._check()
        if event_id not in self.events:
            raise RemoteEventNotFoundException(f"event {event_id} not found")
        self.drafts[event_id] = draft

    def delete_event(self, admin_id, calendar_id, event_id):
        self._check()
        self.events.pop(event_id, None)
        self.deleted.append(event_id)

    def get_busy(self, admin_id, calendar_id, start, end):
        self._check()
        return [b for b in self.busy if b.start < end and start < b.end]

    def disconnect(self, admin_id):
        self.connected = False
        self.disconnected.append(admin_id)

    # helpers for tests
    def put_event(self, event_id: str, status: str = "confirmed", start=None, end=None) -> RemoteEvent:
        event = RemoteEvent(
            id=event_id,
            status=status,
            start=start,
            end=end,
            raw={"id": event_id, "status": status},
        )
        self.events[event_id] = event
        return event


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'booking.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def make_admin(db, slug: str = "acme-media", email: Optional[str] = None, role: UserRole = UserRole.ADMIN) -> User:
    admin = User(
        email=email or f"{slug}@example.com",
        full_name=slug.replace("-", " ").title(),
        role=role,
        admin_slug=slug,
    )
    db.add(admin)
    db.commit()
    return admin


def make_settings(db, admin: User, **overrides) -> BookingSettings:
    values = dict(time_zone="UTC", lead_time_min=0, max_advance_days=7, default_buffer_min=0)
    values.update(overrides)
    settings = BookingSettings(admin_id=admin.id, **values)
    db.add(settings)
    db.commit()
    return settings


def add_rule(db, admin: User, day_of_week: int = MONDAY_DOW, start: str = "09:00", end: str = "17:00",
             active: bool = True) -> AvailabilityRule:
    def minutes(value: str) -> int:
        hours, mins = value.split(":")
        return int(hours) * 60 + int(mins)

    rule = AvailabilityRule(
        admin_id=admin.id,
        day_of_week=day_of_week,
        start_minutes=minutes(start),
        end_minutes=minutes(end),
        time_zone="UTC",
        active=active,
    )
    db.add(rule)
    db.commit()
    return rule


def make_service(db, admin: User, name: str = "Photography", duration_min: int = 60,
                 buffer_before_min: int = 0, buffer_after_min: int = 0, price_cents: int = 10000,
                 tax_rates: Optional[List[TaxRate]] = None, active: bool = True, **extra) -> Service:
    category = db.query(ServiceCategory).filter(ServiceCategory.admin_id == admin.id).first()
    if category is None:
        category = ServiceCategory(admin_id=admin.id, name="Media")
        db.add(category)
        db.flush()

    service = Service(
        admin_id=admin.id,
        category_id=category.id,
        name=name,
        duration_min=duration_min,
        buffer_before_min=buffer_before_min,
        buffer_after_min=buffer_after_min,
        price_cents=price_cents,
        active=active,
        **extra,
    )
    service.tax_rates = tax_rates or []
    db.add(service)
    db.commit()
    return service


def booking_data(start: datetime, services: List[Service], **extra) -> BookingCreate:
    return BookingCreate(
        start=start,
        service_ids=[s.id for s in services],
        contact=ContactInfo(name="Jane Realtor", email="Jane@Example.com"),
        **extra,
    )


def book(db, admin: User, start: datetime, services: List[Service], **extra) -> Booking:
    return BookingService.create_booking(db, admin.id, booking_data(start, services, **extra), now=FIXED_NOW)


@pytest.fixture
def admin(db):
    admin = make_admin(db)
    make_settings(db, admin)
    return admin


@pytest.fixture
def principal(admin):
    return Principal(id=admin.id, role=UserRole.ADMIN)


@pytest.fixture
def fake_calendar():
    return FakeCalendarAdapter()


# ============================================================================
# HTTP
# ============================================================================

@pytest.fixture
def client(session_factory, fake_calendar):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: FIXED_NOW
    app.dependency_overrides[get_calendar_adapter] = lambda: fake_calendar

    yield TestClient(app)

    app.dependency_overrides.clear()


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


def unknown_id() -> str:
    return str(uuid4())
