# ===== realty_booking/services/availability/slot_engine.py =====
"""
Slot computation engine.

Turns weekly availability rules, blackout windows, existing bookings and the
selected services' occupancy into the ordered list of bookable start instants.
Pure computation over already-loaded rows: no database or network access, and
deterministic for fixed inputs and a fixed ``now``.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Optional, Sequence
from zoneinfo import ZoneInfo

from realty_booking.models.booking import ACTIVE_STATUSES
from realty_booking.services.availability.intervals import Interval, merge_intervals, subtract_intervals
from realty_booking.utils.validators import ensure_aware_utc

DEFAULT_STEP_MINUTES = 30


def _shift(instant: datetime, **delta) -> datetime:
    """``instant`` plus ``delta``, saturating at the end of the datetime range"""
    try:
        return instant + timedelta(**delta)
    except OverflowError:
        return datetime.max.replace(tzinfo=timezone.utc)


def day_of_week(day: date) -> int:
    """0=Sunday ... 6=Saturday"""
    return day.isoweekday() % 7


def compute_occupancy_minutes(services: Iterable, default_buffer_min: int = 0) -> int:
    """Minutes a booking blocks on the calendar, all buffers included.

    With no services selected this is just the admin's default buffer.
    """
    total = sum(
        s.duration_min + (s.buffer_before_min or 0) + (s.buffer_after_min or 0)
        for s in services
    )
    return total + (default_buffer_min or 0)


def compute_work_minutes(services: Iterable) -> int:
    """Service time without buffers, used for the mirrored calendar event"""
    return sum(s.duration_min for s in services)


def compute_booking_end(start: datetime, services: Iterable, default_buffer_min: int = 0) -> datetime:
    return start + timedelta(minutes=compute_occupancy_minutes(services, default_buffer_min))


def _rule_windows(day: date, rules: Sequence, tz: ZoneInfo) -> List[Interval]:
    """Active rule windows for one local calendar day, merged, in UTC"""
    midnight = datetime.combine(day, time.min, tzinfo=tz)
    dow = day_of_week(day)
    windows = []
    for rule in rules:
        if not rule.active or rule.day_of_week != dow:
            continue
        # Rejected at write time; reaching here means a writer skipped validation.
        assert rule.start_minutes < rule.end_minutes, f"invalid availability rule {rule!r}"
        start = (midnight + timedelta(minutes=rule.start_minutes)).astimezone(timezone.utc)
        end = (midnight + timedelta(minutes=rule.end_minutes)).astimezone(timezone.utc)
        if start < end:
            windows.append(Interval(start, end))
    return merge_intervals(windows)


def _cuts_for_day(day_bounds: Interval, blackouts: Sequence, bookings: Sequence, busy: Sequence[Interval]) -> List[Interval]:
    cuts = []
    for blackout in blackouts:
        interval = Interval(ensure_aware_utc(blackout.start), ensure_aware_utc(blackout.end))
        if interval.overlaps(day_bounds):
            cuts.append(interval)
    for booking in bookings:
        if booking.status not in ACTIVE_STATUSES:
            continue
        # stored end already includes every buffer
        interval = Interval(ensure_aware_utc(booking.start), ensure_aware_utc(booking.end))
        if interval.overlaps(day_bounds):
            cuts.append(interval)
    for interval in busy:
        if interval.overlaps(day_bounds):
            cuts.append(interval)
    return cuts


def compute_free_windows(
        day: date,
        tz: ZoneInfo,
        rules: Sequence,
        blackouts: Sequence = (),
        bookings: Sequence = (),
        busy: Sequence[Interval] = (),
) -> List[Interval]:
    """Bookable time left on one local day after blackouts and bookings"""
    windows = _rule_windows(day, rules, tz)
    if not windows:
        return []
    day_bounds = Interval(windows[0].start, windows[-1].end)
    return subtract_intervals(windows, _cuts_for_day(day_bounds, blackouts, bookings, busy))


def compute_available_slots(
        settings,
        rules: Sequence,
        blackouts: Sequence,
        bookings: Sequence,
        occupancy_minutes: int,
        range_start: datetime,
        range_end: datetime,
        now: datetime,
        step_minutes: int = DEFAULT_STEP_MINUTES,
        busy: Optional[Sequence[Interval]] = None,
) -> List[datetime]:
    """
    Ordered candidate start instants (UTC) in [range_start, range_end).

    Args:
        settings: object with time_zone, lead_time_min, max_advance_days
        rules: availability rules (inactive ones are ignored)
        blackouts: absolute exclusion windows
        bookings: existing bookings of the admin; cancelled/completed ones are ignored
        occupancy_minutes: minutes each candidate must fit, buffers included
        range_start / range_end: requested window
        now: evaluation instant; lead time and max advance are measured from it in UTC
        step_minutes: granularity, anchored at each free window's start
        busy: extra occupied intervals (e.g. external calendar free/busy)

    Returns:
        Start instants such that [start, start + occupancy) sits inside a single
        free window. Empty when nothing fits; never raises for edge conditions.
    """
    if step_minutes <= 0:
        raise ValueError("step_minutes must be positive")

    now = ensure_aware_utc(now)
    earliest = _shift(now, minutes=settings.lead_time_min or 0)
    latest = _shift(now, days=settings.max_advance_days or 0)

    lower = max(ensure_aware_utc(range_start), earliest)
    upper = ensure_aware_utc(range_end)
    if lower >= upper or lower > latest:
        return []

    tz = ZoneInfo(settings.time_zone or "UTC")
    occupancy = timedelta(minutes=max(occupancy_minutes, 0))
    step = timedelta(minutes=step_minutes)
    busy = list(busy or ())

    slots: List[datetime] = []
    day = lower.astimezone(tz).date()
    last_day = min(upper, latest).astimezone(tz).date()

    while day <= last_day:
        for window in compute_free_windows(day, tz, rules, blackouts, bookings, busy):
            candidate = window.start
            while candidate < window.end and candidate + occupancy <= window.end:
                if candidate >= upper or candidate > latest:
                    break
                if candidate >= lower:
                    slots.append(candidate)
                candidate += step
        day += timedelta(days=1)

    return slots


def is_slot_available(
        start: datetime,
        settings,
        rules: Sequence,
        blackouts: Sequence,
        bookings: Sequence,
        occupancy_minutes: int,
        now: datetime,
        step_minutes: int = DEFAULT_STEP_MINUTES,
) -> bool:
    """Whether ``start`` is a member of the currently computable slot set"""
    start = ensure_aware_utc(start)
    slots = compute_available_slots(
        settings,
        rules,
        blackouts,
        bookings,
        occupancy_minutes,
        range_start=start,
        range_end=start + timedelta(minutes=1),
        now=now,
        step_minutes=step_minutes,
    )
    return start in slots
