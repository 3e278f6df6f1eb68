# ===== realty_booking/services/availability/intervals.py =====
"""
Half-open [start, end) time intervals and the set operations the slot engine
is built from. All datetimes are expected to be timezone aware.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List


@dataclass(frozen=True, order=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Empty or inverted interval: {self.start} >= {self.end}")

    @classmethod
    def from_minutes(cls, start: datetime, minutes: int) -> "Interval":
        return cls(start, start + timedelta(minutes=minutes))

    @property
    def minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """Union of intervals as a sorted list of disjoint intervals.

    Overlapping and touching intervals are coalesced, so time covered by
    several inputs is counted once.
    """
    merged: List[Interval] = []
    for interval in sorted(intervals):
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            if interval.end > last.end:
                merged[-1] = Interval(last.start, interval.end)
        else:
            merged.append(interval)
    return merged


def subtract_intervals(windows: Iterable[Interval], cuts: Iterable[Interval]) -> List[Interval]:
    """Remove every cut from the windows.

    A cut that only partially covers a window truncates it (or splits it in
    two); it never removes the uncovered remainder.
    """
    cuts = merge_intervals(cuts)
    result: List[Interval] = []

    for window in merge_intervals(windows):
        cursor = window.start
        for cut in cuts:
            if cut.end <= cursor:
                continue
            if cut.start >= window.end:
                break
            if cut.start > cursor:
                result.append(Interval(cursor, cut.start))
            cursor = max(cursor, cut.end)
            if cursor >= window.end:
                break
        if cursor < window.end:
            result.append(Interval(cursor, window.end))

    return result
