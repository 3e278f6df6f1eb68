"""Tests for half-open interval arithmetic"""
from datetime import datetime, timezone

import pytest

from realty_booking.services.availability.intervals import Interval, merge_intervals, subtract_intervals


def t(hour, minute=0):
    return datetime(2025, 3, 10, hour, minute, tzinfo=timezone.utc)


class TestInterval:

    def test_rejects_empty_interval(self):
        with pytest.raises(ValueError):
            Interval(t(10), t(10))

    def test_touching_intervals_do_not_overlap(self):
        assert not Interval(t(9), t(10)).overlaps(Interval(t(10), t(11)))

    def test_overlap_and_contains(self):
        outer = Interval(t(9), t(17))
        assert outer.overlaps(Interval(t(16), t(18)))
        assert outer.contains(Interval(t(9), t(17)))
        assert not outer.contains(Interval(t(16), t(18)))

    def test_from_minutes(self):
        assert Interval.from_minutes(t(9), 90) == Interval(t(9), t(10, 30))
        assert Interval(t(9), t(10, 30)).minutes == 90


class TestMerge:

    def test_overlapping_and_touching_are_coalesced(self):
        merged = merge_intervals([
            Interval(t(13), t(15)),
            Interval(t(9), t(11)),
            Interval(t(10), t(12)),
            Interval(t(12), t(13)),
        ])
        assert merged == [Interval(t(9), t(15))]

    def test_disjoint_stay_separate_and_sorted(self):
        merged = merge_intervals([Interval(t(14), t(15)), Interval(t(9), t(10))])
        assert merged == [Interval(t(9), t(10)), Interval(t(14), t(15))]

    def test_empty(self):
        assert merge_intervals([]) == []


class TestSubtract:

    def test_cut_in_the_middle_splits_window(self):
        result = subtract_intervals([Interval(t(9), t(17))], [Interval(t(12), t(13))])
        assert result == [Interval(t(9), t(12)), Interval(t(13), t(17))]

    def test_partial_cut_truncates_only(self):
        result = subtract_intervals([Interval(t(9), t(17))], [Interval(t(8), t(10))])
        assert result == [Interval(t(10), t(17))]

        result = subtract_intervals([Interval(t(9), t(17))], [Interval(t(16), t(18))])
        assert result == [Interval(t(9), t(16))]

    def test_full_cover_removes_window(self):
        assert subtract_intervals([Interval(t(9), t(17))], [Interval(t(0), t(23))]) == []

    def test_cuts_outside_windows_are_ignored(self):
        windows = [Interval(t(9), t(12)), Interval(t(14), t(17))]
        assert subtract_intervals(windows, [Interval(t(12), t(14))]) == windows

    def test_one_cut_spanning_two_windows(self):
        windows = [Interval(t(9), t(12)), Interval(t(14), t(17))]
        result = subtract_intervals(windows, [Interval(t(11), t(15))])
        assert result == [Interval(t(9), t(11)), Interval(t(15), t(17))]
