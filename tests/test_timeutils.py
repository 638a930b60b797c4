"""
Time & Interval Utility Tests
=============================

Run: python -m pytest tests/test_timeutils.py -v
"""

from datetime import date, datetime, time

import pytz
import pytest

from core.timeutils import (
    TimeInterval, add_minutes, band_overlap_minutes, day_window, minutes_between, minutes_to_hm,
    now_local, overlap_minutes, parse_day, parse_instant, signed_minutes,
)


class TestParseInstant:

    def test_naive_iso_string_is_local(self):
        assert parse_instant('2025-03-10T07:00') == datetime(2025, 3, 10, 7, 0)

    def test_utc_suffix_converted_to_home_zone(self):
        """Johannesburg is UTC+2 all year."""
        assert parse_instant('2025-03-10T06:00:00Z') == datetime(2025, 3, 10, 8, 0)

    def test_aware_datetime_converted(self):
        aware = pytz.utc.localize(datetime(2025, 3, 10, 22, 30))
        assert parse_instant(aware) == datetime(2025, 3, 11, 0, 30)

    def test_other_zone(self):
        assert parse_instant('2025-07-01T12:00:00+00:00', 'Europe/London') == datetime(2025, 7, 1, 13, 0)

    @pytest.mark.parametrize('value', [None, '', 'not a date', '2025-13-45T99:00', 42])
    def test_garbage_becomes_none(self, value):
        assert parse_instant(value) is None

    def test_unknown_zone_falls_back(self):
        assert parse_instant('2025-03-10T06:00:00Z', 'Mars/Olympus') == datetime(2025, 3, 10, 8, 0)

    def test_parse_day(self):
        assert parse_day('2025-03-10') == date(2025, 3, 10)
        assert parse_day(datetime(2025, 3, 10, 7, 0)) == date(2025, 3, 10)
        assert parse_day('garbage') is None


class TestDurations:

    def test_minutes_between(self):
        assert minutes_between(datetime(2025, 3, 10, 7), datetime(2025, 3, 10, 19)) == 720

    def test_missing_or_inverted_is_zero(self):
        assert minutes_between(None, datetime(2025, 3, 10, 7)) == 0
        assert minutes_between(datetime(2025, 3, 10, 9), datetime(2025, 3, 10, 7)) == 0

    def test_signed_minutes_negative(self):
        assert signed_minutes(datetime(2025, 3, 10, 9), datetime(2025, 3, 10, 8)) == -60
        assert signed_minutes(None, datetime(2025, 3, 10, 8)) is None

    def test_dst_gap_counts_true_elapsed_time(self):
        """London springs forward at 01:00 on 30 Mar 2025: 00:00-03:00 local is 2h."""
        start = datetime(2025, 3, 30, 0, 0)
        end = datetime(2025, 3, 30, 3, 0)
        assert minutes_between(start, end, 'Europe/London') == 120

    def test_add_minutes_lands_on_wall_clock(self):
        assert add_minutes(datetime(2025, 3, 29, 20), 12 * 60, 'Europe/London') == datetime(2025, 3, 30, 9)
        assert add_minutes(datetime(2025, 3, 10, 20), 12 * 60) == datetime(2025, 3, 11, 8)
        assert add_minutes(None, 60) is None

    def test_interval_minutes_use_its_zone(self):
        start, end = datetime(2025, 3, 30, 0), datetime(2025, 3, 30, 3)
        assert TimeInterval(start, end, 'Europe/London').minutes == 120
        assert TimeInterval(start, end).minutes == 180
        assert overlap_minutes(start, end, start, end, 'Europe/London') == 120

    def test_now_local_is_naive(self):
        assert now_local().tzinfo is None


class TestIntervals:

    def test_overlap_minutes(self):
        assert overlap_minutes(
            datetime(2025, 3, 10, 6), datetime(2025, 3, 10, 12),
            datetime(2025, 3, 10, 10), datetime(2025, 3, 10, 14),
        ) == 120

    def test_touching_intervals_do_not_overlap(self):
        a = TimeInterval(datetime(2025, 3, 10, 6), datetime(2025, 3, 10, 10))
        b = TimeInterval(datetime(2025, 3, 10, 10), datetime(2025, 3, 10, 12))
        assert not a.overlaps(b)
        assert a.overlap_minutes(b) == 0

    def test_missing_bounds_give_zero(self):
        assert overlap_minutes(None, datetime(2025, 3, 10, 6), datetime(2025, 3, 10, 1), datetime(2025, 3, 10, 8)) == 0
        assert TimeInterval.of(datetime(2025, 3, 10, 8), datetime(2025, 3, 10, 8)) is None

    def test_days_excludes_midnight_end(self):
        interval = TimeInterval(datetime(2025, 3, 10, 16), datetime(2025, 3, 11, 0))
        assert list(interval.days()) == [date(2025, 3, 10)]

    def test_days_spans_midnight(self):
        interval = TimeInterval(datetime(2025, 3, 10, 22), datetime(2025, 3, 11, 6))
        assert list(interval.days()) == [date(2025, 3, 10), date(2025, 3, 11)]

    def test_day_window_wraps(self):
        night = day_window(date(2025, 3, 10), time(22, 0), time(6, 0))
        assert night.start == datetime(2025, 3, 10, 22)
        assert night.end == datetime(2025, 3, 11, 6)

    def test_band_overlap_across_days(self):
        """A 48h interval meets the 02:00-05:00 band twice."""
        interval = TimeInterval(datetime(2025, 3, 10, 0), datetime(2025, 3, 12, 0))
        assert band_overlap_minutes(interval, time(2, 0), time(5, 0)) == 360

    def test_band_overlap_with_shift(self):
        interval = TimeInterval(datetime(2025, 3, 10, 3), datetime(2025, 3, 10, 9))
        assert band_overlap_minutes(interval, time(2, 0), time(6, 0), shift_minutes=-30) == 150


class TestFormatting:

    @pytest.mark.parametrize('minutes,expected', [
        (0, '0:00'), (59, '0:59'), (795, '13:15'), (-5, '0:00'), (89.6, '1:30'),
    ])
    def test_minutes_to_hm(self, minutes, expected):
        assert minutes_to_hm(minutes) == expected

    def test_placeholder(self):
        assert minutes_to_hm(None) == '—'
