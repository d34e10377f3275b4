"""
Tests for the organization day window
"""
import logging
import pytest
from datetime import date, datetime, timedelta, timezone

from opscore.error_handlers.exceptions import ValidationException
from opscore.services.day_window import (
    FixedDayWindowResolver,
    SystemDayWindowResolver,
    parse_day_key,
    to_day_key,
)


class TestDayWindow:
    """Day boundaries follow the organization zone, not UTC"""

    def test_late_utc_evening_is_next_local_day(self):
        resolver = FixedDayWindowResolver(datetime(2024, 1, 7, 23, 30, tzinfo=timezone.utc), 'Europe/Bucharest')

        window = resolver.day_window()

        assert window.day_key == '2024-01-08'
        assert window.date == date(2024, 1, 8)
        assert window.day_start.isoformat() == '2024-01-08T00:00:00+02:00'
        assert window.day_end.isoformat() == '2024-01-09T00:00:00+02:00'
        assert window.now.utcoffset() == timedelta(hours=2)

    def test_explicit_day_key(self):
        resolver = FixedDayWindowResolver(datetime(2024, 1, 8, 7, 0, tzinfo=timezone.utc))

        window = resolver.day_window('2024-02-29')

        assert window.day_key == '2024-02-29'
        assert window.now == datetime(2024, 1, 8, 7, 0, tzinfo=timezone.utc)

    def test_window_contains_is_half_open(self):
        resolver = FixedDayWindowResolver(datetime(2024, 1, 8, 7, 0, tzinfo=timezone.utc), 'Europe/Bucharest')
        window = resolver.day_window()

        assert window.contains(datetime(2024, 1, 7, 22, 0, tzinfo=timezone.utc))
        assert not window.contains(datetime(2024, 1, 8, 22, 0, tzinfo=timezone.utc))

    def test_dst_start_day_is_23_hours(self):
        resolver = FixedDayWindowResolver(datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc), 'Europe/Bucharest')

        window = resolver.day_window()
        length = window.day_end.astimezone(timezone.utc) - window.day_start.astimezone(timezone.utc)

        assert length == timedelta(hours=23)

    def test_unknown_timezone_falls_back_to_default(self, caplog):
        resolver = FixedDayWindowResolver(datetime(2024, 1, 7, 23, 30, tzinfo=timezone.utc), 'Europe/Bucharest')

        with caplog.at_level(logging.WARNING):
            window = resolver.day_window(tz_name='Mars/Olympus_Mons')

        assert window.day_key == '2024-01-08'
        assert 'Mars/Olympus_Mons' in caplog.text

    def test_other_zone_gives_other_day(self):
        resolver = FixedDayWindowResolver(datetime(2024, 1, 7, 23, 30, tzinfo=timezone.utc), 'Europe/Bucharest')

        assert resolver.day_window(tz_name='America/New_York').day_key == '2024-01-07'

    def test_advance_moves_the_clock(self):
        resolver = FixedDayWindowResolver(datetime(2024, 1, 8, 7, 0, tzinfo=timezone.utc))

        resolver.advance(days=1)

        assert resolver.today() == date(2024, 1, 9)

    def test_naive_instant_is_utc(self):
        resolver = FixedDayWindowResolver(datetime(2024, 1, 7, 23, 30), 'Europe/Bucharest')

        assert resolver.today() == date(2024, 1, 8)

    def test_system_resolver_is_aware(self):
        now = SystemDayWindowResolver('Europe/Bucharest').now()

        assert now.tzinfo is not None


class TestDayKeys:

    def test_to_day_key_accepts_date_and_datetime(self):
        assert to_day_key(date(2024, 1, 8)) == '2024-01-08'
        assert to_day_key(datetime(2024, 1, 8, 23, 59)) == '2024-01-08'

    def test_parse_day_key(self):
        assert parse_day_key('2024-02-29') == date(2024, 2, 29)

    @pytest.mark.parametrize('raw', ['2024-02-30', '08/01/2024', '', None])
    def test_parse_day_key_rejects_bad_input(self, raw):
        with pytest.raises(ValidationException):
            parse_day_key(raw)
