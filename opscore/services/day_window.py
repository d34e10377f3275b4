"""
Day-Window Resolver
Canonical source of "now" and "today" in the organization timezone.

Recurrence, coverage, attribution and escalation never read the wall clock
themselves; they receive a resolver and ask it. Production code uses
SystemDayWindowResolver, tests pin the clock with FixedDayWindowResolver.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

from opscore.error_handlers.exceptions import ValidationException
from opscore.utils.timezone import resolve_zone, ensure_aware, utc_now, DEFAULT_ORG_TIMEZONE


DAY_KEY_FORMAT = '%Y-%m-%d'


@dataclass(frozen=True)
class DayWindow:
    """A local calendar day: [day_start, day_end) plus the instant it was resolved at"""
    day_start: datetime
    day_end: datetime
    day_key: str
    now: datetime

    @property
    def date(self) -> date:
        return self.day_start.date()

    def contains(self, instant: datetime) -> bool:
        return self.day_start <= ensure_aware(instant) < self.day_end


def to_day_key(value: Union[date, datetime]) -> str:
    """Format a date (or the date part of a datetime) as YYYY-MM-DD"""
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime(DAY_KEY_FORMAT)


def parse_day_key(day_key: str) -> date:
    """
    Parse a YYYY-MM-DD day key

    Raises:
        ValidationException: If the key is not a valid calendar date
    """
    try:
        return datetime.strptime(day_key, DAY_KEY_FORMAT).date()
    except (TypeError, ValueError):
        raise ValidationException(
            f"Invalid day key '{day_key}', expected YYYY-MM-DD",
            details={'field': 'date'}
        )


class DayWindowResolver:
    """Base resolver; subclasses supply the clock"""

    def __init__(self, default_timezone: Optional[str] = None):
        self.default_timezone = default_timezone or DEFAULT_ORG_TIMEZONE

    def _clock(self) -> datetime:
        raise NotImplementedError

    def zone(self, tz_name: Optional[str] = None):
        return resolve_zone(tz_name or self.default_timezone, self.default_timezone)

    def now(self, tz_name: Optional[str] = None) -> datetime:
        """Current instant as an aware datetime in the given (or default) zone"""
        return self._clock().astimezone(self.zone(tz_name))

    def today(self, tz_name: Optional[str] = None) -> date:
        return self.now(tz_name).date()

    def day_window(self, day: Union[None, str, date, datetime] = None,
                   tz_name: Optional[str] = None) -> DayWindow:
        """
        Resolve the local day window

        Args:
            day: Day key, date or datetime; defaults to today in the zone
            tz_name: IANA zone name; defaults to the organization zone

        Returns:
            DayWindow with half-open bounds in the local zone
        """
        zone = self.zone(tz_name)
        now = self._clock().astimezone(zone)

        if day is None:
            local_day = now.date()
        elif isinstance(day, str):
            local_day = parse_day_key(day)
        elif isinstance(day, datetime):
            local_day = ensure_aware(day).astimezone(zone).date()
        else:
            local_day = day

        day_start = datetime.combine(local_day, time.min, tzinfo=zone)
        day_end = datetime.combine(local_day + timedelta(days=1), time.min, tzinfo=zone)

        return DayWindow(
            day_start=day_start,
            day_end=day_end,
            day_key=to_day_key(local_day),
            now=now,
        )


class SystemDayWindowResolver(DayWindowResolver):
    """Resolver backed by the real clock"""

    def _clock(self) -> datetime:
        return utc_now()


class FixedDayWindowResolver(DayWindowResolver):
    """
    Resolver pinned to a fixed instant

    Naive instants are taken as UTC. advance() moves the pinned clock,
    which lets a test replay a job at a later time.
    """

    def __init__(self, instant: datetime, default_timezone: Optional[str] = None):
        super().__init__(default_timezone)
        self.instant = ensure_aware(instant)

    def _clock(self) -> datetime:
        return self.instant.astimezone(timezone.utc)

    def advance(self, delta: Optional[timedelta] = None, **kwargs) -> datetime:
        self.instant = self.instant + (delta if delta is not None else timedelta(**kwargs))
        return self.instant


def resolver_from_config(app_config) -> DayWindowResolver:
    """Build the system resolver from a Flask config mapping"""
    return SystemDayWindowResolver(app_config.get('ORG_TIMEZONE', DEFAULT_ORG_TIMEZONE))


def get_resolver() -> DayWindowResolver:
    """Resolver bound to the current app (create_app registers it)"""
    from flask import current_app
    resolver = current_app.extensions.get('day_window_resolver')
    if resolver is None:
        resolver = resolver_from_config(current_app.config)
        current_app.extensions['day_window_resolver'] = resolver
    return resolver
