"""Timezone helpers shared by the day-window resolver and the board projection."""

import logging
from datetime import datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from opscore.error_handlers.exceptions import ConfigurationException

logger = logging.getLogger(__name__)

DEFAULT_ORG_TIMEZONE = 'Europe/Bucharest'


@lru_cache(maxsize=16)
def _get_tz(tz_name):
    return ZoneInfo(tz_name)


def resolve_zone(tz_name, default_name=DEFAULT_ORG_TIMEZONE):
    """Return the ZoneInfo for tz_name, falling back to default_name.

    A missing or unknown zone is logged and replaced by the default so a
    batch never fails on one location's bad setting. An unknown default is a
    deployment error and raises ConfigurationException.
    """
    if tz_name:
        try:
            return _get_tz(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone '{tz_name}', falling back to {default_name}")
    else:
        logger.debug(f"No timezone supplied, using {default_name}")

    try:
        return _get_tz(default_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationException(
            f"Organization timezone '{default_name}' is not a valid IANA zone"
        ) from e


def ensure_aware(dt):
    """Attach UTC to a naive datetime; aware datetimes pass through.

    SQLite hands DateTime columns back without tzinfo; they were written as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_local_time(dt, tz_name=None, fmt=None):
    """Convert a UTC (naive or aware) datetime to the organization zone.

    Args:
        dt: Datetime to convert, or None.
        tz_name: IANA timezone name. Falls back to app config or the default.
        fmt: Optional strftime format; when given a string is returned.

    Returns:
        Aware local datetime (or formatted string), None if dt is None.
    """
    if dt is None:
        return None
    if tz_name is None:
        from flask import current_app
        tz_name = current_app.config.get('ORG_TIMEZONE', DEFAULT_ORG_TIMEZONE)
    local_dt = ensure_aware(dt).astimezone(resolve_zone(tz_name))
    if fmt:
        return local_dt.strftime(fmt)
    return local_dt


def utc_now():
    return datetime.now(timezone.utc)
