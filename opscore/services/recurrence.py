"""
Recurrence Calculator
Computes the next occurrence date of a recurrence rule.

Rules are read by attribute, so both RecurrenceRule rows and plain objects
carrying the same fields work.
"""
import calendar
from datetime import date, timedelta
from enum import Enum
from typing import Optional

from opscore.error_handlers.exceptions import InvalidRuleException


class RecurrencePattern(str, Enum):
    """Supported recurrence cadences"""
    DAILY = "daily"
    WEEKLY = "weekly"
    EVERY_4_WEEKS = "every_4_weeks"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


DAY_STEPS = {
    RecurrencePattern.DAILY: 1,
    RecurrencePattern.WEEKLY: 7,
    RecurrencePattern.EVERY_4_WEEKS: 28,
}

MONTH_STEPS = {
    RecurrencePattern.MONTHLY: 1,
    RecurrencePattern.QUARTERLY: 3,
    RecurrencePattern.YEARLY: 12,
}

WEEKDAY_PATTERNS = (RecurrencePattern.WEEKLY, RecurrencePattern.EVERY_4_WEEKS)


def add_months(base: date, months: int, day_of_month: Optional[int] = None) -> date:
    """
    Shift a date by whole months

    The target day is day_of_month when given, else the base's own day, and
    is clamped to the last day of the target month (Jan 31 + 1 month is
    Feb 28/29, never Mar 2/3).
    """
    month_index = base.month - 1 + months
    year = base.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day_of_month or base.day, last_day))


def snap_to_weekday(day: date, day_of_week: int) -> date:
    """Move forward to the next day_of_week (0=Monday), staying put if it already matches"""
    return day + timedelta(days=(day_of_week - day.weekday()) % 7)


def validate_rule(rule) -> RecurrencePattern:
    """
    Check a rule's schedule fields

    Returns:
        The parsed RecurrencePattern

    Raises:
        InvalidRuleException: Unknown pattern, out-of-range day fields, or no
            anchor_date on a rule that has never generated
    """
    rule_id = getattr(rule, 'id', None)
    try:
        pattern = RecurrencePattern(rule.pattern)
    except ValueError:
        raise InvalidRuleException(
            f"Unknown recurrence pattern '{rule.pattern}'",
            details={'rule_id': rule_id, 'field': 'pattern'}
        )

    if getattr(rule, 'last_generated_date', None) is None and getattr(rule, 'anchor_date', None) is None:
        raise InvalidRuleException(
            "anchor_date is required until the rule has generated an occurrence",
            details={'rule_id': rule_id, 'field': 'anchor_date'}
        )

    day_of_month = getattr(rule, 'day_of_month', None)
    if day_of_month is not None and not 1 <= day_of_month <= 31:
        raise InvalidRuleException(
            f"day_of_month must be between 1 and 31 (got {day_of_month})",
            details={'rule_id': rule_id, 'field': 'day_of_month'}
        )

    day_of_week = getattr(rule, 'day_of_week', None)
    if day_of_week is not None and not 0 <= day_of_week <= 6:
        raise InvalidRuleException(
            f"day_of_week must be between 0 (Monday) and 6 (Sunday) (got {day_of_week})",
            details={'rule_id': rule_id, 'field': 'day_of_week'}
        )

    duration = getattr(rule, 'duration_minutes', None)
    if duration is not None and duration < 0:
        raise InvalidRuleException(
            f"duration_minutes cannot be negative (got {duration})",
            details={'rule_id': rule_id, 'field': 'duration_minutes'}
        )

    return pattern


def next_occurrence(rule, reference_date: date) -> date:
    """
    Compute the next occurrence date of a rule

    Starts from last_generated_date, else anchor_date, and always advances
    one step, so the result is strictly after last_generated_date. The
    result does not depend on reference_date; callers compare against it.

    Args:
        rule: Object with pattern, anchor_date, last_generated_date and the
            optional day_of_week / day_of_month fields
        reference_date: Today in the organization zone

    Raises:
        InvalidRuleException: If the rule's schedule fields are invalid or it
            has neither last_generated_date nor anchor_date
    """
    pattern = validate_rule(rule)
    base = getattr(rule, 'last_generated_date', None) or rule.anchor_date

    if pattern in DAY_STEPS:
        candidate = base + timedelta(days=DAY_STEPS[pattern])
        day_of_week = getattr(rule, 'day_of_week', None)
        if pattern in WEEKDAY_PATTERNS and day_of_week is not None:
            candidate = snap_to_weekday(candidate, day_of_week)
        return candidate

    return add_months(base, MONTH_STEPS[pattern], getattr(rule, 'day_of_month', None))


def has_ended(rule, occurrence_date: date) -> bool:
    end_date = getattr(rule, 'end_date', None)
    return end_date is not None and occurrence_date > end_date


def is_due(rule, today: date) -> bool:
    """True when an active rule's next occurrence falls on or before today and within its end date"""
    if not getattr(rule, 'is_active', True):
        return False
    upcoming = next_occurrence(rule, today)
    return upcoming <= today and not has_ended(rule, upcoming)
