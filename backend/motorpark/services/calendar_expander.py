"""
Calendar pattern expander for recurring trip series.

Turns a start date and a recurrence pattern into the concrete dates on which
trips should exist. Both functions are pure: the same inputs always produce
the same dates.
"""

from datetime import date, timedelta
from typing import List, Optional

from ..models.enums import RecurrenceType
from ..models.trip import RecurrencePatternModel

DEFAULT_HORIZON_DAYS = 90
DEFAULT_MAX_OCCURRENCES = 365
DEFAULT_PREVIEW_LIMIT = 7
DEFAULT_PREVIEW_HORIZON_DAYS = 30
# Days examined per expansion, whatever the pattern or end date
MAX_WALK_DAYS = 365


def day_of_week(day: date) -> int:
    """Weekday index with 0 for Sunday through 6 for Saturday."""
    return day.isoweekday() % 7


def includes_date(day: date, pattern: RecurrencePatternModel) -> bool:
    """Check whether the pattern's rule selects ``day`` (exceptions aside)."""
    weekday = day_of_week(day)

    if pattern.type == RecurrenceType.DAILY:
        return True
    if pattern.type == RecurrenceType.WEEKDAYS:
        return 1 <= weekday <= 5
    if pattern.type == RecurrenceType.CUSTOM:
        return weekday in pattern.days_of_week
    return False


def _end_bound(first: date, end_date: Optional[date], span_days: int) -> date:
    """Last day to examine: the pattern end, capped at ``span_days`` and ``date.max``."""
    room = (date.max - first).days
    bound = first + timedelta(days=min(span_days, room))
    if end_date is not None and end_date < bound:
        return end_date
    return bound


def _walk(
    first: date,
    last: date,
    pattern: RecurrencePatternModel,
    limit: int,
) -> List[date]:
    exceptions = set(pattern.exceptions)
    dates: List[date] = []

    for offset in range((last - first).days + 1):
        if len(dates) >= limit:
            break
        current = first + timedelta(days=offset)
        if current not in exceptions and includes_date(current, pattern):
            dates.append(current)

    return dates


def expand_occurrences(
    start_date: date,
    pattern: RecurrencePatternModel,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
    include_start: bool = True,
) -> List[date]:
    """
    Expand a recurrence pattern into trip dates.

    Args:
        start_date: First day of the series
        pattern: Recurrence rule, end date and exceptions
        horizon_days: Span used when the pattern has no end date
        max_occurrences: Hard cap on generated dates
            (the walk itself never examines more than ``MAX_WALK_DAYS`` days)
        include_start: Whether the start date itself may be an occurrence

    Returns:
        List[date]: Ordered occurrence dates. Empty when the pattern selects
        nothing (e.g. a custom pattern with no days, or an end date before
        the start).
    """
    if include_start:
        first = start_date
    elif start_date < date.max:
        first = start_date + timedelta(days=1)
    else:
        return []

    span = horizon_days if pattern.end_date is None else MAX_WALK_DAYS
    # Bound is inclusive, so at most MAX_WALK_DAYS days are examined
    last = _end_bound(first, pattern.end_date, min(span, MAX_WALK_DAYS - 1))
    return _walk(first, last, pattern, max_occurrences)


def preview_occurrences(
    start_date: date,
    pattern: RecurrencePatternModel,
    limit: int = DEFAULT_PREVIEW_LIMIT,
    horizon_days: int = DEFAULT_PREVIEW_HORIZON_DAYS,
) -> List[date]:
    """Upcoming occurrences after ``start_date``, at most ``limit`` of them."""
    return expand_occurrences(
        start_date,
        pattern,
        horizon_days=horizon_days,
        max_occurrences=limit,
        include_start=False,
    )
