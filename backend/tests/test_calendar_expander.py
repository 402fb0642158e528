"""
Tests for recurrence expansion of trip series.
"""

from datetime import date, timedelta

from motorpark.models import RecurrencePatternModel, RecurrenceType
from motorpark.services.calendar_expander import (
    day_of_week,
    expand_occurrences,
    preview_occurrences,
)

MONDAY = date(2026, 3, 2)


class TestDayOfWeek:
    """Weekday numbering starts at Sunday."""

    def test_sunday_is_zero(self):
        assert day_of_week(date(2026, 3, 1)) == 0
        assert day_of_week(MONDAY) == 1
        assert day_of_week(date(2026, 3, 7)) == 6


class TestExpandOccurrences:
    """Test series date generation."""

    def test_daily_includes_start_and_end(self):
        pattern = RecurrencePatternModel(type=RecurrenceType.DAILY, end_date=date(2026, 3, 8))
        dates = expand_occurrences(MONDAY, pattern)

        assert dates == [MONDAY + timedelta(days=i) for i in range(7)]

    def test_weekdays_skip_weekend(self):
        pattern = RecurrencePatternModel(type=RecurrenceType.WEEKDAYS, end_date=date(2026, 3, 15))
        dates = expand_occurrences(MONDAY, pattern)

        assert len(dates) == 10
        assert all(day.weekday() < 5 for day in dates)

    def test_custom_days(self):
        """Monday, Wednesday and Friday over two weeks."""
        pattern = RecurrencePatternModel(
            type=RecurrenceType.CUSTOM,
            days_of_week=[1, 3, 5],
            end_date=date(2026, 3, 15),
        )
        dates = expand_occurrences(MONDAY, pattern)

        assert dates == [
            date(2026, 3, 2), date(2026, 3, 4), date(2026, 3, 6),
            date(2026, 3, 9), date(2026, 3, 11), date(2026, 3, 13),
        ]

    def test_exceptions_are_skipped(self):
        pattern = RecurrencePatternModel(
            type=RecurrenceType.DAILY,
            end_date=date(2026, 3, 6),
            exceptions=[date(2026, 3, 3), date(2026, 3, 5)],
        )
        dates = expand_occurrences(MONDAY, pattern)

        assert dates == [date(2026, 3, 2), date(2026, 3, 4), date(2026, 3, 6)]

    def test_empty_custom_days_yield_nothing(self):
        pattern = RecurrencePatternModel(type=RecurrenceType.CUSTOM, days_of_week=[])
        assert expand_occurrences(MONDAY, pattern) == []

    def test_end_before_start_yields_nothing(self):
        pattern = RecurrencePatternModel(type=RecurrenceType.DAILY, end_date=MONDAY - timedelta(days=1))
        assert expand_occurrences(MONDAY, pattern) == []

    def test_default_horizon(self):
        """Without an end date the series runs through the horizon day."""
        pattern = RecurrencePatternModel(type=RecurrenceType.DAILY)
        dates = expand_occurrences(MONDAY, pattern, horizon_days=90)

        assert dates[0] == MONDAY
        assert dates[-1] == MONDAY + timedelta(days=90)

    def test_occurrence_cap(self):
        pattern = RecurrencePatternModel(type=RecurrenceType.DAILY, end_date=date(2028, 1, 1))
        assert len(expand_occurrences(MONDAY, pattern, max_occurrences=365)) == 365

    def test_expansion_is_idempotent(self):
        pattern = RecurrencePatternModel(
            type=RecurrenceType.CUSTOM,
            days_of_week=[0, 6],
            exceptions=[date(2026, 3, 7)],
        )
        assert expand_occurrences(MONDAY, pattern) == expand_occurrences(MONDAY, pattern)


class TestPreviewOccurrences:
    """Test upcoming date previews."""

    def test_preview_excludes_start_and_limits(self):
        pattern = RecurrencePatternModel(type=RecurrenceType.DAILY)
        dates = preview_occurrences(MONDAY, pattern)

        assert len(dates) == 7
        assert dates[0] == MONDAY + timedelta(days=1)

    def test_preview_respects_horizon(self):
        """Sundays only: four or five fit in a thirty day window."""
        pattern = RecurrencePatternModel(type=RecurrenceType.CUSTOM, days_of_week=[0])
        dates = preview_occurrences(MONDAY, pattern, limit=7, horizon_days=30)

        assert dates == [date(2026, 3, 8), date(2026, 3, 15), date(2026, 3, 22), date(2026, 3, 29)]


class TestWalkBounds:
    """Expansion stays bounded for distant or extreme dates."""

    def test_empty_custom_days_with_distant_end(self):
        pattern = RecurrencePatternModel(type=RecurrenceType.CUSTOM, days_of_week=[], end_date=date(9000, 1, 1))
        assert expand_occurrences(MONDAY, pattern) == []

    def test_distant_end_walks_one_year(self):
        """Sundays only: the walk stops a year after the start."""
        pattern = RecurrencePatternModel(type=RecurrenceType.CUSTOM, days_of_week=[0], end_date=date(9999, 12, 31))
        dates = expand_occurrences(MONDAY, pattern)

        assert dates[0] == date(2026, 3, 8)
        assert dates[-1] < MONDAY + timedelta(days=365)
        assert len(dates) == 52

    def test_start_near_last_representable_date(self):
        pattern = RecurrencePatternModel(type=RecurrenceType.DAILY)
        dates = expand_occurrences(date(9999, 12, 1), pattern)

        assert dates[0] == date(9999, 12, 1)
        assert dates[-1] == date.max
        assert len(dates) == 31

    def test_preview_from_last_representable_date(self):
        pattern = RecurrencePatternModel(type=RecurrenceType.DAILY, end_date=date.max)
        assert preview_occurrences(date.max, pattern) == []
