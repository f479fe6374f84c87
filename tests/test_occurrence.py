"""Tests for occurrence evaluation."""

from datetime import date, datetime

from nekotasks.engine.occurrence import occurs_on
from nekotasks.models.item import CalendarItem
from nekotasks.models.recurrence import WeekOfMonth, Weekday, on
from nekotasks.recurrence.calendar import ISO_8601


class TestOneTimeItems:
    """Test placement of non-recurring items by their anchor."""

    def test_start_time_day(self, sample_event):
        """Test that an event occurs on its start day only."""
        assert occurs_on(sample_event, date(2026, 1, 26)) is True
        assert occurs_on(sample_event, date(2026, 1, 27)) is False

    def test_deadline_used_without_start(self, sample_task):
        """Test that a task without a start is placed on its deadline day."""
        assert occurs_on(sample_task, date(2026, 1, 27)) is True
        assert occurs_on(sample_task, datetime(2026, 1, 27, 23, 59)) is True
        assert occurs_on(sample_task, date(2026, 1, 26)) is False

    def test_start_time_takes_precedence_over_deadline(self, sample_item_base):
        """Test that the deadline is ignored when a start time exists."""
        item = CalendarItem(**{
            **sample_item_base,
            "start_time": datetime(2026, 1, 26, 10, 0),
            "deadline": datetime(2026, 1, 30, 17, 0),
        })
        assert occurs_on(item, date(2026, 1, 26)) is True
        assert occurs_on(item, date(2026, 1, 30)) is False

    def test_no_anchor_never_occurs(self, sample_item_base):
        """Test that an item with neither start nor deadline occurs nowhere."""
        item = CalendarItem(**sample_item_base)
        assert occurs_on(item, date(2026, 1, 26)) is False

    def test_stored_rule_ignored_when_not_recurring(self, sample_event):
        """Test that a leftover rule string does not make a one-time item repeat."""
        item = sample_event.model_copy(update={"recurrence_rule": '{"weekdays":{"_0":[1,2,3,4,5,6,7]}}'})
        assert occurs_on(item, date(2026, 1, 28)) is False


class TestRecurringItems:
    """Test recurring items."""

    def test_rule_decides(self, sample_event):
        """Test that the rule, not the start time, decides recurring occurrences."""
        item = sample_event.model_copy()
        item.set_rule(on([Weekday.TUESDAY, Weekday.THURSDAY]))

        assert occurs_on(item, date(2026, 1, 27)) is True
        assert occurs_on(item, date(2026, 3, 5)) is True
        assert occurs_on(item, date(2026, 1, 26)) is False

    def test_missing_rule_fails_closed(self, sample_event):
        """Test that a recurring item without a rule never occurs."""
        item = sample_event.model_copy(update={"is_recurring": True, "recurrence_rule": None})
        for day in range(1, 32):
            assert occurs_on(item, date(2026, 1, day)) is False

    def test_undecodable_rule_fails_closed(self, sample_event):
        """Test that a recurring item with a corrupt rule never occurs, even on its start day."""
        item = sample_event.model_copy(update={"is_recurring": True, "recurrence_rule": '{"weekdays":'})
        assert occurs_on(item, date(2026, 1, 26)) is False
        for day in range(1, 29):
            assert occurs_on(item, date(2026, 2, day)) is False

    def test_calendar_is_passed_through(self, sample_event):
        """Test that week-based rules use the supplied calendar."""
        item = sample_event.model_copy()
        item.set_rule(WeekOfMonth((0,)))
        # Feb 1, 2026 is a lone Sunday before the first ISO week of the month
        assert occurs_on(item, date(2026, 2, 1), ISO_8601) is True
        assert occurs_on(item, date(2026, 2, 1)) is False
