"""Tests for day, range and week queries."""

from datetime import date, datetime

from nekotasks.engine.day_query import items_in_range, items_in_week, items_on, passes_filter
from nekotasks.models.item import CalendarItem
from nekotasks.models.recurrence import Weekday, on
from nekotasks.models.visibility import SHOW_ALL, VisibilityFilter

MONDAY = date(2026, 1, 26)


def _event(base, title, start=None, labels=(), recurring_on=None, deadline=None):
    item = CalendarItem(**{
        **base,
        "id": title.lower().replace(" ", "-"),
        "title": title,
        "start_time": start,
        "deadline": deadline,
        "label_ids": list(labels),
    })
    if recurring_on is not None:
        item.set_rule(on(recurring_on))
    return item


class TestVisibilityFilter:
    """Test filter values."""

    def test_show_all_is_default(self):
        """Test the canonical show-everything filter."""
        assert SHOW_ALL.is_default is True
        assert VisibilityFilter(show_recurring=False).is_default is False
        assert VisibilityFilter(label_ids=frozenset({"work"})).is_default is False

    def test_label_gate(self, sample_item_base):
        """Test that a non-empty allow-list needs at least one shared label."""
        item = _event(sample_item_base, "Standup", start=datetime(2026, 1, 26, 9), labels=["work", "team"])
        assert passes_filter(item, VisibilityFilter(label_ids=frozenset({"team", "home"}))) is True
        assert passes_filter(item, VisibilityFilter(label_ids=frozenset({"home"}))) is False


class TestItemsOn:
    """Test the day query."""

    def test_category_filters(self, sample_item_base):
        """Test hiding recurring or one-time items on the same day."""
        recurring = _event(sample_item_base, "Gym", start=datetime(2026, 1, 5, 7), recurring_on=Weekday.MONDAY)
        one_time = _event(sample_item_base, "Lunch", start=datetime(2026, 1, 26, 12))
        items = [recurring, one_time]

        assert items_on(items, MONDAY) == [recurring, one_time]
        assert items_on(items, MONDAY, VisibilityFilter(show_recurring=False)) == [one_time]
        assert items_on(items, MONDAY, VisibilityFilter(show_one_time=False)) == [recurring]

    def test_empty_label_filter_ignores_labels(self, sample_item_base):
        """Test that items pass the label gate regardless of labels when no labels are selected."""
        recurring = _event(sample_item_base, "Gym", start=datetime(2026, 1, 5, 7),
                           labels=["health"], recurring_on=Weekday.MONDAY)
        one_time = _event(sample_item_base, "Lunch", start=datetime(2026, 1, 26, 12))

        assert items_on([recurring, one_time], MONDAY, VisibilityFilter(label_ids=frozenset())) == [recurring, one_time]

    def test_label_filter(self, sample_item_base):
        """Test that only items sharing a selected label are kept."""
        work = _event(sample_item_base, "Review", start=datetime(2026, 1, 26, 14), labels=["work"])
        home = _event(sample_item_base, "Plumber", start=datetime(2026, 1, 26, 16), labels=["home"])
        unlabeled = _event(sample_item_base, "Walk", start=datetime(2026, 1, 26, 18))

        result = items_on([work, home, unlabeled], MONDAY, VisibilityFilter(label_ids=frozenset({"work"})))
        assert result == [work]

    def test_sorted_by_start_time(self, sample_item_base):
        """Test ascending start-time order."""
        late = _event(sample_item_base, "Dinner", start=datetime(2026, 1, 26, 19))
        early = _event(sample_item_base, "Breakfast", start=datetime(2026, 1, 26, 7))
        recurring = _event(sample_item_base, "Standup", start=datetime(2026, 1, 5, 9), recurring_on=Weekday.MONDAY)

        assert items_on([late, early, recurring], MONDAY) == [recurring, early, late]

    def test_missing_start_times_first_in_input_order(self, sample_item_base):
        """Test that untimed items sort first and keep their relative order."""
        timed = _event(sample_item_base, "Meeting", start=datetime(2026, 1, 26, 8))
        first = _event(sample_item_base, "First", deadline=datetime(2026, 1, 26, 17))
        second = _event(sample_item_base, "Second", deadline=datetime(2026, 1, 26, 9))
        third = _event(sample_item_base, "Third", deadline=datetime(2026, 1, 26, 12))

        result = items_on([timed, first, second, third], MONDAY)
        assert [item.title for item in result] == ["First", "Second", "Third", "Meeting"]

    def test_equal_start_times_keep_input_order(self, sample_item_base):
        """Test stability for identical start times."""
        start = datetime(2026, 1, 26, 10)
        a = _event(sample_item_base, "A", start=start)
        b = _event(sample_item_base, "B", start=start)
        c = _event(sample_item_base, "C", start=start)

        assert items_on([b, c, a], MONDAY) == [b, c, a]

    def test_invalid_recurring_item_excluded(self, sample_item_base):
        """Test that a recurring item with a corrupt rule never appears."""
        broken = _event(sample_item_base, "Broken", start=datetime(2026, 1, 26, 9)).model_copy(
            update={"is_recurring": True, "recurrence_rule": "garbage"}
        )
        assert items_on([broken], MONDAY) == []


class TestRangeQueries:
    """Test range and week queries."""

    def test_items_in_range(self, sample_item_base):
        """Test per-day results over an inclusive range."""
        recurring = _event(sample_item_base, "Class", start=datetime(2026, 1, 6, 18), recurring_on=Weekday.TUESDAY)
        one_time = _event(sample_item_base, "Trip", start=datetime(2026, 1, 28, 8))

        result = items_in_range([recurring, one_time], date(2026, 1, 26), date(2026, 1, 28))
        assert list(result) == [date(2026, 1, 26), date(2026, 1, 27), date(2026, 1, 28)]
        assert result[date(2026, 1, 26)] == []
        assert result[date(2026, 1, 27)] == [recurring]
        assert result[date(2026, 1, 28)] == [one_time]

    def test_empty_range(self):
        """Test that an end before the start yields nothing."""
        assert items_in_range([], date(2026, 1, 28), date(2026, 1, 26)) == {}

    def test_items_in_week(self, sample_item_base):
        """Test that the week query covers Sunday through Saturday."""
        weekend = _event(sample_item_base, "Hike", start=datetime(2026, 1, 5, 8), recurring_on=Weekday.SATURDAY)

        result = items_in_week([weekend], date(2026, 1, 28))
        assert list(result)[0] == date(2026, 1, 25)
        assert list(result)[-1] == date(2026, 1, 31)
        assert result[date(2026, 1, 31)] == [weekend]
        assert sum(len(items) for items in result.values()) == 1
