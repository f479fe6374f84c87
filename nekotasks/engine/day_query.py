"""Day and range queries for NekoTasks.

Selects the items visible on a day under a visibility filter and orders them
by start time. Output is deterministic: items without a start time sort first,
and ties keep their input order.
"""

from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Union

from nekotasks.engine.occurrence import occurs_on
from nekotasks.models.item import CalendarItem
from nekotasks.models.visibility import SHOW_ALL, VisibilityFilter
from nekotasks.recurrence.calendar import GREGORIAN_US, ReferenceCalendar, as_local_day

DayLike = Union[date, datetime]


def passes_filter(item: CalendarItem, visibility: VisibilityFilter = SHOW_ALL) -> bool:
    """Category and label checks of a visibility filter.

    Args:
        item: Item to check
        visibility: Category toggles and label allow-list

    Returns:
        True if the item is not hidden by the filter
    """
    if item.is_recurring and not visibility.show_recurring:
        return False
    if not item.is_recurring and not visibility.show_one_time:
        return False
    # An empty allow-list means no label restriction
    if visibility.label_ids and not visibility.label_ids.intersection(item.label_ids):
        return False
    return True


def _start_sort_key(item: CalendarItem) -> datetime:
    return item.start_time if item.start_time is not None else datetime.min


def items_on(
    items: Iterable[CalendarItem],
    day: DayLike,
    visibility: VisibilityFilter = SHOW_ALL,
    calendar: ReferenceCalendar = GREGORIAN_US,
) -> List[CalendarItem]:
    """Items visible on ``day``, ordered by start time.

    Args:
        items: Snapshot of items to consider
        day: Day to query
        visibility: Filter to apply
        calendar: Week-numbering convention for recurring items

    Returns:
        Matching items sorted ascending by start time; items without a start
        time come first and equal keys keep their input order
    """
    kept = [
        item for item in items
        if passes_filter(item, visibility) and occurs_on(item, day, calendar)
    ]
    # sorted() is stable
    return sorted(kept, key=_start_sort_key)


def items_in_range(
    items: Iterable[CalendarItem],
    start: DayLike,
    end: DayLike,
    visibility: VisibilityFilter = SHOW_ALL,
    calendar: ReferenceCalendar = GREGORIAN_US,
) -> Dict[date, List[CalendarItem]]:
    """Run ``items_on`` for every day from ``start`` to ``end`` inclusive.

    Returns:
        Mapping of day to its ordered items, in day order. Empty when end < start.
    """
    snapshot = list(items)
    first = as_local_day(start)
    last = as_local_day(end)
    result: Dict[date, List[CalendarItem]] = {}
    current = first
    while current <= last:
        result[current] = items_on(snapshot, current, visibility, calendar)
        current += timedelta(days=1)
    return result


def items_in_week(
    items: Iterable[CalendarItem],
    day: DayLike,
    visibility: VisibilityFilter = SHOW_ALL,
    calendar: ReferenceCalendar = GREGORIAN_US,
) -> Dict[date, List[CalendarItem]]:
    """Items for each of the seven days of the calendar week containing ``day``."""
    week = calendar.week_dates(day)
    return items_in_range(items, week[0], week[-1], visibility, calendar)
