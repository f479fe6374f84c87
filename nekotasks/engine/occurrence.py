"""Occurrence evaluation for NekoTasks.

Decides whether a calendar item is active on a given day.
"""

import logging
from datetime import date, datetime
from typing import Union

from nekotasks.models.item import CalendarItem
from nekotasks.recurrence.calendar import GREGORIAN_US, ReferenceCalendar, as_local_day, resolve_context
from nekotasks.recurrence.evaluate import matches

logger = logging.getLogger(__name__)


def occurs_on(
    item: CalendarItem,
    day: Union[date, datetime],
    calendar: ReferenceCalendar = GREGORIAN_US,
) -> bool:
    """Check if an item occurs on a day.

    Recurring items are evaluated against their rule. An item flagged as recurring
    whose rule is missing or cannot be decoded never occurs.

    One-time items are placed by their anchor: the start time when present,
    otherwise the deadline. Items with neither never occur.

    Args:
        item: The item to check
        day: Day to check (datetimes are truncated to their local day)
        calendar: Week-numbering convention

    Returns:
        True if the item is active on ``day``
    """
    target = as_local_day(day)

    if item.is_recurring:
        rule = item.rule
        if rule is None:
            logger.debug(f"Item {item.id} is recurring without a usable rule; treating as not occurring")
            return False
        return matches(rule, resolve_context(target, calendar))

    # Start time takes precedence over deadline
    anchor = item.start_time if item.start_time is not None else item.deadline
    if anchor is None:
        return False
    return as_local_day(anchor) == target
