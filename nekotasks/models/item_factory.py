"""Item creation factory for NekoTasks.

This module centralizes task and event creation so the API, the assistant tools
and tests all apply the same defaults.
"""

from datetime import date, datetime, time, timedelta
from typing import List, Optional

from nekotasks.models.constants import DEFAULT_EVENT_DURATION_MINUTES, DEFAULT_EVENT_START_HOUR
from nekotasks.models.item import CalendarItem, ItemType
from nekotasks.models.recurrence import Rule


def default_event_start(today: Optional[date] = None) -> datetime:
    """Default event start: 9 AM on ``today`` (defaults to the current day)."""
    return datetime.combine(today or date.today(), time(hour=DEFAULT_EVENT_START_HOUR))


def create_task(
    title: str,
    description: Optional[str] = None,
    deadline: Optional[datetime] = None,
    time_estimate_min: Optional[int] = None,
    importance: Optional[int] = None,
    label_ids: Optional[List[str]] = None,
    parent_id: Optional[str] = None,
    sort_order: int = 0,
) -> CalendarItem:
    """Create a task with defaults applied.

    Args:
        title: Task title (required)
        description: Notes
        deadline: When the task is due
        time_estimate_min: Estimated time in minutes
        importance: Priority 1..3
        label_ids: Attached label ids
        parent_id: Parent task id when this is a subtask
        sort_order: Position among siblings

    Returns:
        Non-recurring CalendarItem of type TASK
    """
    return CalendarItem(
        title=title,
        description=description,
        item_type=ItemType.TASK,
        deadline=deadline,
        time_estimate_min=time_estimate_min,
        importance=importance,
        label_ids=list(label_ids or []),
        parent_id=parent_id,
        sort_order=sort_order,
    )


def create_event(
    title: str,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    location_name: Optional[str] = None,
    description: Optional[str] = None,
    label_ids: Optional[List[str]] = None,
    rule: Optional[Rule] = None,
) -> CalendarItem:
    """Create an event with defaults applied.

    Args:
        title: Event title (required)
        start_time: Start; defaults to 9 AM today
        end_time: End; defaults to one hour after the start
        location_name: Where the event happens
        description: Notes
        label_ids: Attached label ids
        rule: Recurrence rule; None creates a one-time event

    Returns:
        CalendarItem of type EVENT
    """
    start = start_time if start_time is not None else default_event_start()
    end = end_time if end_time is not None else start + timedelta(minutes=DEFAULT_EVENT_DURATION_MINUTES)
    event = CalendarItem(
        title=title,
        description=description,
        item_type=ItemType.EVENT,
        start_time=start,
        end_time=end,
        location_name=location_name,
        label_ids=list(label_ids or []),
    )
    event.set_rule(rule)
    return event
