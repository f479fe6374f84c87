"""Data models for NekoTasks."""

from nekotasks.models.recurrence import (
    Weekday,
    Weekdays,
    DaysOfMonth,
    WeekOfMonth,
    EveryOtherWeek,
    DateRange,
    And,
    Or,
    Not,
    Rule,
    RecurrenceContext,
)
from nekotasks.models.item import CalendarItem, ItemType
from nekotasks.models.label import Label, LABEL_COLORS
from nekotasks.models.visibility import VisibilityFilter, SHOW_ALL

__all__ = [
    "Weekday",
    "Weekdays",
    "DaysOfMonth",
    "WeekOfMonth",
    "EveryOtherWeek",
    "DateRange",
    "And",
    "Or",
    "Not",
    "Rule",
    "RecurrenceContext",
    "CalendarItem",
    "ItemType",
    "Label",
    "LABEL_COLORS",
    "VisibilityFilter",
    "SHOW_ALL",
]
