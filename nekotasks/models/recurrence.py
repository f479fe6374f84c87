"""Recurrence rule models for NekoTasks.

A recurrence rule is a small boolean expression tree. Leaves test one fact about
a calendar day (its weekday, day of month, week of month, week-of-year parity or
an enclosing date range); ``And``/``Or``/``Not`` combine them. Rules are immutable
values compared structurally, so two rules built the same way are equal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Tuple, Union


class Weekday(int, Enum):
    """Day of week, numbered Sunday=1 .. Saturday=7."""

    SUNDAY = 1
    MONDAY = 2
    TUESDAY = 3
    WEDNESDAY = 4
    THURSDAY = 5
    FRIDAY = 6
    SATURDAY = 7

    @classmethod
    def from_code(cls, code: int) -> Optional["Weekday"]:
        """Return the weekday for a 1..7 code, or None when out of range."""
        try:
            return cls(code)
        except ValueError:
            return None

    @property
    def short_name(self) -> str:
        return self.name[:3].title()

    @property
    def full_name(self) -> str:
        return self.name.title()


# Monday through Friday
WEEKDAYS: FrozenSet[Weekday] = frozenset(
    {Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY}
)


@dataclass(frozen=True)
class RecurrenceContext:
    """Derived calendar facts about a single day, built fresh per evaluation."""

    day: date
    weekday: Optional[Weekday]
    day_of_month: int
    week_of_month: int
    week_of_year: int
    is_last_week_of_month: bool


class _RuleOperators:
    """Operator sugar shared by every rule node: ``a & b``, ``a | b``, ``~a``."""

    def __and__(self, other: "Rule") -> "And":
        return And(self, other)

    def __or__(self, other: "Rule") -> "Or":
        return Or(self, other)

    def __invert__(self) -> "Not":
        return Not(self)


@dataclass(frozen=True)
class Weekdays(_RuleOperators):
    """Matches when the day's weekday is in ``days``."""

    days: FrozenSet[Weekday]

    def __post_init__(self):
        object.__setattr__(self, "days", frozenset(Weekday(d) for d in self.days))


@dataclass(frozen=True)
class DaysOfMonth(_RuleOperators):
    """Matches when the day of month is listed in ``days``."""

    days: Tuple[int, ...]

    def __post_init__(self):
        object.__setattr__(self, "days", tuple(int(d) for d in self.days))


@dataclass(frozen=True)
class WeekOfMonth(_RuleOperators):
    """Matches listed weeks of the month, or the last week when ``includes_last``."""

    weeks: Tuple[int, ...]
    includes_last: bool = False

    def __post_init__(self):
        object.__setattr__(self, "weeks", tuple(int(w) for w in self.weeks))


@dataclass(frozen=True)
class EveryOtherWeek(_RuleOperators):
    """Matches weeks of the year with the same parity as ``starting_week``."""

    starting_week: int


@dataclass(frozen=True)
class DateRange(_RuleOperators):
    """Matches days between ``start`` and ``end``, both days inclusive.

    Plain dates are stored as midnight of that day.
    """

    start: datetime
    end: datetime

    def __post_init__(self):
        for name in ("start", "end"):
            value = getattr(self, name)
            if not isinstance(value, datetime):
                object.__setattr__(self, name, datetime.combine(value, time.min))


@dataclass(frozen=True)
class And(_RuleOperators):
    left: "Rule"
    right: "Rule"


@dataclass(frozen=True)
class Or(_RuleOperators):
    left: "Rule"
    right: "Rule"


@dataclass(frozen=True)
class Not(_RuleOperators):
    rule: "Rule"


Rule = Union[Weekdays, DaysOfMonth, WeekOfMonth, EveryOtherWeek, DateRange, And, Or, Not]


# Convenience constructors

def on(days: Union[Weekday, Iterable[Weekday]]) -> Weekdays:
    """Rule for one weekday or a collection of weekdays."""
    if isinstance(days, Weekday):
        return Weekdays(frozenset({days}))
    return Weekdays(frozenset(days))


def on_days(*days: int) -> DaysOfMonth:
    return DaysOfMonth(tuple(days))


def in_weeks(*weeks: int, includes_last: bool = False) -> WeekOfMonth:
    return WeekOfMonth(tuple(weeks), includes_last=includes_last)


def between(start: datetime, end: datetime) -> DateRange:
    return DateRange(start=start, end=end)
