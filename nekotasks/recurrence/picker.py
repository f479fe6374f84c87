"""Bridge between the recurrence editor and rule trees.

The editor works with a flat ``PickerState`` (repeat type, selected weekdays, monthly
mode and so on). ``build_rule`` turns that state into a rule tree and ``decompose``
walks an existing tree back into picker fields so an editor can re-populate its
controls. The two directions are inverses for every state the editor can produce:

    decompose(build_rule(state), fresh) == state

on every field the builder reads for the selected mode.

Shapes produced by ``build_rule``:

- weekly:                       Weekdays(selected)
- weekly, every other week:     And(Weekdays(selected), EveryOtherWeek(start))
- monthly, day of month:        DaysOfMonth([day])
- monthly, week of month:       And(Weekdays({weekday}), WeekOfMonth([week], includes_last))
- any of the above with range:  And(<rule>, DateRange(start, end))

Only nested ``And`` trees are produced. ``Or`` and ``Not`` nodes cannot be edited
with the picker and are skipped when decomposing.
"""

import logging
from datetime import date, datetime, time
from enum import Enum
from typing import List, Optional, Set

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, Field, field_validator

from nekotasks.models.recurrence import (
    And,
    DateRange,
    DaysOfMonth,
    EveryOtherWeek,
    Not,
    Or,
    Rule,
    WeekOfMonth,
    Weekday,
    Weekdays,
)

logger = logging.getLogger(__name__)

# Editor value for "last day of month". See DaysOfMonth evaluation.
LAST_DAY_OF_MONTH = -1

DEFAULT_RANGE_MONTHS = 4


class RepeatType(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class MonthlyMode(str, Enum):
    DAY_OF_MONTH = "day_of_month"
    WEEK_OF_MONTH = "week_of_month"


def _today_start() -> datetime:
    return datetime.combine(date.today(), time.min)


def _default_range_end() -> datetime:
    return _today_start() + relativedelta(months=DEFAULT_RANGE_MONTHS)


class PickerState(BaseModel):
    """Flat, editor-facing representation of a recurrence configuration."""

    is_recurring: bool = Field(False, description="Whether the item repeats at all")
    repeat_type: RepeatType = Field(RepeatType.WEEKLY, description="Weekly or monthly pattern")

    # Weekly
    selected_weekdays: Set[Weekday] = Field(default_factory=set, description="Weekdays for weekly repeats")
    biweekly: bool = Field(False, description="Repeat every other week")
    biweekly_start_week: int = Field(1, ge=1, le=53, description="Week of year the biweekly cycle starts on")

    # Monthly
    monthly_mode: MonthlyMode = Field(MonthlyMode.DAY_OF_MONTH, description="Day-of-month or week-of-month")
    selected_day_of_month: int = Field(1, description="Day of month, or -1 for the last day")
    selected_week_of_month: int = Field(1, ge=1, le=5, description="Week of month (1st..5th)")
    selected_weekday: Weekday = Field(Weekday.MONDAY, description="Weekday for week-of-month repeats")
    include_last_week: bool = Field(False, description="Also match the last week of the month")

    # Optional range
    use_date_range: bool = Field(False, description="Limit repeats to a date range")
    start_date: datetime = Field(default_factory=_today_start, description="Range start (inclusive)")
    end_date: datetime = Field(default_factory=_default_range_end, description="Range end (inclusive)")

    @field_validator("selected_day_of_month")
    @classmethod
    def _validate_day_of_month(cls, v):
        if v != LAST_DAY_OF_MONTH and not 1 <= v <= 31:
            raise ValueError("selected_day_of_month must be 1..31 or -1")
        return v


def build_rule(state: PickerState) -> Optional[Rule]:
    """Construct the rule described by ``state``.

    Returns None when the state does not repeat, or when a weekly pattern has
    no weekdays selected.
    """
    if not state.is_recurring:
        return None

    if state.repeat_type == RepeatType.WEEKLY:
        if not state.selected_weekdays:
            return None
        rule: Rule = Weekdays(frozenset(state.selected_weekdays))
        if state.biweekly:
            rule = And(rule, EveryOtherWeek(state.biweekly_start_week))
    elif state.monthly_mode == MonthlyMode.DAY_OF_MONTH:
        rule = DaysOfMonth((state.selected_day_of_month,))
    else:
        rule = And(
            Weekdays(frozenset({state.selected_weekday})),
            WeekOfMonth((state.selected_week_of_month,), includes_last=state.include_last_week),
        )

    if state.use_date_range:
        rule = And(rule, DateRange(start=state.start_date, end=state.end_date))
    return rule


def _and_leaves(rule: Rule) -> List[Rule]:
    """Leaves of a nested And tree, left to right. Or/Not subtrees are dropped."""
    if isinstance(rule, And):
        return _and_leaves(rule.left) + _and_leaves(rule.right)
    if isinstance(rule, (Or, Not)):
        logger.debug(f"Skipping {type(rule).__name__} node; the picker cannot edit it")
        return []
    return [rule]


def decompose(rule: Rule, state: PickerState) -> None:
    """Apply ``rule`` to ``state`` in place, one leaf at a time.

    A ``Weekdays`` leaf sharing an And-tree with a ``WeekOfMonth`` leaf is the
    week-of-month weekday and fills ``selected_weekday``; anywhere else it is the
    weekly selection and fills ``selected_weekdays``.
    """
    leaves = _and_leaves(rule)
    anchored = any(isinstance(leaf, WeekOfMonth) for leaf in leaves)

    for leaf in leaves:
        if isinstance(leaf, Weekdays):
            if anchored:
                if leaf.days:
                    state.selected_weekday = min(leaf.days)
            else:
                state.repeat_type = RepeatType.WEEKLY
                state.selected_weekdays = set(leaf.days)
        elif isinstance(leaf, DaysOfMonth):
            state.repeat_type = RepeatType.MONTHLY
            state.monthly_mode = MonthlyMode.DAY_OF_MONTH
            if leaf.days:
                state.selected_day_of_month = leaf.days[0]
        elif isinstance(leaf, WeekOfMonth):
            state.repeat_type = RepeatType.MONTHLY
            state.monthly_mode = MonthlyMode.WEEK_OF_MONTH
            if leaf.weeks:
                state.selected_week_of_month = leaf.weeks[0]
            state.include_last_week = leaf.includes_last
        elif isinstance(leaf, EveryOtherWeek):
            state.biweekly = True
            state.biweekly_start_week = leaf.starting_week
        elif isinstance(leaf, DateRange):
            state.use_date_range = True
            state.start_date = leaf.start
            state.end_date = leaf.end


def load_picker_state(rule: Optional[Rule], base: Optional[PickerState] = None) -> PickerState:
    """Fresh picker state populated from an existing rule (or a non-repeating state)."""
    state = base.model_copy(deep=True) if base is not None else PickerState()
    state.is_recurring = rule is not None
    if rule is not None:
        decompose(rule, state)
    return state


def _day_suffix(day: int) -> str:
    if day in (1, 21, 31):
        return "st"
    if day in (2, 22):
        return "nd"
    if day in (3, 23):
        return "rd"
    return "th"


def _week_ordinal(week: int) -> str:
    return {1: "1st", 2: "2nd", 3: "3rd"}.get(week, f"{week}th")


def _medium_date(value: datetime) -> str:
    return f"{value:%b} {value.day}, {value.year}"


def describe_rule(state: PickerState) -> str:
    """Human-readable preview of the rule the state would build."""
    if not state.is_recurring:
        return "Does not repeat"

    parts: List[str] = []
    if state.repeat_type == RepeatType.WEEKLY:
        if not state.selected_weekdays:
            return "Select at least one day"
        names = ", ".join(d.short_name for d in sorted(state.selected_weekdays))
        parts.append(f"Every other {names}" if state.biweekly else f"Every {names}")
    elif state.monthly_mode == MonthlyMode.DAY_OF_MONTH:
        day = state.selected_day_of_month
        if day == LAST_DAY_OF_MONTH:
            parts.append("Monthly on the last day")
        else:
            parts.append(f"Monthly on the {day}{_day_suffix(day)}")
    else:
        extra = " (or last)" if state.include_last_week else ""
        parts.append(
            f"{_week_ordinal(state.selected_week_of_month)} {state.selected_weekday.full_name} of each month{extra}"
        )

    if state.use_date_range:
        parts.append(f"from {_medium_date(state.start_date)} to {_medium_date(state.end_date)}")
    return ", ".join(parts)
