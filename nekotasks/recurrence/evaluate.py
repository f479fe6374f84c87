"""Recurrence rule evaluation.

``matches`` is the single entry point: a structural recursion over the rule tree.
It is a pure function of its inputs, so it is safe to call concurrently.
"""

from nekotasks.models.recurrence import (
    And,
    DateRange,
    DaysOfMonth,
    EveryOtherWeek,
    Not,
    Or,
    RecurrenceContext,
    Rule,
    WeekOfMonth,
    Weekdays,
)
from nekotasks.recurrence.calendar import as_local_day


def matches(rule: Rule, context: RecurrenceContext) -> bool:
    """Return True if ``rule`` matches the day described by ``context``."""
    if isinstance(rule, Weekdays):
        if context.weekday is None:
            return False
        return context.weekday in rule.days

    if isinstance(rule, DaysOfMonth):
        # -1 ("last day of month" in the editor) is plain membership here and never matches.
        return context.day_of_month in rule.days

    if isinstance(rule, WeekOfMonth):
        if context.week_of_month in rule.weeks:
            return True
        return rule.includes_last and context.is_last_week_of_month

    if isinstance(rule, EveryOtherWeek):
        # Python's % is non-negative for a positive modulus, so weeks before
        # the starting week keep the right parity.
        return (context.week_of_year - rule.starting_week) % 2 == 0

    if isinstance(rule, DateRange):
        return as_local_day(rule.start) <= context.day <= as_local_day(rule.end)

    if isinstance(rule, And):
        return matches(rule.left, context) and matches(rule.right, context)

    if isinstance(rule, Or):
        return matches(rule.left, context) or matches(rule.right, context)

    if isinstance(rule, Not):
        return not matches(rule.rule, context)

    raise TypeError(f"Unsupported rule node: {type(rule).__name__}")
