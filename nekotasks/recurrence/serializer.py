"""Rule serialization for storage on an item record.

Each node is a single-key JSON object; children are keyed positionally:

    {"and": {"_0": {"weekdays": {"_0": [2, 4]}},
             "_1": {"everyOtherWeek": {"startingWeek": 5}}}}

Decoding never raises. Malformed input decodes to None, which callers treat as
"does not recur".
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from nekotasks.models.item import to_local_naive
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

# Legacy numeric dates are UTC seconds since this reference instant.
REFERENCE_DATE = datetime(2001, 1, 1, tzinfo=timezone.utc)

MAX_RULE_DEPTH = 64


class RuleDecodeError(ValueError):
    """Raised internally while walking a malformed payload."""


def rule_to_dict(rule: Rule) -> Dict[str, Any]:
    """Convert a rule tree to its JSON-ready dict form."""
    if isinstance(rule, Weekdays):
        return {"weekdays": {"_0": sorted(d.value for d in rule.days)}}
    if isinstance(rule, DaysOfMonth):
        return {"daysOfMonth": {"_0": list(rule.days)}}
    if isinstance(rule, WeekOfMonth):
        return {"weekOfMonth": {"_0": {"weeks": list(rule.weeks), "includesLast": rule.includes_last}}}
    if isinstance(rule, EveryOtherWeek):
        return {"everyOtherWeek": {"startingWeek": rule.starting_week}}
    if isinstance(rule, DateRange):
        return {"dateRange": {"start": rule.start.isoformat(), "end": rule.end.isoformat()}}
    if isinstance(rule, And):
        return {"and": {"_0": rule_to_dict(rule.left), "_1": rule_to_dict(rule.right)}}
    if isinstance(rule, Or):
        return {"or": {"_0": rule_to_dict(rule.left), "_1": rule_to_dict(rule.right)}}
    if isinstance(rule, Not):
        return {"not": {"_0": rule_to_dict(rule.rule)}}
    raise TypeError(f"Unsupported rule node: {type(rule).__name__}")


def encode_rule(rule: Rule) -> str:
    """Serialize a rule to its persisted string form."""
    return json.dumps(rule_to_dict(rule), separators=(",", ":"))


def _require_dict(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise RuleDecodeError(f"{what} must be an object")
    return value


def _require_int(value: Any, what: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise RuleDecodeError(f"{what} must be an integer")
    return value


def _require_int_list(value: Any, what: str) -> list:
    if not isinstance(value, list):
        raise RuleDecodeError(f"{what} must be an array")
    return [_require_int(v, what) for v in value]


def _parse_date(value: Any) -> datetime:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError as e:
            raise RuleDecodeError(f"invalid date {value!r}") from e
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return to_local_naive(REFERENCE_DATE + timedelta(seconds=value))
        except (OverflowError, ValueError) as e:
            raise RuleDecodeError(f"date out of range: {value}") from e
    raise RuleDecodeError("date must be a string or number")


def rule_from_dict(data: Any, _depth: int = 0) -> Rule:
    """Build a rule tree from its dict form. Raises RuleDecodeError on bad input."""
    if _depth > MAX_RULE_DEPTH:
        raise RuleDecodeError("rule nested too deeply")
    node = _require_dict(data, "rule")
    if len(node) != 1:
        raise RuleDecodeError("rule must have exactly one tag")
    tag, payload = next(iter(node.items()))
    payload = _require_dict(payload, tag)

    if tag == "weekdays":
        days = set()
        for code in _require_int_list(payload.get("_0"), "weekdays"):
            weekday = Weekday.from_code(code)
            if weekday is None:
                raise RuleDecodeError(f"weekday code out of range: {code}")
            days.add(weekday)
        return Weekdays(frozenset(days))

    if tag == "daysOfMonth":
        return DaysOfMonth(tuple(_require_int_list(payload.get("_0"), "daysOfMonth")))

    if tag == "weekOfMonth":
        inner = _require_dict(payload.get("_0"), "weekOfMonth")
        includes_last = inner.get("includesLast", False)
        if not isinstance(includes_last, bool):
            raise RuleDecodeError("includesLast must be a boolean")
        return WeekOfMonth(tuple(_require_int_list(inner.get("weeks"), "weeks")), includes_last=includes_last)

    if tag == "everyOtherWeek":
        return EveryOtherWeek(_require_int(payload.get("startingWeek"), "startingWeek"))

    if tag == "dateRange":
        return DateRange(start=_parse_date(payload.get("start")), end=_parse_date(payload.get("end")))

    if tag in ("and", "or"):
        left = rule_from_dict(payload.get("_0"), _depth + 1)
        right = rule_from_dict(payload.get("_1"), _depth + 1)
        return And(left, right) if tag == "and" else Or(left, right)

    if tag == "not":
        return Not(rule_from_dict(payload.get("_0"), _depth + 1))

    raise RuleDecodeError(f"unknown rule tag {tag!r}")


def decode_rule(text: Optional[str]) -> Optional[Rule]:
    """Parse a persisted rule string. Returns None for missing or malformed input."""
    if text is None or not text.strip():
        return None
    try:
        return rule_from_dict(json.loads(text))
    except (json.JSONDecodeError, RecursionError, RuleDecodeError) as e:
        logger.warning(f"Could not decode recurrence rule: {e}")
        return None
