"""Calendar context resolution.

Turns a day into the facts recurrence rules test against: weekday, day of month,
week of month, week of year and whether the day sits in the last week of its month.

Week numbering depends on two calendar settings, the first day of the week and the
minimum number of days a partial first week needs to count as week 1. A
``ReferenceCalendar`` holds both as an immutable value, so results are reproducible
and the same calendar can be shared freely across threads.
"""

import logging
import os
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Union

from dotenv import load_dotenv

from nekotasks.models.recurrence import RecurrenceContext, Weekday

load_dotenv()

logger = logging.getLogger(__name__)

DayLike = Union[date, datetime]


def as_local_day(value: DayLike) -> date:
    """Truncate a date or datetime to its local calendar day.

    Timezone-aware datetimes are converted to local time first.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone().replace(tzinfo=None)
        return value.date()
    return value


@dataclass(frozen=True)
class ReferenceCalendar:
    """Week-numbering convention for a Gregorian calendar."""

    first_weekday: Weekday = Weekday.SUNDAY
    minimum_days_in_first_week: int = 1

    def __post_init__(self):
        object.__setattr__(self, "first_weekday", Weekday(self.first_weekday))
        if not 1 <= self.minimum_days_in_first_week <= 7:
            raise ValueError("minimum_days_in_first_week must be between 1 and 7")

    def weekday_code(self, day: date) -> int:
        """Weekday code for a day, Sunday=1 .. Saturday=7."""
        # isoweekday: Monday=1 .. Sunday=7
        return day.isoweekday() % 7 + 1

    def _days_since_week_start(self, day: date) -> int:
        return (self.weekday_code(day) - self.first_weekday.value) % 7

    def start_of_week(self, value: DayLike) -> date:
        day = as_local_day(value)
        return day - timedelta(days=self._days_since_week_start(day))

    def week_dates(self, value: DayLike) -> List[date]:
        """The seven days of the calendar week containing ``value``."""
        start = self.start_of_week(value)
        return [start + timedelta(days=i) for i in range(7)]

    def week_of_month(self, value: DayLike) -> int:
        day = as_local_day(value)
        offset = self._days_since_week_start(day.replace(day=1))
        week = (day.day - 1 + offset) // 7
        # The partial week holding the 1st only counts when it is long enough.
        if 7 - offset >= self.minimum_days_in_first_week:
            week += 1
        return week

    def _first_week_start(self, year: int) -> date:
        jan1 = date(year, 1, 1)
        offset = self._days_since_week_start(jan1)
        start = jan1 - timedelta(days=offset)
        if 7 - offset < self.minimum_days_in_first_week:
            start += timedelta(days=7)
        return start

    def week_of_year(self, value: DayLike) -> int:
        day = as_local_day(value)
        if day >= self._first_week_start(day.year + 1):
            return 1
        start = self._first_week_start(day.year)
        if day < start:
            start = self._first_week_start(day.year - 1)
        return (day - start).days // 7 + 1

    def is_last_week_of_month(self, value: DayLike) -> bool:
        """True when the same weekday one week later falls in another month."""
        day = as_local_day(value)
        return (day + timedelta(days=7)).month != day.month


GREGORIAN_US = ReferenceCalendar(first_weekday=Weekday.SUNDAY, minimum_days_in_first_week=1)
ISO_8601 = ReferenceCalendar(first_weekday=Weekday.MONDAY, minimum_days_in_first_week=4)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}; using {default}")
        return default
    if not 1 <= value <= 7:
        logger.warning(f"Ignoring out-of-range {name}={value}; using {default}")
        return default
    return value


def default_calendar() -> ReferenceCalendar:
    """Calendar configured by NEKOTASKS_FIRST_WEEKDAY / NEKOTASKS_MIN_DAYS_IN_FIRST_WEEK."""
    first = _env_int("NEKOTASKS_FIRST_WEEKDAY", GREGORIAN_US.first_weekday.value)
    min_days = _env_int("NEKOTASKS_MIN_DAYS_IN_FIRST_WEEK", GREGORIAN_US.minimum_days_in_first_week)
    return ReferenceCalendar(first_weekday=Weekday(first), minimum_days_in_first_week=min_days)


def resolve_context(value: DayLike, calendar: ReferenceCalendar = GREGORIAN_US) -> RecurrenceContext:
    """Compute the recurrence context of a day against a reference calendar."""
    day = as_local_day(value)
    return RecurrenceContext(
        day=day,
        weekday=Weekday.from_code(calendar.weekday_code(day)),
        day_of_month=day.day,
        week_of_month=calendar.week_of_month(day),
        week_of_year=calendar.week_of_year(day),
        is_last_week_of_month=calendar.is_last_week_of_month(day),
    )
