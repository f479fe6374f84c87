"""Tests for the recurrence editor bridge (build, decompose, describe)."""

import pytest
from datetime import date, datetime
from pydantic import ValidationError

from nekotasks.engine.occurrence import occurs_on
from nekotasks.models.item import CalendarItem, ItemType
from nekotasks.models.recurrence import (
    And,
    DateRange,
    DaysOfMonth,
    EveryOtherWeek,
    Not,
    Or,
    WeekOfMonth,
    Weekday,
    Weekdays,
    on,
)
from nekotasks.recurrence.picker import (
    LAST_DAY_OF_MONTH,
    MonthlyMode,
    PickerState,
    RepeatType,
    build_rule,
    decompose,
    describe_rule,
    load_picker_state,
)
from nekotasks.recurrence.serializer import decode_rule, encode_rule


RANGE_START = datetime(2026, 1, 1)
RANGE_END = datetime(2026, 6, 1)


def _state(**fields) -> PickerState:
    return PickerState(is_recurring=True, **fields)


REACHABLE_STATES = [
    _state(selected_weekdays={Weekday.MONDAY}),
    _state(selected_weekdays={Weekday.FRIDAY}),
    _state(selected_weekdays={Weekday.MONDAY, Weekday.WEDNESDAY, Weekday.FRIDAY}),
    _state(selected_weekdays={Weekday.TUESDAY, Weekday.THURSDAY}, biweekly=True, biweekly_start_week=7),
    _state(repeat_type=RepeatType.MONTHLY, monthly_mode=MonthlyMode.DAY_OF_MONTH, selected_day_of_month=15),
    _state(repeat_type=RepeatType.MONTHLY, monthly_mode=MonthlyMode.DAY_OF_MONTH,
           selected_day_of_month=LAST_DAY_OF_MONTH),
    _state(repeat_type=RepeatType.MONTHLY, monthly_mode=MonthlyMode.WEEK_OF_MONTH,
           selected_week_of_month=2, selected_weekday=Weekday.TUESDAY),
    _state(repeat_type=RepeatType.MONTHLY, monthly_mode=MonthlyMode.WEEK_OF_MONTH,
           selected_week_of_month=1, selected_weekday=Weekday.SUNDAY, include_last_week=True),
    _state(selected_weekdays={Weekday.SATURDAY}, use_date_range=True,
           start_date=RANGE_START, end_date=RANGE_END),
    _state(selected_weekdays={Weekday.MONDAY, Weekday.WEDNESDAY}, biweekly=True, biweekly_start_week=5,
           use_date_range=True, start_date=RANGE_START, end_date=RANGE_END),
    _state(repeat_type=RepeatType.MONTHLY, monthly_mode=MonthlyMode.WEEK_OF_MONTH,
           selected_week_of_month=3, selected_weekday=Weekday.FRIDAY, include_last_week=True,
           use_date_range=True, start_date=RANGE_START, end_date=RANGE_END),
]


class TestBuildRule:
    """Test building rule trees from editor state."""

    def test_not_recurring_has_no_rule(self):
        """Test that a non-repeating state builds nothing."""
        assert build_rule(PickerState()) is None

    def test_weekly_without_weekdays_has_no_rule(self):
        """Test that an empty weekly selection builds nothing."""
        assert build_rule(_state()) is None

    def test_weekly(self):
        """Test the plain weekly shape."""
        rule = build_rule(_state(selected_weekdays={Weekday.MONDAY, Weekday.WEDNESDAY}))
        assert rule == on([Weekday.MONDAY, Weekday.WEDNESDAY])

    def test_biweekly(self):
        """Test the every-other-week shape."""
        rule = build_rule(_state(selected_weekdays={Weekday.MONDAY}, biweekly=True, biweekly_start_week=5))
        assert rule == And(on(Weekday.MONDAY), EveryOtherWeek(5))

    def test_day_of_month(self):
        """Test the day-of-month shape."""
        rule = build_rule(_state(repeat_type=RepeatType.MONTHLY, selected_day_of_month=15))
        assert rule == DaysOfMonth((15,))

    def test_week_of_month(self):
        """Test the week-of-month shape, with and without the last week."""
        state = _state(
            repeat_type=RepeatType.MONTHLY,
            monthly_mode=MonthlyMode.WEEK_OF_MONTH,
            selected_week_of_month=2,
            selected_weekday=Weekday.TUESDAY,
        )
        assert build_rule(state) == And(on(Weekday.TUESDAY), WeekOfMonth((2,), includes_last=False))

        state.include_last_week = True
        assert build_rule(state) == And(on(Weekday.TUESDAY), WeekOfMonth((2,), includes_last=True))

    def test_date_range_wraps_whole_rule(self):
        """Test that an active range is the outermost And."""
        state = _state(
            selected_weekdays={Weekday.MONDAY},
            biweekly=True,
            biweekly_start_week=3,
            use_date_range=True,
            start_date=RANGE_START,
            end_date=RANGE_END,
        )
        assert build_rule(state) == And(
            And(on(Weekday.MONDAY), EveryOtherWeek(3)),
            DateRange(RANGE_START, RANGE_END),
        )


class TestDecompose:
    """Test populating editor state from rule trees."""

    @pytest.mark.parametrize("state", REACHABLE_STATES)
    def test_round_trip(self, state):
        """Test that decomposing a built rule restores the state."""
        assert load_picker_state(build_rule(state)) == state

    @pytest.mark.parametrize("state", REACHABLE_STATES)
    def test_round_trip_through_storage(self, state):
        """Test the round trip across serialization."""
        assert load_picker_state(decode_rule(encode_rule(build_rule(state)))) == state

    def test_single_weekly_day_does_not_change_anchored_weekday(self):
        """Test that a lone weekly weekday fills the weekly selection only."""
        state = load_picker_state(on(Weekday.FRIDAY))
        assert state.repeat_type == RepeatType.WEEKLY
        assert state.selected_weekdays == {Weekday.FRIDAY}
        assert state.selected_weekday == Weekday.MONDAY

    def test_anchored_weekday_does_not_fill_weekly_selection(self):
        """Test that the weekday beside a week-of-month leaf is the anchored weekday."""
        state = load_picker_state(And(on(Weekday.THURSDAY), WeekOfMonth((4,))))
        assert state.repeat_type == RepeatType.MONTHLY
        assert state.monthly_mode == MonthlyMode.WEEK_OF_MONTH
        assert state.selected_weekday == Weekday.THURSDAY
        assert state.selected_weekdays == set()

    def test_or_and_not_are_skipped(self):
        """Test that unsupported nodes leave the state untouched instead of failing."""
        fresh = PickerState(is_recurring=True)
        state = PickerState(is_recurring=True)
        decompose(Or(on(Weekday.MONDAY), DaysOfMonth((1,))), state)
        decompose(Not(on(Weekday.MONDAY)), state)
        assert state == fresh

    def test_supported_leaves_beside_unsupported_nodes_still_apply(self):
        """Test that an And keeps its editable side when the other side is an Or."""
        state = load_picker_state(And(Or(on(Weekday.MONDAY), DaysOfMonth((1,))), EveryOtherWeek(9)))
        assert state.biweekly is True
        assert state.biweekly_start_week == 9
        assert state.selected_weekdays == set()

    def test_no_rule_is_not_recurring(self):
        """Test loading the state of a one-time item."""
        assert load_picker_state(None).is_recurring is False


class TestPickerValidation:
    """Test editor field bounds."""

    @pytest.mark.parametrize("day", [0, 32, -2])
    def test_day_of_month_bounds(self, day):
        """Test that only 1..31 and -1 are accepted."""
        with pytest.raises(ValidationError):
            PickerState(selected_day_of_month=day)

    def test_biweekly_start_week_bounds(self):
        """Test that the starting week is 1..53."""
        with pytest.raises(ValidationError):
            PickerState(biweekly_start_week=54)

    def test_default_range_is_four_months(self):
        """Test the default date range."""
        state = PickerState()
        assert state.start_date.date() == date.today()
        months = (state.end_date.year - state.start_date.year) * 12 + state.end_date.month - state.start_date.month
        assert months == 4


class TestDescribeRule:
    """Test human-readable summaries."""

    def test_not_recurring(self):
        assert describe_rule(PickerState()) == "Does not repeat"

    def test_weekly_without_days(self):
        assert describe_rule(_state()) == "Select at least one day"

    def test_weekly(self):
        state = _state(selected_weekdays={Weekday.WEDNESDAY, Weekday.MONDAY})
        assert describe_rule(state) == "Every Mon, Wed"

    def test_biweekly(self):
        state = _state(selected_weekdays={Weekday.MONDAY, Weekday.WEDNESDAY}, biweekly=True)
        assert describe_rule(state) == "Every other Mon, Wed"

    @pytest.mark.parametrize("day,text", [
        (1, "Monthly on the 1st"),
        (2, "Monthly on the 2nd"),
        (3, "Monthly on the 3rd"),
        (11, "Monthly on the 11th"),
        (15, "Monthly on the 15th"),
        (22, "Monthly on the 22nd"),
        (LAST_DAY_OF_MONTH, "Monthly on the last day"),
    ])
    def test_day_of_month(self, day, text):
        state = _state(repeat_type=RepeatType.MONTHLY, selected_day_of_month=day)
        assert describe_rule(state) == text

    def test_week_of_month(self):
        state = _state(
            repeat_type=RepeatType.MONTHLY,
            monthly_mode=MonthlyMode.WEEK_OF_MONTH,
            selected_week_of_month=2,
            selected_weekday=Weekday.TUESDAY,
            include_last_week=True,
        )
        assert describe_rule(state) == "2nd Tuesday of each month (or last)"

    def test_date_range_suffix(self):
        state = _state(
            selected_weekdays={Weekday.MONDAY},
            use_date_range=True,
            start_date=RANGE_START,
            end_date=RANGE_END,
        )
        assert describe_rule(state) == "Every Mon, from Jan 1, 2026 to Jun 1, 2026"


class TestEndToEnd:
    """Build, store, reload and evaluate a realistic rule."""

    def test_every_other_monday_and_wednesday_in_range(self):
        """Test Mon/Wed every other week from week 5, Jan 1 to Jun 1, 2026."""
        state = _state(
            selected_weekdays={Weekday.MONDAY, Weekday.WEDNESDAY},
            biweekly=True,
            biweekly_start_week=5,
            use_date_range=True,
            start_date=RANGE_START,
            end_date=RANGE_END,
        )
        stored = encode_rule(build_rule(state))
        item = CalendarItem(
            title="Team sync",
            item_type=ItemType.EVENT,
            start_time=datetime(2026, 1, 5, 9, 0),
            is_recurring=True,
            recurrence_rule=stored,
        )

        assert item.rule == build_rule(state)
        assert occurs_on(item, date(2026, 1, 26)) is True    # Monday, week 5
        assert occurs_on(item, date(2026, 2, 2)) is False    # Monday, week 6
        assert occurs_on(item, date(2026, 2, 11)) is True    # Wednesday, week 7
        assert occurs_on(item, date(2027, 1, 25)) is False   # Monday, week 5, outside range
