# tests/test_schedule.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest
from croniter import croniter

from reminder_scheduler.tasks.errors import ParseError
from reminder_scheduler.tasks.schedule import next_occurrence, validate

from .fakes import at


def _brute_next(expression: str, after: datetime) -> datetime:
    """Walk minute by minute to the first matching instant strictly after `after`."""
    t = after.replace(second=0, microsecond=0) + timedelta(minutes=1)
    for _ in range(8 * 24 * 60):
        if croniter.match(expression, t):
            return t
        t += timedelta(minutes=1)
    raise AssertionError(f"no match for {expression!r} within 8 days")


def test_daily_schedule_from_before_due_time() -> None:
    assert next_occurrence("0 9 * * *", at("2024-01-01T08:00:00Z")) == at("2024-01-01T09:00:00Z")


def test_daily_schedule_after_fire_rolls_to_next_day() -> None:
    assert next_occurrence("0 9 * * *", at("2024-01-01T09:01:00Z")) == at("2024-01-02T09:00:00Z")


def test_result_is_strictly_after_a_matching_instant() -> None:
    assert next_occurrence("0 9 * * *", at("2024-01-01T09:00:00Z")) == at("2024-01-02T09:00:00Z")
    assert next_occurrence("* * * * *", at("2024-01-01T09:00:00Z")) == at("2024-01-01T09:01:00Z")


def test_sub_minute_reference_rounds_up_to_next_minute() -> None:
    assert next_occurrence("* * * * *", at("2024-01-01T09:00:30.500Z")) == at("2024-01-01T09:01:00Z")


def test_evaluation_is_in_utc_regardless_of_input_offset() -> None:
    plus_two = datetime(2024, 1, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))  # 08:00Z
    result = next_occurrence("0 9 * * *", plus_two)
    assert result == at("2024-01-01T09:00:00Z")
    assert result.tzinfo is not None and result.utcoffset() == timedelta(0)


def test_naive_reference_is_treated_as_utc() -> None:
    assert next_occurrence("0 9 * * *", datetime(2024, 1, 1, 8, 0)) == datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    ("expression", "after"),
    [
        ("*/15 * * * *", "2024-03-10T01:52:00Z"),
        ("0 9 * * *", "2024-02-28T23:59:59Z"),
        ("30 8 * * 1-5", "2024-01-05T09:00:00Z"),  # Friday after the slot -> Monday
        ("0 0,12 * * *", "2024-12-31T12:00:00Z"),
        ("5-10/5 */6 * * *", "2024-06-01T18:07:00Z"),
    ],
)
def test_no_earlier_instant_matches(expression: str, after: str) -> None:
    start = at(after)
    result = next_occurrence(expression, start)
    assert result > start
    assert result == _brute_next(expression, start)


@pytest.mark.parametrize(
    "expression",
    [
        "",
        "* * * *",
        "* * * * * *",
        "60 * * * *",
        "* 24 * * *",
        "* * 32 * *",
        "* * * 13 *",
        "abc * * * *",
        "@daily",
    ],
)
def test_invalid_expressions_raise_parse_error(expression: str) -> None:
    with pytest.raises(ParseError):
        next_occurrence(expression, at("2024-01-01T00:00:00Z"))
    with pytest.raises(ParseError):
        validate(expression)


def test_parse_error_carries_expression() -> None:
    with pytest.raises(ParseError) as excinfo:
        validate("* * *")
    assert excinfo.value.expression == "* * *"
    assert "expected 5 fields" in str(excinfo.value)
