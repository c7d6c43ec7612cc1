# src/reminder_scheduler/tasks/schedule.py

"""
Schedule expression evaluation.

Schedules are classic five-field cron strings:

    minute  hour  day-of-month  month  day-of-week

Each field accepts `*`, single values, lists, ranges and steps (`*/15`, `1-5`,
`0,30`). Evaluation always happens in UTC so daylight-saving transitions never
make an occurrence ambiguous or skip it.
"""

from __future__ import annotations

from datetime import UTC, datetime

from croniter import CroniterBadCronError, croniter

from .errors import ParseError

FIELD_COUNT = 5


def as_utc(instant: datetime) -> datetime:
    """Normalize an instant to an aware UTC datetime (naive values are taken as UTC)."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


def _check_arity(expression: str) -> list[str]:
    if not isinstance(expression, str):
        raise ParseError(repr(expression), "schedule must be a string")
    fields = expression.split()
    if len(fields) != FIELD_COUNT:
        raise ParseError(expression, f"expected {FIELD_COUNT} fields, got {len(fields)}")
    return fields


def _build(expression: str, start: datetime) -> croniter:
    fields = _check_arity(expression)
    try:
        return croniter(" ".join(fields), start)
    except (CroniterBadCronError, ValueError, KeyError) as e:
        raise ParseError(expression, str(e) or type(e).__name__) from e


def validate(expression: str) -> None:
    """Raise ParseError if the expression is not a usable five-field schedule."""
    _build(expression, datetime(2000, 1, 1, tzinfo=UTC))


def next_occurrence(expression: str, after: datetime) -> datetime:
    """
    Return the earliest instant strictly after `after` that matches `expression`.

    The result is an aware UTC datetime with zero seconds. Raises ParseError for
    a wrong field count or an out-of-range/unknown field value.
    """
    start = as_utc(after)
    it = _build(expression, start)
    nxt = as_utc(it.get_next(datetime))
    while nxt <= start:
        nxt = as_utc(it.get_next(datetime))
    return nxt


def utcnow() -> datetime:
    return datetime.now(UTC)
