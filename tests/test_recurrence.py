"""Tests for recurrence evaluation."""

from datetime import UTC, datetime, timedelta

import pytest

from dailies.scheduler.recurrence import (
    RecurrenceError,
    next_boundary,
    parse_schedule,
    should_reset,
)


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


# -- should_reset --------------------------------------------------------------


def test_resets_once_boundary_reached() -> None:
    last = _utc(2025, 1, 10, 12, 0)
    assert should_reset("0 0 * * *", "UTC", last, _utc(2025, 1, 11, 0, 0)) is True
    assert should_reset("0 0 * * *", "UTC", last, _utc(2025, 1, 11, 8, 30)) is True


def test_does_not_reset_before_boundary() -> None:
    last = _utc(2025, 1, 10, 12, 0)
    assert should_reset("0 0 * * *", "UTC", last, _utc(2025, 1, 10, 23, 59, 59)) is False


def test_just_reset_task_is_not_due_again() -> None:
    now = _utc(2025, 1, 11, 0, 0)
    assert should_reset("0 0 * * *", "UTC", now, now) is False
    assert should_reset("* * * * *", "UTC", now, now) is False


def test_twenty_five_hours_vs_one_hour() -> None:
    now = _utc(2025, 1, 11, 12, 0)
    assert should_reset("0 0 * * *", "UTC", now - timedelta(hours=25), now) is True
    assert should_reset("0 0 * * *", "UTC", now - timedelta(hours=1), now) is False


def test_naive_datetimes_are_utc() -> None:
    assert should_reset(
        "0 0 * * *", "UTC", datetime(2025, 1, 10, 12, 0), datetime(2025, 1, 11, 0, 0)
    ) is True


# -- next_boundary -------------------------------------------------------------


def test_boundary_is_strictly_after() -> None:
    at_midnight = _utc(2025, 1, 11, 0, 0)
    assert next_boundary("0 0 * * *", "UTC", at_midnight) == _utc(2025, 1, 12, 0, 0)


def test_boundary_in_named_timezone() -> None:
    # Denver is UTC-7 in January
    boundary = next_boundary("0 0 * * *", "America/Denver", _utc(2025, 1, 10, 12, 0))
    assert boundary == _utc(2025, 1, 11, 7, 0)


def test_sunday_is_zero_or_seven() -> None:
    wednesday = _utc(2025, 1, 8, 12, 0)
    sunday_nine = _utc(2025, 1, 12, 9, 0)
    assert next_boundary("0 9 * * 0", "UTC", wednesday) == sunday_nine
    assert next_boundary("0 9 * * 7", "UTC", wednesday) == sunday_nine
    assert next_boundary("0 9 * * sun", "UTC", wednesday) == sunday_nine


def test_weekday_range_skips_weekend() -> None:
    friday_noon = _utc(2025, 1, 10, 12, 0)
    assert next_boundary("0 9 * * 1-5", "UTC", friday_noon) == _utc(2025, 1, 13, 9, 0)
    assert next_boundary("0 9 * * mon-fri", "UTC", friday_noon) == _utc(2025, 1, 13, 9, 0)


def test_weekday_step_counts_from_sunday() -> None:
    # */2 is Sun, Tue, Thu, Sat
    sunday = _utc(2025, 1, 12, 0, 0)
    assert next_boundary("0 0 * * */2", "UTC", sunday) == _utc(2025, 1, 14, 0, 0)


def test_day_of_month_or_day_of_week() -> None:
    # "the 13th or any Friday": Friday the 3rd comes first
    new_year = _utc(2025, 1, 1, 0, 0)
    assert next_boundary("0 0 13 * 5", "UTC", new_year) == _utc(2025, 1, 3, 0, 0)
    # After the last January Friday before the 13th, the 13th wins
    assert next_boundary("0 0 13 * 5", "UTC", _utc(2025, 1, 10, 1, 0)) == _utc(2025, 1, 13, 0, 0)


@pytest.mark.parametrize(
    ("descriptor", "expected"),
    [
        ("@daily", _utc(2025, 1, 9, 0, 0)),
        ("@midnight", _utc(2025, 1, 9, 0, 0)),
        ("@hourly", _utc(2025, 1, 8, 13, 0)),
        ("@weekly", _utc(2025, 1, 12, 0, 0)),
        ("@monthly", _utc(2025, 2, 1, 0, 0)),
        ("@yearly", _utc(2026, 1, 1, 0, 0)),
    ],
)
def test_descriptors(descriptor: str, expected: datetime) -> None:
    assert next_boundary(descriptor, "UTC", _utc(2025, 1, 8, 12, 30)) == expected


# -- Errors --------------------------------------------------------------------


@pytest.mark.parametrize(
    "expression",
    ["not a cron", "0 0 * *", "0 0 * * * *", "61 * * * *", "0 0 * * 8", "0 0 * * funday", ""],
)
def test_malformed_expression_raises(expression: str) -> None:
    with pytest.raises(RecurrenceError):
        should_reset(expression, "UTC", _utc(2025, 1, 1), _utc(2025, 1, 2))


def test_unknown_timezone_raises() -> None:
    with pytest.raises(RecurrenceError, match="timezone"):
        should_reset("0 0 * * *", "Mars/Olympus_Mons", _utc(2025, 1, 1), _utc(2025, 1, 2))


def test_recurrence_error_is_value_error() -> None:
    assert issubclass(RecurrenceError, ValueError)


# -- Caching -------------------------------------------------------------------


def test_parse_is_cached_per_expression() -> None:
    first = parse_schedule("15 6 * * *", "UTC")
    assert parse_schedule("15 6 * * *", "UTC") is first
    assert parse_schedule("30 6 * * *", "UTC") is not first
