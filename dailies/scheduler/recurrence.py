"""Recurrence evaluation — decides when a completed task is due to reset.

Frequencies are written as standard five-field cron expressions
(``minute hour day-of-month month day-of-week``) or one of the ``@daily``
style descriptors.  Field matching is delegated to APScheduler's
``CronTrigger``; this module adapts classic cron conventions that APScheduler
reads differently:

- day-of-week numbers count from Sunday (``0`` or ``7``), not Monday;
- when both day-of-month and day-of-week are restricted, a day matching
  *either* field is a boundary.
"""

from __future__ import annotations

import logging
import re
import zoneinfo
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import lru_cache

from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)

DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}

_CRON_WEEKDAYS = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]
_DOW_PART = re.compile(r"^(?P<range>\*|[0-9a-z]+(?:-[0-9a-z]+)?)(?:/(?P<step>\d+))?$")
_UNRESTRICTED = {"*", "?"}


class RecurrenceError(ValueError):
    """Raised for an unparseable expression or unknown timezone."""


@dataclass(frozen=True)
class Recurrence:
    """A parsed frequency: one trigger, or two whose boundaries are merged."""

    expression: str
    timezone: str
    triggers: tuple[CronTrigger, ...]

    def next_after(self, instant: datetime) -> datetime | None:
        """Return the first boundary strictly after *instant*."""
        instant = _aware(instant)
        candidates = [
            fire
            for trigger in self.triggers
            if (fire := trigger.get_next_fire_time(instant, instant)) is not None
        ]
        return min(candidates) if candidates else None


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _weekday_value(token: str) -> int:
    if token.isdigit():
        value = int(token)
        if value > 7:
            msg = f"day-of-week value {value} out of range 0-7"
            raise RecurrenceError(msg)
        return value % 7
    try:
        return _CRON_WEEKDAYS.index(token)
    except ValueError:
        msg = f"unknown day-of-week name '{token}'"
        raise RecurrenceError(msg) from None


def _translate_day_of_week(field: str) -> str:
    """Rewrite a cron day-of-week field (Sunday = 0) for APScheduler (Monday = 0)."""
    days: set[int] = set()
    for part in field.lower().split(","):
        match = _DOW_PART.match(part)
        if match is None:
            msg = f"invalid day-of-week expression '{part}'"
            raise RecurrenceError(msg)
        span = match["range"]
        step = int(match["step"] or 1)
        if step < 1:
            msg = f"invalid step in day-of-week expression '{part}'"
            raise RecurrenceError(msg)
        if span == "*":
            first, last = 0, 6
        elif "-" in span:
            low, high = span.split("-")
            first, last = _weekday_value(low), _weekday_value(high)
            # "5-7" style ranges end on Sunday
            if high == "7":
                last = 7
            if first > last:
                msg = f"day-of-week range '{span}' is reversed"
                raise RecurrenceError(msg)
        else:
            first = _weekday_value(span)
            last = 6 if match["step"] else first
        days.update(day % 7 for day in range(first, last + 1, step))
    return ",".join(str((day - 1) % 7) for day in sorted(days))


def _build_trigger(
    minute: str, hour: str, day: str, month: str, day_of_week: str, tz: zoneinfo.ZoneInfo
) -> CronTrigger:
    try:
        return CronTrigger(
            minute=minute,
            hour=hour,
            day=day,
            month=month,
            day_of_week=day_of_week,
            timezone=tz,
        )
    except ValueError as exc:
        raise RecurrenceError(str(exc)) from exc


@lru_cache(maxsize=256)
def parse_schedule(expression: str, timezone: str) -> Recurrence:
    """Parse *expression* in *timezone*. Raises RecurrenceError when invalid.

    Results are cached by the raw ``(expression, timezone)`` pair, so editing
    a frequency's period simply misses the cache.
    """
    try:
        tz = zoneinfo.ZoneInfo(timezone)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError) as exc:
        msg = f"unknown timezone '{timezone}'"
        raise RecurrenceError(msg) from exc

    text = DESCRIPTORS.get(expression.strip().lower(), expression)
    fields = text.split()
    if len(fields) != 5:
        msg = f"expected 5 fields in '{expression}', got {len(fields)}"
        raise RecurrenceError(msg)

    minute, hour, day, month, day_of_week = fields
    dom_restricted = day not in _UNRESTRICTED
    dow_restricted = day_of_week not in _UNRESTRICTED
    day = "*" if not dom_restricted else day
    weekdays = _translate_day_of_week(day_of_week) if dow_restricted else "*"

    if dom_restricted and dow_restricted:
        triggers = (
            _build_trigger(minute, hour, day, month, "*", tz),
            _build_trigger(minute, hour, "*", month, weekdays, tz),
        )
    else:
        triggers = (_build_trigger(minute, hour, day, month, weekdays, tz),)
    return Recurrence(expression=expression, timezone=timezone, triggers=triggers)


def next_boundary(expression: str, timezone: str, after: datetime) -> datetime | None:
    """Return the first boundary of *expression* strictly after *after*."""
    return parse_schedule(expression, timezone).next_after(after)


def should_reset(
    expression: str,
    timezone: str,
    last_modified: datetime,
    now: datetime,
) -> bool:
    """Return True once the first boundary after *last_modified* is <= *now*.

    Raises RecurrenceError for a malformed expression or unknown timezone.
    """
    boundary = next_boundary(expression, timezone, last_modified)
    if boundary is None:
        return False
    return boundary <= _aware(now)
