"""Recurring task resets — models, recurrence evaluation, persistence, scheduling."""

from dailies.scheduler.engine import ResetScheduler
from dailies.scheduler.models import Frequency, ResetEvent, Task, make_id
from dailies.scheduler.recurrence import RecurrenceError, next_boundary, should_reset
from dailies.scheduler.store import TaskStore

__all__ = [
    "Frequency",
    "RecurrenceError",
    "ResetEvent",
    "ResetScheduler",
    "Task",
    "TaskStore",
    "make_id",
    "next_boundary",
    "should_reset",
]
