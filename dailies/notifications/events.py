"""Notification envelope and the event types carried over the live feed."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dailies.scheduler.models import Frequency, ResetEvent, Task

TASK_RESET = "task_reset"
TASK_UPDATE = "task_update"
TASK_CREATE = "task_create"
TASK_DELETE = "task_delete"
FREQUENCY_UPDATE = "frequency_update"
FREQUENCY_CREATE = "frequency_create"
FREQUENCY_DELETE = "frequency_delete"


def _rfc3339(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


@dataclass
class Notification:
    """One message on the live feed.

    Serialized as ``{"type", "message", "data", "timestamp"}`` with an
    RFC 3339 timestamp.
    """

    type: str
    message: str
    data: dict[str, Any] | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "message": self.message,
            "data": self.data,
            "timestamp": _rfc3339(self.timestamp),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


# -- Builders ------------------------------------------------------------------


def task_reset(event: ResetEvent) -> Notification:
    noun = "task has" if event.reset_count == 1 else "tasks have"
    return Notification(
        type=TASK_RESET,
        message=f"{event.reset_count} {event.frequency_name} {noun} been reset",
        data=event.to_dict(),
        timestamp=event.occurred_at,
    )


def task_updated(task: Task) -> Notification:
    action = "completed" if task.completed else "uncompleted"
    return Notification(
        type=TASK_UPDATE,
        message=f"Task {action}: {task.name}",
        data={**task.to_dict(), "action": action},
    )


def task_created(task: Task) -> Notification:
    return Notification(type=TASK_CREATE, message=f"Task created: {task.name}", data=task.to_dict())


def task_deleted(task: Task) -> Notification:
    return Notification(
        type=TASK_DELETE,
        message=f"Task deleted: {task.name}",
        data={"id": task.id, "name": task.name},
    )


def frequency_updated(frequency: Frequency) -> Notification:
    return Notification(
        type=FREQUENCY_UPDATE,
        message=f"Frequency updated: {frequency.name}",
        data=frequency.to_dict(),
    )


def frequency_created(frequency: Frequency) -> Notification:
    return Notification(
        type=FREQUENCY_CREATE,
        message=f"Frequency created: {frequency.name}",
        data=frequency.to_dict(),
    )


def frequency_deleted(frequency: Frequency) -> Notification:
    return Notification(
        type=FREQUENCY_DELETE,
        message=f"Frequency deleted: {frequency.name}",
        data=frequency.to_dict(),
    )
