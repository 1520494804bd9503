"""Frequency, Task and ResetEvent data models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


def make_id() -> str:
    """Generate a new identifier."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 column value, treating naive values as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass
class Frequency:
    """A recurrence schedule that completed tasks reset on.

    Attributes:
        name: Unique human-readable name (e.g. ``"Daily@00:00"``).
        period: Cron expression, ``"minute hour day month day-of-week"``,
            or a descriptor such as ``"@daily"``.
        timezone: IANA timezone the period is read in. Empty means the
            scheduler's default timezone.
        id: Unique identifier, assigned at construction.
    """

    name: str
    period: str
    timezone: str = ""
    id: str = field(default_factory=make_id)

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``frequencies`` column order."""
        return (self.id, self.name, self.period, self.timezone)

    @classmethod
    def from_row(cls, row: tuple) -> Frequency:
        return cls(id=row[0], name=row[1], period=row[2], timezone=row[3] or "")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "period": self.period,
            "timezone": self.timezone,
        }


@dataclass
class Task:
    """A tracked daily task.

    ``date_modified`` moves on every mutation, including a scheduled reset,
    and anchors the next reset boundary.
    """

    name: str
    completed: bool = False
    priority: int = 3
    frequency_id: str | None = None
    deleted: bool = False
    date_created: datetime = field(default_factory=utcnow)
    date_modified: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=make_id)

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``tasks`` column order."""
        return (
            self.id,
            self.name,
            int(self.completed),
            self.priority,
            self.frequency_id,
            int(self.deleted),
            self.date_created.isoformat(),
            self.date_modified.isoformat(),
        )

    @classmethod
    def from_row(cls, row: tuple) -> Task:
        return cls(
            id=row[0],
            name=row[1],
            completed=bool(row[2]),
            priority=row[3],
            frequency_id=row[4],
            deleted=bool(row[5]),
            date_created=parse_timestamp(row[6]),
            date_modified=parse_timestamp(row[7]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "completed": self.completed,
            "priority": self.priority,
            "frequency_id": self.frequency_id,
            "date_created": self.date_created.isoformat(),
            "date_modified": self.date_modified.isoformat(),
        }


@dataclass
class ResetEvent:
    """Tasks of one frequency that were reset during the same tick."""

    frequency_name: str
    task_ids: list[str]
    occurred_at: datetime

    @property
    def reset_count(self) -> int:
        return len(self.task_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "frequency_name": self.frequency_name,
            "task_ids": list(self.task_ids),
            "reset_count": self.reset_count,
            "occurred_at": self.occurred_at.isoformat(),
        }
