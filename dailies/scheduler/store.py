"""TaskStore — aiosqlite persistence for tasks and their frequencies."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aiosqlite

from dailies.config import settings
from dailies.scheduler.models import Frequency, Task, utcnow

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS frequencies (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        period TEXT NOT NULL,
        timezone TEXT NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        completed INTEGER NOT NULL DEFAULT 0,
        priority INTEGER NOT NULL DEFAULT 3,
        frequency_id TEXT REFERENCES frequencies(id) ON DELETE SET NULL,
        deleted INTEGER NOT NULL DEFAULT 0,
        date_created TEXT NOT NULL,
        date_modified TEXT NOT NULL
    )
    """,
)

_TASK_COLUMNS = (
    "id, name, completed, priority, frequency_id, deleted, date_created, date_modified"
)


def _validate_frequency(frequency: Frequency) -> None:
    if not frequency.name:
        msg = "frequency name is required"
        raise ValueError(msg)
    if not frequency.period:
        msg = "frequency period is required"
        raise ValueError(msg)


def _validate_task(task: Task) -> None:
    if not task.name:
        msg = "task name is required"
        raise ValueError(msg)
    if not 1 <= task.priority <= 5:
        msg = f"task priority must be between 1 and 5, got {task.priority}"
        raise ValueError(msg)


class TaskStore:
    """Persists tasks and frequencies in SQLite.

    Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    Only :meth:`mark_incomplete` is ever called by the reset scheduler; the
    other writes belong to manual edits.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            for statement in _CREATE_TABLES:
                await db.execute(statement)
            await db.commit()
            self._initialised = True
        return db

    # -- Frequencies -----------------------------------------------------------

    async def add_frequency(self, frequency: Frequency) -> Frequency:
        """Insert a new frequency. Raises ValueError on missing fields."""
        _validate_frequency(frequency)
        db = await self._connect()
        try:
            await db.execute(
                "INSERT INTO frequencies (id, name, period, timezone) VALUES (?, ?, ?, ?)",
                frequency.to_row(),
            )
            await db.commit()
            logger.info("Added frequency: %s (%s)", frequency.name, frequency.period)
            return frequency
        finally:
            await db.close()

    async def get_frequency(self, frequency_id: str) -> Frequency | None:
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT id, name, period, timezone FROM frequencies WHERE id = ?",
                (frequency_id,),
            )
            row = await cursor.fetchone()
            return Frequency.from_row(row) if row else None
        finally:
            await db.close()

    async def update_frequency(self, frequency: Frequency) -> bool:
        """Overwrite name, period and timezone. Returns True if a row changed."""
        _validate_frequency(frequency)
        db = await self._connect()
        try:
            cursor = await db.execute(
                "UPDATE frequencies SET name = ?, period = ?, timezone = ? WHERE id = ?",
                (frequency.name, frequency.period, frequency.timezone, frequency.id),
            )
            await db.commit()
            return cursor.rowcount > 0
        finally:
            await db.close()

    async def delete_frequency(self, frequency_id: str) -> bool:
        """Delete a frequency and detach its tasks. Returns True if a row was deleted."""
        db = await self._connect()
        try:
            await db.execute(
                "UPDATE tasks SET frequency_id = NULL WHERE frequency_id = ?", (frequency_id,)
            )
            cursor = await db.execute("DELETE FROM frequencies WHERE id = ?", (frequency_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
            if deleted:
                logger.info("Deleted frequency: %s", frequency_id)
            return deleted
        finally:
            await db.close()

    # -- Tasks -----------------------------------------------------------------

    async def add_task(self, task: Task) -> Task:
        """Insert a new task. Raises ValueError on invalid fields."""
        _validate_task(task)
        db = await self._connect()
        try:
            await db.execute(
                f"INSERT INTO tasks ({_TASK_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                task.to_row(),
            )
            await db.commit()
            logger.info("Added task: %s (%s)", task.name, task.id)
            return task
        finally:
            await db.close()

    async def get_task(self, task_id: str) -> Task | None:
        """Fetch a task by ID, or None if not found."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ?", (task_id,)
            )
            row = await cursor.fetchone()
            return Task.from_row(row) if row else None
        finally:
            await db.close()

    async def set_completed(
        self, task_id: str, completed: bool, at: datetime | None = None
    ) -> bool:
        """Set the completed flag and bump date_modified. Returns True if updated."""
        ts = (at or utcnow()).isoformat()
        db = await self._connect()
        try:
            cursor = await db.execute(
                "UPDATE tasks SET completed = ?, date_modified = ? WHERE id = ? AND deleted = 0",
                (int(completed), ts, task_id),
            )
            await db.commit()
            return cursor.rowcount > 0
        finally:
            await db.close()

    async def delete_task(self, task_id: str) -> bool:
        """Soft-delete a task. Returns True if a row was updated."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "UPDATE tasks SET deleted = 1, date_modified = ? WHERE id = ? AND deleted = 0",
                (utcnow().isoformat(), task_id),
            )
            await db.commit()
            deleted = cursor.rowcount > 0
            if deleted:
                logger.info("Deleted task: %s", task_id)
            return deleted
        finally:
            await db.close()

    # -- Reset scheduler interface ---------------------------------------------

    async def load_resettable_candidates(self) -> list[tuple[Task, Frequency]]:
        """Return completed, live tasks that carry a frequency, with it preloaded."""
        columns = ", ".join(f"t.{c.strip()}" for c in _TASK_COLUMNS.split(","))
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"""
                SELECT {columns}, f.id, f.name, f.period, f.timezone
                FROM tasks t
                JOIN frequencies f ON f.id = t.frequency_id
                WHERE t.completed = 1 AND t.frequency_id IS NOT NULL AND t.deleted = 0
                ORDER BY t.date_modified
                """
            )
            rows = await cursor.fetchall()
            return [(Task.from_row(row[:8]), Frequency.from_row(row[8:])) for row in rows]
        finally:
            await db.close()

    async def mark_incomplete(self, task_id: str, at: datetime | None = None) -> bool:
        """Flip a task back to incomplete. Returns True if a row was updated."""
        return await self.set_completed(task_id, False, at)

    async def ping(self) -> None:
        """Run a trivial query; raises if the database is unreachable."""
        db = await self._connect()
        try:
            await db.execute("SELECT 1")
        finally:
            await db.close()
