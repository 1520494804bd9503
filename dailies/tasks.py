"""TaskActions — manual task and frequency edits that notify live viewers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dailies.notifications import events
from dailies.notifications.channels import EventPublisher, NullPublisher

if TYPE_CHECKING:
    from dailies.scheduler.models import Frequency, Task
    from dailies.scheduler.store import TaskStore

logger = logging.getLogger(__name__)


class TaskActions:
    """Applies an edit through the store, then publishes what changed.

    Args:
        store: TaskStore holding tasks and frequencies.
        publisher: Where change notifications go (no-op when omitted).
    """

    def __init__(self, store: TaskStore, publisher: EventPublisher | None = None) -> None:
        self._store = store
        self._publisher = publisher or NullPublisher()

    async def create_task(self, task: Task) -> Task:
        await self._store.add_task(task)
        self._publisher.publish(events.task_created(task))
        return task

    async def set_completed(self, task_id: str, completed: bool) -> Task | None:
        """Mark a task (in)complete. Returns the updated task, or None if missing."""
        if not await self._store.set_completed(task_id, completed):
            logger.info("Task not found for completion change: %s", task_id)
            return None
        task = await self._store.get_task(task_id)
        if task is not None:
            self._publisher.publish(events.task_updated(task))
        return task

    async def delete_task(self, task_id: str) -> bool:
        task = await self._store.get_task(task_id)
        if task is None or not await self._store.delete_task(task_id):
            return False
        self._publisher.publish(events.task_deleted(task))
        return True

    async def update_frequency(self, frequency: Frequency) -> bool:
        if not await self._store.update_frequency(frequency):
            return False
        self._publisher.publish(events.frequency_updated(frequency))
        return True

    async def create_frequency(self, frequency: Frequency) -> Frequency:
        await self._store.add_frequency(frequency)
        self._publisher.publish(events.frequency_created(frequency))
        return frequency

    async def delete_frequency(self, frequency_id: str) -> bool:
        """Delete a frequency; its tasks stay but no longer recur."""
        frequency = await self._store.get_frequency(frequency_id)
        if frequency is None or not await self._store.delete_frequency(frequency_id):
            return False
        self._publisher.publish(events.frequency_deleted(frequency))
        return True
