"""ResetScheduler — periodically flips completed recurring tasks back to incomplete."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from dailies.config import settings
from dailies.notifications import events
from dailies.notifications.channels import EventPublisher, NullPublisher
from dailies.scheduler.models import ResetEvent
from dailies.scheduler.recurrence import RecurrenceError, should_reset

if TYPE_CHECKING:
    from dailies.scheduler.models import Frequency, Task

logger = logging.getLogger(__name__)

_JOB_ID = "reset-completed-tasks"


class ResetSource(Protocol):
    """Persistence the scheduler reads candidates from and writes resets to."""

    async def load_resettable_candidates(self) -> list[tuple[Task, Frequency]]: ...

    async def mark_incomplete(self, task_id: str, at: datetime | None = None) -> bool: ...


class ResetScheduler:
    """Runs :meth:`tick` on a fixed interval via APScheduler.

    ``start()`` while already running raises ``RuntimeError``. ``stop()``
    prevents further ticks and waits for a tick already in progress.

    Args:
        store: Source of reset candidates and sink for resets.
        publisher: Receives one ``task_reset`` notification per frequency
            with resets in a tick (defaults to a no-op publisher).
        interval_seconds: Seconds between ticks (default from settings).
        timezone: Timezone for frequencies that do not name one.
    """

    def __init__(
        self,
        store: ResetSource,
        publisher: EventPublisher | None = None,
        *,
        interval_seconds: float | None = None,
        timezone: str | None = None,
    ) -> None:
        self._store = store
        self._publisher = publisher or NullPublisher()
        self._interval = (
            interval_seconds if interval_seconds is not None else settings.reset_interval_seconds
        )
        self._timezone = timezone or settings.scheduler_timezone
        self._scheduler: AsyncIOScheduler | None = None
        self._tick_lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    @property
    def timezone(self) -> str:
        return self._timezone

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Begin ticking every ``interval_seconds``."""
        if self._scheduler is not None:
            msg = "Reset scheduler is already running"
            raise RuntimeError(msg)
        scheduler = AsyncIOScheduler(timezone=self._timezone)
        scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=self._interval, timezone=self._timezone),
            id=_JOB_ID,
            name="Reset completed tasks",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Reset scheduler started (interval=%ss, tz=%s)", self._interval, self._timezone
        )

    async def stop(self) -> None:
        """Stop ticking and let an in-flight tick finish. No-op when stopped."""
        if self._scheduler is None:
            return
        scheduler, self._scheduler = self._scheduler, None
        # Shutting down cancels running job tasks, so drain before it.
        scheduler.remove_job(_JOB_ID)
        async with self._tick_lock:
            scheduler.shutdown(wait=False)
        logger.info("Reset scheduler stopped")

    # -- Tick ------------------------------------------------------------------

    async def tick(self, now: datetime | None = None) -> list[ResetEvent]:
        """Reset every completed task whose next boundary has passed.

        Returns the reset events published for this tick, one per frequency.
        """
        async with self._tick_lock:
            now = now or datetime.now(UTC)
            try:
                candidates = await self._store.load_resettable_candidates()
            except Exception:
                logger.exception("Error fetching tasks for reset check")
                return []

            reset: dict[str, list[str]] = {}
            for task, frequency in candidates:
                if await self._reset_if_due(task, frequency, now):
                    reset.setdefault(frequency.name, []).append(task.id)

            resets = [
                ResetEvent(frequency_name=name, task_ids=task_ids, occurred_at=now)
                for name, task_ids in reset.items()
            ]
            for event in resets:
                self._publisher.publish(events.task_reset(event))

            if resets:
                logger.info("Reset %d task(s)", sum(e.reset_count for e in resets))
            return resets

    async def _reset_if_due(self, task: Task, frequency: Frequency, now: datetime) -> bool:
        timezone = frequency.timezone or self._timezone
        try:
            due = should_reset(frequency.period, timezone, task.date_modified, now)
        except RecurrenceError as exc:
            logger.warning(
                "Invalid cron expression '%s' for task %s: %s", frequency.period, task.name, exc
            )
            return False
        if not due:
            return False

        try:
            updated = await self._store.mark_incomplete(task.id, now)
        except Exception:
            logger.exception("Error resetting task %s (%s)", task.name, task.id)
            return False
        if not updated:
            logger.debug("Task %s vanished before reset", task.id)
            return False
        logger.info("Reset task '%s' (frequency: %s)", task.name, frequency.name)
        return True
