"""NotificationHub — fans notifications out to live subscribers.

All changes to the subscriber set happen inside :meth:`NotificationHub.run`,
which serially drains one inbox of register, unregister and publish
commands.  Callers only ever enqueue, so the set needs no lock.

Delivery is best effort: each subscriber owns a bounded queue, and a
subscriber whose queue is full is disconnected instead of slowing down the
broadcast for everyone else.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from dailies.config import settings
from dailies.notifications.events import Notification

logger = logging.getLogger(__name__)

_REGISTER = "register"
_UNREGISTER = "unregister"
_PUBLISH = "publish"
_STOP = "stop"


class Subscriber:
    """One live consumer with a bounded outbound queue.

    Args:
        queue_size: Capacity of the outbound queue (default from settings).
    """

    def __init__(self, queue_size: int | None = None) -> None:
        self.id = uuid.uuid4().hex
        self._queue: asyncio.Queue[Notification] = asyncio.Queue(
            maxsize=queue_size or settings.subscriber_queue_size
        )
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def offer(self, notification: Notification) -> bool:
        """Enqueue without waiting. Returns False if closed or full."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(notification)
        except asyncio.QueueFull:
            return False
        return True

    async def get(self) -> Notification | None:
        """Wait for the next notification; None once the subscriber is closed."""
        if self.closed:
            return None
        if not self._queue.empty():
            return self._queue.get_nowait()

        getter = asyncio.ensure_future(self._queue.get())
        closer = asyncio.ensure_future(self._closed.wait())
        try:
            done, _ = await asyncio.wait({getter, closer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in (getter, closer):
                if not waiter.done():
                    waiter.cancel()
        if getter in done:
            return getter.result()
        return None

    def close(self) -> None:
        """Mark the subscriber closed. Safe to call more than once."""
        self._closed.set()

    def __repr__(self) -> str:
        return f"Subscriber({self.id[:8]}, pending={self.pending}, closed={self.closed})"


class NotificationHub:
    """Explicitly constructed publish/subscribe broker.

    Lifecycle: create, run :meth:`run` as a task, call :meth:`stop` to end it.

    Args:
        queue_size: Outbound queue capacity for subscribers made by :meth:`subscriber`.
        inbox_size: Capacity of the command inbox.
    """

    def __init__(self, queue_size: int | None = None, inbox_size: int | None = None) -> None:
        self._queue_size = queue_size or settings.subscriber_queue_size
        self._inbox: asyncio.Queue[tuple[str, Any]] = asyncio.Queue(
            maxsize=inbox_size or settings.hub_inbox_size
        )
        self._subscribers: set[Subscriber] = set()
        self._running = False
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscriber(self) -> Subscriber:
        """Create a subscriber sized for this hub (not yet registered)."""
        return Subscriber(self._queue_size)

    # -- Commands --------------------------------------------------------------

    async def register(self, subscriber: Subscriber) -> None:
        """Queue *subscriber* for delivery. A stopped hub closes it instead."""
        await self._submit(_REGISTER, subscriber)

    async def unregister(self, subscriber: Subscriber) -> None:
        await self._submit(_UNREGISTER, subscriber)

    async def _submit(self, kind: str, subscriber: Subscriber) -> None:
        if not self._stopped:
            await self._inbox.put((kind, subscriber))
        if self._stopped:
            # No loop is left to process the command.
            subscriber.close()

    def publish(self, notification: Notification) -> None:
        """Queue a notification for fan-out and return immediately."""
        if self._stopped:
            logger.debug("Hub stopped, dropping notification: %s", notification.type)
            return
        try:
            self._inbox.put_nowait((_PUBLISH, notification))
        except asyncio.QueueFull:
            logger.warning("Hub inbox full, dropping notification: %s", notification.type)
            return
        logger.debug("Queued notification: %s - %s", notification.type, notification.message)

    def broadcast(
        self, event_type: str, message: str, data: dict[str, Any] | None = None
    ) -> Notification:
        """Build a notification and publish it."""
        notification = Notification(type=event_type, message=message, data=data)
        self.publish(notification)
        return notification

    async def stop(self) -> None:
        """Ask the loop to exit once the commands queued before this one are done."""
        if self._stopped:
            return
        await self._inbox.put((_STOP, None))

    async def wait_idle(self) -> None:
        """Wait until every queued command has been processed."""
        await self._inbox.join()

    # -- Loop ------------------------------------------------------------------

    async def run(self) -> None:
        """Process commands until stopped. Exceptions propagate to the caller."""
        if self._running:
            msg = "Notification hub is already running"
            raise RuntimeError(msg)
        self._running = True
        self._stopped = False
        logger.info("Notification hub started")
        try:
            while True:
                kind, payload = await self._inbox.get()
                try:
                    if kind == _STOP:
                        break
                    if kind == _REGISTER:
                        self._add(payload)
                    elif kind == _UNREGISTER:
                        self._remove(payload)
                    elif kind == _PUBLISH:
                        self._fan_out(payload)
                finally:
                    self._inbox.task_done()
        finally:
            self._running = False
            self._stopped = True
            self._shutdown()

    def _add(self, subscriber: Subscriber) -> None:
        if subscriber.closed:
            logger.debug("Ignoring registration of closed subscriber %s", subscriber.id)
            return
        self._subscribers.add(subscriber)
        logger.info("Subscriber connected. Total subscribers: %d", len(self._subscribers))

    def _remove(self, subscriber: Subscriber) -> None:
        if subscriber not in self._subscribers:
            return
        self._subscribers.discard(subscriber)
        subscriber.close()
        logger.info("Subscriber disconnected. Total subscribers: %d", len(self._subscribers))

    def _fan_out(self, notification: Notification) -> None:
        if not self._subscribers:
            logger.debug("No subscribers connected, not delivered: %s", notification.message)
            return

        delivered = 0
        for subscriber in list(self._subscribers):
            if subscriber.offer(notification):
                delivered += 1
                continue
            self._subscribers.discard(subscriber)
            subscriber.close()
            logger.warning(
                "Subscriber %s cannot keep up, disconnecting (pending=%d)",
                subscriber.id,
                subscriber.pending,
            )
        logger.info("Notification delivered to %d subscriber(s): %s", delivered, notification.type)

    def _shutdown(self) -> None:
        for subscriber in self._subscribers:
            subscriber.close()
        closed = len(self._subscribers)
        self._subscribers.clear()

        # Release anyone waiting on wait_idle() for commands that will never run.
        while not self._inbox.empty():
            self._inbox.get_nowait()
            self._inbox.task_done()
        logger.info("Notification hub stopped (%d subscriber(s) closed)", closed)
