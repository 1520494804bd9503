"""SubscriberSession — bridges one hub subscriber to one WebSocket.

Keep-alive contract shared with clients: the server sends a ping every
``ws_ping_interval`` seconds (54 by default) and drops a connection that
delivers nothing, pongs included, for ``ws_read_timeout`` seconds (60).
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from aiohttp import WSMsgType

from dailies.config import settings

if TYPE_CHECKING:
    from aiohttp import web

    from dailies.notifications.events import Notification
    from dailies.notifications.hub import NotificationHub, Subscriber

logger = logging.getLogger(__name__)

_CLOSING_TYPES = {WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED, WSMsgType.ERROR}


def _or_default(value: float | None, default: float) -> float:
    return value if value is not None else default


class SubscriberSession:
    """Runs the outbound and inbound loops for one connection.

    Args:
        hub: Hub the subscriber is registered with.
        ws: An already prepared aiohttp WebSocketResponse.
        ping_interval: Seconds between keep-alive pings, regardless of traffic.
        read_timeout: Seconds without any inbound frame before giving up.
        write_timeout: Upper bound for a single send.
    """

    def __init__(
        self,
        hub: NotificationHub,
        ws: web.WebSocketResponse,
        *,
        ping_interval: float | None = None,
        read_timeout: float | None = None,
        write_timeout: float | None = None,
    ) -> None:
        self._hub = hub
        self._ws = ws
        self._ping_interval = _or_default(ping_interval, settings.ws_ping_interval)
        self._read_timeout = _or_default(read_timeout, settings.ws_read_timeout)
        self._write_timeout = _or_default(write_timeout, settings.ws_write_timeout)
        self.subscriber: Subscriber = hub.subscriber()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def run(self) -> None:
        """Register, pump until either direction ends, then tear down."""
        await self._hub.register(self.subscriber)
        outbound = asyncio.create_task(self._outbound_loop(), name="ws-outbound")
        inbound = asyncio.create_task(self._inbound_loop(), name="ws-inbound")
        try:
            await asyncio.wait({outbound, inbound}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            await self.close()
            for loop in (outbound, inbound):
                loop.cancel()
            await asyncio.gather(outbound, inbound, return_exceptions=True)

    async def close(self) -> None:
        """Tear the session down exactly once."""
        if self._closed:
            return
        self._closed = True
        self.subscriber.close()
        await self._hub.unregister(self.subscriber)
        try:
            await self._ws.close()
        except Exception:
            logger.debug("WebSocket close failed for subscriber %s", self.subscriber.id)

    # -- Loops -----------------------------------------------------------------

    async def _outbound_loop(self) -> None:
        # Pings run on their own clock; deliveries do not push them back.
        loop = asyncio.get_running_loop()
        next_ping = loop.time() + self._ping_interval
        getter: asyncio.Future[Notification | None] | None = None
        try:
            while True:
                if getter is None:
                    getter = asyncio.ensure_future(self.subscriber.get())
                done, _ = await asyncio.wait({getter}, timeout=max(0.0, next_ping - loop.time()))
                if not done:
                    next_ping = loop.time() + self._ping_interval
                    try:
                        await asyncio.wait_for(self._ws.ping(), timeout=self._write_timeout)
                    except Exception:
                        logger.info("Ping failed, closing subscriber %s", self.subscriber.id)
                        return
                    continue

                notification, getter = getter.result(), None
                if notification is None:
                    logger.debug("Subscriber %s closed, ending outbound loop", self.subscriber.id)
                    return
                try:
                    await asyncio.wait_for(
                        self._ws.send_str(notification.to_json()), timeout=self._write_timeout
                    )
                except Exception:
                    logger.warning("WebSocket write failed for subscriber %s", self.subscriber.id)
                    return
        finally:
            if getter is not None:
                getter.cancel()

    async def _inbound_loop(self) -> None:
        while True:
            try:
                msg = await self._ws.receive(timeout=self._read_timeout)
            except TimeoutError:
                logger.info("Subscriber %s timed out waiting for a pong", self.subscriber.id)
                return
            except Exception:
                logger.warning("WebSocket read failed for subscriber %s", self.subscriber.id)
                return

            if msg.type in _CLOSING_TYPES:
                if msg.type is WSMsgType.ERROR:
                    logger.warning("WebSocket error: %s", self._ws.exception())
                return
            if msg.type is WSMsgType.TEXT and msg.data.strip() == "ping":
                try:
                    await self._ws.send_str("pong")
                except Exception:
                    return
