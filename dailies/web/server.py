"""Async HTTP server for health checks and the live WebSocket feed.

Uses aiohttp's AppRunner/TCPSite for non-blocking start/stop so it shares the
event loop with the hub and the reset scheduler.
"""

from __future__ import annotations

import logging
import zoneinfo
from datetime import datetime

from aiohttp import web

from dailies.config import settings
from dailies.notifications.hub import NotificationHub
from dailies.notifications.session import SubscriberSession
from dailies.scheduler.store import TaskStore

logger = logging.getLogger(__name__)

HUB_KEY = web.AppKey("hub", NotificationHub)
STORE_KEY = web.AppKey("store", TaskStore)
TIMEZONE_KEY = web.AppKey("timezone", str)


async def _health(request: web.Request) -> web.Response:
    """GET /health — liveness plus a database round trip."""
    try:
        await request.app[STORE_KEY].ping()
    except Exception:
        logger.exception("Health check failed: database unreachable")
        return web.json_response(
            {"status": "error", "message": "Database connection is not active"},
            status=503,
        )
    hub = request.app[HUB_KEY]
    return web.json_response({"status": "ok", "subscribers": hub.subscriber_count})


async def _timezone(request: web.Request) -> web.Response:
    """GET /timezone — the timezone the scheduler reads frequencies in."""
    name = request.app[TIMEZONE_KEY]
    now = datetime.now(zoneinfo.ZoneInfo(name))
    return web.json_response(
        {"timezone": name, "offset": now.strftime("%z"), "name": now.tzname()}
    )


async def _websocket(request: web.Request) -> web.StreamResponse:
    """GET /ws — upgrade and stream notifications until the client leaves."""
    ws = web.WebSocketResponse(max_msg_size=settings.ws_max_message_size)
    if not ws.can_prepare(request).ok:
        logger.warning("WebSocket upgrade rejected from %s", request.remote)
        return web.json_response({"error": "websocket upgrade required"}, status=400)
    await ws.prepare(request)

    session = SubscriberSession(request.app[HUB_KEY], ws)
    logger.info("WebSocket connected: %s (%s)", request.remote, session.subscriber.id)
    await session.run()
    logger.info("WebSocket closed: %s (%s)", request.remote, session.subscriber.id)
    return ws


def create_web_app(
    hub: NotificationHub, store: TaskStore, timezone: str | None = None
) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application()
    app[HUB_KEY] = hub
    app[STORE_KEY] = store
    app[TIMEZONE_KEY] = timezone or settings.scheduler_timezone
    app.router.add_get("/health", _health)
    app.router.add_get("/timezone", _timezone)
    app.router.add_get("/ws", _websocket)
    return app


class WebServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self,
        hub: NotificationHub,
        store: TaskStore,
        *,
        host: str | None = None,
        port: int | None = None,
        timezone: str | None = None,
    ) -> None:
        self._hub = hub
        self._store = store
        self._timezone = timezone
        self.host = host if host is not None else settings.server_host
        self.port = port if port is not None else settings.server_port
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        app = create_web_app(self._hub, self._store, self._timezone)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("HTTP server listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server, closing open WebSocket sessions."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("HTTP server stopped")
