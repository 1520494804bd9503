"""Dailies entry point — runs the reset scheduler, the hub and the HTTP server."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal

from dailies.config import Settings, settings
from dailies.notifications.hub import NotificationHub
from dailies.scheduler.engine import ResetScheduler
from dailies.scheduler.store import TaskStore
from dailies.web.server import WebServer

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> Settings:
    """Build settings with precedence CLI flags > environment > defaults."""
    parser = argparse.ArgumentParser(description="Recurring task reset service")
    parser.add_argument("--db-path", dest="database_path", help="Path to database file")
    parser.add_argument("--port", dest="server_port", type=int, help="The port to listen on")
    parser.add_argument(
        "--tz",
        dest="scheduler_timezone",
        help="Timezone for the scheduler (e.g. America/Denver, UTC)",
    )
    args = parser.parse_args(argv)
    overrides = {key: value for key, value in vars(args).items() if value is not None}
    return Settings(**overrides)


async def serve(config: Settings) -> None:
    """Run every component until SIGINT/SIGTERM, or until the hub fails."""
    store = TaskStore(db_path=config.database_path)
    hub = NotificationHub(
        queue_size=config.subscriber_queue_size, inbox_size=config.hub_inbox_size
    )
    scheduler = ResetScheduler(
        store,
        hub,
        interval_seconds=config.reset_interval_seconds,
        timezone=config.scheduler_timezone,
    )
    server = WebServer(
        hub,
        store,
        host=config.server_host,
        port=config.server_port,
        timezone=config.scheduler_timezone,
    )

    stopping = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stopping.set)

    hub_task = asyncio.create_task(hub.run(), name="notification-hub")
    await scheduler.start()
    await server.start()
    logger.info("Dailies running (db=%s, tz=%s)", config.database_path, config.scheduler_timezone)

    stop_wait = asyncio.create_task(stopping.wait())
    try:
        await asyncio.wait({hub_task, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop_wait.cancel()
        await server.stop()
        await scheduler.stop()
        if not hub_task.done():
            await hub.stop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        # Re-raises if the hub loop crashed.
        await hub_task
    logger.info("Dailies stopped")


def main(argv: list[str] | None = None) -> None:
    config = parse_args(argv)
    asyncio.run(serve(config))


if __name__ == "__main__":
    main()
