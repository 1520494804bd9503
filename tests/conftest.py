"""Shared test fixtures."""

import asyncio
from pathlib import Path

import pytest

from dailies.notifications.events import Notification
from dailies.notifications.hub import NotificationHub
from dailies.scheduler.store import TaskStore


class FakePublisher:
    """Collects published notifications."""

    def __init__(self) -> None:
        self.published: list[Notification] = []

    def publish(self, notification: Notification) -> None:
        self.published.append(notification)

    def of_type(self, event_type: str) -> list[Notification]:
        return [n for n in self.published if n.type == event_type]


@pytest.fixture
async def store(tmp_path: Path) -> TaskStore:
    """Create a TaskStore backed by a temp database."""
    return TaskStore(db_path=tmp_path / "test.db")


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
async def hub():
    """A NotificationHub whose loop runs for the duration of the test."""
    hub = NotificationHub(queue_size=8, inbox_size=64)
    task = asyncio.create_task(hub.run())
    yield hub
    if not task.done():
        await hub.stop()
    await task
