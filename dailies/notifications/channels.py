"""EventPublisher protocol — the one capability producers need from the hub."""

from typing import Protocol, runtime_checkable

from dailies.notifications.events import Notification


@runtime_checkable
class EventPublisher(Protocol):
    """Anything that accepts notifications for live subscribers."""

    def publish(self, notification: Notification) -> None:
        """Queue a notification for delivery. Must not block."""
        ...


class NullPublisher:
    """Publisher that discards everything; used when no hub is wired in."""

    def publish(self, notification: Notification) -> None:
        return None
