"""Live notification feed — hub, subscriber sessions and the event envelope."""

from dailies.notifications.channels import EventPublisher, NullPublisher
from dailies.notifications.events import Notification
from dailies.notifications.hub import NotificationHub, Subscriber
from dailies.notifications.session import SubscriberSession

__all__ = [
    "EventPublisher",
    "Notification",
    "NotificationHub",
    "NullPublisher",
    "Subscriber",
    "SubscriberSession",
]
