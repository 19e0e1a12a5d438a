"""Notification sinks for user-visible messages."""

from abc import ABC, abstractmethod
from typing import List

import structlog

from models.estimate_flow import Notification, NotificationVariant

logger = structlog.get_logger()


class NotificationSink(ABC):
    """Receives transient success and error messages for the user."""

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        """Deliver one notification."""

    def error(self, description: str, title: str = "Error") -> None:
        self.notify(Notification(
            title=title,
            description=description,
            variant=NotificationVariant.DESTRUCTIVE,
        ))

    def info(self, description: str, title: str) -> None:
        self.notify(Notification(title=title, description=description))


class LoggingNotificationSink(NotificationSink):
    """Writes notifications to the structured log."""

    def notify(self, notification: Notification) -> None:
        log = logger.warning if notification.variant == NotificationVariant.DESTRUCTIVE.value else logger.info
        log(
            "user_notification",
            title=notification.title,
            description=notification.description,
            variant=notification.variant,
        )


class RecordingNotificationSink(NotificationSink):
    """Keeps notifications in memory for a UI layer to drain."""

    def __init__(self):
        self.notifications: List[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def errors(self) -> List[Notification]:
        return [
            n for n in self.notifications
            if n.variant == NotificationVariant.DESTRUCTIVE.value
        ]

    def drain(self) -> List[Notification]:
        drained, self.notifications = self.notifications, []
        return drained
