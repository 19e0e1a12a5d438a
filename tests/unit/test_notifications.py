"""Unit tests for notification sinks."""

import pytest

from models.estimate_flow import Notification
from services.notifications import (
    LoggingNotificationSink,
    NotificationSink,
    RecordingNotificationSink,
)


class TestNotificationSinks:

    def test_error_is_destructive(self, notifier):
        notifier.error("Contractor ID is required")

        assert notifier.notifications == [Notification(
            title="Error",
            description="Contractor ID is required",
            variant="destructive",
        )]
        assert len(notifier.errors) == 1

    def test_info_is_not_an_error(self, notifier):
        notifier.info("Your estimate is on its way", title="Submitted")

        assert notifier.notifications[0].variant == "default"
        assert notifier.errors == []

    def test_drain(self):
        sink = RecordingNotificationSink()
        sink.error("first")
        sink.error("second")

        drained = sink.drain()

        assert [n.description for n in drained] == ["first", "second"]
        assert sink.notifications == []

    def test_logging_sink_accepts_both_variants(self):
        sink = LoggingNotificationSink()

        sink.error("Failed to start estimate generation. Please try again.")
        sink.info("Estimate ready", title="Done")

    def test_base_sink_is_abstract(self):
        with pytest.raises(TypeError):
            NotificationSink()

    def test_subclass_only_implements_notify(self):
        class ListSink(NotificationSink):
            def __init__(self):
                self.seen = []

            def notify(self, notification):
                self.seen.append(notification.description)

        sink = ListSink()
        sink.error("first")
        sink.info("second", title="Info")

        assert sink.seen == ["first", "second"]
