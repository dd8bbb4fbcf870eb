"""Notifiers that record or log signals instead of rendering them."""

import structlog

from checkout.notifications.port import Notifier

logger = structlog.get_logger(__name__)


class RecordingNotifier(Notifier):
    """Notifier that records messages in memory for test assertions."""

    def __init__(self):
        self.sent_messages: list[dict] = []

    def success(self, message: str) -> None:
        self.sent_messages.append({"level": "success", "message": message})

    def error(self, message: str) -> None:
        self.sent_messages.append({"level": "error", "message": message})

    @property
    def errors(self) -> list[str]:
        return [m["message"] for m in self.sent_messages if m["level"] == "error"]

    @property
    def successes(self) -> list[str]:
        return [m["message"] for m in self.sent_messages if m["level"] == "success"]

    def reset(self):
        """Clear sent messages (useful between tests)."""
        self.sent_messages.clear()


class LoggingNotifier(Notifier):
    """Default notifier for headless use: signals end up in the log."""

    def success(self, message: str) -> None:
        logger.info("notify_success", message=message)

    def error(self, message: str) -> None:
        logger.warning("notify_error", message=message)
