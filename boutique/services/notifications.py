"""
Notification sinks.

Engines report user-facing outcomes through a Notifier. Delivery is
fire-and-forget: a failing sink is logged and never breaks the mutation
that produced the message.
"""
from enum import Enum
from typing import List, Protocol, Tuple

from boutique.logging import get_logger

logger = get_logger(__name__)


class NotificationKind(str, Enum):
    """Notification severity shown to the shopper."""
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class Notifier(Protocol):
    """Receives user-facing success/failure messages."""

    def notify(self, kind: NotificationKind, message: str) -> None: ...


class LoggingNotifier:
    """Default sink: writes notifications to the application log."""

    def notify(self, kind: NotificationKind, message: str) -> None:
        if kind == NotificationKind.ERROR:
            logger.warning("[notify:%s] %s", kind.value, message)
        else:
            logger.info("[notify:%s] %s", kind.value, message)


class NullNotifier:
    """Discards every notification."""

    def notify(self, kind: NotificationKind, message: str) -> None:
        return None


class RecordingNotifier:
    """Keeps notifications in memory, newest last."""

    def __init__(self):
        self.messages: List[Tuple[NotificationKind, str]] = []

    def notify(self, kind: NotificationKind, message: str) -> None:
        self.messages.append((kind, message))

    @property
    def last(self) -> Tuple[NotificationKind, str] | None:
        return self.messages[-1] if self.messages else None

    def clear(self) -> None:
        self.messages.clear()


def safe_notify(notifier: Notifier, kind: NotificationKind, message: str) -> None:
    """Deliver a notification, logging (not raising) sink failures."""
    try:
        notifier.notify(kind, message)
    except Exception as e:
        logger.error("Notification sink failed: %s", type(e).__name__, exc_info=True)
