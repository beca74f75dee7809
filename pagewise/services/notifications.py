"""User-facing notifications raised while analyzing and saving a document."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    """Severity of a notification."""

    INFO = "info"  # transient, e.g. retry in progress
    SUCCESS = "success"
    WARNING = "warning"  # non-fatal, e.g. persistence degraded
    ERROR = "error"  # terminal failure


_LOG_LEVELS = {
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.SUCCESS: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}


@dataclass
class Notification:
    """A single notification event."""

    level: NotificationLevel
    message: str
    page_number: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "message": self.message,
            "page_number": self.page_number,
            "created_at": self.created_at.isoformat(),
        }


Listener = Callable[[Notification], None]


class NotificationChannel:
    """
    Per-session notification channel.

    Keeps the most recent notifications for polling via ``drain`` and
    fans each one out to registered listeners. A failing listener is
    logged and skipped so it cannot affect analysis.
    """

    def __init__(self, max_pending: int = 200) -> None:
        self._pending: deque[Notification] = deque(maxlen=max_pending)
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(
        self,
        level: NotificationLevel,
        message: str,
        page_number: int | None = None,
    ) -> Notification:
        notification = Notification(level=level, message=message, page_number=page_number)
        logger.log(_LOG_LEVELS[level], "[Notify:%s] %s", level.value, message)
        self._pending.append(notification)

        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as e:
                logger.error("Notification listener failed: %s", e)
        return notification

    def info(self, message: str, page_number: int | None = None) -> Notification:
        return self.publish(NotificationLevel.INFO, message, page_number)

    def success(self, message: str, page_number: int | None = None) -> Notification:
        return self.publish(NotificationLevel.SUCCESS, message, page_number)

    def warning(self, message: str, page_number: int | None = None) -> Notification:
        return self.publish(NotificationLevel.WARNING, message, page_number)

    def error(self, message: str, page_number: int | None = None) -> Notification:
        return self.publish(NotificationLevel.ERROR, message, page_number)

    def drain(self) -> list[Notification]:
        """Return and clear pending notifications, oldest first."""
        drained = list(self._pending)
        self._pending.clear()
        return drained

    def peek(self) -> list[Notification]:
        return list(self._pending)
