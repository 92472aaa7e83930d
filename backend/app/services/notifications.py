"""Notification Center - collects user-visible notifications (toasts) raised by the client.

Invariants:
    - Notifications are kept in the order they were raised
    - Every notification is also logged at a level matching its severity
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from app.core.domain_types import NotificationLevel

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    NotificationLevel.SUCCESS: logging.INFO,
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationCenter:
    """In-memory Notifier implementation; optional sink forwards to a UI."""

    def __init__(self, sink: Callable[[Notification], None] | None = None):
        self._sink = sink
        self.notifications: list[Notification] = []

    def notify(self, level: NotificationLevel, message: str) -> None:
        notification = Notification(level=level, message=message)
        self.notifications.append(notification)
        logger.log(_LOG_LEVELS[level], message)
        if self._sink is not None:
            self._sink(notification)

    def of_level(self, level: NotificationLevel) -> list[Notification]:
        return [n for n in self.notifications if n.level is level]

    def clear(self) -> None:
        self.notifications.clear()
