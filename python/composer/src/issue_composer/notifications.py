"""Non-blocking user notifications.

Components report recoverable failures here instead of raising; the
presentation layer subscribes and shows them as toasts.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Callable, Literal

from .tracker_client import ApiError

logger = logging.getLogger(__name__)

NotificationLevel = Literal["info", "error"]


@dataclass
class Notification:
    """A single message shown to the user."""

    level: NotificationLevel
    title: str
    detail: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    # Unique identifier for the presentation layer
    notification_id: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "notification_id": self.notification_id,
            "level": self.level,
            "title": self.title,
            "detail": self.detail,
            "timestamp": self.timestamp.isoformat(),
        }


def resolve_error(error: BaseException | None) -> str | None:
    """Extract the user-facing text of an error."""
    if error is None:
        return None
    if isinstance(error, ApiError):
        return error.error_description or error.message
    return str(error) or type(error).__name__


class Notifier:
    """Keeps recent notifications and fans them out to listeners.

    Maintains an in-memory ring buffer and notifies listeners (sync or
    async) when a new notification is added.
    """

    def __init__(self, max_entries: int = 100):
        """Initialize notifier.

        Args:
            max_entries: Maximum notifications kept in memory
        """
        self.entries: deque[Notification] = deque(maxlen=max_entries)
        self._listeners: list[Callable[[Notification], Any]] = []
        self._next_id: int = 1

    def add_listener(self, callback: Callable[[Notification], Any]) -> None:
        """Add a callback to be notified of new notifications.

        Args:
            callback: Function to call with new notifications (can be async)
        """
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[Notification], Any]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _get_next_id(self) -> int:
        notification_id = self._next_id
        self._next_id += 1
        return notification_id

    async def _notify_listeners(self, notification: Notification) -> None:
        for listener in self._listeners:
            try:
                result = listener(notification)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("Notification listener failed")

    async def notify_error(self, title: str, error: BaseException | None = None) -> Notification:
        """Report a recoverable failure to the user.

        Args:
            title: Short description of what failed
            error: The failure, if any

        Returns:
            The recorded notification
        """
        notification = Notification(
            level="error",
            title=title,
            detail=resolve_error(error),
            notification_id=self._get_next_id(),
        )
        logger.warning(f"{title}: {notification.detail}")
        self.entries.append(notification)
        await self._notify_listeners(notification)
        return notification

    def errors(self) -> list[Notification]:
        """Return error notifications, oldest first."""
        return [n for n in self.entries if n.level == "error"]
