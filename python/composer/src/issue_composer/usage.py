"""Usage event forwarding for the create-issue screen."""

import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

CATEGORY_NAME = "Create issue view"

UsageCallback = Callable[[str, str, str | None], Awaitable[None]]


class UsageTracker:
    """Forwards (category, action, label) events to an optional callback."""

    def __init__(self, callback: UsageCallback | None = None, category: str = CATEGORY_NAME):
        self.callback = callback
        self.category = category

    async def track_event(self, action: str, label: str | None = None) -> None:
        if not self.callback:
            return
        try:
            await self.callback(self.category, action, label)
        except Exception:
            # Tracking never affects the screen.
            logger.exception(f"Usage callback failed for {action}")
