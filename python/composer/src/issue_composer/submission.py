"""Issue creation from the synchronized draft."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Callable

from .models import CreatedIssue
from .usage import UsageTracker

if TYPE_CHECKING:
    from .attachments import AttachmentUploadCoordinator
    from .draft_sync import DraftSynchronizer
    from .notifications import Notifier
    from .tracker_client import TrackerClient

logger = logging.getLogger(__name__)

OnCreate = Callable[[CreatedIssue], Any]


class IssueSubmissionController:
    """Turns the draft into an issue, guarded by a ``processing`` flag."""

    def __init__(
        self,
        api: TrackerClient,
        synchronizer: DraftSynchronizer,
        coordinator: AttachmentUploadCoordinator,
        notifier: Notifier,
        on_create: OnCreate | None = None,
        pop: Callable[[], Any] | None = None,
        usage: UsageTracker | None = None,
    ):
        """Initialize the controller.

        Args:
            api: Tracker client
            synchronizer: Owner of the working draft
            coordinator: Attachment uploads; creation waits for them
            notifier: Sink for user-facing failures
            on_create: Receives the created issue (sync or async)
            pop: Leaves the screen after a successful creation
            usage: Usage event tracker
        """
        self.api = api
        self.synchronizer = synchronizer
        self.coordinator = coordinator
        self.notifier = notifier
        self.on_create = on_create
        self.pop = pop
        self.usage = usage or UsageTracker()
        self.processing = False

    @property
    def can_create(self) -> bool:
        draft = self.synchronizer.draft
        return bool(
            draft.summary
            and draft.project_id
            and not self.processing
            and not self.coordinator.is_attaching
        )

    async def create_issue(self) -> CreatedIssue | None:
        """Create the issue if the draft is ready.

        Returns:
            The created issue, or None if creation was not allowed or failed
        """
        if not self.can_create:
            return None

        self.processing = True
        try:
            await self.synchronizer.push_draft()
            created = await self.api.create_issue(self.synchronizer.draft)
            logger.info(f"Issue created: {created.id_readable or created.id}")

            await self.usage.track_event("Issue created", "Success")
            if self.on_create:
                result = self.on_create(created)
                if asyncio.iscoroutine(result):
                    await result
            if self.pop:
                self.pop()
            await self.synchronizer.forget_draft()
            return created
        except Exception as e:
            await self.usage.track_event("Issue created", "Error")
            await self.notifier.notify_error("Cannot create issue", e)
            return None
        finally:
            self.processing = False
