"""Create-issue screen controller.

Wires the draft synchronizer, attachment uploads and issue submission
together and exposes the state the presentation layer renders.
"""

from __future__ import annotations

from typing import Any, Callable

from .attachments import AttachmentUploadCoordinator
from .config import ComposerConfig
from .draft_sync import DraftSynchronizer
from .file_picker import DirectoryFilePicker, FilePicker
from .models import Attachment, CreatedIssue, CustomFieldValue, Draft, PickerMode, Project
from .notifications import Notifier
from .storage import FileKeyValueStore, KeyValueStore
from .submission import IssueSubmissionController, OnCreate
from .tracker_client import TokenAuth, TrackerClient
from .usage import UsageCallback, UsageTracker


class IssueComposer:
    """State and actions of the create-issue screen."""

    def __init__(
        self,
        api: TrackerClient,
        store: KeyValueStore,
        picker: FilePicker,
        notifier: Notifier | None = None,
        draft_id: str | None = None,
        on_create: OnCreate | None = None,
        pop: Callable[[], Any] | None = None,
        usage: UsageCallback | None = None,
    ):
        """Initialize the screen.

        Args:
            api: Tracker client
            store: Persistent storage for draft and project ids
            picker: File acquisition for attachments
            notifier: Sink for user-facing failures
            draft_id: Draft to open instead of the persisted one
            on_create: Receives the created issue
            pop: Leaves the screen
            usage: Usage event callback (category, action, label)
        """
        self.api = api
        self.notifier = notifier or Notifier()
        self.pop = pop
        tracker = UsageTracker(usage)

        self.synchronizer = DraftSynchronizer(
            api, store, self.notifier, draft_id=draft_id, usage=tracker
        )
        self.attachments = AttachmentUploadCoordinator(
            api, self.synchronizer, picker, self.notifier, usage=tracker
        )
        self.submission = IssueSubmissionController(
            api,
            self.synchronizer,
            self.attachments,
            self.notifier,
            on_create=on_create,
            pop=pop,
            usage=tracker,
        )

    @classmethod
    def from_config(cls, config: ComposerConfig, **kwargs) -> "IssueComposer":
        """Build a screen backed by the configured tracker, storage and pickers."""
        api = TrackerClient(
            config.backend_url,
            auth=TokenAuth(config.token),
            timeout=config.request_timeout,
        )
        store = FileKeyValueStore(config.storage_path)
        kwargs.setdefault(
            "picker",
            DirectoryFilePicker(config.pickers.library_dir, config.pickers.camera_dir),
        )
        return cls(api, store, **kwargs)

    # --- Rendered state ---

    @property
    def draft(self) -> Draft:
        return self.synchronizer.draft

    @property
    def processing(self) -> bool:
        return self.submission.processing

    @property
    def attaching_image(self) -> Attachment | None:
        return self.attachments.attaching

    @property
    def can_create(self) -> bool:
        return self.submission.can_create

    # --- Actions ---

    async def initialize(self) -> None:
        await self.synchronizer.initialize()

    def edit_summary(self, summary: str | None) -> None:
        self.synchronizer.edit_summary(summary)

    def edit_description(self, description: str | None) -> None:
        self.synchronizer.edit_description(description)

    async def set_project(self, project: Project) -> None:
        await self.synchronizer.set_project(project)

    async def set_field_value(self, field: CustomFieldValue, value: Any) -> None:
        await self.synchronizer.set_field_value(field, value)

    async def attach_photo(self, mode: PickerMode = "library") -> bool:
        return await self.attachments.attach_photo(mode)

    async def submit(self) -> CreatedIssue | None:
        return await self.submission.create_issue()

    async def cancel(self) -> None:
        """Save pending edits and leave the screen."""
        await self.synchronizer.leave()
        if self.pop:
            self.pop()

    async def close(self) -> None:
        await self.api.close()
