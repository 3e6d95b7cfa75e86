"""Shared fakes for the issue composer tests."""

from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from issue_composer.attachments import AttachmentUploadCoordinator
from issue_composer.draft_sync import DraftSynchronizer
from issue_composer.file_picker import FileAcquisitionError
from issue_composer.models import Attachment, CreatedIssue, Draft
from issue_composer.notifications import Notifier
from issue_composer.storage import MemoryKeyValueStore
from issue_composer.submission import IssueSubmissionController
from issue_composer.tracker_client import ApiError


class FakeTracker:
    """In-memory stand-in for TrackerClient that echoes drafts back.

    With ``echo_attachments`` off it behaves like the real tracker: saved
    drafts list only attachments whose upload finished, under fresh keys.
    """

    def __init__(self):
        self.drafts: dict[str, Draft] = {}
        self.next_id = "d1"
        self.echo_attachments = True

        self.saved: list[tuple[Draft, bool]] = []
        self.save_errors: list[Exception] = []
        self.save_gate: asyncio.Event | None = None

        self.attached: list[tuple[str | None, str, str]] = []
        self.attach_error: Exception | None = None
        self.attach_gate: asyncio.Event | None = None
        self.uploaded: list[str] = []

        self.created: list[Draft] = []
        self.create_error: Exception | None = None

    async def load_draft(self, draft_id: str) -> Draft:
        if draft_id not in self.drafts:
            raise ApiError("Cannot load issue draft", 404, "Not found")
        return self.drafts[draft_id]

    async def save_draft(self, draft: Draft, omit_fields: bool = False) -> Draft:
        self.saved.append((draft, omit_fields))
        if self.save_gate is not None:
            await self.save_gate.wait()
        if self.save_errors:
            raise self.save_errors.pop(0)
        saved = replace(draft, id=draft.id or self.next_id)
        if not self.echo_attachments:
            saved = replace(saved, attachments=tuple(
                Attachment(url=a.url, name=a.name)
                for a in draft.attachments if a.url in self.uploaded
            ))
        self.drafts[saved.id] = saved
        return saved

    async def attach_file(self, issue_id: str | None, file_url: str, file_name: str) -> None:
        self.attached.append((issue_id, file_url, file_name))
        if self.attach_gate is not None:
            await self.attach_gate.wait()
        if self.attach_error is not None:
            raise self.attach_error
        self.uploaded.append(file_url)

    async def create_issue(self, draft: Draft) -> CreatedIssue:
        self.created.append(draft)
        if self.create_error is not None:
            raise self.create_error
        return CreatedIssue(id="2-1", id_readable="DEMO-1", summary=draft.summary)

    async def close(self) -> None:
        pass


class FakePicker:
    """Returns a prepared attachment, or fails like a cancelled picker."""

    def __init__(self, attachment: Attachment | None = None):
        self.attachment = attachment or Attachment(url="/tmp/photo.jpg", name="photo.jpg")
        self.error: Exception | None = None
        self.modes: list[str] = []

    async def acquire_file(self, mode: str) -> Attachment:
        self.modes.append(mode)
        if self.error is not None:
            raise self.error
        return self.attachment


@pytest.fixture
def project_not_found() -> ApiError:
    """Error the tracker returns when a draft references a deleted project."""
    return ApiError(
        "Cannot update issue draft",
        status_code=404,
        error_description="Can't find entity with id 0-42",
    )


@pytest.fixture
def tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def picker() -> FakePicker:
    return FakePicker()


@pytest.fixture
def synchronizer(tracker, store, notifier) -> DraftSynchronizer:
    return DraftSynchronizer(tracker, store, notifier)


@pytest.fixture
def coordinator(tracker, synchronizer, picker, notifier) -> AttachmentUploadCoordinator:
    return AttachmentUploadCoordinator(tracker, synchronizer, picker, notifier)


@pytest.fixture
def cancelled_picker() -> FakePicker:
    fake = FakePicker()
    fake.error = FileAcquisitionError("User cancelled image picker")
    return fake


@pytest.fixture
def submission(tracker, synchronizer, coordinator, notifier) -> IssueSubmissionController:
    return IssueSubmissionController(tracker, synchronizer, coordinator, notifier)
