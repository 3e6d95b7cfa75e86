"""Draft synchronization between local edits and the tracker.

The synchronizer owns the working ``Draft``. It recovers a persisted draft
at startup, pushes edits to the server and adopts the server's answer, and
remembers the draft id and last used project across restarts.

Pushes are serialized: while one is in flight, later requests wait and
collapse into a single push of the newest local state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Collection

from .models import (
    DRAFT_ID_STORAGE_KEY,
    PROJECT_ID_STORAGE_KEY,
    CustomFieldValue,
    Draft,
    Project,
)
from .tracker_client import ApiError
from .usage import UsageTracker

if TYPE_CHECKING:
    from .notifications import Notifier
    from .storage import KeyValueStore
    from .tracker_client import TrackerClient

logger = logging.getLogger(__name__)


def merge_saved_draft(
    sent: Draft,
    current: Draft,
    saved: Draft,
    pending: Collection[str] = (),
) -> Draft:
    """Combine the server's answer with edits made while the push was in flight.

    Args:
        sent: Snapshot that was pushed
        current: Local draft at the time the answer arrived
        saved: Draft returned by the server
        pending: Keys of attachments whose upload is still in flight; the
            server does not list them yet

    Returns:
        The server draft, with any attribute edited locally since ``sent``
        taken from ``current`` instead
    """
    sent_keys = {a.key for a in sent.attachments}
    local = tuple(
        a for a in current.attachments if a.key not in sent_keys or a.key in pending
    )
    local_keys = {a.key for a in local}
    remote = tuple(a for a in saved.attachments if a.key not in local_keys)

    return replace(
        saved,
        summary=current.summary if current.summary != sent.summary else saved.summary,
        description=(
            current.description if current.description != sent.description else saved.description
        ),
        project=current.project if current.project is not sent.project else saved.project,
        fields=current.fields if current.fields is not sent.fields else saved.fields,
        attachments=local + remote,
    )


class DraftSynchronizer:
    """Keeps the server-side draft in step with the local one."""

    def __init__(
        self,
        api: TrackerClient,
        store: KeyValueStore,
        notifier: Notifier,
        draft_id: str | None = None,
        usage: UsageTracker | None = None,
    ):
        """Initialize the synchronizer.

        Args:
            api: Tracker client
            store: Persistent storage for the draft and project ids
            notifier: Sink for user-facing failures
            draft_id: Draft to open instead of the persisted one
            usage: Usage event tracker
        """
        self.api = api
        self.store = store
        self.notifier = notifier
        self.predefined_draft_id = draft_id
        self.usage = usage or UsageTracker()
        self.draft = Draft()

        # Attachments shown locally whose upload has not finished
        self.pending_attachments: set[str] = set()

        self._push_lock = asyncio.Lock()
        self._requested = 0
        self._completed = 0
        self._pending_project_only = False
        self._last_push_ok = False

    # --- Startup ---

    async def initialize(self) -> None:
        """Recover the persisted draft, then apply the sticky project."""
        draft_id = self.predefined_draft_id or await self._store_get(DRAFT_ID_STORAGE_KEY)
        if draft_id:
            await self._load_draft(draft_id)
        await self._load_stored_project()

    async def _load_draft(self, draft_id: str) -> None:
        try:
            self.draft = await self.api.load_draft(draft_id)
            logger.info(f"Recovered issue draft {draft_id}")
        except Exception as e:
            logger.warning(f"Draft {draft_id} cannot be loaded, starting a new one: {e}")
            await self._store_delete(DRAFT_ID_STORAGE_KEY)
            self.draft = replace(self.draft, id=None)

    async def _load_stored_project(self) -> None:
        project_id = await self._store_get(PROJECT_ID_STORAGE_KEY)
        if not project_id:
            return

        current = self.draft.project
        if current is not None and current.id == project_id:
            await self.push_draft()
            return

        # Fields of another project would be rejected
        self.draft = replace(self.draft, project=Project(id=project_id))
        await self.push_draft(project_only=current is not None)

    # --- Pushing ---

    async def push_draft(self, project_only: bool = False) -> bool:
        """Send the local draft and adopt the server's representation.

        Args:
            project_only: Leave custom fields out of the payload

        Returns:
            True if the server accepted the draft
        """
        if not self.draft.project_id:
            return False

        self._requested += 1
        ticket = self._requested
        self._pending_project_only = self._pending_project_only or project_only

        async with self._push_lock:
            if self._completed >= ticket:
                # A later push already carried this edit
                return self._last_push_ok

            covered = self._requested
            omit_fields = self._pending_project_only
            self._pending_project_only = False

            ok = await self._send(omit_fields)
            self._completed = covered
            self._last_push_ok = ok
            return ok

    async def _send(self, omit_fields: bool) -> bool:
        sent = self.draft
        if not sent.project_id:
            return False

        logger.debug(f"Pushing draft {sent.id or '<new>'} (omit_fields={omit_fields})")
        try:
            saved = await self.api.save_draft(sent, omit_fields=omit_fields)
        except ApiError as e:
            if e.is_entity_not_found():
                logger.warning(f"Project {sent.project_id} no longer exists")
                # A project picked while this push was in flight stays selected
                if self.draft.project is sent.project:
                    self.draft = replace(self.draft, project=None)
                return False
            await self.notifier.notify_error("Cannot update issue draft", e)
            return False
        except Exception as e:
            await self.notifier.notify_error("Cannot update issue draft", e)
            return False

        self.draft = merge_saved_draft(sent, self.draft, saved, self.pending_attachments)

        if sent.id is None and saved.id:
            logger.info(f"Remembering new issue draft {saved.id}")
            await self._store_set(DRAFT_ID_STORAGE_KEY, saved.id)
        return True

    # --- Edits ---

    def edit_summary(self, summary: str | None) -> None:
        self.draft = replace(self.draft, summary=summary)

    def edit_description(self, description: str | None) -> None:
        self.draft = replace(self.draft, description=description)

    async def set_project(self, project: Project) -> None:
        """Switch the draft to another project and remember it as the default."""
        self.draft = replace(self.draft, project=project)
        await self.usage.track_event("Change project")
        await self.push_draft(project_only=True)
        if project.id:
            await self._store_set(PROJECT_ID_STORAGE_KEY, project.id)

    async def set_field_value(self, field: CustomFieldValue, value: Any) -> None:
        """Change one custom field's value and push the draft."""
        self.draft = self.draft.with_field_value(field.key, value)
        await self.usage.track_event("Change field value")
        await self.push_draft()

    async def leave(self) -> None:
        """Push pending edits when the screen is dismissed."""
        await self.push_draft()

    async def forget_draft(self) -> None:
        """Drop the persisted draft id so the next screen starts fresh."""
        await self._store_delete(DRAFT_ID_STORAGE_KEY)

    # --- Storage ---

    async def _store_get(self, key: str) -> str | None:
        try:
            return await self.store.get(key)
        except OSError as e:
            logger.warning(f"Cannot read {key}: {e}")
            return None

    async def _store_set(self, key: str, value: str) -> None:
        try:
            await self.store.set(key, value)
        except OSError as e:
            logger.warning(f"Cannot store {key}: {e}")

    async def _store_delete(self, key: str) -> None:
        try:
            await self.store.delete(key)
        except OSError as e:
            logger.warning(f"Cannot delete {key}: {e}")
