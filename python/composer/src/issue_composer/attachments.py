"""Optimistic attachment uploads with rollback."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .models import Attachment, PickerMode
from .usage import UsageTracker

if TYPE_CHECKING:
    from .draft_sync import DraftSynchronizer
    from .file_picker import FilePicker
    from .notifications import Notifier
    from .tracker_client import TrackerClient

logger = logging.getLogger(__name__)


class AttachmentUploadCoordinator:
    """Uploads one attachment at a time.

    The candidate is shown in the draft before the upload starts and is
    removed again if the upload fails. ``attaching`` holds the candidate
    while its upload is in flight.
    """

    def __init__(
        self,
        api: TrackerClient,
        synchronizer: DraftSynchronizer,
        picker: FilePicker,
        notifier: Notifier,
        usage: UsageTracker | None = None,
    ):
        self.api = api
        self.synchronizer = synchronizer
        self.picker = picker
        self.notifier = notifier
        self.usage = usage or UsageTracker()
        self.attaching: Attachment | None = None

    @property
    def is_attaching(self) -> bool:
        return self.attaching is not None

    async def attach_photo(self, mode: PickerMode = "library") -> bool:
        """Pick a file and upload it to the current draft.

        Args:
            mode: Pick from the photo library or the camera

        Returns:
            True if the file was attached
        """
        if self.attaching is not None:
            logger.debug("Attachment already in flight, ignoring request")
            return False

        try:
            candidate = await self.picker.acquire_file(mode)
        except Exception as e:
            await self.notifier.notify_error("ImagePicker error", e)
            return False

        sync = self.synchronizer
        sync.draft = sync.draft.with_attachment_prepended(candidate)
        self.attaching = candidate
        sync.pending_attachments.add(candidate.key)

        try:
            await self.api.attach_file(sync.draft.id, candidate.url, candidate.name)
        except Exception as e:
            await self.notifier.notify_error("Cannot attach file", e)
            sync.draft = sync.draft.without_attachment(candidate.key)
            return False
        finally:
            sync.pending_attachments.discard(candidate.key)
            self.attaching = None

        logger.info(f"Attached {candidate.name} to draft {sync.draft.id}")
        await self.usage.track_event("Attach image", "Success")
        return True
