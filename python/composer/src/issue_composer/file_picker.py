"""File acquisition for attachments.

A picker returns a candidate ``Attachment`` for the requested source
("library" or "camera"), or raises ``FileAcquisitionError``.
"""

import asyncio
from collections import deque
from pathlib import Path
from typing import Protocol

from .models import Attachment, PickerMode


class FileAcquisitionError(Exception):
    """No file could be obtained (cancelled, missing, unreadable)."""


class FilePicker(Protocol):
    async def acquire_file(self, mode: PickerMode) -> Attachment: ...


class DirectoryFilePicker:
    """Picks the most recently modified file of a directory per source."""

    def __init__(self, library_dir: Path | str, camera_dir: Path | str):
        self.dirs: dict[str, Path] = {
            "library": Path(library_dir).expanduser(),
            "camera": Path(camera_dir).expanduser(),
        }

    async def acquire_file(self, mode: PickerMode) -> Attachment:
        directory = self.dirs.get(mode)
        if directory is None:
            raise FileAcquisitionError(f"Unknown picker mode: {mode}")
        latest = await asyncio.to_thread(self._latest_file, directory)
        return Attachment(url=str(latest.resolve()), name=latest.name)

    @staticmethod
    def _latest_file(directory: Path) -> Path:
        if not directory.is_dir():
            raise FileAcquisitionError(f"{directory} is not a directory")

        candidates = [
            p for p in directory.iterdir()
            if p.is_file() and not p.name.startswith(".")
        ]
        if not candidates:
            raise FileAcquisitionError(f"No files in {directory}")

        return max(candidates, key=lambda p: p.stat().st_mtime)


class QueuedFilePicker:
    """Hands out explicitly chosen files in order, ignoring the mode."""

    def __init__(self, paths: list[Path | str]):
        self._paths: deque[Path] = deque(Path(p).expanduser() for p in paths)

    def __len__(self) -> int:
        return len(self._paths)

    async def acquire_file(self, mode: PickerMode) -> Attachment:
        if not self._paths:
            raise FileAcquisitionError("No more files to attach")
        path = self._paths.popleft()
        if not path.is_file():
            raise FileAcquisitionError(f"{path} does not exist")
        return Attachment(url=str(path.resolve()), name=path.name)
