"""Persistent key-value storage for draft and project identifiers.

Values are plain strings keyed by string, and survive process restarts
when the file-backed store is used.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Protocol

import aiofiles

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Async string key-value storage."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class FileKeyValueStore:
    """Key-value store persisted as a JSON object in a single file."""

    def __init__(self, path: Path | str):
        """Initialize the store.

        Args:
            path: JSON file holding the stored values
        """
        self.path = Path(path).expanduser()

        # Serializes read-modify-write cycles on the file
        self._lock: asyncio.Lock = asyncio.Lock()

    async def _read(self) -> dict[str, str]:
        try:
            async with aiofiles.open(self.path) as f:
                content = await f.read()
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            logger.warning(f"Storage file {self.path} is corrupted, starting empty")
            return {}
        return data if isinstance(data, dict) else {}

    async def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.path, "w") as f:
            await f.write(json.dumps(data, indent=2))

    async def get(self, key: str) -> str | None:
        async with self._lock:
            data = await self._read()
        value = data.get(key)
        return None if value is None else str(value)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data = await self._read()
            data[key] = value
            await self._write(data)

    async def delete(self, key: str) -> None:
        async with self._lock:
            data = await self._read()
            if key in data:
                del data[key]
                await self._write(data)


class MemoryKeyValueStore:
    """In-process key-value store."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.values: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def set(self, key: str, value: str) -> None:
        self.values[key] = value

    async def delete(self, key: str) -> None:
        self.values.pop(key, None)
