"""
infrastructure.persistence.json_file_store - JSON file backed storage port.

One file holds a JSON object mapping keys to values. File I/O runs in a
worker thread so the event loop is never blocked; writes go to a temporary
file that replaces the original atomically.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Union

import structlog

from miniclawd.domain.exceptions import StorageError, StorageKeyNotFound

logger = structlog.get_logger(__name__)


class JsonFileStore:
    """Key/value storage persisted as a single JSON document."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def load(self, key: str) -> Any:
        """Return the value stored under ``key``.

        Raises StorageKeyNotFound when the file or the key is missing and
        StorageError when the file cannot be read or decoded.
        """
        async with self._lock:
            data = await asyncio.to_thread(self._read)

        if key not in data:
            raise StorageKeyNotFound(key)
        return data[key]

    async def save(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, keeping the other keys intact."""
        async with self._lock:
            try:
                data = await asyncio.to_thread(self._read)
            except StorageKeyNotFound:
                data = {}

            data[key] = value
            await asyncio.to_thread(self._write, data)

        logger.debug("Saved key", path=str(self.path), key=key)

    def _read(self) -> Dict[str, Any]:
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise StorageKeyNotFound(str(self.path)) from None
        except OSError as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e

        if not content.strip():
            return {}

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt JSON in {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StorageError(f"Expected a JSON object in {self.path}, got {type(data).__name__}")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, ensure_ascii=False, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Cannot write {self.path}: {e}") from e
