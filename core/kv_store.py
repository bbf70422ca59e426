"""Asynchronous string key-value stores backing game persistence."""
from __future__ import annotations

import asyncio
import json
import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol


logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the key-value backend cannot complete a request."""


class KeyValueStore(Protocol):
    """Capability expected from a persistence backend."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Dictionary backed store, used for tests and when no data file is configured."""

    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Value for {key!r} must be a string")
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def export(self) -> Dict[str, str]:
        return dict(self._data)


class JsonFileKeyValueStore:
    """Persist every key as an entry of one JSON object on disk."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            raise StorageError(f"Cannot read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"Invalid store file {self.path}")
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def _write_all(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with tmp_path.open("w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2)
            tmp_path.replace(self.path)
        except OSError as exc:
            raise StorageError(f"Cannot write {self.path}: {exc}") from exc

    def _get_sync(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read_all().get(key)

    def _set_sync(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def _remove_sync(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if key not in data:
                return
            data.pop(key)
            self._write_all(data)

    # ------------------------------------------------------------------
    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._get_sync, key)

    async def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Value for {key!r} must be a string")
        await asyncio.to_thread(self._set_sync, key, value)
        logger.debug("Stored %s (%d chars) in %s", key, len(value), self.path)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._remove_sync, key)


__all__ = [
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "StorageError",
]
