"""
Local Key-Value Store
=====================
Durable storage for the two logical records the app keeps on the device:

    user_profile  -> UserProfile JSON object
    check_ins     -> JSON array of CheckIn objects

Each key is one file in the storage directory. Writes go to a temp file
in the same directory followed by ``os.replace``, so a reader sees either
the old payload or the new one, never half of each. The store does not
retry; callers decide what a failure means.
"""

from __future__ import annotations

import asyncio
import os
import re
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Optional

from app.config import get_settings

PROFILE_KEY = "user_profile"
CHECK_INS_KEY = "check_ins"

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class StorageError(Exception):
    """Underlying read or write failed (disk unavailable, permissions, quota)."""


class DataCorruptionError(StorageError):
    """A stored payload exists but cannot be parsed."""

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Corrupt payload under '{key}': {reason}")


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class JsonFileStore:
    """Async get/set/remove over one file per key."""

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    async def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        return await asyncio.to_thread(self._read, path)

    async def set(self, key: str, value: str) -> None:
        path = self._path(key)
        await asyncio.to_thread(self._write, path, value)

    async def remove(self, key: str) -> None:
        path = self._path(key)
        await asyncio.to_thread(self._unlink, path)

    # ------------------------------------------------------------------
    # Blocking helpers (run in a worker thread)
    # ------------------------------------------------------------------

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._dir / f"{key}.json"

    @staticmethod
    def _read(path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Failed to read {path.name}: {exc}") from exc

    def _write(self, path: Path, value: str) -> None:
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=f".{path.stem}-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(value)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                # Leave no stray temp files behind a failed write
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise StorageError(f"Failed to write {path.name}: {exc}") from exc

    @staticmethod
    def _unlink(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to remove {path.name}: {exc}") from exc


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------


@lru_cache
def get_store() -> JsonFileStore:
    settings = get_settings()
    return JsonFileStore(settings.storage_dir)
