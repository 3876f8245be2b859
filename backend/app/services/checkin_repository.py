"""
Check-in Repository
===================
The only code that mutates stored journal data.

The collection lives under one key as a JSON array. Every write is a
read-modify-write of the whole array, so save/delete/clear_all (and the
onboarding profile write) share one asyncio.Lock: without it, a "save
check-in" racing a background "attach insight" would each read the old
array and the second write would drop the first one's change.

Inside a write the array is indexed by ``date``, which is the natural
key. That is what makes a second save on the same day an update rather
than a duplicate.

Corrupt collection JSON reads as an empty history with a warning, and
the next successful write replaces it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from typing import Optional

from pydantic import ValidationError

from app.db.store import (
    CHECK_INS_KEY,
    PROFILE_KEY,
    DataCorruptionError,
    JsonFileStore,
    get_store,
)
from app.models.checkin import (
    JOURNAL_MAX_LENGTH,
    MOOD_MAX,
    MOOD_MIN,
    CheckIn,
    UserProfile,
)
from app.services.clock import Clock, local_today

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class CheckInValidationError(ValueError):
    """A check-in broke a write-side invariant. Nothing was written."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class CheckInExistsError(Exception):
    """Today's check-in is already saved and is read-only for the day."""

    def __init__(self, existing: CheckIn) -> None:
        self.existing = existing
        super().__init__(f"A check-in already exists for {existing.date.isoformat()}")


def validate_checkin(entry: CheckIn) -> None:
    """Raise CheckInValidationError if *entry* must not be persisted."""
    if isinstance(entry.mood, bool) or not isinstance(entry.mood, int):
        raise CheckInValidationError("mood", "must be an integer")
    if not MOOD_MIN <= entry.mood <= MOOD_MAX:
        raise CheckInValidationError("mood", f"must be between {MOOD_MIN} and {MOOD_MAX}")
    if not entry.journal or not entry.journal.strip():
        raise CheckInValidationError("journal", "must not be empty")
    if len(entry.journal) > JOURNAL_MAX_LENGTH:
        raise CheckInValidationError(
            "journal", f"must be at most {JOURNAL_MAX_LENGTH} characters"
        )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CheckInRepository:
    """Typed read/write API over the local store."""

    def __init__(self, store: JsonFileStore | None = None, clock: Clock = local_today) -> None:
        self._store = store or get_store()
        self._clock = clock
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def _write_lock(self) -> asyncio.Lock:
        # One lock per running loop: the repository outlives any single loop
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_all(self, *, strict: bool = False) -> list[CheckIn]:
        """All check-ins, most recent date first.

        With ``strict=True`` a corrupt payload raises DataCorruptionError
        instead of reading as empty.
        """
        try:
            index = await self._load_index()
        except DataCorruptionError as exc:
            if strict:
                raise
            logger.warning("Check-in history unreadable, treating as empty: %s", exc.reason)
            return []
        return _sorted_desc(index.values())

    async def get_by_date(self, day: date) -> Optional[CheckIn]:
        for entry in await self.get_all():
            if entry.date == day:
                return entry
        return None

    async def get_today(self) -> Optional[CheckIn]:
        return await self.get_by_date(self._clock())

    async def get_profile(self) -> Optional[UserProfile]:
        raw = await self._store.get(PROFILE_KEY)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored profile is not valid JSON, ignoring it")
            return None
        if not isinstance(data, dict):
            logger.warning("Stored profile is not a JSON object, ignoring it")
            return None
        try:
            return UserProfile.model_validate(data)
        except ValidationError:
            logger.warning("Stored profile has unexpected field types, ignoring it")
            return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save(self, entry: CheckIn) -> None:
        """Insert *entry*, or replace the existing entry for the same date."""
        validate_checkin(entry)

        async with self._write_lock:
            index = await self._load_index_for_write()
            replaced = entry.date in index
            index[entry.date] = entry
            await self._persist(index)

        logger.info(
            "%s check-in for %s (id=%s)",
            "Updated" if replaced else "Saved",
            entry.date.isoformat(),
            entry.id,
        )

    async def insert_if_absent(self, entry: CheckIn) -> None:
        """Insert *entry* unless its date already has one.

        The check and the write happen under the write lock, so of two
        overlapping inserts for one day exactly one wins and the other
        raises CheckInExistsError.
        """
        validate_checkin(entry)

        async with self._write_lock:
            index = await self._load_index_for_write()
            existing = index.get(entry.date)
            if existing is not None:
                raise CheckInExistsError(existing)
            index[entry.date] = entry
            await self._persist(index)

        logger.info("Saved check-in for %s (id=%s)", entry.date.isoformat(), entry.id)

    async def update(self, day: date, changes: dict) -> Optional[CheckIn]:
        """Apply *changes* to the stored entry for *day* and persist it.

        Returns the updated entry, or None when there is no entry for that
        day (nothing is written then).
        """
        async with self._write_lock:
            index = await self._load_index_for_write()
            current = index.get(day)
            if current is None:
                logger.debug("Update ignored, no check-in for %s", day.isoformat())
                return None
            updated = current.model_copy(update=changes)
            validate_checkin(updated)
            index[day] = updated
            await self._persist(index)

        logger.info("Updated check-in for %s (id=%s)", day.isoformat(), updated.id)
        return updated

    async def delete(self, checkin_id: str) -> None:
        """Remove the entry with *checkin_id*. Absent ids are a no-op."""
        async with self._write_lock:
            index = await self._load_index_for_write()
            match = next((d for d, e in index.items() if e.id == checkin_id), None)
            if match is None:
                logger.debug("Delete ignored, no check-in with id %s", checkin_id)
                return
            del index[match]
            await self._persist(index)

        logger.info("Deleted check-in %s", checkin_id)

    async def clear_all(self) -> None:
        """Drop the whole history and the profile ("add new user")."""
        async with self._write_lock:
            await self._store.remove(CHECK_INS_KEY)
            await self._store.remove(PROFILE_KEY)

        logger.info("Cleared all check-ins and the user profile")

    async def save_profile(self, profile: UserProfile) -> None:
        async with self._write_lock:
            await self._store.set(
                PROFILE_KEY,
                profile.model_dump_json(by_alias=True),
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load_index(self) -> dict[date, CheckIn]:
        raw = await self._store.get(CHECK_INS_KEY)
        if raw is None or not raw.strip():
            return {}

        try:
            items = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise DataCorruptionError(CHECK_INS_KEY, f"invalid JSON ({exc.msg})") from exc

        if not isinstance(items, list):
            raise DataCorruptionError(CHECK_INS_KEY, "expected a JSON array")

        index: dict[date, CheckIn] = {}
        for position, item in enumerate(items):
            try:
                entry = CheckIn.model_validate(item)
            except ValidationError:
                logger.warning("Skipping unreadable check-in at position %d", position)
                continue
            # Older payloads could hold duplicates; keep the newest per day
            current = index.get(entry.date)
            if current is None or entry.timestamp >= current.timestamp:
                index[entry.date] = entry
        return index

    async def _load_index_for_write(self) -> dict[date, CheckIn]:
        try:
            return await self._load_index()
        except DataCorruptionError as exc:
            logger.warning("Overwriting unreadable check-in history: %s", exc.reason)
            return {}

    async def _persist(self, index: dict[date, CheckIn]) -> None:
        payload = [
            entry.model_dump(mode="json", by_alias=True)
            for entry in _sorted_desc(index.values())
        ]
        await self._store.set(CHECK_INS_KEY, json.dumps(payload, ensure_ascii=False))


def _sorted_desc(entries) -> list[CheckIn]:
    return sorted(entries, key=lambda e: (e.date, e.timestamp), reverse=True)


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_repository: CheckInRepository | None = None


def get_checkin_repository() -> CheckInRepository:
    global _default_repository
    if _default_repository is None:
        _default_repository = CheckInRepository()
    return _default_repository
