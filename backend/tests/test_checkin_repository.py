"""
Tests for CheckInRepository
===========================
Covers:
- Round trip: save then get_by_date returns an equal CheckIn
- Idempotent save: same date replaces, collection size unchanged
- Uniqueness: any sequence of saves leaves at most one entry per date
- Validation: mood outside 1-10, blank journal, over-long journal rejected before I/O
- Ordering: get_all is newest date first regardless of save order
- Stored payload uses camelCase keys
- Delete: removes by id; unknown id is a no-op
- clear_all removes check-ins and profile
- Corrupt payloads degrade to empty (strict mode raises)
- get_today follows the injected clock
- Profile read defaults and onboarding write
- Concurrent saves do not lose updates
- insert_if_absent: one winner per day, even when overlapping
- update: merges under the lock; no-op (and no re-insert) once deleted
- The write lock works across separate event loops

Run: pytest tests/test_checkin_repository.py -v
"""

from __future__ import annotations

import asyncio
import json
import uuid
from datetime import date, timedelta

import pytest

from app.db.store import CHECK_INS_KEY, PROFILE_KEY, DataCorruptionError, JsonFileStore
from app.models.checkin import CheckIn, UserProfile
from app.services.checkin_repository import (
    CheckInExistsError,
    CheckInRepository,
    CheckInValidationError,
)

TODAY = date(2026, 3, 10)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _entry(day: date, mood: int = 6, journal: str = "A decent day.", **kwargs) -> CheckIn:
    return CheckIn(
        id=kwargs.pop("id", str(uuid.uuid4())),
        date=day,
        mood=mood,
        journal=journal,
        timestamp=kwargs.pop("timestamp", 1_773_000_000_000),
        **kwargs,
    )


@pytest.fixture
def store(tmp_path) -> JsonFileStore:
    return JsonFileStore(tmp_path)


@pytest.fixture
def repo(store) -> CheckInRepository:
    return CheckInRepository(store=store, clock=lambda: TODAY)


# ---------------------------------------------------------------------------
# Save / read
# ---------------------------------------------------------------------------

class TestSaveAndRead:

    @pytest.mark.asyncio
    async def test_round_trip(self, repo):
        entry = _entry(TODAY, mood=8, journal="Went for a long walk.", ai_insight="Nice!")
        await repo.save(entry)

        loaded = await repo.get_by_date(TODAY)
        assert loaded == entry

    @pytest.mark.asyncio
    async def test_get_by_date_missing_returns_none(self, repo):
        await repo.save(_entry(TODAY))
        assert await repo.get_by_date(TODAY - timedelta(days=1)) is None

    @pytest.mark.asyncio
    async def test_empty_store_returns_empty_list(self, repo):
        assert await repo.get_all() == []

    @pytest.mark.asyncio
    async def test_get_all_newest_first(self, repo):
        days = [TODAY - timedelta(days=n) for n in (3, 0, 5, 1)]
        for d in days:
            await repo.save(_entry(d))

        result = await repo.get_all()
        assert [c.date for c in result] == sorted(days, reverse=True)

    @pytest.mark.asyncio
    async def test_get_today_uses_clock(self, store):
        repo = CheckInRepository(store=store, clock=lambda: date(2026, 1, 2))
        await repo.save(_entry(date(2026, 1, 1), mood=3))
        assert await repo.get_today() is None

        await repo.save(_entry(date(2026, 1, 2), mood=9))
        today = await repo.get_today()
        assert today is not None
        assert today.mood == 9

    @pytest.mark.asyncio
    async def test_stored_payload_uses_camel_case(self, repo, store):
        await repo.save(_entry(TODAY, ai_insight="Keep going"))

        payload = json.loads(await store.get(CHECK_INS_KEY))
        assert payload[0]["aiInsight"] == "Keep going"
        assert payload[0]["date"] == TODAY.isoformat()
        assert "ai_insight" not in payload[0]


class TestOnePerDay:

    @pytest.mark.asyncio
    async def test_same_date_save_replaces(self, repo):
        await repo.save(_entry(TODAY - timedelta(days=1)))
        await repo.save(_entry(TODAY, mood=4, journal="first"))
        before = await repo.get_all()

        replacement = _entry(TODAY, mood=7, journal="second")
        await repo.save(replacement)
        after = await repo.get_all()

        assert len(after) == len(before)
        todays = [c for c in after if c.date == TODAY]
        assert todays == [replacement]

    @pytest.mark.asyncio
    async def test_any_save_sequence_keeps_dates_unique(self, repo):
        offsets = [0, 1, 0, 2, 1, 1, 3, 0, 2]
        for i, n in enumerate(offsets):
            await repo.save(_entry(TODAY - timedelta(days=n), mood=(i % 10) + 1))

        result = await repo.get_all()
        dates = [c.date for c in result]
        assert len(dates) == len(set(dates)) == 4

    @pytest.mark.asyncio
    async def test_legacy_duplicates_collapse_to_newest(self, repo, store):
        older = _entry(TODAY, mood=2, timestamp=1000).model_dump(mode="json", by_alias=True)
        newer = _entry(TODAY, mood=9, timestamp=2000).model_dump(mode="json", by_alias=True)
        await store.set(CHECK_INS_KEY, json.dumps([older, newer]))

        result = await repo.get_all()
        assert len(result) == 1
        assert result[0].mood == 9


class TestValidation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mood", [0, 11, -3, 100])
    async def test_mood_out_of_range_rejected(self, repo, store, mood):
        with pytest.raises(CheckInValidationError) as exc_info:
            await repo.save(_entry(TODAY, mood=mood))

        assert exc_info.value.field == "mood"
        assert await store.get(CHECK_INS_KEY) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mood", [1, 10])
    async def test_mood_bounds_accepted(self, repo, mood):
        await repo.save(_entry(TODAY, mood=mood))
        assert (await repo.get_today()).mood == mood

    @pytest.mark.asyncio
    @pytest.mark.parametrize("journal", ["", "   ", "\n\t"])
    async def test_blank_journal_rejected(self, repo, store, journal):
        with pytest.raises(CheckInValidationError) as exc_info:
            await repo.save(_entry(TODAY, journal=journal))

        assert exc_info.value.field == "journal"
        assert await store.get(CHECK_INS_KEY) is None

    @pytest.mark.asyncio
    async def test_journal_over_500_chars_rejected(self, repo):
        with pytest.raises(CheckInValidationError):
            await repo.save(_entry(TODAY, journal="x" * 501))

    @pytest.mark.asyncio
    async def test_invalid_save_leaves_existing_data_untouched(self, repo):
        original = _entry(TODAY, mood=5)
        await repo.save(original)

        with pytest.raises(CheckInValidationError):
            await repo.save(_entry(TODAY, mood=0))

        assert await repo.get_all() == [original]


# ---------------------------------------------------------------------------
# Delete / clear
# ---------------------------------------------------------------------------

class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_by_id(self, repo):
        keep = _entry(TODAY - timedelta(days=1))
        drop = _entry(TODAY)
        await repo.save(keep)
        await repo.save(drop)

        await repo.delete(drop.id)

        assert await repo.get_all() == [keep]

    @pytest.mark.asyncio
    async def test_delete_unknown_id_is_noop(self, repo):
        entry = _entry(TODAY)
        await repo.save(entry)

        await repo.delete("does-not-exist")

        assert await repo.get_all() == [entry]

    @pytest.mark.asyncio
    async def test_delete_on_empty_store(self, repo, store):
        await repo.delete("anything")
        assert await store.get(CHECK_INS_KEY) is None


class TestClearAll:

    @pytest.mark.asyncio
    async def test_clear_all_removes_checkins_and_profile(self, repo, store):
        await repo.save(_entry(TODAY))
        await repo.save_profile(UserProfile(name="Sam", age=29, goal="Better sleep quality"))

        await repo.clear_all()

        assert await store.get(CHECK_INS_KEY) is None
        assert await store.get(PROFILE_KEY) is None
        assert await repo.get_all() == []
        assert await repo.get_profile() is None


# ---------------------------------------------------------------------------
# Corruption
# ---------------------------------------------------------------------------

class TestCorruption:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", ["{not json", '{"date": "2026-03-10"}', "42"])
    async def test_corrupt_payload_reads_as_empty(self, repo, store, payload):
        await store.set(CHECK_INS_KEY, payload)
        assert await repo.get_all() == []
        assert await repo.get_today() is None

    @pytest.mark.asyncio
    async def test_strict_mode_raises(self, repo, store):
        await store.set(CHECK_INS_KEY, "{not json")
        with pytest.raises(DataCorruptionError):
            await repo.get_all(strict=True)

    @pytest.mark.asyncio
    async def test_save_after_corruption_starts_fresh(self, repo, store):
        await store.set(CHECK_INS_KEY, "{not json")
        entry = _entry(TODAY)

        await repo.save(entry)

        assert await repo.get_all(strict=True) == [entry]

    @pytest.mark.asyncio
    async def test_unreadable_element_skipped(self, repo, store):
        good = _entry(TODAY).model_dump(mode="json", by_alias=True)
        await store.set(CHECK_INS_KEY, json.dumps([{"mood": "??"}, good, "junk"]))

        result = await repo.get_all()
        assert len(result) == 1
        assert result[0].id == good["id"]

    @pytest.mark.asyncio
    async def test_null_insight_reads_as_empty_string(self, repo, store):
        raw = _entry(TODAY).model_dump(mode="json", by_alias=True)
        raw["aiInsight"] = None
        await store.set(CHECK_INS_KEY, json.dumps([raw]))

        assert (await repo.get_today()).ai_insight == ""


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

class TestProfile:

    @pytest.mark.asyncio
    async def test_missing_profile_returns_none(self, repo):
        assert await repo.get_profile() is None

    @pytest.mark.asyncio
    async def test_missing_fields_get_defaults(self, repo, store):
        await store.set(PROFILE_KEY, json.dumps({"age": 31}))

        profile = await repo.get_profile()
        assert profile.name == "Friend"
        assert profile.goal == "Better wellbeing"
        assert profile.age == 31

    @pytest.mark.asyncio
    async def test_blank_name_gets_default(self, repo, store):
        await store.set(PROFILE_KEY, json.dumps({"name": "  ", "goal": "Build healthy habits"}))

        profile = await repo.get_profile()
        assert profile.name == "Friend"
        assert profile.goal == "Build healthy habits"

    @pytest.mark.asyncio
    async def test_corrupt_profile_returns_none(self, repo, store):
        await store.set(PROFILE_KEY, "{oops")
        assert await repo.get_profile() is None

    @pytest.mark.asyncio
    async def test_onboarding_writer_format_is_readable(self, repo, store):
        # Same JSON the mobile onboarding screen writes
        await store.set(PROFILE_KEY, json.dumps({
            "name": "Priya",
            "age": 24,
            "goal": "Reduce stress & anxiety",
            "createdAt": "2026-03-01T09:30:00.000Z",
        }))

        profile = await repo.get_profile()
        assert profile.name == "Priya"
        assert profile.created_at.year == 2026

    @pytest.mark.asyncio
    async def test_save_profile_writes_camel_case(self, repo, store):
        await repo.save_profile(UserProfile(name="Lee", age=40, goal="Better sleep quality"))

        raw = json.loads(await store.get(PROFILE_KEY))
        assert raw["name"] == "Lee"
        assert "createdAt" in raw
        assert (await repo.get_profile()).goal == "Better sleep quality"


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------

class TestConcurrency:

    @pytest.mark.asyncio
    async def test_overlapping_saves_keep_every_entry(self, repo):
        entries = [_entry(TODAY - timedelta(days=n), mood=(n % 10) + 1) for n in range(12)]

        await asyncio.gather(*(repo.save(e) for e in entries))

        result = await repo.get_all()
        assert len(result) == 12
        assert {c.id for c in result} == {e.id for e in entries}

    @pytest.mark.asyncio
    async def test_overlapping_save_and_delete(self, repo):
        doomed = _entry(TODAY - timedelta(days=1))
        await repo.save(doomed)
        newcomer = _entry(TODAY)

        await asyncio.gather(repo.save(newcomer), repo.delete(doomed.id))

        assert await repo.get_all() == [newcomer]


# ---------------------------------------------------------------------------
# Insert-if-absent
# ---------------------------------------------------------------------------

class TestInsertIfAbsent:

    @pytest.mark.asyncio
    async def test_inserts_new_day(self, repo):
        entry = _entry(TODAY)

        await repo.insert_if_absent(entry)

        assert await repo.get_all() == [entry]

    @pytest.mark.asyncio
    async def test_existing_day_refused_and_untouched(self, repo):
        first = _entry(TODAY, mood=3, journal="first")
        await repo.save(first)

        with pytest.raises(CheckInExistsError) as exc_info:
            await repo.insert_if_absent(_entry(TODAY, mood=9, journal="second"))

        assert exc_info.value.existing == first
        assert await repo.get_all() == [first]

    @pytest.mark.asyncio
    async def test_overlapping_inserts_have_one_winner(self, repo):
        first = _entry(TODAY, mood=3, journal="first")
        second = _entry(TODAY, mood=9, journal="second")

        results = await asyncio.gather(
            repo.insert_if_absent(first),
            repo.insert_if_absent(second),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, CheckInExistsError)]
        assert len(errors) == 1
        stored = await repo.get_all()
        assert len(stored) == 1
        assert errors[0].existing == stored[0]

    @pytest.mark.asyncio
    async def test_invalid_entry_rejected(self, repo, store):
        with pytest.raises(CheckInValidationError):
            await repo.insert_if_absent(_entry(TODAY, mood=0))

        assert await store.get(CHECK_INS_KEY) is None


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

class TestUpdate:

    @pytest.mark.asyncio
    async def test_merges_changes(self, repo):
        entry = _entry(TODAY, id="today")
        await repo.save(entry)

        updated = await repo.update(TODAY, {"ai_insight": "Nice streak."})

        assert updated.ai_insight == "Nice streak."
        assert updated.id == "today"
        assert await repo.get_today() == updated

    @pytest.mark.asyncio
    async def test_missing_entry_returns_none_and_writes_nothing(self, repo, store):
        assert await repo.update(TODAY, {"ai_insight": "x"}) is None
        assert await store.get(CHECK_INS_KEY) is None

    @pytest.mark.asyncio
    async def test_delete_before_update_is_not_undone(self, repo):
        entry = _entry(TODAY, id="gone")
        await repo.save(entry)

        await asyncio.gather(repo.delete("gone"), repo.update(TODAY, {"ai_insight": "late"}))

        assert await repo.get_all() == []


# ---------------------------------------------------------------------------
# Event loops
# ---------------------------------------------------------------------------

class TestLockAcrossLoops:

    def test_repository_reused_across_event_loops(self, repo):
        async def overlapping_saves(offset: int) -> None:
            days = [TODAY - timedelta(days=offset + n) for n in range(5)]
            await asyncio.gather(*(repo.save(_entry(d)) for d in days))

        asyncio.run(overlapping_saves(0))
        asyncio.run(overlapping_saves(5))

        assert len(asyncio.run(repo.get_all())) == 10
