"""
Tests for JsonFileStore
=======================
Covers:
- get on a missing key returns None
- set/get, overwrite, remove, remove of an absent key
- Invalid key names rejected with StorageError
- Atomic write leaves no temp files behind
- OS-level failures surface as StorageError
- get_store() builds the store from settings

Run: pytest tests/test_store.py -v
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from app.db.store import (
    CHECK_INS_KEY,
    PROFILE_KEY,
    DataCorruptionError,
    JsonFileStore,
    StorageError,
    get_store,
)


class TestBasicOperations:

    @pytest.mark.asyncio
    async def test_get_missing_key_returns_none(self, tmp_path):
        store = JsonFileStore(tmp_path)
        assert await store.get(PROFILE_KEY) is None

    @pytest.mark.asyncio
    async def test_set_then_get(self, tmp_path):
        store = JsonFileStore(tmp_path)
        await store.set(CHECK_INS_KEY, '[{"mood": 5}]')
        assert await store.get(CHECK_INS_KEY) == '[{"mood": 5}]'

    @pytest.mark.asyncio
    async def test_set_creates_directory(self, tmp_path):
        store = JsonFileStore(tmp_path / "nested" / "data")
        await store.set(PROFILE_KEY, "{}")
        assert (tmp_path / "nested" / "data" / "user_profile.json").exists()

    @pytest.mark.asyncio
    async def test_overwrite_replaces_value(self, tmp_path):
        store = JsonFileStore(tmp_path)
        await store.set(PROFILE_KEY, '{"name": "Ada"}')
        await store.set(PROFILE_KEY, '{"name": "Grace"}')
        assert await store.get(PROFILE_KEY) == '{"name": "Grace"}'

    @pytest.mark.asyncio
    async def test_remove(self, tmp_path):
        store = JsonFileStore(tmp_path)
        await store.set(PROFILE_KEY, "{}")
        await store.remove(PROFILE_KEY)
        assert await store.get(PROFILE_KEY) is None

    @pytest.mark.asyncio
    async def test_remove_absent_key_is_noop(self, tmp_path):
        store = JsonFileStore(tmp_path)
        await store.remove(CHECK_INS_KEY)  # must not raise
        assert await store.get(CHECK_INS_KEY) is None

    @pytest.mark.asyncio
    async def test_unicode_round_trip(self, tmp_path):
        store = JsonFileStore(tmp_path)
        await store.set(CHECK_INS_KEY, '["café 😊"]')
        assert await store.get(CHECK_INS_KEY) == '["café 😊"]'


class TestAtomicWrite:

    @pytest.mark.asyncio
    async def test_no_temp_files_left_after_write(self, tmp_path):
        store = JsonFileStore(tmp_path)
        for i in range(5):
            await store.set(CHECK_INS_KEY, f"[{i}]")

        files = sorted(p.name for p in tmp_path.iterdir())
        assert files == ["check_ins.json"]


class TestErrors:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["../escape", "a/b", "", "with space"])
    async def test_invalid_key_rejected(self, tmp_path, key):
        store = JsonFileStore(tmp_path)
        with pytest.raises(StorageError):
            await store.get(key)

    @pytest.mark.asyncio
    async def test_write_failure_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocked"
        blocker.write_text("not a directory")
        store = JsonFileStore(blocker)

        with pytest.raises(StorageError):
            await store.set(PROFILE_KEY, "{}")

    @pytest.mark.asyncio
    async def test_read_failure_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocked"
        blocker.write_text("not a directory")
        store = JsonFileStore(blocker)

        with pytest.raises(StorageError):
            await store.get(PROFILE_KEY)

    def test_data_corruption_is_a_storage_error(self):
        exc = DataCorruptionError(CHECK_INS_KEY, "invalid JSON")
        assert isinstance(exc, StorageError)
        assert exc.key == CHECK_INS_KEY
        assert "invalid JSON" in str(exc)


class TestFactory:

    def test_get_store_uses_settings_directory(self, tmp_path):
        get_store.cache_clear()
        try:
            with patch("app.db.store.get_settings", return_value=MagicMock(storage_dir=str(tmp_path))):
                store = get_store()
                assert store.directory == tmp_path
                assert get_store() is store
        finally:
            get_store.cache_clear()
