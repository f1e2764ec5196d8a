"""Integration tests for the JSON document store and the repositories on top of it."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from tubekiosk.domain.entities.catalog import CacheEntry, CandidateItem, Source
from tubekiosk.domain.errors import ConfigurationError, PersistenceError
from tubekiosk.infrastructure.persistence.candidate_cache import (
    CACHE_DOCUMENT,
    JsonCandidateCache,
)
from tubekiosk.infrastructure.persistence.config_repository import (
    CONFIG_DOCUMENT,
    JsonSelectionConfigRepository,
)
from tubekiosk.infrastructure.persistence.json_store import JsonDocumentStore
from tubekiosk.infrastructure.persistence.play_history import (
    PLAYED_DOCUMENT,
    JsonPlayHistoryRepository,
)

pytestmark = pytest.mark.integration

_NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
_NOW_MS = 1748779200000


class TestJsonDocumentStore:
    @pytest.mark.asyncio()
    async def test_missing_document_created_with_default(
        self, store, data_dir: Path, read_document
    ) -> None:
        default = {"channels": []}

        data = await store.read("config.json", default)

        assert data == default
        assert data is not default
        assert read_document("config.json") == default

    @pytest.mark.asyncio()
    async def test_corrupt_document_yields_default(self, store, data_dir: Path) -> None:
        (data_dir / "played.json").write_text("{oops", encoding="utf-8")

        assert await store.read("played.json", {}) == {}
        assert (data_dir / "played.json").read_text(encoding="utf-8") == "{oops"

    @pytest.mark.asyncio()
    async def test_empty_document_yields_default(self, store, data_dir: Path) -> None:
        (data_dir / "played.json").write_text("", encoding="utf-8")
        assert await store.read("played.json", {"x": 1}) == {"x": 1}

    @pytest.mark.asyncio()
    async def test_write_replaces_atomically(self, store, data_dir: Path, read_document) -> None:
        await store.write("played.json", {"a": 1})
        await store.write("played.json", {"a": 2})

        assert read_document("played.json") == {"a": 2}
        assert sorted(p.name for p in data_dir.iterdir()) == ["played.json"]

    @pytest.mark.asyncio()
    async def test_write_failure_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        store = JsonDocumentStore(blocker)

        with pytest.raises(PersistenceError):
            await store.write("played.json", {})


class TestSelectionConfigRepository:
    @pytest.mark.asyncio()
    async def test_first_read_creates_default_document(self, store, read_document) -> None:
        repo = JsonSelectionConfigRepository(store)

        settings = await repo.load()

        assert settings.sources == ()
        assert settings.max_age_years == 2
        assert read_document(CONFIG_DOCUMENT)["playedResetDays"] == 60

    @pytest.mark.asyncio()
    async def test_parses_camel_case(self, store, write_document) -> None:
        write_document(
            CONFIG_DOCUMENT,
            {
                "channels": [
                    {"id": "UC1", "title": "One", "weight": 2.6},
                    {"id": "UC2"},
                    {"title": "no id"},
                ],
                "maxAgeYears": 1,
                "minViews": 500,
                "playedResetDays": 7,
                "cacheTtlMinutes": 30,
                "maxSearchResults": 25,
                "minDurationSeconds": 61,
                "port": 4000,
            },
        )
        repo = JsonSelectionConfigRepository(store)

        settings = await repo.load()

        assert settings.sources == (
            Source(id="UC1", title="One", weight=2),
            Source(id="UC2", title="UC2", weight=1),
        )
        assert settings.min_views == 500
        assert settings.played_reset_days == 7
        assert settings.cache_ttl_minutes == 30
        assert settings.max_search_results == 25
        assert settings.min_duration_seconds == 61
        assert await repo.configured_port() == 4000

    @pytest.mark.asyncio()
    async def test_edits_apply_without_restart(self, store, write_document) -> None:
        repo = JsonSelectionConfigRepository(store)
        write_document(CONFIG_DOCUMENT, {"channels": [{"id": "UC1"}]})
        assert len(await repo.list_sources()) == 1

        write_document(CONFIG_DOCUMENT, {"channels": [{"id": "UC1"}, {"id": "UC2"}]})
        assert len(await repo.list_sources()) == 2

    @pytest.mark.asyncio()
    async def test_invalid_document(self, store, write_document) -> None:
        repo = JsonSelectionConfigRepository(store)
        write_document(CONFIG_DOCUMENT, ["not", "an", "object"])
        with pytest.raises(ConfigurationError):
            await repo.load()

        write_document(CONFIG_DOCUMENT, {"channels": "UC1"})
        with pytest.raises(ConfigurationError):
            await repo.load()

    @pytest.mark.asyncio()
    async def test_add_source_preserves_other_keys(
        self, store, write_document, read_document
    ) -> None:
        write_document(
            CONFIG_DOCUMENT, {"channels": [{"id": "UC1"}], "minViews": 10, "note": "keep"}
        )
        repo = JsonSelectionConfigRepository(store)

        sources = await repo.add_source(Source(id="UC2", title="Two", weight=3))

        assert [s.id for s in sources] == ["UC1", "UC2"]
        document = read_document(CONFIG_DOCUMENT)
        assert document["channels"][1] == {"id": "UC2", "title": "Two", "weight": 3}
        assert document["minViews"] == 10
        assert document["note"] == "keep"

    @pytest.mark.asyncio()
    async def test_add_duplicate_rejected(self, store, write_document) -> None:
        write_document(CONFIG_DOCUMENT, {"channels": [{"id": "UC1"}]})
        repo = JsonSelectionConfigRepository(store)

        with pytest.raises(ValueError):
            await repo.add_source(Source(id="UC1"))


class TestPlayHistoryRepository:
    @pytest.mark.asyncio()
    async def test_record_and_snapshot(self, store, read_document) -> None:
        repo = JsonPlayHistoryRepository(store)

        await repo.record("vid1", _NOW)

        assert read_document(PLAYED_DOCUMENT) == {"vid1": _NOW_MS}
        assert await repo.snapshot() == {"vid1": _NOW}

    @pytest.mark.asyncio()
    async def test_record_is_upsert(self, store, read_document) -> None:
        repo = JsonPlayHistoryRepository(store)
        later = _NOW + timedelta(hours=1)

        await repo.record("vid1", _NOW)
        await repo.record("vid1", later)

        assert await repo.snapshot() == {"vid1": later}
        assert len(read_document(PLAYED_DOCUMENT)) == 1

    @pytest.mark.asyncio()
    async def test_invalid_entries_skipped(self, store, write_document) -> None:
        write_document(PLAYED_DOCUMENT, {"vid1": _NOW_MS, "vid2": "yesterday", "vid3": None})
        repo = JsonPlayHistoryRepository(store)

        assert await repo.snapshot() == {"vid1": _NOW}

    @pytest.mark.asyncio()
    async def test_write_failure_propagates(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        repo = JsonPlayHistoryRepository(JsonDocumentStore(blocker))

        with pytest.raises(PersistenceError):
            await repo.record("vid1", _NOW)


class TestCandidateCache:
    @pytest.mark.asyncio()
    async def test_put_mirrors_and_survives_restart(self, store, read_document) -> None:
        item = CandidateItem(
            id="vid1",
            title="Keynote",
            source_id="UC1",
            published=_NOW,
            duration_seconds=600,
            view_count=5,
            embeddable=True,
        )
        await JsonCandidateCache(store).put("UC1", CacheEntry(items=(item,), fetched_at=_NOW))

        document = read_document(CACHE_DOCUMENT)
        assert document["UC1"]["lastFetch"] == _NOW_MS
        assert document["UC1"]["videos"][0]["channelId"] == "UC1"

        entry = await JsonCandidateCache(store).get("UC1")
        assert entry == CacheEntry(items=(item,), fetched_at=_NOW)

    @pytest.mark.asyncio()
    async def test_unknown_source(self, store) -> None:
        assert await JsonCandidateCache(store).get("UC-missing") is None

    @pytest.mark.asyncio()
    async def test_malformed_entries_ignored(self, store, write_document) -> None:
        write_document(
            CACHE_DOCUMENT,
            {
                "UC1": {"lastFetch": _NOW_MS, "videos": [{"id": "vid1"}, {"title": "no id"}]},
                "UC2": {"videos": []},
                "UC3": "garbage",
            },
        )
        cache = JsonCandidateCache(store)

        entry = await cache.get("UC1")
        assert entry is not None
        assert [item.id for item in entry.items] == ["vid1"]
        assert entry.items[0].source_id == "UC1"
        assert await cache.get("UC2") is None
        assert await cache.get("UC3") is None

    @pytest.mark.asyncio()
    async def test_mirror_failure_keeps_memory_entry(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        cache = JsonCandidateCache(JsonDocumentStore(blocker))
        entry = CacheEntry(items=(), fetched_at=_NOW)

        await cache.put("UC1", entry)

        assert await cache.get("UC1") == entry
