"""Tests for CandidateCatalog (cache first, provider chain, stale fallback)."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from tubekiosk.application.catalog import CandidateCatalog
from tubekiosk.domain.entities.catalog import CacheEntry, Source
from tubekiosk.domain.errors import ProviderError

_TTL = timedelta(minutes=15)


def _catalog(now, *, cached=None, fetched=None, error=None):
    cache = AsyncMock()
    cache.get.return_value = cached
    provider = AsyncMock()
    if error is not None:
        provider.fetch.side_effect = error
    else:
        provider.fetch.return_value = list(fetched or [])
    return CandidateCatalog(cache=cache, provider=provider, clock=lambda: now), cache, provider


class TestCandidateCatalog:
    @pytest.mark.asyncio()
    async def test_fresh_cache_skips_provider(self, make_candidate, now) -> None:
        entry = CacheEntry(items=(make_candidate("a1"),), fetched_at=now - timedelta(minutes=1))
        catalog, cache, provider = _catalog(now, cached=entry)

        items = await catalog.candidates_for(Source(id="A"), ttl=_TTL, max_results=50)

        assert [i.id for i in items] == ["a1"]
        provider.fetch.assert_not_awaited()
        cache.put.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_stale_cache_refreshes_and_stores(self, make_candidate, now) -> None:
        entry = CacheEntry(items=(make_candidate("old"),), fetched_at=now - timedelta(hours=1))
        catalog, cache, provider = _catalog(now, cached=entry, fetched=[make_candidate("new")])

        items = await catalog.candidates_for(Source(id="A"), ttl=_TTL, max_results=50)

        assert [i.id for i in items] == ["new"]
        provider.fetch.assert_awaited_once_with("A", 50)
        stored = cache.put.await_args.args[1]
        assert stored.fetched_at == now
        assert [i.id for i in stored.items] == ["new"]

    @pytest.mark.asyncio()
    async def test_provider_failure_returns_stale_untouched(self, make_candidate, now) -> None:
        entry = CacheEntry(items=(make_candidate("old"),), fetched_at=now - timedelta(hours=1))
        catalog, cache, _ = _catalog(now, cached=entry, error=ProviderError("quota"))

        items = await catalog.candidates_for(Source(id="A"), ttl=_TTL, max_results=50)

        assert [i.id for i in items] == ["old"]
        cache.put.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_provider_failure_without_cache_is_empty(self, now) -> None:
        catalog, cache, _ = _catalog(now, error=ProviderError("down"))

        assert await catalog.candidates_for(Source(id="A"), ttl=_TTL, max_results=50) == []
        cache.put.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_short_items_dropped_before_caching(self, make_candidate, now) -> None:
        fetched = [
            make_candidate("short", duration_seconds=30),
            make_candidate("long", duration_seconds=600),
            make_candidate("unknown", duration_seconds=None),
        ]
        catalog, cache, _ = _catalog(now, fetched=fetched)

        items = await catalog.candidates_for(
            Source(id="A"), ttl=_TTL, max_results=50, min_duration_seconds=61
        )

        assert [i.id for i in items] == ["long", "unknown"]
        assert [i.id for i in cache.put.await_args.args[1].items] == ["long", "unknown"]
