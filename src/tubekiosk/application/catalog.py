"""Per-channel candidate lookup: fresh cache, provider chain, stale cache."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

import structlog

from tubekiosk.domain.entities.catalog import CacheEntry, CandidateItem, Source
from tubekiosk.domain.errors import ProviderError
from tubekiosk.domain.ports import CandidateCachePort, CandidateProviderPort

log = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def _drop_short(
    items: list[CandidateItem], min_seconds: int, source_id: str
) -> list[CandidateItem]:
    """Drop Shorts; items of unknown duration are left to the filters."""
    kept = [
        item
        for item in items
        if item.duration_seconds is None or item.duration_seconds >= min_seconds
    ]
    if len(kept) < len(items):
        log.debug(
            "catalog_short_items_dropped",
            source=source_id,
            dropped=len(items) - len(kept),
            min_duration_seconds=min_seconds,
        )
    return kept


class CandidateCatalog:
    """Resolves a channel's candidate list.

    Order:
        1. Cached list younger than the TTL.
        2. Provider chain (primary, then secondary). The result is cached
           with the current time.
        3. Whatever the cache holds (possibly nothing). The stale entry is
           left untouched so the next call retries the providers.
    """

    def __init__(
        self,
        *,
        cache: CandidateCachePort,
        provider: CandidateProviderPort,
        clock: Clock,
    ) -> None:
        self._cache = cache
        self._provider = provider
        self._clock = clock

    async def candidates_for(
        self,
        source: Source,
        *,
        ttl: timedelta,
        max_results: int,
        min_duration_seconds: int = 0,
    ) -> list[CandidateItem]:
        entry = await self._cache.get(source.id)
        now = self._clock()

        if entry is not None and entry.is_fresh(now, ttl):
            log.debug("catalog_cache_hit", source=source.id, items=len(entry.items))
            return list(entry.items)

        try:
            items = await self._provider.fetch(source.id, max_results)
        except ProviderError as exc:
            stale = list(entry.items) if entry is not None else []
            log.warning(
                "catalog_providers_failed",
                source=source.id,
                error=str(exc),
                stale_items=len(stale),
            )
            return stale

        if min_duration_seconds > 0:
            items = _drop_short(items, min_duration_seconds, source.id)

        await self._cache.put(source.id, CacheEntry(items=tuple(items), fetched_at=now))
        log.info("catalog_refreshed", source=source.id, items=len(items))
        return items
