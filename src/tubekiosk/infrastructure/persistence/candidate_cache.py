"""Per-channel candidate cache, mirrored to ``channel_cache.json``.

Document shape: ``{sourceId: {"lastFetch": epochMs, "videos": [...]}}``.
The in-memory map is authoritative once loaded; the document only lets a
stale list survive a restart, so a failed mirror write is logged and
otherwise ignored.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from tubekiosk.domain.entities.catalog import (
    CacheEntry,
    CandidateItem,
    from_epoch_ms,
    to_epoch_ms,
)
from tubekiosk.domain.errors import PersistenceError
from tubekiosk.domain.ports import DocumentStorePort

log = structlog.get_logger(__name__)

CACHE_DOCUMENT = "channel_cache.json"


def _optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def candidate_to_document(item: CandidateItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "title": item.title,
        "channelId": item.source_id,
        "published": to_epoch_ms(item.published),
        "durationSeconds": item.duration_seconds,
        "viewCount": item.view_count,
        "embeddable": item.embeddable,
    }


def candidate_from_document(data: Any, source_id: str) -> CandidateItem | None:
    if not isinstance(data, dict) or not data.get("id"):
        return None
    embeddable = data.get("embeddable")
    return CandidateItem(
        id=str(data["id"]),
        title=str(data.get("title") or ""),
        source_id=str(data.get("channelId") or source_id),
        published=from_epoch_ms(data.get("published")),
        duration_seconds=_optional_int(data.get("durationSeconds")),
        view_count=_optional_int(data.get("viewCount")),
        embeddable=embeddable if isinstance(embeddable, bool) else None,
    )


def _entry_from_document(source_id: str, data: Any) -> CacheEntry | None:
    if not isinstance(data, dict):
        return None
    fetched_at = from_epoch_ms(data.get("lastFetch"))
    videos = data.get("videos")
    if fetched_at is None or not isinstance(videos, list):
        return None
    items = (candidate_from_document(video, source_id) for video in videos)
    return CacheEntry(
        items=tuple(item for item in items if item is not None),
        fetched_at=fetched_at,
    )


class JsonCandidateCache:
    def __init__(self, store: DocumentStorePort) -> None:
        self._store = store
        self._lock = asyncio.Lock()
        self._entries: dict[str, CacheEntry] | None = None

    async def _ensure_loaded(self) -> dict[str, CacheEntry]:
        if self._entries is not None:
            return self._entries
        async with self._lock:
            if self._entries is None:
                raw = await self._store.read(CACHE_DOCUMENT, {})
                entries: dict[str, CacheEntry] = {}
                if isinstance(raw, dict):
                    for source_id, data in raw.items():
                        entry = _entry_from_document(str(source_id), data)
                        if entry is not None:
                            entries[str(source_id)] = entry
                self._entries = entries
                log.debug("candidate_cache_loaded", channels=len(entries))
        return self._entries

    async def get(self, source_id: str) -> CacheEntry | None:
        entries = await self._ensure_loaded()
        return entries.get(source_id)

    async def put(self, source_id: str, entry: CacheEntry) -> None:
        entries = await self._ensure_loaded()
        async with self._lock:
            entries[source_id] = entry
            document = {
                key: {
                    "lastFetch": to_epoch_ms(value.fetched_at),
                    "videos": [candidate_to_document(item) for item in value.items],
                }
                for key, value in entries.items()
            }
            try:
                await self._store.write(CACHE_DOCUMENT, document)
            except PersistenceError as exc:
                log.warning("candidate_cache_mirror_failed", error=str(exc))
