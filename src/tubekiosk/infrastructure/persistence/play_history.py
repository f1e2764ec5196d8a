"""Play history backed by ``played.json`` (``{videoId: epochMs}``)."""

from __future__ import annotations

import asyncio
from datetime import datetime

import structlog

from tubekiosk.domain.entities.catalog import from_epoch_ms, to_epoch_ms
from tubekiosk.domain.ports import DocumentStorePort

log = structlog.get_logger(__name__)

PLAYED_DOCUMENT = "played.json"


class JsonPlayHistoryRepository:
    def __init__(self, store: DocumentStorePort) -> None:
        self._store = store
        self._lock = asyncio.Lock()

    async def _read_raw(self) -> dict[str, object]:
        data = await self._store.read(PLAYED_DOCUMENT, {})
        if not isinstance(data, dict):
            log.error("play_history_malformed", type=type(data).__name__)
            return {}
        return data

    async def snapshot(self) -> dict[str, datetime]:
        history: dict[str, datetime] = {}
        for item_id, raw in (await self._read_raw()).items():
            played_at = from_epoch_ms(raw)
            if played_at is not None:
                history[str(item_id)] = played_at
        return history

    async def record(self, item_id: str, played_at: datetime) -> None:
        """Upsert and persist immediately; raises ``PersistenceError``."""
        async with self._lock:
            data = await self._read_raw()
            data[item_id] = to_epoch_ms(played_at)
            await self._store.write(PLAYED_DOCUMENT, data)
