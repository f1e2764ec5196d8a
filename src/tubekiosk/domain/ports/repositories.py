"""Repository ports used by the selection use cases."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from tubekiosk.domain.entities.catalog import CacheEntry, SelectionSettings, Source


@runtime_checkable
class SelectionConfigRepository(Protocol):
    """Reads the operator-editable selection document on every request."""

    async def load(self) -> SelectionSettings: ...

    async def list_sources(self) -> list[Source]: ...

    async def add_source(self, source: Source) -> list[Source]:
        """Append a source. Raises ``ValueError`` on duplicate id."""
        ...


@runtime_checkable
class PlayHistoryRepository(Protocol):
    """Last-played timestamps keyed by video id."""

    async def snapshot(self) -> dict[str, datetime]: ...

    async def record(self, item_id: str, played_at: datetime) -> None: ...


@runtime_checkable
class CandidateCachePort(Protocol):
    """Per-channel candidate lists with their fetch time."""

    async def get(self, source_id: str) -> CacheEntry | None: ...

    async def put(self, source_id: str, entry: CacheEntry) -> None: ...
