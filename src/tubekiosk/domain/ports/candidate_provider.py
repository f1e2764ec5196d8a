"""Port for fetching a channel's candidate videos."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tubekiosk.domain.entities.catalog import CandidateItem


@runtime_checkable
class CandidateProviderPort(Protocol):
    """Async interface implemented by the YouTube API and RSS providers.

    Implementations raise ``ProviderError`` on any failure; an empty list
    means the channel has no videos.
    """

    name: str

    async def fetch(self, source_id: str, max_results: int) -> list[CandidateItem]:
        ...
