"""Channel administration: list and add configured channels."""

from __future__ import annotations

from typing import Any

import structlog

from tubekiosk.domain.entities.catalog import Source
from tubekiosk.domain.ports import SelectionConfigRepository

log = structlog.get_logger(__name__)


class ChannelAdminError(ValueError):
    """Invalid channel submission (missing or duplicate id)."""


class ManageChannelsUseCase:
    def __init__(self, *, config_repo: SelectionConfigRepository) -> None:
        self._config_repo = config_repo

    async def list_channels(self) -> list[Source]:
        return await self._config_repo.list_sources()

    async def add_channel(
        self, channel_id: str | None, title: str | None = None, weight: Any = None
    ) -> list[Source]:
        """Append a channel; title defaults to the id, weight to 1."""
        if not channel_id:
            raise ChannelAdminError("channel id required")

        existing = await self._config_repo.list_sources()
        if any(source.id == channel_id for source in existing):
            raise ChannelAdminError("channel already registered")

        source = Source(id=channel_id, title=title or channel_id, weight=weight or 1)
        channels = await self._config_repo.add_source(source)
        log.info("channel_added", channel=source.id, weight=source.weight)
        return channels
