"""Selection settings backed by the operator-edited ``config.json``."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from pydantic import ValidationError

from tubekiosk.domain.entities.catalog import SelectionSettings, Source
from tubekiosk.domain.errors import ConfigurationError
from tubekiosk.domain.ports import DocumentStorePort
from tubekiosk.infrastructure.config.defaults import DEFAULT_SELECTION_DOCUMENT
from tubekiosk.infrastructure.config.schema import SelectionDocument

log = structlog.get_logger(__name__)

CONFIG_DOCUMENT = "config.json"


class JsonSelectionConfigRepository:
    """Re-reads the document on every call so edits apply without restart."""

    def __init__(self, store: DocumentStorePort) -> None:
        self._store = store
        self._lock = asyncio.Lock()

    async def _read_document(self) -> dict[str, Any]:
        data = await self._store.read(CONFIG_DOCUMENT, DEFAULT_SELECTION_DOCUMENT)
        if not isinstance(data, dict):
            raise ConfigurationError(f"{CONFIG_DOCUMENT} must contain a JSON object")
        return data

    async def _parse(self) -> SelectionDocument:
        data = await self._read_document()
        try:
            return SelectionDocument.model_validate(data)
        except ValidationError as exc:
            log.error("selection_config_invalid", errors=exc.error_count())
            raise ConfigurationError(f"invalid {CONFIG_DOCUMENT}: {exc}") from exc

    async def load(self) -> SelectionSettings:
        return (await self._parse()).to_settings()

    async def list_sources(self) -> list[Source]:
        return list((await self.load()).sources)

    async def configured_port(self) -> int | None:
        return (await self._parse()).port

    async def add_source(self, source: Source) -> list[Source]:
        async with self._lock:
            data = await self._read_document()
            channels = data.get("channels")
            if not isinstance(channels, list):
                channels = []
            if any(isinstance(c, dict) and c.get("id") == source.id for c in channels):
                raise ValueError(f"channel {source.id!r} already registered")

            channels.append(
                {"id": source.id, "title": source.title, "weight": source.weight}
            )
            data["channels"] = channels
            await self._store.write(CONFIG_DOCUMENT, data)

        return await self.list_sources()
