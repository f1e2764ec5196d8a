"""Minimal channel administration (no auth; LAN kiosk)."""

from __future__ import annotations

from typing import Any, cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from tubekiosk.domain.entities.catalog import Source
from tubekiosk.domain.errors import ConfigurationError, PersistenceError
from tubekiosk.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class ChannelRequest(BaseModel):
    """Body of ``POST /api/admin/channel``; weight is normalized by ``Source``."""

    id: str | None = None
    title: str | None = None
    weight: Any = None


def _present(channels: list[Source]) -> list[dict[str, object]]:
    return [{"id": c.id, "title": c.title, "weight": c.weight} for c in channels]


@router.get("/channels")
async def list_channels(request: Request) -> JSONResponse:
    state = cast(AppState, request.app.state)
    try:
        channels = await state.manage_channels_uc.list_channels()
    except ConfigurationError as e:
        return JSONResponse(status_code=500, content={"error": str(e)})
    return JSONResponse(content=_present(channels))


@router.post("/channel")
async def add_channel(
    request: Request, body: ChannelRequest | None = None
) -> JSONResponse:
    """Append ``{id, title?, weight?}`` to ``config.json -> channels``."""
    state = cast(AppState, request.app.state)
    if body is None:
        body = ChannelRequest()

    channel_id = body.id
    try:
        channels = await state.manage_channels_uc.add_channel(
            channel_id or None, title=body.title, weight=body.weight
        )
    except ValueError as e:
        # ChannelAdminError, or a concurrent add of the same id.
        return JSONResponse(status_code=400, content={"error": str(e)})
    except (ConfigurationError, PersistenceError) as e:
        log.error("channel_add_failed", channel=channel_id, error=str(e))
        return JSONResponse(status_code=500, content={"error": str(e)})

    return JSONResponse(content={"ok": True, "channels": _present(channels)})
