"""Kiosk endpoints: next video and played acknowledgement."""

from __future__ import annotations

from typing import cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from tubekiosk.domain.errors import ConfigurationError, PersistenceError
from tubekiosk.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["kiosk"])


class PlayedRequest(BaseModel):
    """Body of ``POST /api/played``; a missing id is answered with 400."""

    videoId: str | None = None


@router.get("/next")
async def next_video(request: Request) -> JSONResponse:
    """Pick the next video.

    200 with the item, 404 when nothing is eligible, 500 when no channel is
    configured or selection failed unexpectedly.
    """
    state = cast(AppState, request.app.state)

    try:
        item = await state.select_next_uc.execute()
    except ConfigurationError as e:
        log.error("next_video_misconfigured", error=str(e))
        return JSONResponse(status_code=500, content={"error": str(e)})
    except Exception as e:
        log.exception("next_video_failed")
        return JSONResponse(
            status_code=500,
            content={"error": f"Internal error while selecting next video: {e}"},
        )

    if item is None:
        return JSONResponse(
            status_code=404, content={"error": "No video available right now."}
        )
    return JSONResponse(content=item.to_payload())


@router.post("/played")
async def mark_played(
    request: Request, body: PlayedRequest | None = None
) -> JSONResponse:
    """Record ``{videoId}`` as played now."""
    state = cast(AppState, request.app.state)

    video_id = body.videoId if body is not None else None
    if not video_id:
        return JSONResponse(status_code=400, content={"error": "videoId required"})

    try:
        await state.record_played_uc.execute(video_id)
    except PersistenceError as e:
        log.error("mark_played_failed", video_id=video_id, error=str(e))
        return JSONResponse(status_code=500, content={"error": "Could not record play"})

    return JSONResponse(content={"ok": True})
