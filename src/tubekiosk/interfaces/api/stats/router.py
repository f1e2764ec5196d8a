"""Runtime metrics endpoint."""

from __future__ import annotations

from typing import Any, cast

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from tubekiosk.interfaces.app_state import AppState

router = APIRouter(tags=["stats"])


@router.get("/stats")
async def stats(request: Request) -> JSONResponse:
    """Selection counters, per-provider stats and circuit breaker state."""
    state = cast(AppState, request.app.state)

    data: dict[str, Any] = {}

    m = getattr(state, "metrics", None)
    if m is not None:
        data.update(m.snapshot())

    cb = getattr(state, "circuit_breaker", None)
    if cb is not None:
        data["circuit_breaker"] = cb.snapshot()

    return JSONResponse(content=data)
