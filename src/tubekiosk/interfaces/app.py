"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request
from starlette.responses import Response

from tubekiosk import __version__
from tubekiosk.infrastructure.config import AppConfig
from tubekiosk.interfaces.api.errors import install_error_handlers
from tubekiosk.interfaces.app_state import AppState
from tubekiosk.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app: configuration ONLY, NO resource initialization.

    Resources (HTTP client, repositories, providers) are created in lifespan().
    """
    app = FastAPI(
        title="Tubekiosk",
        description="Selection server for an unattended YouTube kiosk",
        version=__version__,
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config
    install_error_handlers(app)

    from tubekiosk.interfaces.api.admin.router import router as admin_router
    from tubekiosk.interfaces.api.kiosk.router import router as kiosk_router
    from tubekiosk.interfaces.api.stats.router import router as stats_router

    app.include_router(kiosk_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")
    app.include_router(stats_router, prefix="/api")

    @app.get("/api/healthz")
    async def healthz() -> dict[str, str]:
        """Liveness probe: 200 as long as the process is running."""
        return {"status": "ok", "version": __version__}

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ):
        start = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code if response is not None else 500,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
