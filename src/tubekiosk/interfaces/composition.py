from __future__ import annotations

import random
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from tubekiosk.application.catalog import CandidateCatalog
from tubekiosk.application.use_cases import (
    ManageChannelsUseCase,
    RecordPlayedUseCase,
    SelectNextUseCase,
)
from tubekiosk.infrastructure.circuit_breaker import ProviderCircuitBreaker
from tubekiosk.infrastructure.metrics import MetricsCollector
from tubekiosk.infrastructure.persistence.candidate_cache import JsonCandidateCache
from tubekiosk.infrastructure.persistence.config_repository import (
    JsonSelectionConfigRepository,
)
from tubekiosk.infrastructure.persistence.json_store import JsonDocumentStore
from tubekiosk.infrastructure.persistence.play_history import JsonPlayHistoryRepository
from tubekiosk.infrastructure.providers.fallback import FallbackCandidateProvider
from tubekiosk.infrastructure.providers.youtube_api import (
    YouTubeApiProvider,
    resolve_api_key,
)
from tubekiosk.infrastructure.providers.youtube_rss import YouTubeRssProvider
from tubekiosk.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan hook: build and tear down all resources (DI composition root).

    Order matters:
        1. Document store + repositories (config.json, played.json, cache)
        2. HTTP client (shared by both providers)
        3. Provider chain: YouTube Data API, then RSS, behind a circuit breaker
        4. Catalog + use cases
    """
    state = cast(AppState, app.state)
    config = state.config

    # ========== 1) Persistence ==========
    state.store = JsonDocumentStore(config.data_dir)
    state.config_repo = JsonSelectionConfigRepository(state.store)
    state.history_repo = JsonPlayHistoryRepository(state.store)
    state.candidate_cache = JsonCandidateCache(state.store)
    log.info("persistence_initialized", data_dir=str(config.data_dir))

    # ========== 2) HTTP Client ==========
    state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=True,
    )
    log.info("http_client_initialized")

    # ========== 3) Providers ==========
    state.metrics = MetricsCollector()
    state.circuit_breaker = ProviderCircuitBreaker(
        failure_threshold=config.breaker_failure_threshold,
        cooldown_seconds=config.breaker_cooldown_seconds,
    )
    api_key = resolve_api_key(config.youtube_api_key, config.youtube_credentials_path)
    if not api_key:
        log.warning("youtube_api_key_missing", fallback="youtube_rss")
    state.provider = FallbackCandidateProvider(
        [
            YouTubeApiProvider(http_client=state.http_client, api_key=api_key),
            YouTubeRssProvider(http_client=state.http_client),
        ],
        breaker=state.circuit_breaker,
        metrics=state.metrics,
    )
    log.info("providers_initialized", chain=state.provider.provider_names)

    # ========== 4) Use cases ==========
    state.catalog = CandidateCatalog(
        cache=state.candidate_cache,
        provider=state.provider,
        clock=_utcnow,
    )
    state.select_next_uc = SelectNextUseCase(
        config_repo=state.config_repo,
        history_repo=state.history_repo,
        catalog=state.catalog,
        rng=random.Random(),
        clock=_utcnow,
        metrics=state.metrics,
    )
    state.record_played_uc = RecordPlayedUseCase(
        history_repo=state.history_repo, clock=_utcnow
    )
    state.manage_channels_uc = ManageChannelsUseCase(config_repo=state.config_repo)

    log.info("app_startup_complete")

    try:
        yield
    finally:
        await state.http_client.aclose()
        log.info("http_client_closed")
        log.info("app_shutdown_complete")
