"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from tubekiosk.infrastructure.circuit_breaker import ProviderCircuitBreaker
from tubekiosk.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from tubekiosk.application.catalog import CandidateCatalog
    from tubekiosk.application.use_cases import (
        ManageChannelsUseCase,
        RecordPlayedUseCase,
        SelectNextUseCase,
    )
    from tubekiosk.infrastructure.metrics import MetricsCollector
    from tubekiosk.infrastructure.persistence.candidate_cache import JsonCandidateCache
    from tubekiosk.infrastructure.persistence.config_repository import (
        JsonSelectionConfigRepository,
    )
    from tubekiosk.infrastructure.persistence.json_store import JsonDocumentStore
    from tubekiosk.infrastructure.persistence.play_history import (
        JsonPlayHistoryRepository,
    )
    from tubekiosk.infrastructure.providers.fallback import FallbackCandidateProvider


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    http_client: httpx.AsyncClient
    store: JsonDocumentStore
    config_repo: JsonSelectionConfigRepository
    history_repo: JsonPlayHistoryRepository
    candidate_cache: JsonCandidateCache
    provider: FallbackCandidateProvider
    catalog: CandidateCatalog

    # Circuit breaker (skip providers after consecutive failures)
    circuit_breaker: ProviderCircuitBreaker

    # Metrics (in-memory counters)
    metrics: MetricsCollector

    # Use cases
    select_next_uc: SelectNextUseCase
    record_played_uc: RecordPlayedUseCase
    manage_channels_uc: ManageChannelsUseCase
