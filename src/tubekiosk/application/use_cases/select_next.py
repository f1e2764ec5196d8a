"""Next-video selection use case.

Settings + history -> per-channel candidates (cache / providers)
-> strict filters -> relaxation -> unseen-source bias -> weighted pick.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Protocol

import structlog

from tubekiosk.application.catalog import CandidateCatalog
from tubekiosk.application.pipeline.eligibility import (
    SourceCandidates,
    build_pool,
    evaluate_source,
    weighted_choice,
)
from tubekiosk.domain.entities.catalog import (
    CandidateItem,
    NextItem,
    SelectionSettings,
    Source,
)
from tubekiosk.domain.errors import ConfigurationError
from tubekiosk.domain.ports import PlayHistoryRepository, SelectionConfigRepository

log = structlog.get_logger(__name__)


class _MetricsRecorder(Protocol):
    """Records selection outcomes."""

    def record_selection(
        self,
        *,
        duration_ns: int,
        pool_size: int,
        relaxed: bool,
        biased: bool,
        found: bool,
    ) -> None: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SelectNextUseCase:
    """Chooses the next video for the kiosk.

    Fails only when no channel is configured (``ConfigurationError``);
    provider outages degrade to cached data and an empty result is ``None``.
    """

    def __init__(
        self,
        *,
        config_repo: SelectionConfigRepository,
        history_repo: PlayHistoryRepository,
        catalog: CandidateCatalog,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
        metrics: _MetricsRecorder | None = None,
    ) -> None:
        self._config_repo = config_repo
        self._history_repo = history_repo
        self._catalog = catalog
        self._rng = rng or random.Random()
        self._clock = clock
        self._metrics = metrics

    async def execute(self) -> NextItem | None:
        settings = await self._config_repo.load()
        history = await self._history_repo.snapshot()
        return await self.select(settings, history)

    async def select(
        self, settings: SelectionSettings, history: Mapping[str, datetime]
    ) -> NextItem | None:
        if not settings.sources:
            raise ConfigurationError("No channels configured (config.json -> channels)")

        started = time.perf_counter_ns()
        now = self._clock()

        raw_lists = await asyncio.gather(
            *(self._fetch(source, settings) for source in settings.sources)
        )
        per_source: list[SourceCandidates] = [
            evaluate_source(source, raw, settings, history, now)
            for source, raw in zip(settings.sources, raw_lists)
        ]

        pool = build_pool(per_source, settings, now)
        chosen = weighted_choice(pool.candidates, self._rng)

        if pool.relaxed:
            log.info("selection_relaxed", pool_size=len(pool.candidates))

        if self._metrics is not None:
            self._metrics.record_selection(
                duration_ns=time.perf_counter_ns() - started,
                pool_size=len(pool.candidates),
                relaxed=pool.relaxed,
                biased=pool.biased,
                found=chosen is not None,
            )

        if chosen is None:
            log.warning(
                "selection_empty",
                sources=len(settings.sources),
                raw_items=sum(len(entry.raw) for entry in per_source),
            )
            return None

        log.info(
            "selection_chosen",
            video_id=chosen.item.id,
            source=chosen.source_id,
            pool_size=len(pool.candidates),
            relaxed=pool.relaxed,
            biased=pool.biased,
        )
        return NextItem.from_candidate(chosen.item)

    async def _fetch(
        self, source: Source, settings: SelectionSettings
    ) -> list[CandidateItem]:
        return await self._catalog.candidates_for(
            source,
            ttl=settings.cache_ttl,
            max_results=settings.max_search_results,
            min_duration_seconds=settings.min_duration_seconds,
        )
