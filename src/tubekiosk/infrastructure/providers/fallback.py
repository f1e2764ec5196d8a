"""Ordered provider chain guarded by a circuit breaker."""

from __future__ import annotations

import time
from collections.abc import Sequence

import structlog

from tubekiosk.domain.entities.catalog import CandidateItem
from tubekiosk.domain.errors import ProviderError, SourceNotFoundError
from tubekiosk.domain.ports import CandidateProviderPort
from tubekiosk.infrastructure.circuit_breaker import ProviderCircuitBreaker
from tubekiosk.infrastructure.metrics import MetricsCollector

log = structlog.get_logger(__name__)


class FallbackCandidateProvider:
    """Tries each provider in order and returns the first success.

    A provider whose breaker is open is skipped without a call. Only
    provider-wide failures (quota or outage) count towards the breaker; a
    provider that answers "no such channel" is healthy, so one bad channel
    id cannot shut a stage down for every other channel.
    Raises ``ProviderError`` when every stage failed or was skipped.
    """

    name = "fallback"

    def __init__(
        self,
        providers: Sequence[CandidateProviderPort],
        *,
        breaker: ProviderCircuitBreaker,
        metrics: MetricsCollector | None = None,
    ) -> None:
        if not providers:
            raise ValueError("at least one provider is required")
        self._providers = tuple(providers)
        self._breaker = breaker
        self._metrics = metrics

    @property
    def provider_names(self) -> list[str]:
        return [provider.name for provider in self._providers]

    async def fetch(self, source_id: str, max_results: int) -> list[CandidateItem]:
        errors: list[str] = []

        for provider in self._providers:
            if not self._breaker.allow(provider.name):
                log.debug("provider_skipped", provider=provider.name, channel=source_id)
                if self._metrics is not None:
                    self._metrics.record_provider_skipped(provider.name)
                errors.append(f"{provider.name}: circuit open")
                continue

            started = time.perf_counter_ns()
            try:
                items = await provider.fetch(source_id, max_results)
            except ProviderError as exc:
                if isinstance(exc, SourceNotFoundError):
                    self._breaker.record_success(provider.name)
                else:
                    self._breaker.record_failure(provider.name, str(exc))
                if self._metrics is not None:
                    self._metrics.record_provider_call(
                        provider.name,
                        time.perf_counter_ns() - started,
                        0,
                        success=False,
                    )
                log.warning(
                    "provider_failed",
                    provider=provider.name,
                    channel=source_id,
                    error=str(exc),
                    breaker=self._breaker.state(provider.name).value,
                )
                errors.append(f"{provider.name}: {exc}")
                continue

            self._breaker.record_success(provider.name)
            if self._metrics is not None:
                self._metrics.record_provider_call(
                    provider.name,
                    time.perf_counter_ns() - started,
                    len(items),
                    success=True,
                )
            return items

        raise ProviderError("; ".join(errors) or "no provider available")
