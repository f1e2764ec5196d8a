"""In-memory selection and provider metrics for ``GET /api/stats``.

Plain integer counters mutated from the single asyncio loop; nothing is
persisted.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field


def _avg_ms(total_ns: int, count: int) -> float:
    return round(total_ns / count / 1_000_000, 1) if count else 0.0


@dataclass
class SelectionStats:
    requests: int = 0
    found: int = 0
    empty: int = 0
    relaxed: int = 0
    biased: int = 0
    total_pool: int = 0
    total_duration_ns: int = 0

    def snapshot(self) -> dict[str, object]:
        return {
            "requests": self.requests,
            "found": self.found,
            "empty": self.empty,
            "relaxed": self.relaxed,
            "biased": self.biased,
            "avg_pool_size": round(self.total_pool / self.requests, 1)
            if self.requests
            else 0.0,
            "avg_duration_ms": _avg_ms(self.total_duration_ns, self.requests),
        }


@dataclass
class ProviderStats:
    calls: int = 0
    successes: int = 0
    failures: int = 0
    skipped: int = 0
    total_items: int = 0
    total_duration_ns: int = 0

    def snapshot(self) -> dict[str, object]:
        return {
            "calls": self.calls,
            "successes": self.successes,
            "failures": self.failures,
            "skipped": self.skipped,
            "total_items": self.total_items,
            "avg_duration_ms": _avg_ms(self.total_duration_ns, self.calls),
        }


@dataclass
class MetricsCollector:
    """Central collector shared by the selection use case and the provider chain."""

    _selection: SelectionStats = field(default_factory=SelectionStats)
    _providers: dict[str, ProviderStats] = field(default_factory=dict)
    _start_ns: int = field(default_factory=time.perf_counter_ns)

    def record_selection(
        self,
        *,
        duration_ns: int,
        pool_size: int,
        relaxed: bool,
        biased: bool,
        found: bool,
    ) -> None:
        stats = self._selection
        stats.requests += 1
        stats.total_duration_ns += duration_ns
        stats.total_pool += pool_size
        stats.relaxed += int(relaxed)
        stats.biased += int(biased)
        if found:
            stats.found += 1
        else:
            stats.empty += 1

    def record_provider_call(
        self,
        name: str,
        duration_ns: int,
        item_count: int,
        *,
        success: bool,
    ) -> None:
        stats = self._providers.setdefault(name, ProviderStats())
        stats.calls += 1
        stats.total_duration_ns += duration_ns
        if success:
            stats.successes += 1
            stats.total_items += item_count
        else:
            stats.failures += 1

    def record_provider_skipped(self, name: str) -> None:
        self._providers.setdefault(name, ProviderStats()).skipped += 1

    def snapshot(self) -> dict[str, object]:
        uptime_ns = time.perf_counter_ns() - self._start_ns
        return {
            "uptime_seconds": round(uptime_ns / 1_000_000_000, 1),
            "selection": self._selection.snapshot(),
            "providers": {
                name: stats.snapshot() for name, stats in sorted(self._providers.items())
            },
        }
