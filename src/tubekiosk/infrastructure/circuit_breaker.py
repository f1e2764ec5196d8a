"""Per-provider circuit breaker for the candidate fallback chain.

A provider that fails ``failure_threshold`` times in a row (typically the
YouTube Data API once its daily quota is spent) is skipped for
``cooldown_seconds``; the chain goes straight to the next provider. After
the cooldown a single trial call is let through while every other caller
keeps skipping: success closes the breaker, failure reopens it for another
cooldown. A trial whose outcome is never recorded (cancelled request) is
replaced by a new one after another cooldown.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class BreakerState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class _Circuit:
    state: BreakerState = BreakerState.CLOSED
    failures: int = 0
    opened_at: float = 0.0
    trial_started_at: float | None = None
    last_error: str | None = None


class ProviderCircuitBreaker:
    """Failure bookkeeping keyed by provider name.

    Not thread-safe; callers share one asyncio event loop.
    """

    def __init__(
        self,
        *,
        failure_threshold: int = 3,
        cooldown_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._threshold = failure_threshold
        self._cooldown = cooldown_seconds
        self._clock = clock
        self._circuits: dict[str, _Circuit] = {}

    def allow(self, name: str) -> bool:
        """Whether *name* may be called now.

        OPEN flips to HALF_OPEN after the cooldown and admits exactly one
        trial call until its result is recorded.
        """
        circuit = self._circuits.get(name)
        if circuit is None or circuit.state is BreakerState.CLOSED:
            return True

        now = self._clock()
        if circuit.state is BreakerState.OPEN:
            if now - circuit.opened_at < self._cooldown:
                return False
            circuit.state = BreakerState.HALF_OPEN
            circuit.trial_started_at = now
            return True

        started = circuit.trial_started_at
        if started is not None and now - started < self._cooldown:
            return False
        circuit.trial_started_at = now
        return True

    def record_success(self, name: str) -> None:
        self._circuits.pop(name, None)

    def record_failure(self, name: str, error: str | None = None) -> None:
        circuit = self._circuits.setdefault(name, _Circuit())
        circuit.last_error = error

        if circuit.state is BreakerState.HALF_OPEN:
            circuit.state = BreakerState.OPEN
            circuit.opened_at = self._clock()
            circuit.trial_started_at = None
            return

        circuit.failures += 1
        if circuit.failures >= self._threshold:
            circuit.state = BreakerState.OPEN
            circuit.opened_at = self._clock()

    def state(self, name: str) -> BreakerState:
        circuit = self._circuits.get(name)
        return circuit.state if circuit else BreakerState.CLOSED

    def snapshot(self) -> dict[str, dict[str, object]]:
        """Diagnostic view of every provider that has failed since its last success."""
        return {
            name: {
                "state": circuit.state.value,
                "failures": circuit.failures,
                "last_error": circuit.last_error,
            }
            for name, circuit in sorted(self._circuits.items())
        }
