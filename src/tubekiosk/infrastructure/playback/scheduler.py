"""SchedulerPort on top of the running asyncio loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable


class AsyncioScheduler:
    """One-shot timers via ``loop.call_later``; handles expose ``cancel()``."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(
        self, delay: float, callback: Callable[[], None]
    ) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay), callback)
