"""Status line sink for the kiosk display."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Protocol

import structlog

log = structlog.get_logger(__name__)


class StatusOverlay(Protocol):
    """Something that can put a line of text on the screen."""

    async def show_status(self, text: str) -> None: ...


class StatusBoard:
    """Logs every status line, remembers the most recent ones and draws them.

    ``show`` is synchronous (orchestrator callers never wait on the screen);
    the overlay call runs as a task on the current event loop.
    """

    def __init__(self, history: int = 20, overlay: StatusOverlay | None = None) -> None:
        self._lines: deque[str] = deque(maxlen=history)
        self._overlay = overlay
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def current(self) -> str:
        return self._lines[-1] if self._lines else ""

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    def show(self, text: str) -> None:
        if self._overlay is not None:
            # Re-sent even when unchanged: the on-screen text expires.
            task = asyncio.ensure_future(self._draw(text))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        if self._lines and self._lines[-1] == text:
            return
        self._lines.append(text)
        log.info("status", text=text)

    async def flush(self) -> None:
        """Wait until every pending overlay draw has finished."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _draw(self, text: str) -> None:
        assert self._overlay is not None
        try:
            await self._overlay.show_status(text)
        except Exception:  # noqa: BLE001
            log.warning("status_overlay_failed", text=text, exc_info=True)
