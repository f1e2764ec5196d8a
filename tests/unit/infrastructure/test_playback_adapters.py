"""Tests for StatusBoard and AsyncioScheduler."""

from __future__ import annotations

import asyncio

import pytest

from tubekiosk.domain.errors import PlayerFault
from tubekiosk.infrastructure.playback.scheduler import AsyncioScheduler
from tubekiosk.infrastructure.playback.status import StatusBoard


class _RecordingOverlay:
    def __init__(self, *, fail: bool = False) -> None:
        self.texts: list[str] = []
        self.fail = fail

    async def show_status(self, text: str) -> None:
        if self.fail:
            raise PlayerFault("mpv IPC connection closed")
        self.texts.append(text)


class TestStatusBoard:
    def test_current_and_history(self) -> None:
        board = StatusBoard(history=2)
        assert board.current == ""

        board.show("Loading next video...")
        board.show("Playing: Keynote")
        board.show("Next preloaded: Demo")

        assert board.current == "Next preloaded: Demo"
        assert board.lines == ["Playing: Keynote", "Next preloaded: Demo"]

    def test_consecutive_duplicates_collapsed(self) -> None:
        board = StatusBoard()
        board.show("Loading next video...")
        board.show("Loading next video...")
        assert board.lines == ["Loading next video..."]

    @pytest.mark.asyncio()
    async def test_overlay_draws_every_line(self) -> None:
        overlay = _RecordingOverlay()
        board = StatusBoard(overlay=overlay)

        board.show("Retrying in 10s")
        board.show("Retrying in 10s")
        board.show("Playing: Demo")
        await board.flush()

        assert overlay.texts == ["Retrying in 10s", "Retrying in 10s", "Playing: Demo"]
        assert board.lines == ["Retrying in 10s", "Playing: Demo"]

    @pytest.mark.asyncio()
    async def test_overlay_failure_is_contained(self) -> None:
        board = StatusBoard(overlay=_RecordingOverlay(fail=True))

        board.show("Loading next video...")
        await board.flush()

        assert board.current == "Loading next video..."


class TestAsyncioScheduler:
    @pytest.mark.asyncio()
    async def test_callback_fires(self) -> None:
        fired = asyncio.Event()
        AsyncioScheduler().call_later(0.01, fired.set)
        await asyncio.wait_for(fired.wait(), timeout=1)

    @pytest.mark.asyncio()
    async def test_cancelled_timer_does_not_fire(self) -> None:
        calls: list[str] = []
        handle = AsyncioScheduler().call_later(0.01, lambda: calls.append("x"))
        handle.cancel()
        await asyncio.sleep(0.05)
        assert calls == []

    @pytest.mark.asyncio()
    async def test_negative_delay_fires_immediately(self) -> None:
        calls: list[str] = []
        AsyncioScheduler().call_later(-5, lambda: calls.append("x"))
        await asyncio.sleep(0.01)
        assert calls == ["x"]
