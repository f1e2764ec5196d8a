"""Shared test fixtures for the Tubekiosk test suite."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from tubekiosk.domain.entities.catalog import (
    CandidateItem,
    NextItem,
    SelectionSettings,
    Source,
)
from tubekiosk.domain.entities.playback import (
    PlayerFailed,
    PlayerReady,
    PlayerState,
    PlayerStateChanged,
)
from tubekiosk.domain.errors import PlayerFault

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def make_candidate() -> Callable[..., CandidateItem]:
    """Factory for a strictly eligible candidate (recent, long, popular)."""

    def _make(
        item_id: str,
        source_id: str = "A",
        *,
        age_days: float = 10,
        duration_seconds: int | None = 600,
        view_count: int | None = 1_000,
        embeddable: bool | None = True,
        published: datetime | None | str = "auto",
    ) -> CandidateItem:
        if published == "auto":
            published = NOW - timedelta(days=age_days)
        return CandidateItem(
            id=item_id,
            title=f"Video {item_id}",
            source_id=source_id,
            published=published,  # type: ignore[arg-type]
            duration_seconds=duration_seconds,
            view_count=view_count,
            embeddable=embeddable,
        )

    return _make


@pytest.fixture()
def settings() -> SelectionSettings:
    return SelectionSettings(sources=(Source(id="A"), Source(id="B")))


@pytest.fixture()
def make_next_item() -> Callable[..., NextItem]:
    def _make(video_id: str, title: str | None = None) -> NextItem:
        return NextItem(
            video_id=video_id,
            title=title if title is not None else f"Video {video_id}",
            channel_id="A",
            published=NOW - timedelta(days=3),
            duration_seconds=600,
            view_count=10,
            embeddable=True,
        )

    return _make


# ---------------------------------------------------------------------------
# Playback fakes
# ---------------------------------------------------------------------------


class FakeTimer:
    def __init__(self, due: float, delay: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock; ``advance()`` fires due timers in order."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now + delay, delay, callback)
        self.timers.append(timer)
        return timer

    def monotonic(self) -> float:
        return self.now

    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def pending_delays(self) -> list[float]:
        return sorted(t.delay for t in self.pending())

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = sorted(
                (t for t in self.pending() if t.due <= target), key=lambda t: t.due
            )
            if not due:
                break
            timer = due[0]
            self.now = timer.due
            timer.fired = True
            timer.callback()
        self.now = target


class FakePlayer:
    def __init__(
        self,
        player_id: int,
        item_id: str,
        emit: Callable[[Any], None],
        duration: float | None,
    ) -> None:
        self.player_id = player_id
        self.emit = emit
        self.loaded = [item_id]
        self.calls: list[str] = []
        self.duration_value = duration
        self.destroyed = False
        self.fail_load = False
        self.fail_duration = False

    async def load(self, item_id: str) -> None:
        if self.fail_load:
            raise PlayerFault("load rejected")
        self.loaded.append(item_id)
        self.calls.append("load")

    async def play(self) -> None:
        self.calls.append("play")

    async def mute(self) -> None:
        self.calls.append("mute")

    async def stop(self) -> None:
        self.calls.append("stop")

    async def destroy(self) -> None:
        self.destroyed = True

    async def duration(self) -> float | None:
        if self.fail_duration:
            raise PlayerFault("no duration")
        return self.duration_value

    # Simulated player callbacks
    def ready(self) -> None:
        self.emit(PlayerReady(player_id=self.player_id))

    def playing(self) -> None:
        self.emit(PlayerStateChanged(player_id=self.player_id, state=PlayerState.PLAYING))

    def ended(self) -> None:
        self.emit(PlayerStateChanged(player_id=self.player_id, state=PlayerState.ENDED))

    def fail(self, reason: str = "video unavailable") -> None:
        self.emit(PlayerFailed(player_id=self.player_id, reason=reason))


class FakePlayerFactory:
    def __init__(self, duration: float | None = 60.0) -> None:
        self.duration = duration
        self.players: list[FakePlayer] = []
        self.fail = False

    async def create(self, item_id: str, emit: Callable[[Any], None]) -> FakePlayer:
        if self.fail:
            raise PlayerFault("cannot start player")
        player = FakePlayer(len(self.players) + 1, item_id, emit, self.duration)
        self.players.append(player)
        return player

    @property
    def latest(self) -> FakePlayer:
        return self.players[-1]


class FakeNextItemClient:
    """Replays queued responses; an exception instance is raised."""

    def __init__(self) -> None:
        self.responses: deque[NextItem | None | Exception] = deque()
        self.requests = 0
        self.marked: list[str] = []

    def queue(self, *responses: NextItem | None | Exception) -> None:
        self.responses.extend(responses)

    async def next_item(self) -> NextItem | None:
        self.requests += 1
        response = self.responses.popleft() if self.responses else None
        if isinstance(response, Exception):
            raise response
        return response

    async def mark_played(self, item_id: str) -> None:
        self.marked.append(item_id)


class RecordingStatus:
    def __init__(self) -> None:
        self.lines: list[str] = []

    def show(self, text: str) -> None:
        self.lines.append(text)

    @property
    def current(self) -> str:
        return self.lines[-1] if self.lines else ""


@pytest.fixture()
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture()
def player_factory() -> FakePlayerFactory:
    return FakePlayerFactory()


@pytest.fixture()
def next_client() -> FakeNextItemClient:
    return FakeNextItemClient()


@pytest.fixture()
def status() -> RecordingStatus:
    return RecordingStatus()
