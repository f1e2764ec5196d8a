"""Ports the playback orchestrator drives."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from tubekiosk.domain.entities.catalog import NextItem
from tubekiosk.domain.entities.playback import PlayerEvent

PlayerEventSink = Callable[[PlayerEvent], None]


@runtime_checkable
class NextItemClientPort(Protocol):
    """Request boundary towards the selection server."""

    async def next_item(self) -> NextItem | None:
        """Return the next item, ``None`` when nothing is eligible.

        Raises ``SelectionUnavailableError`` when the server fails.
        """
        ...

    async def mark_played(self, item_id: str) -> None: ...


@runtime_checkable
class EmbedPlayerPort(Protocol):
    """A single player instance. Commands raise ``PlayerFault``."""

    player_id: int

    async def load(self, item_id: str) -> None: ...

    async def play(self) -> None: ...

    async def mute(self) -> None: ...

    async def stop(self) -> None: ...

    async def destroy(self) -> None: ...

    async def duration(self) -> float | None: ...


@runtime_checkable
class PlayerFactoryPort(Protocol):
    """Creates a player already loading ``item_id``.

    The new instance reports ready/state/error through ``emit``.
    """

    async def create(self, item_id: str, emit: PlayerEventSink) -> EmbedPlayerPort: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


@runtime_checkable
class SchedulerPort(Protocol):
    """One-shot timers; callbacks run on the orchestrator's loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


@runtime_checkable
class StatusPort(Protocol):
    """Short human-readable status line shown on the display."""

    def show(self, text: str) -> None: ...
