"""Playback state machine vocabulary: player events, timer events, states."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal, Union

from tubekiosk.domain.entities.catalog import NextItem

SelectionPurpose = Literal["current", "prefetch"]


class PlayerState(Enum):
    """Player states reported through ``PlayerStateChanged``."""

    UNSTARTED = "unstarted"
    PLAYING = "playing"
    PAUSED = "paused"
    BUFFERING = "buffering"
    ENDED = "ended"
    ERROR = "error"


# --- Events -----------------------------------------------------------------


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class PlayerReady:
    player_id: int


@dataclass(frozen=True)
class PlayerStateChanged:
    player_id: int
    state: PlayerState


@dataclass(frozen=True)
class PlayerFailed:
    player_id: int
    reason: str = ""


@dataclass(frozen=True)
class PrefetchPoll:
    """Re-run prefetch scheduling (duration not known yet)."""


@dataclass(frozen=True)
class PrefetchDue:
    """Time to ask the server for the following item."""


@dataclass(frozen=True)
class SafetyTimeout:
    item_id: str


@dataclass(frozen=True)
class SkipRequested:
    pass


@dataclass(frozen=True)
class RetryFetch:
    pass


@dataclass(frozen=True)
class SelectionArrived:
    purpose: SelectionPurpose
    item: NextItem | None
    error: str | None = None


@dataclass(frozen=True)
class Shutdown:
    pass


PlayerEvent = Union[PlayerReady, PlayerStateChanged, PlayerFailed]

OrchestratorEvent = Union[
    Start,
    PlayerReady,
    PlayerStateChanged,
    PlayerFailed,
    PrefetchPoll,
    PrefetchDue,
    SafetyTimeout,
    SkipRequested,
    RetryFetch,
    SelectionArrived,
    Shutdown,
]


# --- States -----------------------------------------------------------------


@dataclass(frozen=True)
class Idle:
    name: str = "idle"


@dataclass(frozen=True)
class AwaitingNext:
    name: str = "awaiting_next"


@dataclass
class Playing:
    """An item occupies the screen; timers belong to this item only."""

    item: NextItem
    prefetch_timer: Any = None
    safety_timer: Any = None
    name: str = "playing"


OrchestratorState = Union[Idle, AwaitingNext, Playing]
