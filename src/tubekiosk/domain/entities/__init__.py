from .catalog import (
    CacheEntry,
    CandidateItem,
    NextItem,
    SelectionSettings,
    Source,
)
from .playback import (
    AwaitingNext,
    Idle,
    OrchestratorEvent,
    OrchestratorState,
    PlayerState,
    Playing,
)

__all__ = [
    "AwaitingNext",
    "CacheEntry",
    "CandidateItem",
    "Idle",
    "NextItem",
    "OrchestratorEvent",
    "OrchestratorState",
    "PlayerState",
    "Playing",
    "SelectionSettings",
    "Source",
]
