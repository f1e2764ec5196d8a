from .candidate_provider import CandidateProviderPort
from .document_store import DocumentStorePort
from .playback import (
    EmbedPlayerPort,
    NextItemClientPort,
    PlayerEventSink,
    PlayerFactoryPort,
    SchedulerPort,
    StatusPort,
    TimerHandle,
)
from .repositories import (
    CandidateCachePort,
    PlayHistoryRepository,
    SelectionConfigRepository,
)

__all__ = [
    "CandidateCachePort",
    "CandidateProviderPort",
    "DocumentStorePort",
    "EmbedPlayerPort",
    "NextItemClientPort",
    "PlayHistoryRepository",
    "PlayerEventSink",
    "PlayerFactoryPort",
    "SchedulerPort",
    "SelectionConfigRepository",
    "StatusPort",
    "TimerHandle",
]
