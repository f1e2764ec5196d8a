"""Record that a video was shown on the kiosk."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from tubekiosk.domain.ports import PlayHistoryRepository

log = structlog.get_logger(__name__)


class RecordPlayedUseCase:
    """Upserts ``now`` as the last-played time of a video.

    Idempotent: a second call for the same id only moves the timestamp.
    Raises ``PersistenceError`` when the history cannot be written.
    """

    def __init__(
        self,
        *,
        history_repo: PlayHistoryRepository,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._history_repo = history_repo
        self._clock = clock

    async def execute(self, item_id: str) -> None:
        if not item_id:
            raise ValueError("videoId required")
        await self._history_repo.record(item_id, self._clock())
        log.info("video_marked_played", video_id=item_id)
