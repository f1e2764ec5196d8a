"""Catalog entities: channels, candidate videos and the public projection.

Pure value objects, no framework dependencies, no I/O.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch_ms(value: datetime | None) -> int | None:
    if value is None:
        return None
    return int(value.timestamp() * 1000)


def from_epoch_ms(value: Any) -> datetime | None:
    """Parse an epoch-milliseconds number; anything else yields None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def normalize_weight(raw: Any) -> int:
    """Floor a configured weight to an int, minimum 1."""
    if isinstance(raw, bool):
        return 1
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(value):
        return 1
    return max(1, math.floor(value))


@dataclass(frozen=True)
class Source:
    """A channel videos are drawn from, with its relative selection weight."""

    id: str
    title: str = ""
    weight: int = 1

    def __post_init__(self) -> None:
        if not self.title:
            object.__setattr__(self, "title", self.id)
        object.__setattr__(self, "weight", normalize_weight(self.weight))


@dataclass(frozen=True)
class CandidateItem:
    """A playable video as reported by a candidate provider."""

    id: str
    title: str
    source_id: str
    published: datetime | None = None
    duration_seconds: int | None = None
    view_count: int | None = None
    embeddable: bool | None = None


@dataclass(frozen=True)
class CacheEntry:
    """A channel's candidate list together with the time it was fetched."""

    items: tuple[CandidateItem, ...]
    fetched_at: datetime = field(default_factory=_utcnow)

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.fetched_at < ttl


@dataclass(frozen=True)
class NextItem:
    """Public projection of the chosen video, shared by server and player."""

    video_id: str
    title: str
    channel_id: str
    published: datetime | None = None
    duration_seconds: int | None = None
    view_count: int | None = None
    embeddable: bool | None = None

    @classmethod
    def from_candidate(cls, item: CandidateItem) -> NextItem:
        return cls(
            video_id=item.id,
            title=item.title,
            channel_id=item.source_id,
            published=item.published,
            duration_seconds=item.duration_seconds,
            view_count=item.view_count,
            embeddable=item.embeddable,
        )

    @property
    def label(self) -> str:
        return self.title or self.video_id

    def to_payload(self) -> dict[str, Any]:
        return {
            "videoId": self.video_id,
            "title": self.title,
            "channelId": self.channel_id,
            "published": to_epoch_ms(self.published),
            "durationSeconds": self.duration_seconds,
            "viewCount": self.view_count,
            "embeddable": self.embeddable,
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> NextItem:
        duration = data.get("durationSeconds")
        views = data.get("viewCount")
        embeddable = data.get("embeddable")
        return cls(
            video_id=str(data["videoId"]),
            title=str(data.get("title") or ""),
            channel_id=str(data.get("channelId") or ""),
            published=from_epoch_ms(data.get("published")),
            duration_seconds=int(duration) if duration is not None else None,
            view_count=int(views) if views is not None else None,
            embeddable=embeddable if isinstance(embeddable, bool) else None,
        )


@dataclass(frozen=True)
class SelectionSettings:
    """Selection knobs read from the operator-editable config document."""

    sources: tuple[Source, ...] = ()
    max_age_years: float = 2
    min_views: int = 0
    played_reset_days: float = 60
    cache_ttl_minutes: float = 15
    max_search_results: int = 100
    # Kept for document compatibility; relaxation is global.
    attempts_before_relax: int = 6
    min_duration_seconds: int = 0

    @property
    def max_age(self) -> timedelta:
        return timedelta(days=365 * self.max_age_years)

    @property
    def played_window(self) -> timedelta:
        return timedelta(days=self.played_reset_days)

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(minutes=self.cache_ttl_minutes)
