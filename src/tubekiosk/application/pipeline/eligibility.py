"""Eligibility pipeline: strict filters, global relaxation, unseen-source bias,
weighted choice.

Pure functions over domain entities. The selection use case feeds them the
raw candidate lists, the play history and a fixed ``now`` so every step of a
single selection sees the same clock.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from tubekiosk.domain.entities.catalog import CandidateItem, SelectionSettings, Source

ItemPredicate = Callable[[CandidateItem], bool]


@dataclass(frozen=True)
class SourceCandidates:
    """One channel's raw list and what survived the strict filters."""

    source: Source
    raw: tuple[CandidateItem, ...]
    eligible: tuple[CandidateItem, ...]
    touched: bool


@dataclass(frozen=True)
class WeightedCandidate:
    item: CandidateItem
    source_id: str
    weight: int
    touched: bool


@dataclass(frozen=True)
class Pool:
    candidates: tuple[WeightedCandidate, ...]
    relaxed: bool = False
    biased: bool = False


# ---------------------------------------------------------------------------
# Individual filters
# ---------------------------------------------------------------------------


def age_filter(settings: SelectionSettings, now: datetime) -> ItemPredicate:
    cutoff = now - settings.max_age

    def _keep(item: CandidateItem) -> bool:
        return item.published is not None and item.published >= cutoff

    return _keep


def known_duration_filter(item: CandidateItem) -> bool:
    return item.duration_seconds is not None


def not_recently_played_filter(
    settings: SelectionSettings,
    history: Mapping[str, datetime],
    now: datetime,
) -> ItemPredicate:
    cutoff = now - settings.played_window

    def _keep(item: CandidateItem) -> bool:
        played_at = history.get(item.id)
        return played_at is None or played_at < cutoff

    return _keep


def min_views_filter(settings: SelectionSettings) -> ItemPredicate:
    def _keep(item: CandidateItem) -> bool:
        if settings.min_views <= 0:
            return True
        return (item.view_count or 0) >= settings.min_views

    return _keep


def embeddable_filter(item: CandidateItem) -> bool:
    # Unknown embeddability passes; only an explicit "no" is dropped.
    return item.embeddable is not False


def strict_filters(
    settings: SelectionSettings,
    history: Mapping[str, datetime],
    now: datetime,
) -> list[ItemPredicate]:
    """Filters applied in order before any relaxation."""
    return [
        age_filter(settings, now),
        known_duration_filter,
        not_recently_played_filter(settings, history, now),
        min_views_filter(settings),
        embeddable_filter,
    ]


def apply_filters(
    items: Iterable[CandidateItem], predicates: Sequence[ItemPredicate]
) -> tuple[CandidateItem, ...]:
    kept = list(items)
    for predicate in predicates:
        kept = [item for item in kept if predicate(item)]
    return tuple(kept)


def is_touched(items: Iterable[CandidateItem], history: Mapping[str, datetime]) -> bool:
    """True when any raw item of the channel has ever been played."""
    return any(item.id in history for item in items)


# ---------------------------------------------------------------------------
# Pool construction
# ---------------------------------------------------------------------------


def evaluate_source(
    source: Source,
    raw: Sequence[CandidateItem],
    settings: SelectionSettings,
    history: Mapping[str, datetime],
    now: datetime,
) -> SourceCandidates:
    return SourceCandidates(
        source=source,
        raw=tuple(raw),
        eligible=apply_filters(raw, strict_filters(settings, history, now)),
        touched=is_touched(raw, history),
    )


def _weighted(
    per_source: Sequence[SourceCandidates],
    pick: Callable[[SourceCandidates], Iterable[CandidateItem]],
) -> list[WeightedCandidate]:
    return [
        WeightedCandidate(
            item=item,
            source_id=entry.source.id,
            weight=entry.source.weight,
            touched=entry.touched,
        )
        for entry in per_source
        for item in pick(entry)
    ]


def build_pool(
    per_source: Sequence[SourceCandidates],
    settings: SelectionSettings,
    now: datetime,
) -> Pool:
    """Union the eligible lists, relax once if empty, then bias to unseen sources."""
    candidates = _weighted(per_source, lambda entry: entry.eligible)
    relaxed = False

    if not candidates:
        keep_recent = age_filter(settings, now)
        candidates = _weighted(
            per_source,
            lambda entry: [item for item in entry.raw if keep_recent(item)],
        )
        relaxed = True

    unseen = [c for c in candidates if not c.touched]
    biased = bool(unseen) and len(unseen) < len(candidates)
    if unseen:
        candidates = unseen

    return Pool(candidates=tuple(candidates), relaxed=relaxed, biased=biased)


def weighted_choice(
    candidates: Sequence[WeightedCandidate], rng: random.Random
) -> WeightedCandidate | None:
    """Uniform pick from a space where each candidate repeats ``weight`` times."""
    space: list[WeightedCandidate] = []
    for candidate in candidates:
        space.extend([candidate] * max(1, candidate.weight))
    if not space:
        return None
    return rng.choice(space)
