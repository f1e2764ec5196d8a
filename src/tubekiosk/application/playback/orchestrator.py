"""Playback orchestrator: the kiosk's client-side state machine.

All state lives on one ``PlaybackOrchestrator`` instance. Player callbacks,
timer expirations and selection responses are turned into events and
consumed one at a time by ``dispatch()``, so no two transitions ever
interleave. Network calls run as background tasks whose results come back
as ``SelectionArrived`` events.

States: ``Idle`` -> ``AwaitingNext`` -> ``Playing(item)``, plus an
``upcoming`` slot holding at most one prefetched item.
"""

from __future__ import annotations

import asyncio
import functools
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from tubekiosk.domain.entities.catalog import NextItem
from tubekiosk.domain.entities.playback import (
    AwaitingNext,
    Idle,
    OrchestratorEvent,
    OrchestratorState,
    PlayerFailed,
    PlayerReady,
    PlayerState,
    PlayerStateChanged,
    Playing,
    PrefetchDue,
    PrefetchPoll,
    RetryFetch,
    SafetyTimeout,
    SelectionArrived,
    SelectionPurpose,
    Shutdown,
    SkipRequested,
    Start,
)
from tubekiosk.domain.errors import PlayerFault, SelectionUnavailableError
from tubekiosk.domain.ports import (
    EmbedPlayerPort,
    NextItemClientPort,
    PlayerFactoryPort,
    SchedulerPort,
    StatusPort,
    TimerHandle,
)

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PlaybackSettings:
    """Timing knobs of the playback loop (seconds)."""

    preload_lead_seconds: float = 8.0
    max_item_seconds: float = 300.0
    retry_seconds: float = 10.0
    duplicate_retry_seconds: float = 2.0
    duration_poll_seconds: float = 2.0
    prefetch_debounce_seconds: float = 2.0
    short_item_delay_seconds: float = 0.5
    min_prefetch_delay_seconds: float = 0.2
    schedule_error_retry_seconds: float = 5.0


class PlaybackOrchestrator:
    """Plays one item at a time and keeps the next one ready.

    Usage::

        orchestrator = PlaybackOrchestrator(client=..., player_factory=...,
                                            scheduler=..., status=...)
        task = asyncio.create_task(orchestrator.run())
        ...
        orchestrator.post(Shutdown())
        await task
    """

    def __init__(
        self,
        *,
        client: NextItemClientPort,
        player_factory: PlayerFactoryPort,
        scheduler: SchedulerPort,
        status: StatusPort,
        settings: PlaybackSettings | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._player_factory = player_factory
        self._scheduler = scheduler
        self._status = status
        self._settings = settings or PlaybackSettings()
        self._monotonic = monotonic

        self._state: OrchestratorState = Idle()
        self._upcoming: NextItem | None = None
        self._player: EmbedPlayerPort | None = None
        self._retry_timer: TimerHandle | None = None
        self._last_prefetch_attempt: float | None = None
        self._running = True

        self._queue: asyncio.Queue[OrchestratorEvent] = asyncio.Queue()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._handlers: dict[type, Callable[[Any], Awaitable[None]]] = {
            Start: self._on_start,
            PlayerReady: self._on_player_ready,
            PlayerStateChanged: self._on_player_state,
            PlayerFailed: self._on_player_failed,
            PrefetchPoll: self._on_prefetch_poll,
            PrefetchDue: self._on_prefetch_due,
            SafetyTimeout: self._on_safety_timeout,
            SkipRequested: self._on_skip,
            RetryFetch: self._on_retry_fetch,
            SelectionArrived: self._on_selection,
            Shutdown: self._on_shutdown,
        }

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def current(self) -> NextItem | None:
        return self._state.item if isinstance(self._state, Playing) else None

    @property
    def upcoming(self) -> NextItem | None:
        return self._upcoming

    @property
    def player(self) -> EmbedPlayerPort | None:
        return self._player

    # ------------------------------------------------------------------
    # Event loop
    # ------------------------------------------------------------------

    def post(self, event: OrchestratorEvent) -> None:
        """Queue an event; safe to call from timer and player callbacks."""
        if not self._running and not isinstance(event, Shutdown):
            return
        self._queue.put_nowait(event)

    async def run(self) -> None:
        """Consume events until ``Shutdown`` has been handled."""
        self.post(Start())
        while True:
            event = await self._queue.get()
            await self.dispatch(event)
            if isinstance(event, Shutdown):
                return

    async def drain(self) -> None:
        """Process queued events until nothing is queued or in flight."""
        while True:
            while not self._queue.empty():
                await self.dispatch(self._queue.get_nowait())
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                if self._queue.empty():
                    return
                continue
            await asyncio.gather(*pending, return_exceptions=True)

    async def dispatch(self, event: OrchestratorEvent) -> None:
        """The single state-transition entry point."""
        if not self._running and not isinstance(event, Shutdown):
            log.debug("event_dropped_after_shutdown", event=type(event).__name__)
            return
        handler = self._handlers[type(event)]
        try:
            await handler(event)
        except Exception:
            # A kiosk must keep looping whatever a single transition did.
            log.exception("orchestrator_event_failed", event=type(event).__name__)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _on_start(self, _: Start) -> None:
        if isinstance(self._state, Idle):
            await self._advance()

    async def _on_player_ready(self, event: PlayerReady) -> None:
        if self._is_stale(event.player_id) or self._player is None:
            return
        if not isinstance(self._state, Playing):
            return
        try:
            await self._player.mute()
            await self._player.play()
        except PlayerFault:
            log.warning("player_ready_commands_failed", exc_info=True)
        await self._schedule_prefetch()
        self._start_safety_timer()

    async def _on_player_state(self, event: PlayerStateChanged) -> None:
        if self._is_stale(event.player_id) or not isinstance(self._state, Playing):
            return
        if event.state is PlayerState.ENDED:
            await self._handle_ended()
        elif event.state is PlayerState.ERROR:
            log.warning("player_error_state", video_id=self._state.item.video_id)
            await self._handle_errored()
        elif event.state is PlayerState.PLAYING:
            await self._schedule_prefetch()

    async def _on_player_failed(self, event: PlayerFailed) -> None:
        if self._is_stale(event.player_id) or not isinstance(self._state, Playing):
            return
        log.warning(
            "player_failed",
            video_id=self._state.item.video_id,
            reason=event.reason,
        )
        await self._handle_errored()

    async def _on_prefetch_poll(self, _: PrefetchPoll) -> None:
        if isinstance(self._state, Playing):
            self._state.prefetch_timer = None
            await self._schedule_prefetch()

    async def _on_prefetch_due(self, _: PrefetchDue) -> None:
        if not isinstance(self._state, Playing):
            return
        self._state.prefetch_timer = None

        now = self._monotonic()
        last = self._last_prefetch_attempt
        if last is not None and now - last < self._settings.prefetch_debounce_seconds:
            log.debug("prefetch_debounced", since_last=round(now - last, 3))
            return
        self._last_prefetch_attempt = now

        if self._upcoming is not None:
            return

        self._status.show("Preloading next video...")
        self._request("prefetch")

    async def _on_safety_timeout(self, event: SafetyTimeout) -> None:
        if not isinstance(self._state, Playing):
            return
        if self._state.item.video_id != event.item_id:
            return
        self._state.safety_timer = None
        log.warning(
            "safety_timeout_reached",
            video_id=event.item_id,
            max_item_seconds=self._settings.max_item_seconds,
        )
        await self._force_skip()

    async def _on_skip(self, _: SkipRequested) -> None:
        if isinstance(self._state, Playing):
            await self._force_skip()
        else:
            log.info("skip_ignored", state=self._state.name)

    async def _on_retry_fetch(self, _: RetryFetch) -> None:
        self._retry_timer = None
        if isinstance(self._state, AwaitingNext):
            self._status.show("Loading next video...")
            self._request("current")

    async def _on_selection(self, event: SelectionArrived) -> None:
        if event.purpose == "current":
            await self._on_current_selection(event)
        else:
            await self._on_prefetch_selection(event)

    async def _on_shutdown(self, _: Shutdown) -> None:
        self._running = False
        self._clear_item_timers()
        self._cancel_retry_timer()
        for task in list(self._tasks):
            task.cancel()
        await self._destroy_player()
        self._state = Idle()
        log.info("orchestrator_stopped")

    # ------------------------------------------------------------------
    # Selection results
    # ------------------------------------------------------------------

    async def _on_current_selection(self, event: SelectionArrived) -> None:
        if not isinstance(self._state, AwaitingNext):
            log.debug("selection_result_dropped", purpose="current", state=self._state.name)
            return

        if event.item is None:
            reason = event.error or "nothing eligible"
            delay = self._settings.retry_seconds
            self._status.show(f"No video available ({reason}). Retrying in {delay:g}s")
            log.info("next_item_unavailable", reason=reason, retry_in=delay)
            self._cancel_retry_timer()
            self._retry_timer = self._later(delay, RetryFetch())
            return

        await self._play(event.item)

    async def _on_prefetch_selection(self, event: SelectionArrived) -> None:
        item = event.item

        if isinstance(self._state, AwaitingNext):
            # Nothing on screen: a late prefetch is as good as a fresh fetch.
            if item is not None and self._upcoming is None:
                await self._play(item)
            return

        if not isinstance(self._state, Playing):
            return

        if item is None:
            self._status.show("Prefetch failed, will try again...")
            log.info("prefetch_empty", error=event.error)
            self._arm_prefetch(self._settings.retry_seconds, PrefetchDue())
            return

        if item.video_id == self._state.item.video_id:
            log.info("prefetch_returned_current", video_id=item.video_id)
            self._arm_prefetch(self._settings.duplicate_retry_seconds, PrefetchDue())
            return

        if self._upcoming is None:
            self._upcoming = item
            self._status.show(f"Next preloaded: {item.label}")
            log.info("prefetch_stored", video_id=item.video_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _advance(self) -> None:
        """Consume ``upcoming`` without a round-trip, or go fetch."""
        if self._upcoming is not None:
            item, self._upcoming = self._upcoming, None
            await self._play(item)
            return

        self._state = AwaitingNext()
        self._status.show("Loading next video...")
        self._request("current")

    async def _play(self, item: NextItem) -> None:
        self._cancel_retry_timer()
        self._clear_item_timers()
        self._state = Playing(item=item)
        self._status.show(f"Playing: {item.label}")
        log.info("playing", video_id=item.video_id, title=item.title)

        if self._player is not None:
            try:
                await self._player.load(item.video_id)
            except PlayerFault:
                log.warning("player_load_failed_recreating", exc_info=True)
                await self._destroy_player()
            else:
                await self._schedule_prefetch()
                self._start_safety_timer()
                return

        try:
            self._player = await self._player_factory.create(item.video_id, self.post)
        except PlayerFault:
            log.error("player_create_failed", video_id=item.video_id, exc_info=True)
            self._state = AwaitingNext()
            self._status.show(
                f"Player unavailable. Retrying in {self._settings.retry_seconds:g}s"
            )
            self._retry_timer = self._later(self._settings.retry_seconds, RetryFetch())
            return

        # A load that never reports ready must still hit the cutoff; ready re-arms both.
        self._arm_prefetch(self._settings.duration_poll_seconds, PrefetchPoll())
        self._start_safety_timer()

    async def _handle_ended(self) -> None:
        assert isinstance(self._state, Playing)
        self._mark_played(self._state.item)
        self._clear_item_timers()
        await self._advance()

    async def _handle_errored(self) -> None:
        # The failed item stays eligible: it is deliberately not marked played.
        self._clear_item_timers()
        await self._destroy_player()
        await self._advance()

    async def _force_skip(self) -> None:
        assert isinstance(self._state, Playing)
        item = self._state.item
        if self._player is not None:
            try:
                await self._player.stop()
            except PlayerFault:
                log.warning("player_stop_failed", exc_info=True)
        await self._destroy_player()
        self._mark_played(item)
        self._clear_item_timers()
        await self._advance()

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    async def _schedule_prefetch(self) -> None:
        if not isinstance(self._state, Playing):
            return
        self._cancel_prefetch_timer()
        if self._upcoming is not None:
            return

        settings = self._settings
        if self._player is None:
            self._arm_prefetch(settings.duration_poll_seconds, PrefetchPoll())
            return

        try:
            duration = await self._player.duration()
        except PlayerFault:
            log.warning("player_duration_failed", exc_info=True)
            self._arm_prefetch(settings.schedule_error_retry_seconds, PrefetchPoll())
            return

        if duration is None or math.isnan(duration) or duration <= 0:
            self._arm_prefetch(settings.duration_poll_seconds, PrefetchPoll())
            return

        lead = settings.preload_lead_seconds
        if duration <= lead + 1:
            delay = settings.short_item_delay_seconds
        else:
            delay = max(settings.min_prefetch_delay_seconds, duration - lead)
        log.debug("prefetch_scheduled", duration=duration, delay=round(delay, 3))
        self._arm_prefetch(delay, PrefetchDue())

    def _arm_prefetch(self, delay: float, event: PrefetchDue | PrefetchPoll) -> None:
        if not isinstance(self._state, Playing):
            return
        self._cancel_prefetch_timer()
        self._state.prefetch_timer = self._later(delay, event)

    def _start_safety_timer(self) -> None:
        if not isinstance(self._state, Playing):
            return
        if self._state.safety_timer is not None:
            self._state.safety_timer.cancel()
        self._state.safety_timer = self._later(
            self._settings.max_item_seconds,
            SafetyTimeout(item_id=self._state.item.video_id),
        )

    def _cancel_prefetch_timer(self) -> None:
        if isinstance(self._state, Playing) and self._state.prefetch_timer is not None:
            self._state.prefetch_timer.cancel()
            self._state.prefetch_timer = None

    def _clear_item_timers(self) -> None:
        if not isinstance(self._state, Playing):
            return
        self._cancel_prefetch_timer()
        if self._state.safety_timer is not None:
            self._state.safety_timer.cancel()
            self._state.safety_timer = None

    def _cancel_retry_timer(self) -> None:
        if self._retry_timer is not None:
            self._retry_timer.cancel()
            self._retry_timer = None

    def _later(self, delay: float, event: OrchestratorEvent) -> TimerHandle:
        return self._scheduler.call_later(delay, functools.partial(self.post, event))

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _request(self, purpose: SelectionPurpose) -> None:
        self._spawn(self._fetch_next(purpose))

    async def _fetch_next(self, purpose: SelectionPurpose) -> None:
        try:
            item = await self._client.next_item()
        except SelectionUnavailableError as exc:
            log.warning("next_item_request_failed", purpose=purpose, error=str(exc))
            self.post(SelectionArrived(purpose=purpose, item=None, error=str(exc)))
            return
        except Exception as exc:  # noqa: BLE001
            log.warning("next_item_request_error", purpose=purpose, exc_info=True)
            self.post(SelectionArrived(purpose=purpose, item=None, error=str(exc)))
            return
        self.post(SelectionArrived(purpose=purpose, item=item))

    def _mark_played(self, item: NextItem) -> None:
        self._spawn(self._send_mark_played(item.video_id))

    async def _send_mark_played(self, video_id: str) -> None:
        # Fire-and-forget: a lost mark only means the video may repeat sooner.
        try:
            await self._client.mark_played(video_id)
        except Exception:  # noqa: BLE001
            log.warning("mark_played_failed", video_id=video_id, exc_info=True)

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _destroy_player(self) -> None:
        player, self._player = self._player, None
        if player is None:
            return
        try:
            await player.destroy()
        except PlayerFault:
            log.warning("player_destroy_failed", exc_info=True)

    def _is_stale(self, player_id: int) -> bool:
        return self._player is None or self._player.player_id != player_id
