"""mpv-backed embed player driven over mpv's JSON IPC socket.

One mpv process per player instance, started idle with
``--input-ipc-server``; videos are loaded as YouTube URLs and resolved by
mpv's ytdl hook. IPC events are translated into orchestrator events:

- ``file-loaded``          -> ``PlayerReady``
- ``playback-restart``     -> ``PlayerStateChanged(PLAYING)``
- ``end-file`` reason eof  -> ``PlayerStateChanged(ENDED)``
- ``end-file`` reason error, or the socket dropping -> ``PlayerFailed``

Status lines are drawn with mpv's ``show-text`` on the live player's window
(``--force-window`` keeps it up while a video is still resolving).
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import json
import os
from collections.abc import Callable
from typing import Any

import structlog

from tubekiosk.domain.entities.playback import (
    PlayerFailed,
    PlayerReady,
    PlayerState,
    PlayerStateChanged,
)
from tubekiosk.domain.errors import PlayerFault
from tubekiosk.domain.ports import PlayerEventSink
from tubekiosk.infrastructure.config.schema import PlayerConfig

log = structlog.get_logger(__name__)

_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
_SOCKET_WAIT_SECONDS = 10.0
_SOCKET_POLL_SECONDS = 0.2
_COMMAND_TIMEOUT_SECONDS = 5.0
_TERMINATE_WAIT_SECONDS = 5.0


def watch_url(video_id: str) -> str:
    return _WATCH_URL.format(video_id=video_id)


def build_mpv_args(config: PlayerConfig) -> list[str]:
    return [
        config.mpv_path,
        "--idle=yes",
        "--keep-open=no",
        "--no-osc",
        "--osd-level=1",
        f"--ytdl-format={config.ytdl_format}",
        f"--input-ipc-server={config.ipc_path}",
        *config.mpv_args,
    ]


class MpvIpcConnection:
    """Request/response multiplexing over one mpv IPC stream.

    Replies are matched by ``request_id``; unsolicited messages carrying an
    ``event`` key go to ``on_event``. ``on_close`` fires once when the stream
    ends for any reason other than ``close()``.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        on_event: Callable[[dict[str, Any]], None],
        on_close: Callable[[], None],
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._on_event = on_event
        self._on_close = on_close
        self._request_ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future[dict[str, Any]]] = {}
        self._closing = False
        self._reader_task = asyncio.create_task(self._read_loop())

    async def _read_loop(self) -> None:
        try:
            while True:
                line = await self._reader.readline()
                if not line:
                    break
                try:
                    message = json.loads(line)
                except ValueError:
                    log.debug("mpv_ipc_garbage", line=line[:200])
                    continue
                if not isinstance(message, dict):
                    continue
                request_id = message.get("request_id")
                if "event" in message:
                    self._on_event(message)
                elif isinstance(request_id, int) and request_id in self._pending:
                    future = self._pending.pop(request_id)
                    if not future.done():
                        future.set_result(message)
        except (ConnectionError, asyncio.IncompleteReadError, ValueError) as exc:
            log.debug("mpv_ipc_read_failed", error=str(exc))
        finally:
            for future in self._pending.values():
                if not future.done():
                    future.set_exception(PlayerFault("mpv IPC connection closed"))
            self._pending.clear()
            if not self._closing:
                self._on_close()

    async def command(self, *args: Any) -> Any:
        """Send a command and return its ``data``; raises ``PlayerFault``."""
        if self._closing or self._reader_task.done():
            raise PlayerFault("mpv IPC connection closed")

        request_id = next(self._request_ids)
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        payload = json.dumps({"command": list(args), "request_id": request_id})
        try:
            self._writer.write(payload.encode("utf-8") + b"\n")
            await self._writer.drain()
            reply = await asyncio.wait_for(future, timeout=_COMMAND_TIMEOUT_SECONDS)
        except (ConnectionError, OSError) as exc:
            raise PlayerFault(f"mpv IPC write failed: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise PlayerFault(f"mpv did not answer {args[0]!r}") from exc
        finally:
            self._pending.pop(request_id, None)

        if reply.get("error") != "success":
            raise PlayerFault(f"mpv {args[0]!r} failed: {reply.get('error')}")
        return reply.get("data")

    async def close(self) -> None:
        self._closing = True
        self._writer.close()
        with contextlib.suppress(ConnectionError, OSError):
            await self._writer.wait_closed()
        self._reader_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._reader_task


class MpvEmbedPlayer:
    """``EmbedPlayerPort`` over a running mpv process."""

    def __init__(
        self,
        *,
        player_id: int,
        process: asyncio.subprocess.Process,
        emit: PlayerEventSink,
    ) -> None:
        self.player_id = player_id
        self._process = process
        self._emit = emit
        self._connection: MpvIpcConnection | None = None
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    async def attach(self, ipc_path: str) -> None:
        """Connect to the IPC socket once mpv has created it."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + _SOCKET_WAIT_SECONDS
        last_error: Exception | None = None
        while loop.time() < deadline:
            if self._process.returncode is not None:
                raise PlayerFault(f"mpv exited with code {self._process.returncode}")
            if os.path.exists(ipc_path):
                try:
                    reader, writer = await asyncio.open_unix_connection(ipc_path)
                except OSError as exc:
                    last_error = exc
                else:
                    self._connection = MpvIpcConnection(
                        reader,
                        writer,
                        on_event=self._on_ipc_event,
                        on_close=self._on_ipc_closed,
                    )
                    return
            await asyncio.sleep(_SOCKET_POLL_SECONDS)
        raise PlayerFault(f"mpv IPC socket not available: {last_error or ipc_path}")

    def _on_ipc_event(self, message: dict[str, Any]) -> None:
        event = message.get("event")
        if event == "file-loaded":
            self._emit(PlayerReady(player_id=self.player_id))
        elif event == "playback-restart":
            self._emit(PlayerStateChanged(player_id=self.player_id, state=PlayerState.PLAYING))
        elif event == "end-file":
            reason = message.get("reason")
            if reason == "eof":
                self._emit(
                    PlayerStateChanged(player_id=self.player_id, state=PlayerState.ENDED)
                )
            elif reason == "error":
                self._emit(
                    PlayerFailed(
                        player_id=self.player_id,
                        reason=str(message.get("file_error") or "playback error"),
                    )
                )

    def _on_ipc_closed(self) -> None:
        if not self._destroyed:
            log.warning("mpv_connection_lost", player_id=self.player_id)
            self._emit(PlayerFailed(player_id=self.player_id, reason="mpv exited"))

    async def _command(self, *args: Any) -> Any:
        if self._connection is None:
            raise PlayerFault("mpv not attached")
        return await self._connection.command(*args)

    async def load(self, item_id: str) -> None:
        await self._command("loadfile", watch_url(item_id), "replace")

    async def play(self) -> None:
        await self._command("set_property", "pause", False)

    async def mute(self) -> None:
        await self._command("set_property", "mute", True)

    async def stop(self) -> None:
        await self._command("stop")

    async def show_text(self, text: str, duration_ms: int) -> None:
        await self._command("show-text", text, duration_ms)

    async def duration(self) -> float | None:
        try:
            value = await self._command("get_property", "duration")
        except PlayerFault as exc:
            # Before demuxing mpv answers "property unavailable".
            if "unavailable" in str(exc):
                return None
            raise
        return float(value) if isinstance(value, (int, float)) else None

    async def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

        if self._process.returncode is None:
            self._process.terminate()
            try:
                await asyncio.wait_for(self._process.wait(), timeout=_TERMINATE_WAIT_SECONDS)
            except asyncio.TimeoutError:
                self._process.kill()
                await self._process.wait()
        log.debug("mpv_destroyed", player_id=self.player_id)


class MpvPlayerFactory:
    """``PlayerFactoryPort``: spawns an idle mpv and loads the first video.

    Also the status overlay of the kiosk: ``show_status`` draws on the most
    recently created player that is still alive, and a new player starts
    with the last status line on screen.
    """

    def __init__(self, config: PlayerConfig) -> None:
        self._config = config
        self._ids = itertools.count(1)
        self._live: MpvEmbedPlayer | None = None
        self._status_text: str | None = None

    async def show_status(self, text: str) -> None:
        self._status_text = text
        player = self._live
        if player is None or player.destroyed:
            return
        try:
            await player.show_text(text, self._config.status_osd_ms)
        except PlayerFault as exc:
            log.debug("mpv_status_not_shown", player_id=player.player_id, error=str(exc))

    async def create(self, item_id: str, emit: PlayerEventSink) -> MpvEmbedPlayer:
        ipc_path = str(self._config.ipc_path)
        with contextlib.suppress(FileNotFoundError):
            os.unlink(ipc_path)

        try:
            process = await asyncio.create_subprocess_exec(
                *build_mpv_args(self._config),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            raise PlayerFault(f"cannot start mpv: {exc}") from exc

        player = MpvEmbedPlayer(player_id=next(self._ids), process=process, emit=emit)
        try:
            await player.attach(ipc_path)
            await player.load(item_id)
        except PlayerFault:
            await player.destroy()
            raise

        log.info("mpv_started", player_id=player.player_id, pid=process.pid)
        self._live = player
        if self._status_text:
            await self.show_status(self._status_text)
        return player
