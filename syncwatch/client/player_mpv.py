"""mpv player driven over its JSON IPC socket.

Start mpv with ``--input-ipc-server=/tmp/mpv-socket --idle`` and point
the player at the same path. Completions map onto mpv replies and
notifications:

    reply to our set_property pause      -> PAUSE / PLAY
    pause property changed in mpv itself -> PAUSE / PLAY
    playback-restart event               -> SEEK (except the one that starts a file)

mpv coalesces property notifications, so a pause immediately followed by
a play may produce no pause notification at all; completions for our own
play/pause calls therefore come from the command reply.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from ..common.constants import MPV_REPLY_TIMEOUT
from ..common.protocol import ControlKind
from .player import MediaPlayer, PlayerError

logger = logging.getLogger(__name__)

# observe_property ids
_OBSERVE_PAUSE = 1
_OBSERVE_TIME_POS = 2
_OBSERVE_CACHE = 3


class MpvPlayer(MediaPlayer):
    def __init__(self, socket_path: str, reply_timeout: float = MPV_REPLY_TIMEOUT) -> None:
        super().__init__()
        self.socket_path = socket_path
        self.reply_timeout = reply_timeout
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._request_id = 0
        # request_id -> future resolved with mpv's reply
        self._pending: dict[int, asyncio.Future[dict[str, Any]]] = {}
        # Requested pause state; mpv notifications that match it are ours
        self._paused = True
        # False until mpv has reported the initial pause value
        self._pause_observed = False
        self._position = 0.0
        self._ranges: list[tuple[float, float]] = []
        # mpv sends playback-restart when a newly loaded file starts
        self._awaiting_start = False

    async def connect(self) -> None:
        try:
            self._reader, self._writer = await asyncio.open_unix_connection(
                self.socket_path
            )
        except OSError as e:
            raise PlayerError(f"Cannot connect to mpv at {self.socket_path}: {e}") from e
        self._reader_task = asyncio.create_task(self._read_events())
        await self._command("observe_property", _OBSERVE_PAUSE, "pause")
        await self._command("observe_property", _OBSERVE_TIME_POS, "time-pos")
        await self._command("observe_property", _OBSERVE_CACHE, "demuxer-cache-state")

    async def close(self) -> None:
        if self._reader_task:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None
        self._fail_pending("mpv player closed")
        if self._writer:
            self._writer.close()
            try:
                await self._writer.wait_closed()
            except OSError:
                pass
            self._writer = None
        self._reader = None

    async def _command(self, *command: Any) -> dict[str, Any]:
        """Send a command and wait for mpv's reply.

        Raises:
            PlayerError: not connected, the write failed, mpv did not
                answer in time, or mpv answered with an error.
        """
        if self._writer is None:
            raise PlayerError("mpv is not connected")
        self._request_id += 1
        request_id = self._request_id
        reply: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = reply
        payload = {"command": list(command), "request_id": request_id}
        try:
            self._writer.write((json.dumps(payload) + "\n").encode("utf-8"))
            await self._writer.drain()
            result = await asyncio.wait_for(reply, self.reply_timeout)
        except (ConnectionError, OSError) as e:
            raise PlayerError(f"mpv IPC write failed: {e}") from e
        except asyncio.TimeoutError:
            raise PlayerError(f"mpv did not answer {command[0]}") from None
        finally:
            self._pending.pop(request_id, None)

        error = result.get("error")
        if error not in (None, "success"):
            raise PlayerError(f"mpv {command[0]} failed: {error}")
        return result

    def _fail_pending(self, reason: str) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(PlayerError(reason))
        self._pending.clear()

    async def load(self, url: str) -> None:
        self._paused = True
        self._position = 0.0
        self._ranges = []
        self._awaiting_start = True
        await self._command("set_property", "pause", True)
        await self._command("loadfile", url, "replace")

    async def play(self) -> None:
        if not self._paused:
            return
        await self._set_paused(False)
        self._emit_completed(ControlKind.PLAY)

    async def pause(self) -> None:
        if self._paused:
            return
        await self._set_paused(True)
        self._emit_completed(ControlKind.PAUSE)

    async def _set_paused(self, paused: bool) -> None:
        self._paused = paused
        try:
            await self._command("set_property", "pause", paused)
        except PlayerError:
            self._paused = not paused
            raise

    async def seek(self, position: float) -> None:
        self._position = max(0.0, position)
        await self._command("seek", self._position, "absolute")

    @property
    def position(self) -> float:
        return self._position

    @property
    def paused(self) -> bool:
        return self._paused

    def buffered_ranges(self) -> list[tuple[float, float]]:
        return list(self._ranges)

    async def _read_events(self) -> None:
        """Consume mpv replies and notifications until the socket closes."""
        assert self._reader is not None
        try:
            while True:
                line = await self._reader.readline()
                if not line:
                    logger.warning("mpv IPC closed")
                    return
                try:
                    msg = json.loads(line.decode("utf-8"))
                except (json.JSONDecodeError, UnicodeDecodeError):
                    logger.warning(f"Ignoring malformed mpv line: {line!r}")
                    continue
                if isinstance(msg, dict):
                    self._handle_event(msg)
        finally:
            self._fail_pending("mpv IPC closed")

    def _handle_event(self, msg: dict[str, Any]) -> None:
        event = msg.get("event")
        if event is None:
            request_id = msg.get("request_id")
            future = self._pending.get(request_id) if isinstance(request_id, int) else None
            if future is not None and not future.done():
                future.set_result(msg)
            elif msg.get("error") not in (None, "success"):
                logger.debug(f"mpv request {msg.get('request_id')} failed: {msg['error']}")
            return

        if event == "property-change":
            self._handle_property(msg.get("name"), msg.get("data"))
        elif event == "playback-restart":
            if self._awaiting_start:
                self._awaiting_start = False
                return
            self._emit_completed(ControlKind.SEEK)

    def _handle_property(self, name: Any, data: Any) -> None:
        if name == "pause" and isinstance(data, bool):
            if not self._pause_observed:
                # The first notification only reports the initial value
                self._pause_observed = True
                self._paused = data
                return
            if data != self._paused:
                # Toggled in mpv's own window or keybindings
                self._paused = data
                self._emit_completed(
                    ControlKind.PAUSE if data else ControlKind.PLAY
                )
        elif name == "time-pos":
            if isinstance(data, (int, float)) and not isinstance(data, bool):
                self._position = max(0.0, float(data))
        elif name == "demuxer-cache-state":
            ranges = data.get("seekable-ranges", []) if isinstance(data, dict) else []
            self._ranges = [
                (float(r["start"]), float(r["end"]))
                for r in ranges
                if isinstance(r, dict) and "start" in r and "end" in r
            ]
