"""Abstract media player interface.

The sync engine drives a player only through play/pause/seek and learns
about their outcome from completion callbacks, so different players
(a headless clock, an external mpv) can sit behind the same surface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any, Callable

from ..common.protocol import ControlKind

CompletionCallback = Callable[[ControlKind], Any]


class PlayerError(Exception):
    """A player operation could not be carried out."""


class MediaPlayer(ABC):
    """Base class for controllable media players.

    Completion semantics follow HTML media elements: ``play()`` on a
    playing player and ``pause()`` on a paused player do nothing and
    report nothing, while every ``seek()`` reports one SEEK completion.
    Completions are delivered on the event loop thread.
    """

    def __init__(self) -> None:
        self._completion_callbacks: list[CompletionCallback] = []

    def on_completed(self, callback: CompletionCallback) -> CompletionCallback:
        """Register a completion callback (usable as a decorator)."""
        self._completion_callbacks.append(callback)
        return callback

    def off_completed(self, callback: CompletionCallback) -> None:
        """Unregister a completion callback."""
        if callback in self._completion_callbacks:
            self._completion_callbacks.remove(callback)

    def _emit_completed(self, kind: ControlKind) -> None:
        for callback in list(self._completion_callbacks):
            callback(kind)

    @abstractmethod
    async def load(self, url: str) -> None:
        """Load a stream, leaving the player paused at 0."""
        ...

    @abstractmethod
    async def play(self) -> None:
        """Resume playback."""
        ...

    @abstractmethod
    async def pause(self) -> None:
        """Pause playback."""
        ...

    @abstractmethod
    async def seek(self, position: float) -> None:
        """Jump to position (seconds) without changing play state."""
        ...

    @property
    @abstractmethod
    def position(self) -> float:
        """Current playback position in seconds."""
        ...

    @property
    @abstractmethod
    def paused(self) -> bool:
        """Whether the player is paused."""
        ...

    @abstractmethod
    def buffered_ranges(self) -> list[tuple[float, float]]:
        """Buffered (start, end) ranges in seconds."""
        ...

    async def connect(self) -> None:
        """Attach to the playback backend before first use."""

    async def close(self) -> None:
        """Release player resources."""


def buffered_ahead(ranges: Iterable[tuple[float, float]], position: float) -> float:
    """Seconds buffered from position to the end of the range containing it.

    Returns 0.0 when no range contains the position.
    """
    for start, end in ranges:
        if start <= position <= end:
            return end - position
    return 0.0


def create_player(backend: str, mpv_socket: str | None = None) -> MediaPlayer:
    """Create a media player for the named backend.

    Args:
        backend: "headless" or "mpv"
        mpv_socket: Path of mpv's JSON IPC socket (mpv backend only)

    Returns:
        An unconnected MediaPlayer instance
    """
    if backend == "headless":
        from .player_headless import HeadlessPlayer

        return HeadlessPlayer()
    elif backend == "mpv":
        if not mpv_socket:
            raise ValueError("mpv backend requires an IPC socket path")
        from .player_mpv import MpvPlayer

        return MpvPlayer(mpv_socket)
    else:
        raise ValueError(f"Unknown player backend: {backend}")
