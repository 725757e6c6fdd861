"""Clock-driven player that tracks playback without rendering media."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from ..common.constants import PROBE_TIMEOUT
from ..common.protocol import ControlKind
from .player import MediaPlayer

logger = logging.getLogger(__name__)


def probe_duration(url: str, timeout: float = PROBE_TIMEOUT) -> float | None:
    """Open a stream with PyAV and return its duration in seconds.

    Blocking; returns None if the stream cannot be opened or reports no
    duration (live streams).
    """
    import av

    try:
        with av.open(url, timeout=timeout) as container:
            if container.duration is None:
                return None
            return float(container.duration / av.time_base)
    except (av.error.FFmpegError, OSError) as e:
        logger.warning(f"Could not probe {url}: {e}")
        return None


class HeadlessPlayer(MediaPlayer):
    """Player whose position advances with a monotonic clock while playing.

    Used for participating in a room without a video output and for
    exercising the sync engine deterministically.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        probe: bool = True,
    ) -> None:
        super().__init__()
        self._clock = clock
        self._probe = probe
        self.url: str | None = None
        self.duration: float | None = None
        self._paused = True
        self._base_position = 0.0  # Position when play state last changed
        self._started_at = 0.0  # Clock value matching _base_position

    async def load(self, url: str) -> None:
        self.url = url
        self._paused = True
        self._base_position = 0.0
        self.duration = None
        if self._probe:
            self.duration = await asyncio.to_thread(probe_duration, url)
        logger.info(f"Loaded {url} (duration={self.duration})")

    async def play(self) -> None:
        if not self._paused:
            return
        self._started_at = self._clock()
        self._paused = False
        self._emit_completed(ControlKind.PLAY)

    async def pause(self) -> None:
        if self._paused:
            return
        self._base_position = self.position
        self._paused = True
        self._emit_completed(ControlKind.PAUSE)

    async def seek(self, position: float) -> None:
        self._base_position = self._clamp(position)
        self._started_at = self._clock()
        self._emit_completed(ControlKind.SEEK)

    def _clamp(self, position: float) -> float:
        position = max(0.0, position)
        if self.duration is not None:
            position = min(position, self.duration)
        return position

    @property
    def position(self) -> float:
        if self._paused:
            return self._base_position
        return self._clamp(self._base_position + self._clock() - self._started_at)

    @property
    def paused(self) -> bool:
        return self._paused

    def buffered_ranges(self) -> list[tuple[float, float]]:
        if self.duration is None:
            return []
        return [(0.0, self.duration)]
