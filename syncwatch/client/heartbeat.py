"""Periodic status broadcast of local playback."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from ..common.constants import STATUS_INTERVAL
from ..common.protocol import PlaybackState, StatusMessage
from .player import MediaPlayer, buffered_ahead

logger = logging.getLogger(__name__)


def sample_status(player: MediaPlayer, peer_id: str | None) -> StatusMessage:
    """Snapshot the player's position, buffered-ahead amount and state."""
    position = player.position
    return StatusMessage(
        peer_id=peer_id,
        position=position,
        buffered=buffered_ahead(player.buffered_ranges(), position),
        state=PlaybackState.PAUSED if player.paused else PlaybackState.PLAYING,
    )


class StatusHeartbeat:
    """Sends a status message every interval while running.

    Push-only: statuses are not acknowledged and a lost one is simply
    superseded by the next tick. Ticks are skipped until the relay has
    assigned a peer id.
    """

    def __init__(
        self,
        player: MediaPlayer,
        send: Callable[[StatusMessage], None],
        peer_id: Callable[[], str | None],
        interval: float = STATUS_INTERVAL,
    ) -> None:
        self._player = player
        self._send = send
        self._peer_id = peer_id
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        if task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def tick(self) -> StatusMessage | None:
        """Sample and send one status; returns it, or None if skipped."""
        peer_id = self._peer_id()
        if peer_id is None:
            logger.debug("No peer id yet, skipping status")
            return None
        status = sample_status(self._player, peer_id)
        self._send(status)
        return status

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()
