"""Applies remote control commands to the local player."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from ..common.protocol import ControlKind, ControlMessage
from .player import MediaPlayer, PlayerError
from .suppression import EchoSuppressor

logger = logging.getLogger(__name__)


class RemoteCommandApplier:
    """Drives the player through pause -> seek -> (play) for every command.

    The sender's time is authoritative, so every command seeks, and the
    stream is paused before seeking. Steps that would be no-ops (pausing
    a paused player, playing a playing one) are skipped: they produce no
    completion, so marking them would leave the latch suppressed and
    swallow the user's next action.
    """

    def __init__(self, player: MediaPlayer, suppressor: EchoSuppressor) -> None:
        self._player = player
        self._suppressor = suppressor

    async def apply(self, message: ControlMessage) -> None:
        logger.debug(
            f"Applying {message.kind.value} at {message.time:.2f} "
            f"(request {message.request_id}, from {message.origin})"
        )
        if not self._player.paused:
            await self._drive(ControlKind.PAUSE, self._player.pause)

        await self._drive(ControlKind.SEEK, lambda: self._player.seek(message.time))

        if message.kind == ControlKind.PLAY and self._player.paused:
            await self._drive(ControlKind.PLAY, self._player.play)

    async def _drive(
        self, kind: ControlKind, operation: Callable[[], Awaitable[None]]
    ) -> None:
        self._suppressor.mark_suppressed(kind)
        try:
            await operation()
        except PlayerError as e:
            # No completion will come for a failed call
            self._suppressor.arm(kind)
            logger.warning(f"Remote {kind.value} failed: {e}")
