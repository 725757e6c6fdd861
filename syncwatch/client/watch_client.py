"""Interactive client: a sync session plus the terminal UI."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from blessed import Terminal
from blessed.keyboard import Keystroke

from .heartbeat import sample_status
from .input_handler import get_seek_delta, is_quit_key, is_toggle_key
from .session import SessionState, SyncSession
from .terminal_ui import TerminalUI

logger = logging.getLogger(__name__)

FRAME_INTERVAL = 0.1  # Seconds between UI refreshes
FLUSH_TIMEOUT = 1.0  # Seconds to wait for outbound messages on quit


class WatchClient:
    def __init__(self, session: SyncSession, room: str, name: str) -> None:
        self.session = session
        self.room = room
        self.name = name
        self.running = False
        self.term: Any = Terminal()
        self.ui = TerminalUI(self.term)

    async def run(self) -> None:
        """Main client loop; returns on quit or when the session ends."""
        self.running = True
        try:
            with self.term.fullscreen(), self.term.cbreak(), self.term.hidden_cursor():
                self._render()
                while self.running and self.session.state != SessionState.DISCONNECTED:
                    # Drain all pending input
                    while True:
                        key = self.term.inkey(timeout=0)
                        if not key:
                            break
                        await self._handle_input(key)
                    self._render()
                    await asyncio.sleep(FRAME_INTERVAL)
        finally:
            self.running = False
            try:
                await self.session.flush(timeout=FLUSH_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("Outbound messages still queued at exit")
            await self.session.close()
            self.ui.cleanup()

    async def _handle_input(self, key: Keystroke) -> None:
        if is_quit_key(key):
            self.running = False
            return

        if is_toggle_key(key):
            await self.session.toggle_playback()
            return

        delta = get_seek_delta(key)
        if delta is not None:
            await self.session.seek_relative(delta)

    def _render(self) -> None:
        status = sample_status(self.session.player, self.session.peer_id)
        self.ui.render(
            self.session.room_name or self.room,
            self.name,
            self.session.state.value,
            status.position,
            self.session.player.paused,
            status.buffered,
            self.session.watchers.snapshot(),
            self.session.peer_id,
        )
