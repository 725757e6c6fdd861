"""Playback synchronization session.

A session ties one player to one relay connection. Everything it owns
(suppression latches, watcher table, peer id, session state) is mutated
only from the event loop: inbound frames are handled one at a time, to
completion, and player completions arrive as plain callbacks on the same
loop.

    player completion -> EchoSuppressor -> UserIntent -> outbound queue
    inbound frame -> RemoteCommandApplier -> player
                  -> WatcherTable
"""

from __future__ import annotations

import asyncio
import enum
import itertools
import logging

from ..common.constants import STATUS_INTERVAL
from ..common.protocol import (
    ControlMessage,
    Identity,
    MediaMetadata,
    Message,
    StatusMessage,
)
from .applier import RemoteCommandApplier
from .channel import ChannelError, SyncChannel
from .heartbeat import StatusHeartbeat
from .player import MediaPlayer, PlayerError
from .suppression import EchoSuppressor, UserIntent
from .watchers import WatcherTable

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    JOINED = "joined"
    LOADED = "loaded"


class SyncSession:
    def __init__(
        self,
        player: MediaPlayer,
        channel: SyncChannel,
        status_interval: float = STATUS_INTERVAL,
    ) -> None:
        self.player = player
        self.channel = channel
        self.state = SessionState.DISCONNECTED
        self.peer_id: str | None = None
        self.room_name = ""
        self.media_url: str | None = None
        self.watchers = WatcherTable()
        self.suppressor = EchoSuppressor(
            self._on_user_intent, lambda: self.player.position
        )
        self.applier = RemoteCommandApplier(player, self.suppressor)
        self.heartbeat = StatusHeartbeat(
            player, self._enqueue, lambda: self.peer_id, status_interval
        )
        self._joining = False
        self._request_ids = itertools.count()
        # Control and status messages leave in the order they were produced
        self._outbound: asyncio.Queue[Message] = asyncio.Queue()
        self._sender_task: asyncio.Task[None] | None = None
        self._receiver_task: asyncio.Task[None] | None = None
        self._disconnected = asyncio.Event()
        self._disconnected.set()
        player.on_completed(self.suppressor.on_completed)

    @property
    def connected(self) -> bool:
        return self.state in (SessionState.JOINED, SessionState.LOADED)

    async def join(self) -> bool:
        """Connect to the relay and start the session's tasks.

        Returns False if a join is already underway or the connection
        failed; a failed join leaves the session disconnected and may be
        retried.
        """
        if self._joining:
            logger.debug("Join already in progress, ignoring")
            return False
        self._joining = True
        self._disconnected.clear()
        self.state = SessionState.CONNECTING

        try:
            await self.channel.open()
        except ChannelError as e:
            logger.error(f"Join failed: {e}")
            self.state = SessionState.DISCONNECTED
            self._joining = False
            self._disconnected.set()
            return False

        self.state = SessionState.JOINED
        logger.info(f"Joined via {self.channel.uri}")
        self._sender_task = asyncio.create_task(self._send_loop())
        self._receiver_task = asyncio.create_task(self._receive_loop())
        self.heartbeat.start()
        return True

    async def close(self) -> None:
        """Stop the heartbeat, close the channel and disconnect."""
        await self._teardown()

    async def wait_closed(self) -> None:
        await self._disconnected.wait()

    async def flush(self, timeout: float | None = None) -> None:
        """Wait until every queued outbound message has been sent."""
        await asyncio.wait_for(self._outbound.join(), timeout)

    async def handle_message(self, message: Message) -> None:
        """Dispatch one inbound message."""
        if isinstance(message, Identity):
            self.peer_id = message.peer_id
            logger.info(f"Assigned peer id {self.peer_id}")
        elif isinstance(message, MediaMetadata):
            await self._handle_metadata(message)
        elif isinstance(message, ControlMessage):
            # Relays echo commands to their sender too; applied regardless
            if message.origin is not None and message.origin == self.peer_id:
                logger.debug(f"Applying own {message.kind.value} echo")
            await self.applier.apply(message)
        elif isinstance(message, StatusMessage):
            logger.debug(f"Ignoring relayed status from {message.peer_id}")

    async def _handle_metadata(self, metadata: MediaMetadata) -> None:
        if metadata.name:
            self.room_name = metadata.name
        if metadata.url and self.state == SessionState.JOINED:
            try:
                await self.player.load(metadata.url)
            except PlayerError as e:
                # Stay JOINED so the next metadata retries the load
                logger.error(f"Failed to load {metadata.url}: {e}")
            else:
                self.media_url = metadata.url
                self.state = SessionState.LOADED
                logger.info(f"Loaded {metadata.url}")
        if metadata.watchers is not None:
            self.watchers.replace_all(metadata.watchers)

    # User actions (not suppressed, so they are broadcast)

    async def toggle_playback(self) -> None:
        try:
            if self.player.paused:
                await self.player.play()
            else:
                await self.player.pause()
        except PlayerError as e:
            logger.warning(f"Toggle playback failed: {e}")

    async def seek_relative(self, delta: float) -> None:
        try:
            await self.player.seek(max(0.0, self.player.position + delta))
        except PlayerError as e:
            logger.warning(f"Seek failed: {e}")

    def _on_user_intent(self, intent: UserIntent) -> None:
        if not self.connected:
            logger.debug(f"Not joined, dropping user {intent.kind.value}")
            return
        self._enqueue(
            ControlMessage(
                kind=intent.kind,
                request_id=next(self._request_ids),
                time=intent.position,
            )
        )

    def _enqueue(self, message: Message) -> None:
        self._outbound.put_nowait(message)

    async def _send_loop(self) -> None:
        while True:
            message = await self._outbound.get()
            try:
                await self.channel.send(message)
            except ChannelError as e:
                logger.warning(f"Send failed: {e}")
                return
            finally:
                self._outbound.task_done()

    async def _receive_loop(self) -> None:
        try:
            async for message in self.channel.messages():
                await self.handle_message(message)
        finally:
            await self._teardown()

    async def _teardown(self) -> None:
        if self.state == SessionState.DISCONNECTED:
            return
        self.state = SessionState.DISCONNECTED
        await self.heartbeat.stop()
        current = asyncio.current_task()
        for task in (self._sender_task, self._receiver_task):
            if task is not None and task is not current:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._sender_task = None
        self._receiver_task = None
        # Release anyone waiting in flush()
        while not self._outbound.empty():
            self._outbound.get_nowait()
            self._outbound.task_done()
        await self.channel.close()
        self.peer_id = None
        self._joining = False
        self._disconnected.set()
        logger.info("Session disconnected")
