"""Room and watcher state for the relay."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from ..common.constants import ROOM_QUEUE_SIZE
from ..common.protocol import (
    ControlMessage,
    MediaMetadata,
    Message,
    PlaybackState,
    StatusMessage,
    WatcherStatus,
    encode_message,
)

logger = logging.getLogger(__name__)


@dataclass
class Watcher:
    id: str
    name: str
    # Encoded frames waiting to be written to this watcher's socket
    queue: asyncio.Queue[str] = field(
        default_factory=lambda: asyncio.Queue(maxsize=ROOM_QUEUE_SIZE)
    )
    position: float = 0.0
    buffered: float = 0.0
    state: PlaybackState = PlaybackState.PAUSED

    def status(self) -> WatcherStatus:
        return WatcherStatus(
            id=self.id,
            name=self.name,
            position=self.position,
            buffered=self.buffered,
            state=self.state,
        )


class Room:
    """Watchers sharing one stream; every event is rebroadcast to all."""

    def __init__(self, name: str, url: str) -> None:
        self.name = name
        self.url = url
        self.watchers: dict[str, Watcher] = {}
        self._next_id = 1

    def add_watcher(self, name: str) -> Watcher:
        watcher = Watcher(id=str(self._next_id), name=name)
        self._next_id += 1
        self.watchers[watcher.id] = watcher
        logger.info(f"{self.name}: {name} joined as {watcher.id}")
        return watcher

    def remove_watcher(self, watcher_id: str) -> bool:
        watcher = self.watchers.pop(watcher_id, None)
        if watcher is None:
            return False
        logger.info(f"{self.name}: {watcher.name} ({watcher_id}) left")
        return True

    def update_status(self, watcher_id: str, status: StatusMessage) -> None:
        watcher = self.watchers.get(watcher_id)
        if watcher is None:
            return
        watcher.position = status.position
        watcher.buffered = status.buffered
        watcher.state = status.state

    def metadata(self) -> MediaMetadata:
        return MediaMetadata(
            url=self.url,
            watchers=[w.status() for w in self.watchers.values()],
            name=self.name,
        )

    def broadcast(self, message: Message) -> None:
        """Queue a message for every watcher, including its sender."""
        frame = encode_message(message)
        for watcher in list(self.watchers.values()):
            try:
                watcher.queue.put_nowait(frame)
            except asyncio.QueueFull:
                logger.warning(f"{self.name}: queue full for {watcher.name}, dropping")

    def handle(self, watcher: Watcher, message: Message) -> None:
        """Apply a message received from one of this room's watchers."""
        if isinstance(message, ControlMessage):
            # The connection, not the frame, decides who sent it
            self.broadcast(
                ControlMessage(
                    kind=message.kind,
                    request_id=message.request_id,
                    time=message.time,
                    origin=watcher.id,
                )
            )
        elif isinstance(message, StatusMessage):
            self.update_status(watcher.id, message)
            self.broadcast(self.metadata())
        else:
            logger.warning(
                f"{self.name}: unexpected {type(message).__name__} from {watcher.name}"
            )
