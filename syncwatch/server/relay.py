"""Websocket relay that rebroadcasts control messages within a room."""

from __future__ import annotations

import asyncio
import logging
import re
from http import HTTPStatus
from urllib.parse import unquote

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed
from websockets.frames import CloseCode
from websockets.http11 import Request, Response

from ..common.protocol import Identity, ProtocolError, decode_message, encode_message
from .room import Room, Watcher
from .room_config import RoomConfig

logger = logging.getLogger(__name__)

_ROOM_PATH = re.compile(r"^/api/([^/]+)/([^/]+)/?$")


def parse_room_path(path: str) -> tuple[str, str] | None:
    """Split ``/api/{room}/{name}/`` into (room, name)."""
    match = _ROOM_PATH.match(path.split("?", 1)[0])
    if match is None:
        return None
    return unquote(match.group(1)), unquote(match.group(2))


class RelayServer:
    def __init__(
        self,
        host: str,
        port: int,
        room_configs: dict[str, RoomConfig],
    ) -> None:
        self.host = host
        self.port = port
        self.room_configs = room_configs
        self.rooms: dict[str, Room] = {}

    def find_room(self, name: str) -> Room | None:
        """Get a live room, creating it from its definition on first use."""
        if name not in self.rooms:
            config = self.room_configs.get(name)
            if config is None:
                return None
            self.rooms[name] = Room(name, config.url)
        return self.rooms[name]

    async def listen(self) -> Server:
        """Start accepting connections and return the listening server."""
        server = await serve(
            self.handle_connection,
            self.host,
            self.port,
            process_request=self._process_request,
        )
        for sock in server.sockets:
            logger.info(f"Relay listening on {sock.getsockname()}")
        return server

    async def start(self) -> None:
        server = await self.listen()
        async with server:
            await server.serve_forever()

    def _process_request(
        self, connection: ServerConnection, request: Request
    ) -> Response | None:
        """Reject handshakes for malformed paths or unknown rooms."""
        target = parse_room_path(request.path)
        if target is None or target[0] not in self.room_configs:
            logger.debug(f"Rejecting websocket request for {request.path}")
            return connection.respond(HTTPStatus.NOT_FOUND, "Unknown room\n")
        return None

    async def handle_connection(self, connection: ServerConnection) -> None:
        target = parse_room_path(connection.request.path)
        room = self.find_room(target[0]) if target is not None else None
        if target is None or room is None:
            logger.warning(f"Closing connection for unknown room: {connection.request.path}")
            await connection.close(CloseCode.POLICY_VIOLATION, "Unknown room")
            return
        room_name, name = target

        watcher = room.add_watcher(name)
        try:
            await connection.send(encode_message(Identity(watcher.id)))
            room.broadcast(room.metadata())
            writer = asyncio.create_task(self._write_loop(connection, watcher))
            try:
                await self._read_loop(connection, room, watcher)
            finally:
                writer.cancel()
                try:
                    await writer
                except asyncio.CancelledError:
                    pass
        except ConnectionClosed as e:
            logger.debug(f"{room_name}/{name}: connection closed: {e}")
        finally:
            room.remove_watcher(watcher.id)
            room.broadcast(room.metadata())

    async def _read_loop(
        self, connection: ServerConnection, room: Room, watcher: Watcher
    ) -> None:
        async for frame in connection:
            try:
                message = decode_message(frame)
            except ProtocolError as e:
                logger.warning(f"{room.name}/{watcher.name}: bad frame: {e}")
                continue
            logger.debug(f"{room.name}/{watcher.name}: received {message}")
            room.handle(watcher, message)

    async def _write_loop(self, connection: ServerConnection, watcher: Watcher) -> None:
        while True:
            frame = await watcher.queue.get()
            await connection.send(frame)
