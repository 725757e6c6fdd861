"""Websocket channel to the relay."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from urllib.parse import quote

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from ..common.constants import CONNECT_TIMEOUT
from ..common.protocol import Message, ProtocolError, decode_message, encode_message

logger = logging.getLogger(__name__)


class ChannelError(Exception):
    """The channel could not be opened or used."""


def room_uri(server: str, room: str, name: str) -> str:
    """Build the relay endpoint for joining a room under a display name."""
    return f"{server.rstrip('/')}/api/{quote(room, safe='')}/{quote(name, safe='')}/"


class SyncChannel:
    """Encodes outbound messages and decodes inbound frames.

    One connection attempt per open(); there is no reconnect. Frames that
    fail to decode are logged and dropped without ending the stream.
    """

    def __init__(self, uri: str, connect_timeout: float = CONNECT_TIMEOUT) -> None:
        self.uri = uri
        self.connect_timeout = connect_timeout
        self._connection: ClientConnection | None = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    async def open(self) -> None:
        logger.info(f"Connecting to {self.uri}")
        try:
            self._connection = await connect(
                self.uri, open_timeout=self.connect_timeout
            )
        except (OSError, TimeoutError, InvalidHandshake, InvalidURI) as e:
            raise ChannelError(f"Failed to connect to {self.uri}: {e}") from e

    async def send(self, message: Message) -> None:
        if self._connection is None:
            raise ChannelError("Channel is not open")
        try:
            await self._connection.send(encode_message(message))
        except ConnectionClosed as e:
            raise ChannelError(f"Connection closed: {e}") from e

    async def messages(self) -> AsyncIterator[Message]:
        """Yield decoded inbound messages until the connection ends."""
        if self._connection is None:
            raise ChannelError("Channel is not open")
        try:
            async for frame in self._connection:
                try:
                    message = decode_message(frame)
                except ProtocolError as e:
                    logger.warning(f"Dropping malformed frame {frame!r}: {e}")
                    continue
                yield message
        except ConnectionClosed as e:
            logger.warning(f"Connection to relay lost: {e}")
        logger.info("Channel closed")

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
