"""Shared fixtures for syncwatch tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Callable

import pytest

from syncwatch.client.channel import ChannelError
from syncwatch.client.player import MediaPlayer, PlayerError
from syncwatch.common.protocol import ControlKind, ControlMessage, Message


class FakePlayer(MediaPlayer):
    """Player that records every call and reports completions immediately."""

    def __init__(self, position: float = 0.0, paused: bool = True) -> None:
        super().__init__()
        self._position = position
        self._paused = paused
        self.ranges: list[tuple[float, float]] = []
        self.calls: list[tuple[str, float | None]] = []
        self.loaded: list[str] = []
        # Operation names that raise PlayerError
        self.fail_on: set[str] = set()

    def _check(self, op: str) -> None:
        if op in self.fail_on:
            raise PlayerError(f"{op} failed")

    async def load(self, url: str) -> None:
        self._check("load")
        self.loaded.append(url)

    async def play(self) -> None:
        self._check("play")
        if not self._paused:
            return
        self.calls.append(("play", None))
        self._paused = False
        self._emit_completed(ControlKind.PLAY)

    async def pause(self) -> None:
        self._check("pause")
        if self._paused:
            return
        self.calls.append(("pause", None))
        self._paused = True
        self._emit_completed(ControlKind.PAUSE)

    async def seek(self, position: float) -> None:
        self._check("seek")
        self.calls.append(("seek", position))
        self._position = position
        self._emit_completed(ControlKind.SEEK)

    @property
    def position(self) -> float:
        return self._position

    @property
    def paused(self) -> bool:
        return self._paused

    def buffered_ranges(self) -> list[tuple[float, float]]:
        return list(self.ranges)


class FakeChannel:
    """In-memory stand-in for SyncChannel.

    Inbound messages are fed with feed(); settle() waits until the
    session has finished handling everything fed so far.
    """

    def __init__(self, uri: str = "ws://relay/api/R/test/") -> None:
        self.uri = uri
        self.sent: list[Message] = []
        self.open_error: ChannelError | None = None
        self.opened = 0
        self.closed = False
        self._inbound: asyncio.Queue[Message | None] = asyncio.Queue()

    @property
    def is_open(self) -> bool:
        return self.opened > 0 and not self.closed

    async def open(self) -> None:
        self.opened += 1
        if self.open_error is not None:
            raise self.open_error
        self.closed = False

    async def send(self, message: Message) -> None:
        if self.closed:
            raise ChannelError("closed")
        self.sent.append(message)

    async def messages(self) -> AsyncIterator[Message]:
        while True:
            message = await self._inbound.get()
            try:
                if message is None:
                    return
                yield message
            finally:
                self._inbound.task_done()

    async def close(self) -> None:
        self.closed = True

    def feed(self, *messages: Message) -> None:
        for message in messages:
            self._inbound.put_nowait(message)

    def end(self) -> None:
        """Simulate the relay closing the connection."""
        self._inbound.put_nowait(None)

    async def settle(self) -> None:
        await self._inbound.join()

    def sent_controls(self) -> list[ControlMessage]:
        return [m for m in self.sent if isinstance(m, ControlMessage)]


async def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    """Poll until predicate() is true or fail after timeout seconds."""

    async def poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_player() -> FakePlayer:
    """A paused player at position 0."""
    return FakePlayer()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
