"""Tests for the synchronization session."""

from __future__ import annotations

import asyncio

import pytest

from syncwatch.client.channel import ChannelError
from syncwatch.client.session import SessionState, SyncSession
from syncwatch.common.protocol import (
    ControlKind,
    ControlMessage,
    Identity,
    MediaMetadata,
    PlaybackState,
    StatusMessage,
    WatcherStatus,
)

from tests.conftest import FakeChannel, FakePlayer, wait_until

URL = "https://media.example/movie.mp4"


def make_session(
    player: FakePlayer | None = None, status_interval: float = 100.0
) -> tuple[SyncSession, FakePlayer, FakeChannel]:
    player = player or FakePlayer()
    channel = FakeChannel()
    session = SyncSession(player, channel, status_interval=status_interval)  # type: ignore[arg-type]
    return session, player, channel


async def loaded_session(
    player: FakePlayer | None = None,
) -> tuple[SyncSession, FakePlayer, FakeChannel]:
    session, player, channel = make_session(player)
    assert await session.join()
    channel.feed(Identity("1"), MediaMetadata(url=URL, watchers=[], name="R"))
    await channel.settle()
    return session, player, channel


def watcher(peer_id: str) -> WatcherStatus:
    return WatcherStatus(peer_id, f"w{peer_id}", 0.0, 0.0, PlaybackState.PAUSED)


class TestJoin:
    """Tests for joining and the session state machine."""

    @pytest.mark.asyncio
    async def test_initial_state(self) -> None:
        session, _, _ = make_session()
        assert session.state == SessionState.DISCONNECTED
        assert session.peer_id is None
        assert not session.connected

    @pytest.mark.asyncio
    async def test_join_then_metadata_loads(self) -> None:
        """Test DISCONNECTED -> JOINED -> LOADED."""
        session, player, channel = make_session()

        assert await session.join()
        assert session.state == SessionState.JOINED
        assert session.heartbeat.running

        channel.feed(MediaMetadata(url=URL, name="Movie night"))
        await channel.settle()

        assert session.state == SessionState.LOADED
        assert player.loaded == [URL]
        assert session.media_url == URL
        assert session.room_name == "Movie night"
        await session.close()

    @pytest.mark.asyncio
    async def test_second_join_ignored(self) -> None:
        """Test concurrent joins open the channel only once."""
        session, _, channel = make_session()

        results = await asyncio.gather(session.join(), session.join())

        assert sorted(results) == [False, True]
        assert channel.opened == 1
        assert await session.join() is False
        await session.close()

    @pytest.mark.asyncio
    async def test_join_failure_allows_retry(self) -> None:
        """Test a failed join leaves the session disconnected and retryable."""
        session, _, channel = make_session()
        channel.open_error = ChannelError("connection refused")

        assert await session.join() is False
        assert session.state == SessionState.DISCONNECTED
        assert not session.heartbeat.running

        channel.open_error = None
        assert await session.join() is True
        assert session.state == SessionState.JOINED
        await session.close()

    @pytest.mark.asyncio
    async def test_identity_sets_peer_id(self) -> None:
        session, _, channel = make_session()
        await session.join()

        channel.feed(Identity("7"))
        await channel.settle()

        assert session.peer_id == "7"
        await session.close()


class TestMetadata:
    """Tests for metadata handling."""

    @pytest.mark.asyncio
    async def test_load_happens_once(self) -> None:
        """Test later metadata does not reload the media."""
        session, player, channel = await loaded_session()

        channel.feed(MediaMetadata(url="https://other.example/x.mp4"))
        await channel.settle()

        assert player.loaded == [URL]
        assert session.state == SessionState.LOADED
        await session.close()

    @pytest.mark.asyncio
    async def test_roster_replaced(self) -> None:
        """Test each metadata replaces the whole watcher table."""
        session, _, channel = await loaded_session()

        channel.feed(MediaMetadata(watchers=[watcher("1"), watcher("2")]))
        await channel.settle()
        assert [w.id for w in session.watchers] == ["1", "2"]

        channel.feed(MediaMetadata(watchers=[watcher("2")]))
        await channel.settle()
        assert [w.id for w in session.watchers] == ["2"]
        await session.close()

    @pytest.mark.asyncio
    async def test_missing_watchers_leaves_table(self) -> None:
        """Test metadata without a roster keeps the current table."""
        session, _, channel = await loaded_session()
        channel.feed(MediaMetadata(watchers=[watcher("1")]))
        await channel.settle()

        channel.feed(MediaMetadata(name="Renamed"))
        await channel.settle()

        assert [w.id for w in session.watchers] == ["1"]
        assert session.room_name == "Renamed"
        await session.close()

    @pytest.mark.asyncio
    async def test_failed_load_retried_on_next_metadata(self) -> None:
        """Test a load error keeps the session JOINED."""
        session, player, channel = make_session()
        player.fail_on.add("load")
        await session.join()

        channel.feed(MediaMetadata(url=URL))
        await channel.settle()
        assert session.state == SessionState.JOINED

        player.fail_on.clear()
        channel.feed(MediaMetadata(url=URL))
        await channel.settle()
        assert session.state == SessionState.LOADED
        assert player.loaded == [URL]
        await session.close()


class TestControl:
    """Tests for remote commands and local user intents."""

    @pytest.mark.asyncio
    async def test_remote_command_not_echoed(self) -> None:
        """Test applying a relayed command sends no control of our own."""
        session, player, channel = await loaded_session(FakePlayer(position=3.0, paused=False))

        channel.feed(ControlMessage(ControlKind.PLAY, 4, 12.0, origin="2"))
        await channel.settle()
        await session.flush(timeout=1.0)

        assert player.calls == [("pause", None), ("seek", 12.0), ("play", None)]
        assert channel.sent_controls() == []
        for kind in ControlKind:
            assert session.suppressor.is_suppressed(kind) is False
        await session.close()

    @pytest.mark.asyncio
    async def test_own_echo_applied(self) -> None:
        """Test a command tagged with our own id is still applied."""
        session, player, channel = await loaded_session()

        channel.feed(ControlMessage(ControlKind.SEEK, 0, 40.0, origin="1"))
        await channel.settle()

        assert player.position == 40.0
        await session.close()

    @pytest.mark.asyncio
    async def test_user_actions_broadcast(self) -> None:
        """Test user play and seek become control messages with rising ids."""
        session, player, channel = await loaded_session(FakePlayer(position=10.0))

        await session.toggle_playback()
        await session.seek_relative(5.0)
        await session.flush(timeout=1.0)

        assert channel.sent_controls() == [
            ControlMessage(ControlKind.PLAY, 0, 10.0),
            ControlMessage(ControlKind.SEEK, 1, 15.0),
        ]
        await session.close()

    @pytest.mark.asyncio
    async def test_seek_relative_clamps_at_zero(self) -> None:
        session, player, channel = await loaded_session(FakePlayer(position=2.0))

        await session.seek_relative(-5.0)
        await session.flush(timeout=1.0)

        assert channel.sent_controls() == [ControlMessage(ControlKind.SEEK, 0, 0.0)]
        await session.close()

    @pytest.mark.asyncio
    async def test_intent_dropped_when_disconnected(self) -> None:
        """Test user actions while disconnected are not queued."""
        session, player, channel = make_session()

        await session.toggle_playback()

        assert player.paused is False
        assert session._outbound.empty()

    @pytest.mark.asyncio
    async def test_player_error_on_toggle_is_logged(self) -> None:
        session, player, channel = await loaded_session()
        player.fail_on.add("play")

        await session.toggle_playback()
        await session.flush(timeout=1.0)

        assert channel.sent_controls() == []
        await session.close()

    @pytest.mark.asyncio
    async def test_relayed_status_ignored(self) -> None:
        session, player, channel = await loaded_session()

        channel.feed(StatusMessage("2", 5.0, 1.0, PlaybackState.PLAYING))
        await channel.settle()

        assert player.calls == []
        await session.close()


class TestHeartbeatAndTeardown:
    """Tests for status broadcast and disconnect."""

    @pytest.mark.asyncio
    async def test_status_sent_after_identity(self) -> None:
        """Test statuses flow once the peer id is known."""
        session, player, channel = make_session(status_interval=0.01)
        await session.join()

        await asyncio.sleep(0.05)
        assert not any(isinstance(m, StatusMessage) for m in channel.sent)

        channel.feed(Identity("3"))
        await wait_until(lambda: any(isinstance(m, StatusMessage) for m in channel.sent))

        status = next(m for m in channel.sent if isinstance(m, StatusMessage))
        assert status.peer_id == "3"
        assert status.state == PlaybackState.PAUSED
        await session.close()

    @pytest.mark.asyncio
    async def test_close_stops_everything(self) -> None:
        """Test close() stops the heartbeat and the channel."""
        session, _, channel = await loaded_session()

        await session.close()

        assert session.state == SessionState.DISCONNECTED
        assert not session.heartbeat.running
        assert channel.closed
        assert session.peer_id is None

    @pytest.mark.asyncio
    async def test_close_twice(self) -> None:
        session, _, _ = await loaded_session()
        await session.close()
        await session.close()
        assert session.state == SessionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_relay_disconnect_tears_down(self) -> None:
        """Test the session disconnects when the relay closes the channel."""
        session, _, channel = await loaded_session()

        channel.end()
        await asyncio.wait_for(session.wait_closed(), 1.0)

        assert session.state == SessionState.DISCONNECTED
        assert not session.heartbeat.running
        assert channel.closed

    @pytest.mark.asyncio
    async def test_rejoin_after_disconnect(self) -> None:
        """Test the join latch is released by a disconnect."""
        session, _, channel = await loaded_session()
        await session.close()

        assert await session.join() is True
        assert channel.opened == 2
        await session.close()
