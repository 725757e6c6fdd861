"""Client entry point."""

import argparse
import asyncio
import logging

from ..common.constants import CONNECT_TIMEOUT, DEFAULT_SERVER
from .channel import SyncChannel, room_uri
from .player import PlayerError, create_player
from .session import SyncSession
from .watch_client import WatchClient


def setup_logging(log_file: str) -> None:
    """Configure logging to file only (console would interfere with TUI)."""
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_file),
        ],
    )
    # Suppress websockets frame dumps
    logging.getLogger("websockets").setLevel(logging.WARNING)


def main() -> None:
    parser = argparse.ArgumentParser(description="syncwatch client")
    parser.add_argument("room", help="Room to join")
    parser.add_argument("name", help="Display name")
    parser.add_argument(
        "--server", default=DEFAULT_SERVER, help="Relay websocket base URL"
    )
    parser.add_argument(
        "--player",
        choices=["headless", "mpv"],
        default="headless",
        help="Player backend (default: headless)",
    )
    parser.add_argument(
        "--mpv-socket",
        default="/tmp/mpv-socket",
        help="mpv JSON IPC socket path (default: /tmp/mpv-socket)",
    )
    parser.add_argument(
        "--connect-timeout",
        type=float,
        default=CONNECT_TIMEOUT,
        help="Seconds to wait for the relay handshake",
    )
    parser.add_argument(
        "--log", help="Log file path (logging disabled if not specified)"
    )
    args = parser.parse_args()

    if args.log:
        setup_logging(args.log)
    else:
        # Suppress all logging output (no stderr spam during TUI)
        logging.getLogger().addHandler(logging.NullHandler())

    async def run_client() -> None:
        player = create_player(args.player, mpv_socket=args.mpv_socket)
        try:
            await player.connect()
        except PlayerError as e:
            print(e)
            return

        channel = SyncChannel(
            room_uri(args.server, args.room, args.name),
            connect_timeout=args.connect_timeout,
        )
        session = SyncSession(player, channel)
        try:
            if await session.join():
                await WatchClient(session, args.room, args.name).run()
            else:
                print("Failed to connect to relay")
        finally:
            await player.close()

    try:
        asyncio.run(run_client())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
