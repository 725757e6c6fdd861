"""Relay entry point."""

import argparse
import asyncio
import logging
from pathlib import Path

from ..common.constants import DEFAULT_HOST, DEFAULT_PORT
from .relay import RelayServer
from .room_config import load_room_configs


def main() -> None:
    parser = argparse.ArgumentParser(description="syncwatch relay")
    parser.add_argument("--host", default=DEFAULT_HOST, help="Host to bind to")
    parser.add_argument(
        "--port", type=int, default=DEFAULT_PORT, help="Port to bind to"
    )
    parser.add_argument(
        "--rooms-dir",
        default="./rooms",
        help="Directory containing <room>.toml definitions (default: ./rooms)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger("websockets").setLevel(logging.WARNING)

    rooms = load_room_configs(Path(args.rooms_dir))
    server = RelayServer(args.host, args.port, rooms)
    try:
        asyncio.run(server.start())
    except KeyboardInterrupt:
        print("\nRelay stopped")


if __name__ == "__main__":
    main()
