"""File-based room definitions.

Directory structure:
    rooms/
      movie-night.toml   # url = "https://example.org/film.mp4"
      lecture.toml
The file stem is the room name.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class RoomConfig:
    """Static definition of a room."""

    url: str


def parse_room_config(path: Path) -> RoomConfig:
    """Parse one room file.

    Raises:
        ValueError: the file is not valid TOML or has no string ``url``.
    """
    try:
        data = tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid room file {path}: {e}") from e
    url = data.get("url")
    if not isinstance(url, str) or not url:
        raise ValueError(f"Room file {path} has no 'url'")
    return RoomConfig(url=url)


def load_room_configs(rooms_dir: Path) -> dict[str, RoomConfig]:
    """Load every ``*.toml`` room definition in a directory."""
    if not rooms_dir.is_dir():
        raise FileNotFoundError(f"Rooms directory not found: {rooms_dir}")

    configs: dict[str, RoomConfig] = {}
    for path in sorted(rooms_dir.glob("*.toml")):
        configs[path.stem] = parse_room_config(path)
        logger.info(f"Loaded room {path.stem!r}: {configs[path.stem].url}")
    return configs
