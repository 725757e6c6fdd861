"""Shared constants for playback sync and networking."""

# Status heartbeat
STATUS_INTERVAL = 1.0  # Seconds between status broadcasts

# Keyboard seeking
SEEK_STEP = 5.0  # Seconds per Left/Right press

# Stream probing
PROBE_TIMEOUT = 10.0  # Seconds PyAV may spend opening a stream

# Network
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8003
DEFAULT_SERVER = f"ws://{DEFAULT_HOST}:{DEFAULT_PORT}"
CONNECT_TIMEOUT = 10.0  # Seconds to complete the websocket handshake

# Relay
ROOM_QUEUE_SIZE = 64  # Outbound frames buffered per watcher

# mpv IPC
MPV_REPLY_TIMEOUT = 5.0  # Seconds to wait for mpv to answer a command
