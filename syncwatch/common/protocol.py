"""Wire protocol for client-relay communication.

Every frame is a standalone JSON object whose single top-level key selects
the message variant:

    {"id": "3"}
    {"metadata": {"url": "...", "watchers": [...]}}
    {"play": {"requestId": 0, "time": 12.0}}
    {"pause": {"requestId": 1, "time": 30.5}}
    {"seek": {"requestId": 2, "time": 61.0}}
    {"status": {"id": "3", "position": 1.5, "buffered": 4.0, "state": "playing"}}
"""

from __future__ import annotations

import enum
import json
import math
from dataclasses import dataclass
from typing import Any, Union


class ProtocolError(ValueError):
    """A frame could not be decoded into a known message."""


class PlaybackState(str, enum.Enum):
    PLAYING = "playing"
    PAUSED = "paused"


class ControlKind(str, enum.Enum):
    PLAY = "play"
    PAUSE = "pause"
    SEEK = "seek"


@dataclass(frozen=True)
class WatcherStatus:
    id: str
    name: str
    position: float
    buffered: float  # Seconds buffered ahead of position
    state: PlaybackState


@dataclass(frozen=True)
class Identity:
    peer_id: str


@dataclass(frozen=True)
class MediaMetadata:
    url: str = ""
    # None when the frame carried no roster (table is left untouched)
    watchers: list[WatcherStatus] | None = None
    name: str = ""


@dataclass(frozen=True)
class ControlMessage:
    kind: ControlKind
    request_id: int
    time: float
    origin: str | None = None  # Sender's peer id, stamped by the relay


@dataclass(frozen=True)
class StatusMessage:
    peer_id: str | None
    position: float
    buffered: float
    state: PlaybackState


Message = Union[Identity, MediaMetadata, ControlMessage, StatusMessage]

# Order in which top-level keys are tried when classifying a frame
_VARIANT_KEYS = ("id", "metadata", "play", "pause", "seek", "status")


def _require_object(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ProtocolError(f"{what} must be an object")
    return value


def _number(data: dict[str, Any], key: str, *, minimum: float | None = None) -> float:
    value = data.get(key)
    # bool is an int subclass but never a valid number on the wire
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProtocolError(f"'{key}' must be a number")
    try:
        number = float(value)
    except OverflowError:
        raise ProtocolError(f"'{key}' must be finite") from None
    # json.loads accepts NaN and Infinity
    if not math.isfinite(number):
        raise ProtocolError(f"'{key}' must be finite")
    if minimum is not None and number < minimum:
        raise ProtocolError(f"'{key}' must be >= {minimum}")
    return number


def _peer_id(value: Any) -> str:
    """Normalize a peer id; relays may send ids as integers."""
    if isinstance(value, str) and value:
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    raise ProtocolError("peer id must be a non-empty string or an integer")


def _state(value: Any) -> PlaybackState:
    try:
        return PlaybackState(value)
    except ValueError:
        raise ProtocolError(f"unknown playback state: {value!r}") from None


# ID: peer id assigned by the relay
def serialize_identity(identity: Identity) -> dict[str, Any]:
    return {"id": identity.peer_id}


def deserialize_identity(value: Any) -> Identity:
    return Identity(_peer_id(value))


# WATCHER: one roster entry
def serialize_watcher(watcher: WatcherStatus) -> dict[str, Any]:
    return {
        "id": watcher.id,
        "name": watcher.name,
        "position": watcher.position,
        "buffered": watcher.buffered,
        "state": watcher.state.value,
    }


def deserialize_watcher(value: Any) -> WatcherStatus:
    data = _require_object(value, "watcher")
    name = data.get("name", "")
    if not isinstance(name, str):
        raise ProtocolError("'name' must be a string")
    return WatcherStatus(
        id=_peer_id(data.get("id")),
        name=name,
        position=_number(data, "position", minimum=0.0),
        buffered=_number(data, "buffered", minimum=0.0),
        state=_state(data.get("state")),
    )


# METADATA: stream url + roster
def serialize_metadata(metadata: MediaMetadata) -> dict[str, Any]:
    payload: dict[str, Any] = {"url": metadata.url}
    if metadata.name:
        payload["name"] = metadata.name
    if metadata.watchers is not None:
        payload["watchers"] = [serialize_watcher(w) for w in metadata.watchers]
    return {"metadata": payload}


def deserialize_metadata(value: Any) -> MediaMetadata:
    data = _require_object(value, "metadata")
    url = data.get("url", "")
    name = data.get("name", "")
    if not isinstance(url, str) or not isinstance(name, str):
        raise ProtocolError("'url' and 'name' must be strings")
    watchers: list[WatcherStatus] | None = None
    if "watchers" in data:
        raw = data["watchers"]
        if not isinstance(raw, list):
            raise ProtocolError("'watchers' must be a list")
        watchers = [deserialize_watcher(w) for w in raw]
    return MediaMetadata(url=url, watchers=watchers, name=name)


# PLAY / PAUSE / SEEK: requestId, time (+ origin id when relayed)
def serialize_control(message: ControlMessage) -> dict[str, Any]:
    payload: dict[str, Any] = {"requestId": message.request_id, "time": message.time}
    if message.origin is not None:
        payload["id"] = message.origin
    return {message.kind.value: payload}


def deserialize_control(kind: ControlKind, value: Any) -> ControlMessage:
    data = _require_object(value, kind.value)
    request_id = data.get("requestId")
    if isinstance(request_id, bool) or not isinstance(request_id, int):
        raise ProtocolError("'requestId' must be an integer")
    origin = data.get("id")
    return ControlMessage(
        kind=kind,
        request_id=request_id,
        time=_number(data, "time", minimum=0.0),
        origin=None if origin is None else _peer_id(origin),
    )


# STATUS: heartbeat
def serialize_status(status: StatusMessage) -> dict[str, Any]:
    return {
        "status": {
            "id": status.peer_id,
            "position": status.position,
            "buffered": status.buffered,
            "state": status.state.value,
        }
    }


def deserialize_status(value: Any) -> StatusMessage:
    data = _require_object(value, "status")
    peer_id = data.get("id")
    return StatusMessage(
        peer_id=None if peer_id is None else _peer_id(peer_id),
        position=_number(data, "position", minimum=0.0),
        buffered=_number(data, "buffered", minimum=0.0),
        state=_state(data.get("state")),
    )


def encode_message(message: Message) -> str:
    """Encode a message as a single JSON text frame."""
    if isinstance(message, Identity):
        payload = serialize_identity(message)
    elif isinstance(message, MediaMetadata):
        payload = serialize_metadata(message)
    elif isinstance(message, ControlMessage):
        payload = serialize_control(message)
    elif isinstance(message, StatusMessage):
        payload = serialize_status(message)
    else:
        raise TypeError(f"Cannot encode {type(message).__name__}")
    return json.dumps(payload)


def decode_message(frame: str | bytes) -> Message:
    """Decode a text frame, classifying it by its first recognized key.

    Raises:
        ProtocolError: the frame is not JSON, not an object, carries none
            of the recognized keys, or has invalid fields.
    """
    try:
        data = json.loads(frame)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ProtocolError(f"invalid JSON: {e}") from e
    data = _require_object(data, "frame")

    key = next((k for k in _VARIANT_KEYS if k in data), None)
    if key is None:
        raise ProtocolError(f"unrecognized frame keys: {sorted(data)}")

    value = data[key]
    if key == "id":
        return deserialize_identity(value)
    if key == "metadata":
        return deserialize_metadata(value)
    if key == "status":
        return deserialize_status(value)
    return deserialize_control(ControlKind(key), value)
