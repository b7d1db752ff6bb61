"""
Wire schema for playback-control events and the song-list handshake

Client -> server and server -> client (relay):
    {"action": "PLAY"|"PAUSE"|"SEEK"|"NEW_TRACK",
     "payload": {"title": str, "size": int, "duration": float}}

Server -> client (once, right after connecting):
    {"songs": ["a.mp3", "b.mp3", ...]}
"""
import json
import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List


class ProtocolError(ValueError):
    """Raised when an inbound frame is not a valid control message"""


class Action(str, Enum):
    PLAY = "PLAY"
    PAUSE = "PAUSE"
    SEEK = "SEEK"
    NEW_TRACK = "NEW_TRACK"


@dataclass(frozen=True)
class AudioInfo:
    title: str = ""
    size: int = 0
    duration: float = 0.0


@dataclass(frozen=True)
class ControlMessage:
    action: Action
    payload: AudioInfo = field(default_factory=AudioInfo)

    def to_dict(self) -> dict:
        return {"action": self.action.value, "payload": asdict(self.payload)}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), allow_nan=False)


@dataclass(frozen=True)
class SongListMessage:
    songs: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"songs": list(self.songs)}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), allow_nan=False)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _field(raw: dict, key: str, default):
    # JSON null reads as the zero value, same as a missing key
    value = raw.get(key)
    return default if value is None else value


def _reject_constant(name):
    raise ValueError(f"{name} is not valid JSON")


def _decode_payload(raw) -> AudioInfo:
    if not isinstance(raw, dict):
        raise ProtocolError("payload must be an object")

    title = _field(raw, "title", "")
    size = _field(raw, "size", 0)
    duration = _field(raw, "duration", 0.0)

    if not isinstance(title, str):
        raise ProtocolError("payload.title must be a string")
    if not _is_int(size):
        raise ProtocolError("payload.size must be an integer")
    if not (_is_int(duration) or isinstance(duration, float)):
        raise ProtocolError("payload.duration must be a number")
    try:
        duration = float(duration)
    except OverflowError:
        raise ProtocolError("payload.duration is out of range") from None
    # 1e400 parses as inf
    if not math.isfinite(duration):
        raise ProtocolError("payload.duration must be finite")

    return AudioInfo(title=title, size=size, duration=duration)


def decode_control(text: str) -> ControlMessage:
    """
    Parse one text frame into a ControlMessage

    The payload object is required (this also rejects the older
    {action, timestamp} shape), but fields missing from it fall back to their
    zero values. Unknown keys are ignored.
    """
    try:
        data = json.loads(text, parse_constant=_reject_constant)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ProtocolError("message must be a JSON object")

    try:
        action = Action(data.get("action"))
    except ValueError:
        raise ProtocolError(f"unknown action: {data.get('action')!r}") from None

    return ControlMessage(action=action, payload=_decode_payload(data.get("payload")))
