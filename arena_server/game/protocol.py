"""JSON messages between arena clients and the server.

Every message is one object: {"type": <str>, "data": {...}}.

Client -> server: join, move, leave, ping.
Server -> client: hello, welcome, snapshot, pong, error.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any

CLIENT_TYPES = frozenset({"join", "move", "leave", "ping"})


class ProtocolError(ValueError):
    """A client message we refuse to act on. The text goes back to the client."""


def encode(msg_type: str, data: dict[str, Any]) -> str:
    return json.dumps({"type": msg_type, "data": data}, separators=(",", ":"))


def decode(text: str) -> tuple[str, dict[str, Any]]:
    try:
        envelope = json.loads(text)
    except ValueError as e:
        raise ProtocolError(f"invalid json: {e}") from None
    if not isinstance(envelope, dict) or not isinstance(envelope.get("type"), str):
        raise ProtocolError("expected an object with a string 'type'")
    msg_type = envelope["type"]
    if msg_type not in CLIENT_TYPES:
        raise ProtocolError(f"unknown message type {msg_type!r}")
    body = envelope.get("data")
    if body is None:
        return msg_type, {}
    if not isinstance(body, dict):
        raise ProtocolError("'data' must be an object")
    return msg_type, body


def _coord(data: dict[str, Any], key: str) -> float:
    try:
        v = float(data[key])
    except (KeyError, TypeError, ValueError):
        raise ProtocolError(f"move.{key} must be a number") from None
    if not math.isfinite(v):
        raise ProtocolError(f"move.{key} must be finite")
    return v


@dataclass(frozen=True)
class JoinRequest:
    roomId: str | None
    name: str

    @classmethod
    def parse(cls, data: dict[str, Any]) -> "JoinRequest":
        room_id = data.get("roomId")
        name = data.get("playerName")
        name = name.strip()[:24] if isinstance(name, str) else ""
        return cls(roomId=room_id if isinstance(room_id, str) and room_id else None, name=name or "Player")


@dataclass(frozen=True)
class MoveRequest:
    seq: int
    target: tuple[float, float]

    @classmethod
    def parse(cls, data: dict[str, Any]) -> "MoveRequest":
        seq = data.get("seq")
        if not isinstance(seq, int) or isinstance(seq, bool) or seq < 0:
            raise ProtocolError("move.seq must be a non-negative integer")
        return cls(seq=seq, target=(_coord(data, "x"), _coord(data, "y")))
