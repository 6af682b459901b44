"""Snapshot and input records exchanged between the host engine and mirrors.

Everything here is immutable once built. The host engine keeps its own
mutable bodies and only hands out `WorldState` copies, so a mirror can hold a
reference without anyone changing it underneath.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

# Body fields carried on the wire; anything else in a player record is a
# game-specific extra.
BODY_FIELDS = ("key", "x", "y", "vx", "vy", "r", "alive")
WORLD_FIELDS = ("tick", "timeLeft", "roundOver", "winnerKey", "players")


class MalformedMessage(ValueError):
    """Raised when a relay payload cannot be decoded into a record."""


def _number(value, name: str) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError, OverflowError):
        raise MalformedMessage(f"{name} is not a number: {value!r}") from None
    if math.isnan(out) or math.isinf(out):
        raise MalformedMessage(f"{name} is not finite")
    return out


def normalize_axes(ax: float, ay: float) -> Tuple[float, float]:
    """Clamp both axes to [-1, 1] and scale a non-zero intent to unit length."""
    ax = max(-1.0, min(1.0, float(ax)))
    ay = max(-1.0, min(1.0, float(ay)))
    length = math.hypot(ax, ay)
    if length == 0:
        return 0.0, 0.0
    return ax / length, ay / length


@dataclass(frozen=True)
class InputSample:
    key: str
    ax: float = 0.0
    ay: float = 0.0
    t: float = 0.0

    @classmethod
    def build(cls, key: str, ax: float, ay: float, t: float) -> "InputSample":
        nx, ny = normalize_axes(ax, ay)
        return cls(key=str(key), ax=nx, ay=ny, t=float(t))

    def to_payload(self) -> Dict[str, Any]:
        return {"key": self.key, "ax": self.ax, "ay": self.ay, "t": self.t}

    @classmethod
    def from_payload(cls, payload: Any) -> "InputSample":
        if not isinstance(payload, dict):
            raise MalformedMessage("input payload must be an object")
        key = payload.get("key")
        if key is None or key == "":
            raise MalformedMessage("input payload has no key")
        return cls.build(
            key,
            _number(payload.get("ax", 0.0), "ax"),
            _number(payload.get("ay", 0.0), "ay"),
            _number(payload.get("t", 0.0), "t"),
        )


@dataclass(frozen=True)
class BodySnapshot:
    key: str
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    r: float = 0.0
    alive: bool = True
    extra: Dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default=None):
        return self.extra.get(name, default)

    def to_payload(self) -> Dict[str, Any]:
        out = {
            "key": self.key,
            "x": self.x,
            "y": self.y,
            "vx": self.vx,
            "vy": self.vy,
            "r": self.r,
            "alive": self.alive,
        }
        out.update(self.extra)
        return out

    @classmethod
    def from_payload(cls, payload: Any) -> "BodySnapshot":
        if not isinstance(payload, dict):
            raise MalformedMessage("player record must be an object")
        key = payload.get("key")
        if key is None:
            raise MalformedMessage("player record has no key")
        extra = {k: v for k, v in payload.items() if k not in BODY_FIELDS}
        return cls(
            key=str(key),
            x=_number(payload.get("x", 0.0), "x"),
            y=_number(payload.get("y", 0.0), "y"),
            vx=_number(payload.get("vx", 0.0), "vx"),
            vy=_number(payload.get("vy", 0.0), "vy"),
            r=_number(payload.get("r", 0.0), "r"),
            alive=bool(payload.get("alive", True)),
            extra=extra,
        )


@dataclass(frozen=True)
class WorldState:
    tick: int
    time_left: float
    round_over: bool = False
    winner_key: Optional[str] = None
    players: Tuple[BodySnapshot, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict)

    def body(self, key: str) -> Optional[BodySnapshot]:
        for body in self.players:
            if body.key == key:
                return body
        return None

    def alive_keys(self):
        return [b.key for b in self.players if b.alive]

    def get(self, name: str, default=None):
        return self.extra.get(name, default)

    def to_payload(self) -> Dict[str, Any]:
        out = {
            "tick": self.tick,
            "timeLeft": self.time_left,
            "roundOver": self.round_over,
            "winnerKey": self.winner_key,
            "players": [b.to_payload() for b in self.players],
        }
        out.update(self.extra)
        return out

    @classmethod
    def from_payload(cls, payload: Any) -> "WorldState":
        if not isinstance(payload, dict):
            raise MalformedMessage("state payload must be an object")
        if "tick" not in payload or not isinstance(payload.get("players"), list):
            raise MalformedMessage("state payload needs tick and players")
        tick = payload.get("tick")
        if (
            isinstance(tick, bool)
            or not isinstance(tick, (int, float))
            or (isinstance(tick, float) and not math.isfinite(tick))
            or int(tick) != tick
        ):
            raise MalformedMessage(f"tick is not an integer: {tick!r}")
        winner = payload.get("winnerKey")
        extra = {k: v for k, v in payload.items() if k not in WORLD_FIELDS}
        return cls(
            tick=int(tick),
            time_left=max(0.0, _number(payload.get("timeLeft", 0.0), "timeLeft")),
            round_over=bool(payload.get("roundOver", False)),
            winner_key=None if winner is None else str(winner),
            players=tuple(BodySnapshot.from_payload(p) for p in payload["players"]),
            extra=extra,
        )
