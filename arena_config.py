"""Client configuration: environment first, command line on top (see boot.py)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

ENV_PREFIX = "ROLLPLAY_"


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return default


def _coerce_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _coerce_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in str(value).split(",") if part.strip()]


@dataclass
class ArenaConfig:
    relay_host: str = "127.0.0.1"
    relay_port: int = 8765
    session_code: str = "local"
    user_id: str = ""
    is_host: bool = False
    seat_hint: int = -1
    players: List[str] = field(default_factory=list)
    plan: List[str] = field(default_factory=list)
    input_hz: float = 20.0
    stall_window: float = 1.2
    seed: Optional[int] = None
    width: int = 960
    height: int = 600
    fps: int = 60
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ArenaConfig":
        env = os.environ if environ is None else environ
        base = cls()

        def get(name):
            return env.get(ENV_PREFIX + name)

        seed = get("SEED")
        return cls(
            relay_host=get("RELAY_HOST") or base.relay_host,
            relay_port=_coerce_int(get("RELAY_PORT"), base.relay_port),
            session_code=get("SESSION") or base.session_code,
            user_id=get("USER") or base.user_id,
            is_host=_coerce_bool(get("HOST"), base.is_host),
            seat_hint=_coerce_int(get("SEAT"), base.seat_hint),
            players=split_list(get("PLAYERS")),
            plan=split_list(get("PLAN")),
            input_hz=max(1.0, _coerce_float(get("INPUT_HZ"), base.input_hz)),
            stall_window=max(0.1, _coerce_float(get("STALL_WINDOW"), base.stall_window)),
            seed=_coerce_int(seed, 0) if seed else None,
            debug=_coerce_bool(get("DEBUG"), base.debug),
        )

    def roster(self) -> List[Dict[str, Any]]:
        """Roster rows as the session collaborator would hand them over."""
        ids = list(self.players)
        if self.user_id and self.user_id not in ids:
            ids.append(self.user_id)
        return [{"user_id": pid, "name": pid} for pid in ids]

    def launch_kwargs(self) -> Dict[str, Any]:
        return {
            "input_hz": self.input_hz,
            "stall_window": self.stall_window,
            "seed": self.seed,
        }
