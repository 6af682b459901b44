"""Helpers for the realtime minigames.

Centralizes discovery, loading and round-plan resolution so the arena only
deals in minigame ids.
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any, Iterable, List, Optional

log = logging.getLogger(__name__)

DEFAULT_PLAN = ["sumo", "darts", "guessing_card"]


def _minigames_root() -> Path:
    return Path(__file__).resolve().parent.parent


def _import(dotted_name: str) -> Optional[Any]:
    try:
        return importlib.import_module(dotted_name)
    except ImportError as exc:
        log.warning("cannot import %s: %s", dotted_name, exc)
        return None


def _enabled_flag_from_module(module: Any, default: bool = False) -> bool:
    return bool(getattr(module, "MULTIPLAYER_ENABLED", default))


def _hooks_id(module: Any) -> Optional[str]:
    getter = getattr(module, "get_minigame_id", None)
    return getter() if callable(getter) else getattr(module, "MINIGAME_ID", None)


def load_minigame(minigame_id: str):
    """Import `minigames.<id>.game`; None when missing or without launch()."""
    if not minigame_id or not (_minigames_root() / minigame_id / "game.py").exists():
        return None
    module = _import(f"minigames.{minigame_id}.game")
    if module is None or not hasattr(module, "launch"):
        return None
    return module


def load_minigame_multiplayer(minigame_id: str):
    """Load the multiplayer hooks module for a minigame if present."""
    if not minigame_id or not (_minigames_root() / minigame_id / "multiplayer.py").exists():
        return None
    return _import(f"minigames.{minigame_id}.multiplayer")


def discover_realtime_minigames(base_dir: Optional[Path] = None) -> List[str]:
    """Return the minigame folder names that ship a game and opt into multiplayer."""
    base = Path(base_dir) if base_dir else _minigames_root()
    if not base.exists():
        return []
    valid: List[str] = []
    for entry in base.iterdir():
        if not entry.is_dir() or entry.name.startswith("__") or entry.name == "shared":
            continue
        if not (entry / "game.py").exists():
            continue
        hooks = load_minigame_multiplayer(entry.name)
        if hooks is None or not _enabled_flag_from_module(hooks):
            continue
        if _hooks_id(hooks) != entry.name:
            log.warning("hooks in %s report id %r, skipping", entry.name, _hooks_id(hooks))
            continue
        valid.append(entry.name)
    return sorted(valid)


def resolve_plan(plan: Optional[Iterable[str]] = None) -> List[str]:
    """Keep the requested order, dropping ids that are not available."""
    requested = [str(p).strip() for p in (plan or DEFAULT_PLAN) if str(p).strip()]
    available = set(discover_realtime_minigames())
    resolved = []
    for minigame_id in requested:
        if minigame_id in available:
            resolved.append(minigame_id)
        else:
            log.warning("skipping unknown minigame %r in plan", minigame_id)
    return resolved
