"""Shared helpers for the Rollplay realtime minigames."""

from .multiplayer_registry import (
    DEFAULT_PLAN,
    discover_realtime_minigames,
    load_minigame,
    load_minigame_multiplayer,
    resolve_plan,
)

__all__ = [
    "DEFAULT_PLAN",
    "discover_realtime_minigames",
    "load_minigame",
    "load_minigame_multiplayer",
    "resolve_plan",
]
