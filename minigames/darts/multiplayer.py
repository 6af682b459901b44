"""Multiplayer hooks for Darts."""

from __future__ import annotations

from typing import Iterable, Dict, Any, Optional

from minigames.shared.match_hooks import match_payload, normalize_result, single_loser

MINIGAME_ID = "darts"
MULTIPLAYER_ENABLED = True


def get_minigame_id() -> str:
    return MINIGAME_ID


def build_match_payload(host_state: Optional[Dict[str, Any]], participants: Iterable[str]) -> Dict[str, Any]:
    return match_payload(MINIGAME_ID, host_state, participants)


def resolve_result(result_payload: Dict[str, Any]) -> Dict[str, Any]:
    return single_loser(normalize_result(MINIGAME_ID, result_payload))
