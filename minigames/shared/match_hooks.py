"""Payload helpers shared by every minigame's `multiplayer.py` hooks."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional


def match_payload(minigame_id: str, host_state: Optional[Dict[str, Any]], participants: Iterable[str]) -> Dict[str, Any]:
    """Return payload used to launch the minigame."""
    payload = {"minigame": minigame_id, "participants": list(participants or [])}
    if host_state:
        payload["sessionCode"] = host_state.get("session_code")
    return payload


def normalize_result(minigame_id: str, result_payload: Dict[str, Any]) -> Dict[str, Any]:
    """Turn a round scene's hand-back into the arena's result record.

    Everyone who took part and did not win is a loser. A forfeit stays a
    forfeit whatever the winner field says.
    """
    winner = result_payload.get("winnerKey")
    participants = list(result_payload.get("participants") or [])
    outcome = result_payload.get("outcome")
    if outcome != "forfeit":
        outcome = "decided" if winner else "draw"
    return {
        "minigame": minigame_id,
        "winner": winner,
        "losers": [p for p in participants if winner and p != winner],
        "outcome": outcome,
        "time_remaining": result_payload.get("timeRemaining"),
    }


def single_loser(result: Dict[str, Any]) -> Dict[str, Any]:
    """Two-seat games report one `loser` instead of a list."""
    out = dict(result)
    losers = out.pop("losers", [])
    out["loser"] = losers[0] if losers else None
    return out
