"""
seats.py
--------
Maps a session roster onto per-game seats.

Roster rows come from the session collaborator and are not consistent about
which column carries the account id, so a player's key is the first present
alias out of PLAYER_KEY_FIELDS.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

PLAYER_KEY_FIELDS = (
    "user_id",
    "userId",
    "auth_user_id",
    "profile_id",
    "profileId",
    "owner_id",
    "ownerId",
    "id",
)


def player_key(record: Optional[Dict[str, Any]]) -> str:
    """Return the stable key for a roster row, or "" when it carries none."""
    if not record:
        return ""
    for field in PLAYER_KEY_FIELDS:
        value = record.get(field)
        if value is None or value == "":
            continue
        return str(value)
    return ""


def player_name(record: Optional[Dict[str, Any]], index: int) -> str:
    if record:
        for field in ("display_name", "name", "username"):
            value = record.get(field)
            if value:
                return str(value)
    return f"Player {index + 1}"


class SeatMap:
    """Seats 0..max_seats-1 bound to the first roster entries, in join order."""

    def __init__(
        self,
        players: Optional[Iterable[Dict[str, Any]]],
        my_user_id: Optional[str] = None,
        seat_hint: int = -1,
        min_seats: int = 2,
        max_seats: int = 2,
    ):
        roster = list(players or [])
        self.min_seats = max(1, int(min_seats))
        self.max_seats = max(self.min_seats, int(max_seats))
        self.records: List[Dict[str, Any]] = [r for r in roster[: self.max_seats] if r]
        self.keys: List[str] = []
        for idx, record in enumerate(self.records):
            key = player_key(record) or f"seat-{idx}"
            # a repeated key would let one viewer drive two seats
            if key in self.keys:
                key = f"seat-{idx}"
            self.keys.append(key)
        self.names = [player_name(r, i) for i, r in enumerate(self.records)]
        self.my_user_id = str(my_user_id) if my_user_id else ""
        self.my_seat_index = self._resolve_local_seat(seat_hint)

    def _resolve_local_seat(self, seat_hint) -> int:
        if self.my_user_id and self.my_user_id in self.keys:
            return self.keys.index(self.my_user_id)
        try:
            hint = int(seat_hint)
        except (TypeError, ValueError):
            return -1
        if 0 <= hint < len(self.keys):
            return hint
        return -1

    @property
    def seat_count(self) -> int:
        return len(self.keys)

    @property
    def ready(self) -> bool:
        return self.seat_count >= self.min_seats

    @property
    def is_spectator(self) -> bool:
        return self.my_seat_index < 0

    @property
    def my_key(self) -> Optional[str]:
        if self.my_seat_index < 0:
            return None
        return self.keys[self.my_seat_index]

    def key_for(self, seat: int) -> Optional[str]:
        if 0 <= seat < len(self.keys):
            return self.keys[seat]
        return None

    def seat_for(self, key: Optional[str]) -> int:
        if key is None:
            return -1
        try:
            return self.keys.index(str(key))
        except ValueError:
            return -1

    def name_for_key(self, key: Optional[str]) -> str:
        seat = self.seat_for(key)
        if seat < 0:
            return "Nobody"
        return self.names[seat]

    def __repr__(self):
        return f"<SeatMap keys={self.keys} mine={self.my_seat_index} ready={self.ready}>"
