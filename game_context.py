"""
game_context.py
---------------
Session-wide context the arena hands to every minigame.

Carries what the session collaborator knows about this participant (room
code, roster, host flag, account id, seat hint) plus the relay and the
results of the rounds played so far. Per-round state never lives here.
"""

from seats import player_key, player_name


class GameContext:
    def __init__(
        self,
        session_code="local",
        players=None,
        is_host=False,
        my_user_id=None,
        my_seat_index=-1,
        relay=None,
        plan=None,
    ):
        self.session_code = str(session_code or "local")
        self.players = list(players or [])
        self.is_host = bool(is_host)
        self.my_user_id = str(my_user_id) if my_user_id else None
        self.my_seat_index = int(my_seat_index) if my_seat_index is not None else -1
        self.relay = relay
        self.plan = list(plan or [])
        self.round = 1

        self.stats = {
            "wins": {},  # player key -> rounds won
            "draws": 0,
            "total_time": 0.0,  # seconds across arena + minigames
        }
        self.flags = {}
        self.history = []  # one normalized result per finished round
        self.last_result = {}  # filled after each minigame

    # -----------------------------------------------------
    #   Core logic
    # -----------------------------------------------------
    def apply_result(self):
        """Fold the most recent minigame result into the running tallies."""
        if not self.last_result:
            return

        r = dict(self.last_result)
        r.setdefault("round", self.round)
        self.history.append(r)
        winner = r.get("winner")
        if winner:
            self.stats["wins"][winner] = self.stats["wins"].get(winner, 0) + 1
        elif r.get("outcome") == "draw":
            self.stats["draws"] += 1
        self.last_result = {}

    def add_playtime(self, dt):
        """Add delta-time (in seconds) to total runtime."""
        self.stats["total_time"] += dt

    def current_minigame(self):
        if 1 <= self.round <= len(self.plan):
            return self.plan[self.round - 1]
        return None

    def standings(self):
        """Roster rows as (name, key, wins), most wins first, join order on ties."""
        rows = []
        for idx, record in enumerate(self.players):
            key = player_key(record) or f"seat-{idx}"
            rows.append((player_name(record, idx), key, self.stats["wins"].get(key, 0)))
        return sorted(rows, key=lambda row: -row[2])

    def summary(self):
        return {
            "session_code": self.session_code,
            "round": self.round,
            "stats": self.stats,
            "history": self.history,
        }

    def __repr__(self):
        return (
            f"<GameContext session={self.session_code} host={self.is_host} "
            f"round={self.round}/{len(self.plan)} "
            f"time={self.stats['total_time']:.1f}s>"
        )
