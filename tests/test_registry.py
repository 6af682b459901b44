from minigames.shared.match_hooks import match_payload, normalize_result, single_loser
from minigames.shared.multiplayer_registry import (
    DEFAULT_PLAN,
    discover_realtime_minigames,
    load_minigame,
    load_minigame_multiplayer,
    resolve_plan,
)


def test_discovers_the_realtime_games():
    assert discover_realtime_minigames() == ["darts", "guessing_card", "sumo"]


def test_default_plan():
    assert resolve_plan(None) == DEFAULT_PLAN == ["sumo", "darts", "guessing_card"]


def test_unknown_ids_are_skipped_in_order():
    assert resolve_plan(["guessing_card", "nope", " sumo ", ""]) == ["guessing_card", "sumo"]


def test_load_minigame():
    mod = load_minigame("darts")
    assert callable(mod.launch)
    assert load_minigame("shared") is None
    assert load_minigame("missing") is None
    assert load_minigame("") is None


def test_hooks_normalize_results():
    hooks = load_minigame_multiplayer("sumo")
    assert hooks.get_minigame_id() == "sumo"
    result = hooks.resolve_result(
        {"minigame": "sumo", "winnerKey": "u2", "timeRemaining": 4.0, "outcome": "lose", "participants": ["u1", "u2"]}
    )
    assert result == {
        "minigame": "sumo",
        "winner": "u2",
        "loser": "u1",
        "outcome": "decided",
        "time_remaining": 4.0,
    }
    draw = hooks.resolve_result({"winnerKey": None, "participants": ["u1", "u2"]})
    assert draw["outcome"] == "draw" and draw["loser"] is None


def test_guessing_card_has_many_losers():
    hooks = load_minigame_multiplayer("guessing_card")
    result = hooks.resolve_result({"winnerKey": "b", "participants": ["a", "b", "c"], "outcome": "win"})
    assert result["losers"] == ["a", "c"]
    payload = hooks.build_match_payload({"session_code": "AB12"}, ["a", "b"])
    assert payload == {"minigame": "guessing_card", "participants": ["a", "b"], "sessionCode": "AB12"}


def test_hooks_must_match_their_folder(monkeypatch):
    hooks = load_minigame_multiplayer("sumo")
    monkeypatch.setattr(hooks, "get_minigame_id", lambda: "sumo_old")
    assert discover_realtime_minigames() == ["darts", "guessing_card"]
    assert resolve_plan(["sumo", "darts"]) == ["darts"]


class TestMatchHooks:
    def test_forfeit_survives_a_winner(self):
        result = normalize_result("darts", {"winnerKey": "u2", "outcome": "forfeit", "participants": ["u1", "u2"]})
        assert result["outcome"] == "forfeit"
        assert result["losers"] == ["u1"]

    def test_single_loser(self):
        assert single_loser({"winner": "a", "losers": ["b"]}) == {"winner": "a", "loser": "b"}
        assert single_loser({"winner": None, "losers": []})["loser"] is None

    def test_match_payload_without_host_state(self):
        assert match_payload("sumo", None, None) == {"minigame": "sumo", "participants": []}
