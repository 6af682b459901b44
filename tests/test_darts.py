from conftest import RecordingRelay

from minigames.darts.game import (
    DARTS_PER_SEAT,
    TARGET_RADIUS,
    DartsSim,
    ring_points,
)
from minigames.shared.authority import STEP
from minigames.shared.world import InputSample
from seats import SeatMap


def make_sim(roster, **kwargs):
    relay = RecordingRelay()
    sim = DartsSim(SeatMap(roster), relay=relay, room="AB12", seed=3, **kwargs)
    sim.start()
    return sim, relay


def run(sim, steps):
    for _ in range(steps):
        sim.advance(STEP)


class TestRings:
    def test_ring_boundaries(self):
        assert ring_points(0) == 50
        assert ring_points(TARGET_RADIUS * 0.3 - 0.1) == 50
        assert ring_points(TARGET_RADIUS * 0.3) == 25
        assert ring_points(TARGET_RADIUS * 0.6) == 10
        assert ring_points(TARGET_RADIUS - 0.1) == 10
        assert ring_points(TARGET_RADIUS) == 0


class TestFiring:
    def test_held_fire_throws_once(self, roster):
        sim, _ = make_sim(roster)
        press = InputSample("u1", 0.0, -1.0, 1.0)
        sim.receive_input(press)
        run(sim, 120)
        sim.receive_input(press)
        run(sim, 120)
        assert sim.bodies[0].extra["dartsLeft"] == DARTS_PER_SEAT - 1
        assert sim.bodies[1].extra["dartsLeft"] == DARTS_PER_SEAT

    def test_release_and_press_again(self, roster):
        sim, _ = make_sim(roster)
        sim.receive_input(InputSample("u1", 0.0, -1.0, 1.0))
        run(sim, 80)
        sim.receive_input(InputSample("u1", 0.0, 0.0, 2.0))
        run(sim, 2)
        sim.receive_input(InputSample("u1", 0.0, -1.0, 3.0))
        run(sim, 2)
        assert sim.bodies[0].extra["dartsLeft"] == DARTS_PER_SEAT - 2

    def test_launcher_slides_but_stays_on_the_board(self, roster):
        sim, _ = make_sim(roster)
        start = sim.bodies[0].x
        sim.receive_input(InputSample("u1", -1.0, 0.0, 1.0))
        run(sim, 200)
        assert sim.bodies[0].x < start
        assert sim.bodies[0].x >= 0


class TestScoring:
    def _place_dart(self, sim, offset):
        body = sim.bodies[0]
        body.extra["fired"] = True
        body.extra["dartsLeft"] -= 1
        body.vy = -6.0
        body.y = sim.target["y"] + 3
        body.x = sim.target["x"] + offset
        return body

    def test_bullseye(self, roster):
        sim, _ = make_sim(roster)
        body = self._place_dart(sim, 0.0)
        sim.step_world([(0.0, 0.0), (0.0, 0.0)])
        assert body.extra["score"] == 50
        assert body.extra["fired"] is False
        assert body.y == sim.launch_y

    def test_outer_ring(self, roster):
        sim, _ = make_sim(roster)
        body = self._place_dart(sim, 45.0)
        sim.step_world([(0.0, 0.0), (0.0, 0.0)])
        assert body.extra["score"] == 10

    def test_miss_flies_off_the_top(self, roster):
        sim, _ = make_sim(roster)
        body = self._place_dart(sim, 200.0)
        for _ in range(30):
            sim.step_world([(0.0, 0.0), (0.0, 0.0)])
        assert body.extra["score"] == 0
        assert body.extra["fired"] is False


class TestRoundEnd:
    def _spend(self, sim, scores):
        for body, score in zip(sim.bodies, scores):
            body.extra.update(score=score, dartsLeft=0, fired=False)

    def test_highest_score_wins_when_darts_run_out(self, roster):
        sim, relay = make_sim(roster)
        self._spend(sim, (10, 25))
        run(sim, 1)
        assert sim.round_over
        assert sim.winner_key == "u2"
        finals = [p for p in relay.of_type("state") if p["roundOver"]]
        assert len(finals) == 1
        assert finals[0]["players"][1]["score"] == 25
        assert "target" in finals[0]

    def test_tied_scores_have_no_winner(self, roster):
        sim, _ = make_sim(roster)
        self._spend(sim, (25, 25))
        run(sim, 1)
        assert sim.round_over
        assert sim.winner_key is None

    def test_timer_ends_round(self, roster):
        sim, _ = make_sim(roster, round_time=0.25)
        run(sim, 30)
        assert sim.round_over
        assert sim.winner_key is None
