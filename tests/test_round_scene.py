"""Host and guest scenes wired through the in-process relay."""

import pygame
import pytest

from conftest import DummyManager, run_frames

from game_context import GameContext
from minigames.shared.world import InputSample
from minigames.sumo.game import SumoScene

ROOM = "AB12"


class Arena:
    """Records what the round hands back."""

    def __init__(self):
        self.completions = []
        self.callbacks = []

    def on_round_complete(self, result):
        self.completions.append(result)

    def callback(self, context):
        self.callbacks.append(dict(context.last_result))


def make_scene(hub, roster, user, is_host, clock, axes=(0.0, 0.0), arena=None, **kwargs):
    relay = hub.connect(user)
    ctx = GameContext(ROOM, roster, is_host=is_host, my_user_id=user, relay=relay)
    arena = arena or Arena()
    manager = DummyManager()
    scene = SumoScene(
        manager,
        ctx,
        arena.callback,
        axes_source=lambda: axes,
        on_round_complete=arena.on_round_complete,
        clock=clock,
        **kwargs,
    )
    manager.push(scene)
    return scene, relay, arena


class TestEndToEnd:
    def test_host_pushes_guest_out_of_the_ring(self, hub, roster, clock):
        host, _, host_arena = make_scene(hub, roster, "u1", True, clock, axes=(1.0, 0.0))
        guest, _, guest_arena = make_scene(hub, roster, "u2", False, clock)
        assert host.sim is not None and guest.sim is None
        assert host.seats.my_key == "u1" and guest.seats.my_key == "u2"

        xs = []
        last_tick = -1
        for _ in range(120):
            run_frames([host, guest], 1, clock=clock, draw=True)
            state = guest.mirror.state
            if state is not None and state.tick != last_tick:
                last_tick = state.tick
                xs.append(state.body("u1").x)

        assert len(xs) > 5
        assert all(b >= a for a, b in zip(xs, xs[1:]))
        final = guest.mirror.state
        assert final.round_over
        assert final.winner_key == "u2"
        assert not final.body("u1").alive
        assert len([s for s in hub.sent_of("state") if s["payload"]["roundOver"]]) == 1
        assert guest_arena.completions == [{"winnerKey": "u2", "timeRemaining": final.time_left}]
        assert host_arena.completions[0]["winnerKey"] == "u2"

    def test_guest_input_drives_its_seat(self, hub, roster, clock):
        host, _, _ = make_scene(hub, roster, "u1", True, clock)
        guest, _, _ = make_scene(hub, roster, "u2", False, clock, axes=(0.0, -1.0))
        start_y = host.sim.bodies[1].y
        run_frames([guest, host], 30, clock=clock)
        assert host.sim.inputs["u2"].ay == -1.0
        assert host.sim.bodies[1].y < start_y
        assert hub.sent_of("input")

    def test_spectator_sends_nothing(self, hub, roster, clock):
        roster = roster + [{"id": "u3"}]
        host, _, _ = make_scene(hub, roster, "u1", True, clock)
        watcher, _, _ = make_scene(hub, roster, "u3", False, clock, axes=(1.0, 0.0))
        run_frames([watcher, host], 30, clock=clock, draw=True)
        assert watcher.seats.is_spectator
        assert all(env["payload"]["key"] != "u3" for env in hub.sent_of("input"))
        assert watcher.mirror.state is not None


class TestSingleWriter:
    def test_guest_world_changes_only_on_state(self, hub, roster, clock):
        guest, relay, _ = make_scene(hub, roster, "u2", False, clock)
        relay.inject("input", InputSample("u1", 1, 0, 1).to_payload())
        relay.inject("joined", {})
        run_frames([guest], 3, clock=clock)
        assert guest.mirror.state is None
        relay.inject("state", {"tick": 4, "timeLeft": 9.0, "players": [], "minigame": "sumo", "round": 1})
        run_frames([guest], 1, clock=clock)
        assert guest.mirror.state.tick == 4

    def test_host_ignores_foreign_state(self, hub, roster, clock):
        host, relay, _ = make_scene(hub, roster, "u1", True, clock)
        relay.inject("state", {"tick": 9999, "timeLeft": 0.0, "roundOver": True, "winnerKey": "u2", "players": []})
        run_frames([host], 2, clock=clock)
        assert host.mirror.last_tick < 9999
        assert not host.lifecycle.announced

    def test_duplicate_inputs_are_idempotent(self, hub, roster, clock):
        host, relay, _ = make_scene(hub, roster, "u1", True, clock)
        sample = InputSample("u2", 0.0, 1.0, 5.0).to_payload()
        relay.inject("input", sample)
        relay.inject("input", sample)
        relay.inject("input", InputSample("u2", 1.0, 0.0, 4.0).to_payload())
        run_frames([host], 1, clock=clock)
        assert host.sim.inputs["u2"] == InputSample("u2", 0.0, 1.0, 5.0)

    def test_reordered_snapshots_never_go_back(self, hub, roster, clock):
        host, _, _ = make_scene(hub, roster, "u1", True, clock, axes=(-1.0, 0.0))
        guest, guest_relay, _ = make_scene(hub, roster, "u2", False, clock)
        guest_relay.reorder = True
        ticks = []
        for _ in range(60):
            run_frames([host], 3, clock=clock)
            run_frames([guest], 1, clock=clock)
            if guest.mirror.state is not None:
                ticks.append(guest.mirror.state.tick)
        assert ticks == sorted(ticks)


class TestCompletion:
    def test_callback_once_then_hand_back(self, hub, roster, clock):
        host, _, arena = make_scene(hub, roster, "u1", True, clock, axes=(1.0, 0.0), banner_duration=1.0)
        manager = host.manager
        run_frames([host], 60, clock=clock)
        assert len(arena.completions) == 1
        run_frames([host], 10, clock=clock)
        assert len(arena.completions) == 1
        assert arena.callbacks == []
        assert host.banner.active

        run_frames([host], 60, clock=clock)
        assert len(arena.callbacks) == 1
        result = arena.callbacks[0]
        assert result["minigame"] == "sumo"
        assert result["winnerKey"] == "u2"
        assert result["outcome"] == "lose"
        assert manager.scenes == []
        assert host.mounted is False
        assert host.relay.handlers == []

    def test_escape_forfeits(self, hub, roster, clock):
        host, relay, arena = make_scene(hub, roster, "u1", True, clock)
        host.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_ESCAPE))
        assert arena.callbacks[0]["outcome"] == "forfeit"
        assert arena.completions == []
        assert relay.handlers == []

    def test_remount_starts_fresh(self, hub, roster, clock):
        host, relay, _ = make_scene(hub, roster, "u1", True, clock)
        run_frames([host], 30, clock=clock)
        first_sim = host.sim
        host.mount()
        assert host.sim is not first_sim
        assert host.sim.tick == 0
        assert len(relay.handlers) == 1
        assert relay.joins == 1


class TestWaiting:
    @pytest.mark.parametrize("is_host", [True, False])
    def test_not_enough_players(self, hub, clock, is_host):
        scene, relay, _ = make_scene(hub, [{"id": "u1"}], "u1", is_host, clock)
        run_frames([scene], 30, clock=clock, draw=True)
        assert not scene.seats.ready
        assert hub.sent_of("state") == []
        assert scene.mirror.state is None


class TestRoundTag:
    def test_snapshots_name_their_round(self, hub, roster, clock):
        host, _, _ = make_scene(hub, roster, "u1", True, clock)
        run_frames([host], 5, clock=clock)
        payload = hub.sent_of("state")[0]["payload"]
        assert payload["minigame"] == "sumo"
        assert payload["round"] == 1

    def test_guest_drops_state_for_another_round(self, hub, roster, clock):
        guest, relay, _ = make_scene(hub, roster, "u2", False, clock)
        relay.inject("state", {"tick": 4, "players": [], "minigame": "darts", "round": 1})
        relay.inject("state", {"tick": 5, "players": [], "minigame": "sumo", "round": 2})
        relay.inject("state", {"tick": 6, "players": []})
        run_frames([guest], 1, clock=clock)
        assert guest.mirror.state is None

        relay.inject("state", {"tick": 2, "players": [], "minigame": "sumo", "round": 1})
        run_frames([guest], 1, clock=clock)
        assert guest.mirror.state.tick == 2


class TestStall:
    def test_guest_shows_stall_after_silence(self, hub, roster, clock):
        host, _, _ = make_scene(hub, roster, "u1", True, clock)
        guest, _, _ = make_scene(hub, roster, "u2", False, clock)
        run_frames([host, guest], 10, clock=clock)
        assert guest.mirror.state is not None
        assert not guest.connection_stalled()

        # host goes quiet
        run_frames([guest], 80, clock=clock, draw=True)
        assert guest.connection_stalled()
        assert not host.connection_stalled()

        run_frames([host, guest], 3, clock=clock)
        assert not guest.connection_stalled()

    def test_stalled_before_first_snapshot(self, hub, roster, clock):
        guest, _, _ = make_scene(hub, roster, "u2", False, clock)
        run_frames([guest], 30, clock=clock)
        assert not guest.connection_stalled()
        run_frames([guest], 60, clock=clock, draw=True)
        assert guest.connection_stalled()
