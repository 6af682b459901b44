"""Scene base shared by the host-authoritative realtime minigames.

One instance is one round. `mount()` builds every per-round object fresh
(seat map, engine on the host, mirror, uplink, lifecycle guard) and hooks the
relay; `unmount()` lets go of all of it. Subclasses set SIM_CLASS and draw the
world in `draw_world`.
"""

from __future__ import annotations

import logging
import time

import pygame

from content_registry import HUD_COLOUR, WARN_COLOUR, load_game_fonts, seat_colour
from game_context import GameContext
from scene_manager import Scene
from seats import SeatMap

from .end_banner import EndBanner, outcome_for
from .lifecycle import RoundLifecycle
from .mirror import STALL_WINDOW, SnapshotMirror
from .uplink import INPUT_HZ, InputUplink, keyboard_axes
from .world import InputSample, MalformedMessage

log = logging.getLogger(__name__)

COL_BG = (14, 16, 24)
COL_PANEL = (28, 32, 46)


class RealtimeRoundScene(Scene):
    SIM_CLASS = None
    MINIGAME_ID = "realtime"
    TITLE = "Realtime"
    MIN_SEATS = 2
    MAX_SEATS = 2
    BANNER_TITLES: dict = {}

    def __init__(self, manager, context, callback, **kwargs):
        super().__init__(manager)
        self.manager = manager
        self.context = context or GameContext()
        self.callback = callback
        self.screen = manager.screen
        self.w, self.h = manager.size
        self.big, self.font, self.small = load_game_fonts()

        self.relay = kwargs.get("relay") or getattr(self.context, "relay", None)
        self.axes_source = kwargs.get("axes_source") or keyboard_axes
        self.on_round_complete = kwargs.get("on_round_complete")
        self.clock = kwargs.get("clock") or time.perf_counter
        self.seed = kwargs.get("seed")
        self.round_time = kwargs.get("round_time")
        self.stall_window = float(kwargs.get("stall_window", STALL_WINDOW))
        self.input_hz = float(kwargs.get("input_hz", INPUT_HZ))
        self.banner = EndBanner(
            duration=float(kwargs.get("banner_duration", 2.5)),
            titles=self.BANNER_TITLES,
        )

        sim_cls = self.SIM_CLASS
        arena_w = getattr(sim_cls, "WIDTH", 680)
        arena_h = getattr(sim_cls, "HEIGHT", 420)
        self.origin = ((self.w - arena_w) // 2, (self.h - arena_h) // 2 + 20)

        # per-round state, rebuilt by mount()
        self.room = None
        self.seats = None
        self.sim = None
        self.mirror = None
        self.uplink = None
        self.lifecycle = None
        self.result = None
        self._unsubscribe = None
        self.mounted = False
        self._completed = False
        self._finished = False

        self.mount()

    # -----------------------------------------------------
    #   Mount / unmount
    # -----------------------------------------------------
    def mount(self):
        if self.mounted:
            self.unmount()
        ctx = self.context
        self.room = ctx.session_code
        self.is_host = bool(ctx.is_host)
        self.seats = SeatMap(
            ctx.players,
            my_user_id=ctx.my_user_id,
            seat_hint=ctx.my_seat_index,
            min_seats=self.MIN_SEATS,
            max_seats=self.MAX_SEATS,
        )
        self.sim = None
        if self.is_host and self.SIM_CLASS is not None:
            self.sim = self.SIM_CLASS(
                self.seats,
                relay=self.relay,
                room=self.room,
                local_seat=self.seats.my_seat_index,
                round_time=self.round_time,
                seed=self.seed,
                round_no=ctx.round,
            )
        self.mirror = SnapshotMirror(stall_window=self.stall_window, clock=self.clock)
        self.uplink = InputUplink(self.relay, self.room, self.seats.my_key, rate=self.input_hz, clock=self.clock)
        self.lifecycle = RoundLifecycle(self._on_lifecycle_complete)
        self.result = None
        self._completed = False
        self._finished = False

        if self.relay is not None:
            self.relay.join(self.room)
            self._unsubscribe = self.relay.on_message(self._on_relay_message)
        if self.sim is not None:
            self.sim.start()
        self.mounted = True
        log.info(
            "%s mounted room=%s host=%s seat=%d seats=%s",
            self.MINIGAME_ID,
            self.room,
            self.is_host,
            self.seats.my_seat_index,
            self.seats.keys,
        )

    def unmount(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self.sim is not None:
            self.sim.stop()
        if self.uplink is not None:
            self.uplink.close()
        self.sim = None
        self.uplink = None
        self.mounted = False

    def on_exit(self):
        self.unmount()

    # -----------------------------------------------------
    #   Relay traffic (runs inside relay.poll on the frame loop)
    # -----------------------------------------------------
    def _on_relay_message(self, envelope):
        msg_type = envelope.get("type")
        payload = envelope.get("payload")
        if msg_type == "input":
            if self.sim is None:
                return
            try:
                sample = InputSample.from_payload(payload)
            except MalformedMessage as exc:
                log.debug("dropping malformed input: %s", exc)
                return
            self.sim.receive_input(sample)
        elif msg_type == "state":
            # the host is the only writer of its own world
            if self.sim is not None or self.mirror is None:
                return
            if not self.owns_snapshot(payload):
                log.debug("dropping state for another round: %r", payload.get("minigame"))
                return
            self.mirror.apply(payload)

    def owns_snapshot(self, payload) -> bool:
        if not isinstance(payload, dict):
            # left for the mirror to reject
            return True
        return payload.get("minigame") == self.MINIGAME_ID and payload.get("round") == self.context.round

    # -----------------------------------------------------
    #   Frame loop
    # -----------------------------------------------------
    def handle_event(self, event):
        if event.type != pygame.KEYDOWN:
            return
        if self.banner.active:
            if event.key in (pygame.K_RETURN, pygame.K_SPACE, pygame.K_ESCAPE):
                self.banner.skip()
            return
        if event.key == pygame.K_ESCAPE and not self._completed:
            self.forfeit()

    def current_state(self):
        if self.mirror is None:
            return None
        return self.mirror.state

    def update(self, dt):
        if not self.mounted:
            return
        self.context.add_playtime(dt)
        if self.relay is not None:
            self.relay.poll()
        if not self.mounted:
            return

        if self.banner.active:
            if self.banner.update(dt):
                self._finish()
            return
        if self._completed:
            return

        axes = self.axes_source() if not self.seats.is_spectator else (0.0, 0.0)
        self.uplink.update(dt, axes)

        if self.sim is not None:
            snap = self.sim.advance(dt, axes)
            if snap is not None:
                self.mirror.apply(snap)
            if self.sim.round_over:
                self.lifecycle.observe(self.sim.snapshot())
        else:
            self.lifecycle.observe(self.mirror.state)

    def _on_lifecycle_complete(self, result):
        self._completed = True
        self.result = dict(result)
        if callable(self.on_round_complete):
            try:
                self.on_round_complete(dict(result))
            except Exception:
                log.exception("%s round completion hook failed", self.MINIGAME_ID)
        winner = result.get("winnerKey")
        outcome = outcome_for(winner, self.seats.my_key)
        subtitle = self.result_subtitle(result)
        self.banner.show(outcome, subtitle=subtitle)

    def result_subtitle(self, result):
        winner = result.get("winnerKey")
        if winner is None:
            return "Nobody takes this one"
        return f"{self.seats.name_for_key(winner)} wins"

    def forfeit(self):
        log.info("%s left early", self.MINIGAME_ID)
        self._finish(forfeit=True)

    def _finish(self, forfeit=False):
        if self._finished:
            return
        self._finished = True
        result = self.result or {}
        winner = None if forfeit else result.get("winnerKey")
        if forfeit:
            outcome = "forfeit"
        else:
            outcome = outcome_for(winner, self.seats.my_key)
        self.context.last_result = {
            "minigame": self.MINIGAME_ID,
            "winnerKey": winner,
            "timeRemaining": result.get("timeRemaining"),
            "outcome": outcome,
            "participants": list(self.seats.keys),
        }
        self.unmount()
        self.manager.pop()
        if callable(self.callback):
            self.callback(self.context)

    # -----------------------------------------------------
    #   Drawing
    # -----------------------------------------------------
    def to_screen(self, x, y):
        return int(self.origin[0] + x), int(self.origin[1] + y)

    def colour_for(self, key):
        return seat_colour(self.seats.seat_for(key), self.seats.my_seat_index)

    def draw(self):
        self.screen.fill(COL_BG)
        title = self.font.render(self.TITLE, True, HUD_COLOUR)
        self.screen.blit(title, (16, 12))
        if self.seats is None:
            return

        if not self.seats.ready:
            msg = self.big.render(f"Waiting for {self.MIN_SEATS} players", True, HUD_COLOUR)
            self.screen.blit(msg, msg.get_rect(center=(self.w // 2, self.h // 2)))
            sub = self.small.render(f"{self.seats.seat_count} in the room", True, HUD_COLOUR)
            self.screen.blit(sub, sub.get_rect(center=(self.w // 2, self.h // 2 + 36)))
        else:
            state = self.current_state()
            self.draw_world(state)
            self.draw_hud(state)

        self.draw_status()
        self.banner.draw(self.screen, self.big, self.small, (self.w, self.h))

    def draw_world(self, state):
        pass

    def draw_hud(self, state):
        if state is None:
            return
        timer = self.font.render(f"{state.time_left:4.1f}s", True, HUD_COLOUR)
        self.screen.blit(timer, timer.get_rect(midtop=(self.w // 2, 12)))
        x = 16
        for seat, key in enumerate(self.seats.keys):
            name = self.seats.names[seat]
            if seat == self.seats.my_seat_index:
                name += " (you)"
            label = self.small.render(name, True, self.colour_for(key))
            self.screen.blit(label, (x, self.h - 28))
            x += label.get_width() + 24

    def connection_stalled(self) -> bool:
        """True for a mirror that has heard nothing from the host for a stall window."""
        if self.sim is not None or self.mirror is None or self._completed:
            return False
        return self.seats.ready and self.mirror.stalled()

    def draw_status(self):
        status = getattr(self.relay, "status", None) or "offline"
        role = "host" if self.is_host else ("spectator" if self.seats.is_spectator else "player")
        text = self.small.render(f"{role} | relay {status}", True, HUD_COLOUR)
        self.screen.blit(text, text.get_rect(topright=(self.w - 16, 14)))
        if self.connection_stalled():
            warn = self.font.render("Connection stalled", True, WARN_COLOUR)
            self.screen.blit(warn, warn.get_rect(midtop=(self.w // 2, 44)))
