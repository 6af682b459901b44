# minigames/sumo/game.py
# ---- Sumo: two discs on a round dohyo, push the other one out ----
# The host integrates both bodies at a fixed step and streams snapshots; the
# guest only sends its stick and draws what arrives. Ring-out eliminates.
# When the clock runs out, whoever stands closest to the centre takes it.

import math

import pygame

from minigames.shared.authority import (
    AuthoritativeSim,
    Body,
    apply_intent,
    integrate,
    resolve_overlap,
)
from minigames.shared.round_scene import RealtimeRoundScene

TITLE = "Sumo"
MINIGAME_ID = "sumo"
MULTIPLAYER_ENABLED = True

# Tuning, per fixed step
ACCEL = 0.55
MAX_SPEED = 6.2
FRICTION = 0.88
PUSH = 0.9
P_RADIUS = 18
SPAWN_RADIUS = 70
ROUND_TIME = 20.0
RING_MARGIN = 0.1  # of body radius

COL_RING = (240, 228, 200)
COL_RING_EDGE = (180, 120, 70)
COL_OUT = (90, 90, 100)


class SumoSim(AuthoritativeSim):
    MINIGAME_ID = MINIGAME_ID
    ROUND_TIME = ROUND_TIME
    ARENA_RADIUS = min(AuthoritativeSim.WIDTH, AuthoritativeSim.HEIGHT) * 0.4

    def spawn_bodies(self):
        cx, cy = self.center
        n = max(1, self.seats.seat_count)
        bodies = []
        for seat, key in enumerate(self.seats.keys):
            angle = 2 * math.pi * seat / n
            bodies.append(
                Body(
                    key=key,
                    x=cx + math.cos(angle) * SPAWN_RADIUS,
                    y=cy + math.sin(angle) * SPAWN_RADIUS,
                    r=P_RADIUS,
                )
            )
        return bodies

    def step_world(self, intents):
        for body, (ax, ay) in zip(self.bodies, intents):
            apply_intent(body, ax, ay, ACCEL, MAX_SPEED)
        for body in self.bodies:
            integrate(body, FRICTION)
        for i in range(len(self.bodies)):
            for j in range(i + 1, len(self.bodies)):
                resolve_overlap(self.bodies[i], self.bodies[j], PUSH)

        cx, cy = self.center
        for body in self.bodies:
            if not body.alive:
                continue
            if math.hypot(body.x - cx, body.y - cy) > self.ARENA_RADIUS - RING_MARGIN * body.r:
                body.alive = False
                body.vx = body.vy = 0.0


class SumoScene(RealtimeRoundScene):
    SIM_CLASS = SumoSim
    MINIGAME_ID = MINIGAME_ID
    TITLE = TITLE
    MIN_SEATS = 2
    MAX_SEATS = 2
    BANNER_TITLES = {"win": "Yokozuna!", "lose": "Pushed out"}

    def draw_world(self, state):
        centre = self.to_screen(*self._centre())
        radius = int(SumoSim.ARENA_RADIUS)
        pygame.draw.circle(self.screen, COL_RING_EDGE, centre, radius + 6)
        pygame.draw.circle(self.screen, COL_RING, centre, radius)
        pygame.draw.circle(self.screen, COL_RING_EDGE, centre, radius, 2)

        if state is None:
            hint = self.small.render("Waiting for the host...", True, COL_RING_EDGE)
            self.screen.blit(hint, hint.get_rect(center=centre))
            return
        for body in state.players:
            pos = self.to_screen(body.x, body.y)
            colour = self.colour_for(body.key) if body.alive else COL_OUT
            pygame.draw.circle(self.screen, colour, pos, int(body.r))
            pygame.draw.circle(self.screen, (20, 20, 20), pos, int(body.r), 2)

    def _centre(self):
        return SumoSim.WIDTH / 2.0, SumoSim.HEIGHT / 2.0


def launch(manager, context, callback, **kwargs):
    return SumoScene(manager, context, callback, **kwargs)
