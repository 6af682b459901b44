# minigames/darts/game.py
# ---- Darts: shared sliding target, one launcher per seat ----
# Slide along the bottom edge, push up to throw. Five darts each, thirty
# seconds. A dart scores when it reaches the board line: inner ring 50,
# middle 25, outer 10. Highest total wins; a tied total has no winner.

import random

import pygame

from minigames.shared.authority import AuthoritativeSim, Body
from minigames.shared.round_scene import RealtimeRoundScene

TITLE = "Darts"
MINIGAME_ID = "darts"
MULTIPLAYER_ENABLED = True

ROUND_TIME = 30.0
DARTS_PER_SEAT = 5
DART_SPEED = 6.0
DART_RADIUS = 4
LAUNCHER_SPEED = 5.0
LAUNCHER_MARGIN = 24
TARGET_RADIUS = 60
TARGET_SPEED = 1.3
TARGET_Y = 100
FIRE_THRESHOLD = -0.5
# (fraction of target radius, points), innermost first
RINGS = ((0.3, 50), (0.6, 25), (1.0, 10))

COL_BOARD = (40, 40, 48)
COL_RINGS = ((220, 60, 60), (240, 240, 240), (60, 160, 90))
COL_DART = (250, 250, 250)


def ring_points(offset, radius=TARGET_RADIUS):
    """Points for a dart landing `offset` px from the bull."""
    for frac, points in RINGS:
        if offset < radius * frac:
            return points
    return 0


class DartsSim(AuthoritativeSim):
    MINIGAME_ID = MINIGAME_ID
    ROUND_TIME = ROUND_TIME
    ELIMINATION_ENDS_ROUND = False

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        rng = random.Random(self.seed)
        self.target = {
            "x": self.WIDTH / 2.0,
            "y": float(TARGET_Y),
            "r": float(TARGET_RADIUS),
        }
        self.target_dir = rng.choice((-1, 1))
        self.launch_y = self.HEIGHT - 30.0
        # previous "fire held" state per seat, so a held stick throws once
        self._fire_held = [False] * len(self.bodies)

    def spawn_bodies(self):
        n = max(1, self.seats.seat_count)
        bodies = []
        for seat, key in enumerate(self.seats.keys):
            bodies.append(
                Body(
                    key=key,
                    x=self.WIDTH * (seat + 1) / (n + 1),
                    y=self.HEIGHT - 30.0,
                    r=DART_RADIUS,
                    extra={"score": 0, "dartsLeft": DARTS_PER_SEAT, "fired": False},
                )
            )
        return bodies

    def _move_target(self):
        t = self.target
        t["x"] += self.target_dir * TARGET_SPEED
        if t["x"] + t["r"] >= self.WIDTH or t["x"] - t["r"] <= 0:
            self.target_dir *= -1

    def _reset_dart(self, body):
        body.y = self.launch_y
        body.vy = 0.0
        body.extra["fired"] = False

    def step_world(self, intents):
        self._move_target()
        for seat, (body, (ax, ay)) in enumerate(zip(self.bodies, intents)):
            held = ay < FIRE_THRESHOLD
            pressed = held and not self._fire_held[seat]
            self._fire_held[seat] = held

            if not body.extra["fired"]:
                body.x += ax * LAUNCHER_SPEED
                body.x = max(LAUNCHER_MARGIN, min(self.WIDTH - LAUNCHER_MARGIN, body.x))
                if pressed and body.extra["dartsLeft"] > 0:
                    body.extra["fired"] = True
                    body.extra["dartsLeft"] -= 1
                    body.vy = -DART_SPEED
                continue

            prev_y = body.y
            body.y += body.vy
            if prev_y > self.target["y"] >= body.y:
                points = ring_points(abs(body.x - self.target["x"]), self.target["r"])
                if points:
                    body.extra["score"] += points
                    self._reset_dart(body)
                    continue
            if body.y < 0:
                self._reset_dart(body)

        for body in self.bodies:
            body.alive = body.extra["dartsLeft"] > 0 or body.extra["fired"]

    def check_round_over(self):
        if self.time_left > 0 and any(b.alive for b in self.bodies):
            return False, None
        return True, self.score_winner()

    def score_winner(self):
        if not self.bodies:
            return None
        best = max(b.extra["score"] for b in self.bodies)
        leaders = [b for b in self.bodies if b.extra["score"] == best]
        if len(leaders) != 1:
            return None
        return leaders[0].key

    def world_extra(self):
        return {"target": dict(self.target)}


class DartsScene(RealtimeRoundScene):
    SIM_CLASS = DartsSim
    MINIGAME_ID = MINIGAME_ID
    TITLE = TITLE
    MIN_SEATS = 2
    MAX_SEATS = 2
    BANNER_TITLES = {"win": "Bullseye!", "lose": "Outscored"}

    def result_subtitle(self, result):
        state = self.current_state()
        if state is None:
            return super().result_subtitle(result)
        scores = "  ".join(
            f"{self.seats.name_for_key(b.key)} {b.get('score', 0)}" for b in state.players
        )
        return f"{super().result_subtitle(result)}  ({scores})"

    def draw_world(self, state):
        board = pygame.Rect(self.to_screen(0, 0), (DartsSim.WIDTH, DartsSim.HEIGHT))
        pygame.draw.rect(self.screen, COL_BOARD, board, border_radius=8)
        if state is None:
            return

        target = state.get("target") or {}
        if target:
            pos = self.to_screen(target["x"], target["y"])
            for (frac, _), colour in zip(reversed(RINGS), COL_RINGS[::-1]):
                pygame.draw.circle(self.screen, colour, pos, int(target["r"] * frac))

        for body in state.players:
            colour = self.colour_for(body.key)
            pos = self.to_screen(body.x, body.y)
            if body.get("fired"):
                pygame.draw.line(self.screen, COL_DART, pos, (pos[0], pos[1] + 22), 4)
                pygame.draw.circle(self.screen, colour, pos, DART_RADIUS + 1)
            else:
                pygame.draw.polygon(
                    self.screen,
                    colour,
                    [(pos[0], pos[1] - 14), (pos[0] - 12, pos[1] + 10), (pos[0] + 12, pos[1] + 10)],
                )

    def draw_hud(self, state):
        super().draw_hud(state)
        if state is None:
            return
        y = 44
        for body in state.players:
            line = f"{self.seats.name_for_key(body.key)}: {body.get('score', 0)} pts, {body.get('dartsLeft', 0)} darts"
            txt = self.small.render(line, True, self.colour_for(body.key))
            self.screen.blit(txt, (16, y))
            y += 20


def launch(manager, context, callback, **kwargs):
    return DartsScene(manager, context, callback, **kwargs)
