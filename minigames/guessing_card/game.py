# minigames/guessing_card/game.py
# ---- Guessing Card: everyone guesses the dealer's hidden card ----
# 3 second pre-roll, then 20 seconds to pick a value from A to K. Left/right
# steps your guess, down locks it in. The dealer card is drawn when picking
# opens and stays off the wire until the reveal. Closest unique guess wins.

import math
import random

import pygame

from minigames.shared.authority import AuthoritativeSim, Body
from minigames.shared.round_scene import RealtimeRoundScene

TITLE = "Guessing Card"
MINIGAME_ID = "guessing_card"
MULTIPLAYER_ENABLED = True

COUNTDOWN = 3.0
PICK_TIME = 20.0
CARD_MIN = 1
CARD_MAX = 13
STEP_THRESHOLD = 0.5
LOCK_THRESHOLD = 0.5
CARD_W = 90
CARD_H = 128

PHASE_COUNTDOWN = "countdown"
PHASE_PICKING = "picking"
PHASE_REVEAL = "reveal"

COL_TABLE = (20, 80, 50)
COL_CARD = (245, 245, 240)
COL_CARD_BACK = (120, 40, 60)
COL_INK = (30, 30, 30)
COL_LOCK = (255, 210, 80)


def card_label(value):
    names = {1: "A", 11: "J", 12: "Q", 13: "K"}
    if value is None:
        return "?"
    return names.get(int(value), str(int(value)))


class GuessingCardSim(AuthoritativeSim):
    MINIGAME_ID = MINIGAME_ID
    ROUND_TIME = PICK_TIME
    ELIMINATION_ENDS_ROUND = False

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.rng = random.Random(self.seed)
        self.phase = PHASE_COUNTDOWN
        self.countdown = COUNTDOWN
        self._ai_card = None
        # last step direction and lock press per seat; a held stick acts once
        self._last_step = [0] * len(self.bodies)
        self._lock_held = [False] * len(self.bodies)

    def spawn_bodies(self):
        n = max(1, self.seats.seat_count)
        cy = self.HEIGHT * 0.62
        bodies = []
        for seat, key in enumerate(self.seats.keys):
            bodies.append(
                Body(
                    key=key,
                    x=self.WIDTH * (seat + 1) / (n + 1),
                    y=cy,
                    r=CARD_W / 2.0,
                    extra={"guess": CARD_MIN, "locked": False, "distance": None},
                )
            )
        return bodies

    def tick_timer(self, dt):
        if self.phase == PHASE_COUNTDOWN:
            self.countdown = max(0.0, self.countdown - dt)
            if self.countdown <= 0:
                self.phase = PHASE_PICKING
                self._ai_card = self.rng.randint(CARD_MIN, CARD_MAX)
        elif self.phase == PHASE_PICKING:
            super().tick_timer(dt)

    def step_world(self, intents):
        for seat, (body, (ax, ay)) in enumerate(zip(self.bodies, intents)):
            step = 0
            if ax > STEP_THRESHOLD:
                step = 1
            elif ax < -STEP_THRESHOLD:
                step = -1
            stepped = step != 0 and step != self._last_step[seat]
            self._last_step[seat] = step

            held = ay > LOCK_THRESHOLD
            lock_pressed = held and not self._lock_held[seat]
            self._lock_held[seat] = held

            if self.phase != PHASE_PICKING or body.extra["locked"]:
                continue
            if stepped:
                body.extra["guess"] = max(CARD_MIN, min(CARD_MAX, body.extra["guess"] + step))
            if lock_pressed:
                body.extra["locked"] = True

    def check_round_over(self):
        if self.phase != PHASE_PICKING:
            return False, None
        if self.time_left > 0 and not all(b.extra["locked"] for b in self.bodies):
            return False, None
        return True, self.reveal()

    def reveal(self):
        self.phase = PHASE_REVEAL
        ai = self._ai_card
        best = math.inf
        winners = []
        for body in self.bodies:
            dist = abs(body.extra["guess"] - ai)
            body.extra["distance"] = dist
            if dist < best:
                best, winners = dist, [body]
            elif dist == best:
                winners.append(body)
        if len(winners) != 1:
            return None
        return winners[0].key

    def world_extra(self):
        return {
            "phase": self.phase,
            "countdown": self.countdown,
            "aiCard": self._ai_card if self.phase == PHASE_REVEAL else None,
        }


class GuessingCardScene(RealtimeRoundScene):
    SIM_CLASS = GuessingCardSim
    MINIGAME_ID = MINIGAME_ID
    TITLE = TITLE
    MIN_SEATS = 2
    MAX_SEATS = 4
    BANNER_TITLES = {"win": "Spot on!", "lose": "Not quite", "draw": "Tied guesses"}

    def result_subtitle(self, result):
        state = self.current_state()
        ai = state.get("aiCard") if state is not None else None
        return f"Dealer had {card_label(ai)}. {super().result_subtitle(result)}"

    def _draw_card(self, centre, label, face_up=True, outline=None):
        rect = pygame.Rect(0, 0, CARD_W, CARD_H)
        rect.center = centre
        pygame.draw.rect(self.screen, COL_CARD if face_up else COL_CARD_BACK, rect, border_radius=8)
        if outline:
            pygame.draw.rect(self.screen, outline, rect, 4, border_radius=8)
        if face_up:
            txt = self.big.render(label, True, COL_INK)
            self.screen.blit(txt, txt.get_rect(center=centre))
        return rect

    def draw_world(self, state):
        table = pygame.Rect(self.to_screen(0, 0), (GuessingCardSim.WIDTH, GuessingCardSim.HEIGHT))
        pygame.draw.rect(self.screen, COL_TABLE, table, border_radius=16)
        if state is None:
            return

        phase = state.get("phase", PHASE_COUNTDOWN)
        dealer = self.to_screen(GuessingCardSim.WIDTH / 2.0, 84)
        ai = state.get("aiCard")
        self._draw_card(dealer, card_label(ai), face_up=ai is not None)

        if phase == PHASE_COUNTDOWN:
            secs = max(1, math.ceil(float(state.get("countdown", 0.0))))
            txt = self.big.render(str(secs), True, COL_LOCK)
            self.screen.blit(txt, txt.get_rect(midleft=(dealer[0] + CARD_W, dealer[1])))

        for body in state.players:
            pos = self.to_screen(body.x, body.y)
            locked = body.get("locked", False)
            rect = self._draw_card(
                pos,
                card_label(body.get("guess")),
                outline=COL_LOCK if locked else self.colour_for(body.key),
            )
            name = self.seats.name_for_key(body.key)
            if locked:
                name += " - locked"
            label = self.small.render(name, True, self.colour_for(body.key))
            self.screen.blit(label, label.get_rect(midtop=(rect.centerx, rect.bottom + 6)))
            if body.get("distance") is not None:
                dist = self.small.render(f"off by {body.get('distance')}", True, COL_CARD)
                self.screen.blit(dist, dist.get_rect(midtop=(rect.centerx, rect.bottom + 24)))

    def draw_hud(self, state):
        if state is None:
            return
        if state.get("phase") == PHASE_PICKING:
            super().draw_hud(state)
            hint = self.small.render("Left/Right to change, Down to lock", True, COL_CARD)
            self.screen.blit(hint, hint.get_rect(midtop=(self.w // 2, 40)))


def launch(manager, context, callback, **kwargs):
    return GuessingCardScene(manager, context, callback, **kwargs)
