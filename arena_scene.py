import logging

import pygame

from content_registry import HUD_COLOUR, LOCAL_COLOUR, load_game_fonts
from end_screens import ResultsScene
from game_context import GameContext
from minigames.shared.multiplayer_registry import (
    DEFAULT_PLAN,
    load_minigame,
    load_minigame_multiplayer,
    resolve_plan,
)
from scene_manager import Scene
from seats import player_key

log = logging.getLogger(__name__)

INTERMISSION = 2.0  # seconds between rounds


# === Arena Scene ===
class ArenaScene(Scene):
    """Runs the round plan: launch a minigame, record its result, move on."""

    def __init__(self, manager, context=None, launch_kwargs=None, intermission=INTERMISSION):
        super().__init__(manager)
        self.screen = manager.screen
        self.w, self.h = manager.size
        self.context = context or GameContext()
        self.launch_kwargs = dict(launch_kwargs or {})
        self.intermission = float(intermission)
        self.big, self.font, self.small = load_game_fonts()

        self.context.plan = resolve_plan(self.context.plan or DEFAULT_PLAN)
        self.countdown = self.intermission
        self.in_minigame = False
        self.finished = False
        log.info("arena plan for %s: %s", self.context.session_code, self.context.plan)

    # --- Round flow ---
    def _launch_current(self):
        minigame_id = self.context.current_minigame()
        if minigame_id is None:
            self._show_results()
            return
        mod = load_minigame(minigame_id)
        if mod is None:
            log.warning("minigame %s failed to load, skipping round %d", minigame_id, self.context.round)
            self.context.round += 1
            self.countdown = 0.0
            return

        hooks = load_minigame_multiplayer(minigame_id)
        if hooks is not None:
            participants = [player_key(p) or f"seat-{i}" for i, p in enumerate(self.context.players)]
            self.context.flags["match"] = hooks.build_match_payload(self.context.summary(), participants)

        log.info("round %d: launching %s", self.context.round, minigame_id)
        self.in_minigame = True
        self.manager.push(mod.launch(self.manager, self.context, self.on_minigame_complete, **self.launch_kwargs))

    def on_minigame_complete(self, context):
        result = dict(context.last_result or {})
        hooks = load_minigame_multiplayer(result.get("minigame"))
        if hooks is not None:
            normalized = hooks.resolve_result(result)
            normalized["round"] = context.round
            context.last_result = normalized
        log.info(
            "round %d finished: %s -> %s",
            context.round,
            result.get("minigame"),
            context.last_result.get("outcome"),
        )
        context.apply_result()
        context.round += 1
        self.in_minigame = False
        self.countdown = self.intermission

    def _show_results(self):
        if self.finished:
            return
        self.finished = True
        log.info("arena finished: %s", self.context.stats["wins"])
        self.manager.switch(ResultsScene(self.manager, self.context))

    # --- Input / Logic ---
    def handle_event(self, event):
        if event.type != pygame.KEYDOWN:
            return
        if event.key == pygame.K_ESCAPE:
            self.manager.pop()
        elif event.key in (pygame.K_RETURN, pygame.K_SPACE):
            self.countdown = 0.0

    def update(self, dt):
        if self.in_minigame or self.finished:
            return
        self.context.add_playtime(dt)
        self.countdown -= dt
        if self.countdown <= 0:
            self._launch_current()

    # --- Draw ---
    def draw(self):
        self.screen.fill((12, 12, 20))
        ctx = self.context
        upcoming = ctx.current_minigame()
        title = f"Round {ctx.round} of {len(ctx.plan)}" if upcoming else "All rounds played"
        t = self.big.render(title, True, HUD_COLOUR)
        self.screen.blit(t, t.get_rect(center=(self.w // 2, 90)))
        if upcoming:
            sub = self.font.render(
                f"Next: {upcoming.replace('_', ' ').title()} in {max(0.0, self.countdown):.1f}s",
                True,
                (255, 255, 200),
            )
            self.screen.blit(sub, sub.get_rect(center=(self.w // 2, 130)))

        y = 190
        for name, key, wins in ctx.standings():
            colour = LOCAL_COLOUR if key == ctx.my_user_id else HUD_COLOUR
            line = self.font.render(f"{name}: {wins}", True, colour)
            self.screen.blit(line, (self.w // 2 - 120, y))
            y += 30

        role = "host" if ctx.is_host else "guest"
        info = self.small.render(f"Session {ctx.session_code} | {role}", True, (180, 255, 200))
        self.screen.blit(info, (8, 8))
