import pygame

from content_registry import HUD_COLOUR, LOCAL_COLOUR, load_game_fonts
from scene_manager import Scene

FADE_SPEED = 220  # higher = faster fade


class BaseEndScene(Scene):
    """Fades in, waits for any key, fades out and leaves the stack."""

    def __init__(self, manager, title, color):
        super().__init__(manager)
        self.screen = manager.screen
        self.w, self.h = manager.size
        self.title = title
        self.color = color
        self.font_big, self.font, self.font_small = load_game_fonts()
        self.timer = 0.0
        self.closed = False

        # fade control
        self.fade_alpha = 255  # start fully black
        self.fade_dir = -1  # -1 = fade in, +1 = fade out
        self.transitioning = False

    def handle_event(self, event):
        if self.transitioning:
            return
        if event.type == pygame.KEYDOWN or event.type == pygame.MOUSEBUTTONDOWN:
            self.fade_dir = +1
            self.transitioning = True

    def update(self, dt):
        self.timer += dt
        self.fade_alpha += self.fade_dir * FADE_SPEED * dt
        if self.fade_dir < 0 and self.fade_alpha <= 0:
            self.fade_alpha = 0
        elif self.fade_dir > 0 and self.fade_alpha >= 255 and not self.closed:
            self.fade_alpha = 255
            self.closed = True
            self.manager.pop()

    def draw_body(self):
        pass

    def draw(self):
        self.screen.fill((15, 10, 20))
        title_surf = self.font_big.render(self.title, True, self.color)
        self.screen.blit(title_surf, title_surf.get_rect(center=(self.w // 2, 80)))
        self.draw_body()
        sub = self.font_small.render("Press any key to leave", True, (220, 220, 220))
        self.screen.blit(sub, sub.get_rect(center=(self.w // 2, self.h - 40)))

        if self.fade_alpha > 0:
            fade = pygame.Surface((self.w, self.h))
            fade.fill((0, 0, 0))
            fade.set_alpha(int(self.fade_alpha))
            self.screen.blit(fade, (0, 0))


class ResultsScene(BaseEndScene):
    """Wins per player once the round plan is used up."""

    def __init__(self, manager, context):
        super().__init__(manager, "Session Results", (255, 240, 150))
        self.context = context
        self.rows = context.standings()

    def draw_body(self):
        y = 150
        for place, (name, key, wins) in enumerate(self.rows, start=1):
            colour = LOCAL_COLOUR if key == self.context.my_user_id else HUD_COLOUR
            line = f"#{place}  {name:<18} {wins} win{'s' if wins != 1 else ''}"
            self.screen.blit(self.font.render(line, True, colour), (self.w // 2 - 180, y))
            y += 32

        y += 16
        for entry in self.context.history:
            winner = entry.get("winner")
            label = next((r[0] for r in self.rows if r[1] == winner), "no winner")
            line = f"Round {entry.get('round')}: {entry.get('minigame')} - {label}"
            self.screen.blit(self.font_small.render(line, True, (200, 200, 210)), (self.w // 2 - 180, y))
            y += 22
