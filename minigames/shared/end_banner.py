"""Round-over overlay shown before a minigame hands control back to the arena."""

from __future__ import annotations

import pygame

DEFAULT_TITLES = {
    "win": "You win the round!",
    "lose": "Round lost",
    "draw": "No winner",
    "watch": "Round over",
    None: "Round over",
}


def outcome_for(winner_key, my_key) -> str:
    """Map a winner key to this viewer's outcome label."""
    if winner_key is None:
        return "draw"
    if my_key is None:
        return "watch"
    return "win" if winner_key == my_key else "lose"


class EndBanner:
    def __init__(self, duration: float = 2.5, titles: dict | None = None):
        self.duration = duration
        self.titles = {**DEFAULT_TITLES, **(titles or {})}
        self.active = False
        self.timer = 0.0
        self.outcome = None
        self.title = ""
        self.subtitle = ""

    def show(self, outcome: str, title: str | None = None, subtitle: str | None = None):
        self.outcome = outcome
        self.title = title or self.titles.get(outcome, self.titles[None])
        self.subtitle = subtitle or ""
        self.timer = self.duration
        self.active = True

    def skip(self):
        if self.active:
            self.timer = 0.0

    def update(self, dt: float) -> bool:
        """Count down; True on the frame the banner expires."""
        if not self.active:
            return False
        self.timer -= dt
        if self.timer <= 0:
            self.active = False
            return True
        return False

    def draw(self, screen: pygame.Surface, font_big, font_small, size: tuple[int, int]):
        if not self.active:
            return
        w, h = size
        dim = pygame.Surface(size, pygame.SRCALPHA)
        dim.fill((0, 0, 0, 170))
        screen.blit(dim, (0, 0))
        colour = (140, 230, 255) if self.outcome == "win" else (255, 235, 160)
        title = font_big.render(self.title, True, colour)
        screen.blit(title, title.get_rect(center=(w // 2, h // 2 - 20)))
        if self.subtitle:
            sub = font_small.render(self.subtitle, True, (230, 240, 250))
            screen.blit(sub, sub.get_rect(center=(w // 2, h // 2 + 18)))
