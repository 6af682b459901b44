import logging

import pygame

log = logging.getLogger(__name__)

# Seat colours: your own body is always drawn in LOCAL, the others cycle SEATS.
LOCAL_COLOUR = (77, 208, 255)
SEAT_COLOURS = [(255, 92, 134), (255, 205, 90), (140, 235, 150), (190, 150, 255)]
HUD_COLOUR = (235, 240, 250)
WARN_COLOUR = (255, 120, 120)


def load_game_fonts():
    """Return (big, medium, small) default fonts."""
    if not pygame.font.get_init():
        pygame.font.init()

    try:
        big = pygame.font.Font(None, 44)
        medium = pygame.font.Font(None, 28)
        small = pygame.font.Font(None, 20)
        return big, medium, small
    except (pygame.error, OSError) as e:
        log.warning("font load failed: %s", e)
        f = pygame.font.Font(None, 24)
        return f, f, f


def seat_colour(seat: int, my_seat: int):
    if seat == my_seat:
        return LOCAL_COLOUR
    others = [s for s in range(4) if s != my_seat]
    idx = others.index(seat) if seat in others else seat
    return SEAT_COLOURS[idx % len(SEAT_COLOURS)]
