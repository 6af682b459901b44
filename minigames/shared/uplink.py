"""Samples local control intent and publishes it to the host."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Tuple

import pygame

from .world import InputSample, normalize_axes

log = logging.getLogger(__name__)

INPUT_HZ = 20.0


def keyboard_axes(keys=None) -> Tuple[float, float]:
    """WASD / arrow keys to a unit intent vector."""
    if keys is None:
        keys = pygame.key.get_pressed()
    ax = ay = 0.0
    if keys[pygame.K_a] or keys[pygame.K_LEFT]:
        ax -= 1.0
    if keys[pygame.K_d] or keys[pygame.K_RIGHT]:
        ax += 1.0
    if keys[pygame.K_w] or keys[pygame.K_UP]:
        ay -= 1.0
    if keys[pygame.K_s] or keys[pygame.K_DOWN]:
        ay += 1.0
    return normalize_axes(ax, ay)


class InputUplink:
    def __init__(
        self,
        relay,
        room: str,
        seat_key: Optional[str],
        rate: float = INPUT_HZ,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.relay = relay
        self.room = room
        self.seat_key = seat_key
        self.interval = 1.0 / float(rate)
        self.clock = clock
        self._timer = 0.0
        self.sent = 0
        self.last_sample: Optional[InputSample] = None

    @property
    def enabled(self) -> bool:
        return bool(self.seat_key) and self.relay is not None

    def update(self, dt: float, axes: Tuple[float, float]) -> Optional[InputSample]:
        """Publish `axes` if the send interval has elapsed; spectators never publish."""
        if not self.enabled:
            return None
        self._timer += dt
        if self._timer < self.interval:
            return None
        self._timer = 0.0
        sample = InputSample.build(self.seat_key, axes[0], axes[1], self.clock())
        try:
            self.relay.send(self.room, "input", sample.to_payload())
        except Exception as exc:
            log.warning("input send failed: %s", exc)
            return None
        self.sent += 1
        self.last_sample = sample
        return sample

    def close(self):
        self.relay = None
