"""Render-side holder for the last snapshot received from the host."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .world import MalformedMessage, WorldState

log = logging.getLogger(__name__)

STALL_WINDOW = 1.2


class SnapshotMirror:
    """Keeps the newest `WorldState` by tick. Never simulates or interpolates."""

    def __init__(self, stall_window: float = STALL_WINDOW, clock: Callable[[], float] = time.perf_counter):
        self.stall_window = float(stall_window)
        self.clock = clock
        self.state: Optional[WorldState] = None
        self.mounted_at = clock()
        self.received_at: Optional[float] = None
        self.applied = 0
        self.rejected = 0

    @property
    def last_tick(self) -> int:
        return self.state.tick if self.state is not None else -1

    def apply(self, payload, now: Optional[float] = None) -> bool:
        try:
            snap = payload if isinstance(payload, WorldState) else WorldState.from_payload(payload)
        except MalformedMessage as exc:
            log.debug("dropping malformed snapshot: %s", exc)
            self.rejected += 1
            return False
        if snap.tick <= self.last_tick:
            self.rejected += 1
            return False
        self.state = snap
        self.received_at = self.clock() if now is None else now
        self.applied += 1
        return True

    def age(self, now: Optional[float] = None) -> float:
        now = self.clock() if now is None else now
        since = self.received_at if self.received_at is not None else self.mounted_at
        return max(0.0, now - since)

    def stalled(self, now: Optional[float] = None) -> bool:
        return self.age(now) > self.stall_window
