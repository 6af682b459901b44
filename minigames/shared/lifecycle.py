"""One-shot round end detection."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .world import WorldState

log = logging.getLogger(__name__)


class RoundLifecycle:
    def __init__(self, on_complete: Optional[Callable[[dict], None]] = None):
        self.on_complete = on_complete
        self.announced = False
        self.result: Optional[dict] = None

    def reset(self):
        self.announced = False
        self.result = None

    def observe(self, state: Optional[WorldState]) -> bool:
        """Fire the completion callback the first time a terminal state is seen."""
        if self.announced or state is None or not state.round_over:
            return False
        self.announced = True
        self.result = {"winnerKey": state.winner_key, "timeRemaining": state.time_left}
        if callable(self.on_complete):
            try:
                self.on_complete(dict(self.result))
            except Exception:
                log.exception("round completion callback failed")
        return True
