"""Host-side simulation base shared by the realtime minigames.

Only the host builds one of these. It owns the round's bodies (one mutable
record per seat, indexed by seat), integrates them at a fixed step, and
publishes full `WorldState` snapshots through the relay at a capped rate.
Everyone else renders those snapshots through a mirror.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from seats import SeatMap
from .world import BodySnapshot, InputSample, WorldState

log = logging.getLogger(__name__)

IDLE = "idle"
RUNNING = "running"
TERMINAL = "terminal"

STEP = 1.0 / 60.0
STATE_HZ = 25.0
MAX_STEPS_PER_ADVANCE = 8


@dataclass
class Body:
    key: str
    x: float
    y: float
    r: float
    vx: float = 0.0
    vy: float = 0.0
    alive: bool = True
    extra: Dict[str, Any] = field(default_factory=dict)

    def freeze(self) -> BodySnapshot:
        return BodySnapshot(
            key=self.key,
            x=self.x,
            y=self.y,
            vx=self.vx,
            vy=self.vy,
            r=self.r,
            alive=self.alive,
            extra=dict(self.extra),
        )


# ---- physics helpers (per-step units, as the tuning constants are) ----
def apply_intent(body: Body, ax: float, ay: float, accel: float, max_speed: float):
    if not body.alive:
        return
    body.vx += ax * accel
    body.vy += ay * accel
    speed = math.hypot(body.vx, body.vy)
    if speed > max_speed:
        body.vx = body.vx / speed * max_speed
        body.vy = body.vy / speed * max_speed


def integrate(body: Body, friction: float, rest: float = 0.01):
    if not body.alive:
        return
    body.x += body.vx
    body.y += body.vy
    body.vx *= friction
    body.vy *= friction
    if abs(body.vx) < rest:
        body.vx = 0.0
    if abs(body.vy) < rest:
        body.vy = 0.0


def resolve_overlap(a: Body, b: Body, push: float):
    """Split the overlap evenly along the contact normal and trade impulse when closing."""
    if not a.alive or not b.alive:
        return
    dx = b.x - a.x
    dy = b.y - a.y
    dist = math.hypot(dx, dy)
    min_dist = a.r + b.r
    if dist >= min_dist:
        return
    if dist == 0:
        # coincident centres: pick a fixed normal so the result is deterministic
        nx, ny, dist = 1.0, 0.0, 0.0
    else:
        nx, ny = dx / dist, dy / dist
    overlap = min_dist - dist
    a.x -= nx * overlap / 2
    a.y -= ny * overlap / 2
    b.x += nx * overlap / 2
    b.y += ny * overlap / 2
    closing = (b.vx - a.vx) * nx + (b.vy - a.vy) * ny
    if closing < 0:
        j = -closing * push
        a.vx -= j * nx
        a.vy -= j * ny
        b.vx += j * nx
        b.vy += j * ny


class AuthoritativeSim:
    """Fixed-step, host-only round engine. Subclasses fill in `step_world`."""

    MINIGAME_ID = "realtime"
    ROUND_TIME = 20.0
    STATE_HZ = STATE_HZ
    ELIMINATION_ENDS_ROUND = True
    WIDTH = 680
    HEIGHT = 420

    def __init__(
        self,
        seats: SeatMap,
        relay=None,
        room: Optional[str] = None,
        local_seat: int = -1,
        round_time: Optional[float] = None,
        seed=None,
        round_no: int = 1,
    ):
        self.seats = seats
        self.relay = relay
        self.room = room
        self.local_seat = local_seat if 0 <= local_seat < seats.seat_count else -1
        self.round_time = float(self.ROUND_TIME if round_time is None else round_time)
        self.seed = seed
        self.round_no = int(round_no)
        self.center = (self.WIDTH / 2.0, self.HEIGHT / 2.0)
        self.state = IDLE
        self.tick = 0
        self.time_left = self.round_time
        self.winner_key: Optional[str] = None
        self.inputs: Dict[str, InputSample] = {}
        self._accum = 0.0
        self._state_timer = 0.0
        self._last_sent_tick: Optional[int] = None
        self.bodies: List[Body] = self.spawn_bodies()

    # ---- round setup ----
    def spawn_bodies(self) -> List[Body]:
        raise NotImplementedError

    def start(self) -> bool:
        if self.state != IDLE:
            return self.state == RUNNING
        if not self.seats.ready:
            log.info(
                "%s not starting: %d/%d seats filled",
                self.MINIGAME_ID,
                self.seats.seat_count,
                self.seats.min_seats,
            )
            return False
        self.state = RUNNING
        return True

    def stop(self):
        self.relay = None
        self.inputs.clear()

    @property
    def running(self) -> bool:
        return self.state == RUNNING

    @property
    def round_over(self) -> bool:
        return self.state == TERMINAL

    # ---- inputs ----
    def receive_input(self, sample: InputSample) -> bool:
        """Keep the newest sample per seat key; stale or foreign samples are ignored."""
        if self.seats.seat_for(sample.key) < 0:
            return False
        current = self.inputs.get(sample.key)
        if current is not None and sample.t < current.t:
            return False
        self.inputs[sample.key] = sample
        return True

    def intent_for(self, seat: int, local_axes: Tuple[float, float]) -> Tuple[float, float]:
        if seat == self.local_seat:
            return local_axes
        sample = self.inputs.get(self.bodies[seat].key)
        if sample is None:
            return 0.0, 0.0
        return sample.ax, sample.ay

    # ---- stepping ----
    def advance(self, dt: float, local_axes: Tuple[float, float] = (0.0, 0.0)) -> Optional[WorldState]:
        """Run whole fixed steps for `dt` seconds and maybe publish a snapshot."""
        if self.state == IDLE:
            return None
        was_running = self.running
        self._accum += max(0.0, float(dt))
        steps = 0
        while self._accum >= STEP:
            self._accum -= STEP
            steps += 1
            if steps > MAX_STEPS_PER_ADVANCE:
                # drop the backlog rather than spiral on a slow frame
                self._accum = 0.0
                break
            self.step(local_axes)
        self._state_timer += dt
        if was_running and self.round_over:
            return self.publish(force=True)
        return self.publish()

    def step(self, local_axes: Tuple[float, float] = (0.0, 0.0)):
        if not self.running:
            return
        intents = [self.intent_for(seat, local_axes) for seat in range(len(self.bodies))]
        self.tick_timer(STEP)
        self.step_world(intents)
        self.tick += 1
        over, winner = self.check_round_over()
        if over:
            self.state = TERMINAL
            self.winner_key = winner
            log.info("%s round over at tick %d, winner=%s", self.MINIGAME_ID, self.tick, winner)

    def tick_timer(self, dt: float):
        self.time_left = max(0.0, self.time_left - dt)

    def step_world(self, intents: Sequence[Tuple[float, float]]):
        raise NotImplementedError

    # ---- win conditions ----
    def check_round_over(self) -> Tuple[bool, Optional[str]]:
        alive = [b for b in self.bodies if b.alive]
        if self.ELIMINATION_ENDS_ROUND and len(self.bodies) >= 2:
            if len(alive) == 1:
                return True, alive[0].key
            if not alive:
                return True, None
        if self.time_left <= 0:
            return True, self.timeout_winner()
        return False, None

    def timeout_winner(self) -> Optional[str]:
        """Alive seat nearest the centre; an exact tie means nobody wins."""
        cx, cy = self.center
        best = None
        best_dist = math.inf
        tied = False
        for body in self.bodies:
            if not body.alive:
                continue
            d = math.hypot(body.x - cx, body.y - cy)
            if d < best_dist:
                best, best_dist, tied = body, d, False
            elif d == best_dist:
                tied = True
        if best is None or tied:
            return None
        return best.key

    # ---- snapshots ----
    def world_extra(self) -> Dict[str, Any]:
        return {}

    def snapshot(self) -> WorldState:
        # mirrors use the tag to drop traffic meant for another round
        extra = {"minigame": self.MINIGAME_ID, "round": self.round_no}
        extra.update(self.world_extra())
        return WorldState(
            tick=self.tick,
            time_left=self.time_left,
            round_over=self.round_over,
            winner_key=self.winner_key,
            players=tuple(b.freeze() for b in self.bodies),
            extra=extra,
        )

    def publish(self, force: bool = False) -> Optional[WorldState]:
        if self.round_over and self._last_sent_tick == self.tick:
            # the terminal snapshot goes out once; the world no longer changes
            return None
        interval = 1.0 / self.STATE_HZ
        if not force and self._state_timer < interval:
            return None
        # keep the remainder so 60 fps frames still average out to STATE_HZ
        self._state_timer = 0.0 if force else self._state_timer % interval
        snap = self.snapshot()
        self._last_sent_tick = snap.tick
        if self.relay is not None and self.room:
            try:
                self.relay.send(self.room, "state", snap.to_payload())
            except Exception as exc:
                log.warning("%s state send failed: %s", self.MINIGAME_ID, exc)
        return snap
