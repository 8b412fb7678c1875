from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from ..constants import (
    ALL_LAYERS,
    EPS,
    GRAVITY_VEC,
    PROJECTILE_FLOOR_Y_M,
    PROJECTILE_LIFETIME_S,
)
from .drag import drag_force
from .vecmath import norm, vec3

if TYPE_CHECKING:
    from .collision import CollisionQuery

logger = logging.getLogger(__name__)


class FlightState(str, Enum):
    FLYING = "flying"
    HIT = "hit"
    MISS = "miss"
    EXPIRED = "expired"


@dataclass
class ProjectileState:
    shot_id: int
    pos: np.ndarray  # float64[3], meters
    vel: np.ndarray  # float64[3], m/s
    mass_kg: float
    drag_coefficient: float
    frontal_area: float

    # State
    age: float = 0.0

    def __post_init__(self) -> None:
        self.pos = vec3(self.pos)
        self.vel = vec3(self.vel)

    @property
    def speed(self) -> float:
        return norm(self.vel)

    @property
    def kinetic_energy_j(self) -> float:
        return 0.5 * self.mass_kg * float(np.dot(self.vel, self.vel))


@dataclass(frozen=True)
class FlightResult:
    """Terminal outcome of one projectile."""

    shot_id: int
    state: FlightState
    position: np.ndarray
    velocity: np.ndarray
    elapsed_s: float
    normal: np.ndarray | None = None
    target_id: str | None = None
    target_label: str | None = None
    energy_j: float = 0.0

    @property
    def is_hit(self) -> bool:
        return self.state is FlightState.HIT


class ProjectileSimulator:
    """
    Flies one projectile under drag and gravity: Flying -> Hit | Miss | Expired.

    Each `step(dt)` is one semi-implicit Euler tick followed by a collision
    query over the swept segment. `dt` must come from a fixed tick, never
    from frame time, so trajectories are reproducible.
    """

    def __init__(
        self,
        state: ProjectileState,
        collision: CollisionQuery | None,
        *,
        gravity: np.ndarray = GRAVITY_VEC,
        lifetime_s: float = PROJECTILE_LIFETIME_S,
        floor_y_m: float = PROJECTILE_FLOOR_Y_M,
        hit_mask: int = ALL_LAYERS,
    ) -> None:
        self.state = state
        self.collision = collision
        self.gravity = vec3(gravity)
        self.lifetime_s = float(lifetime_s)
        self.floor_y_m = float(floor_y_m)
        self.hit_mask = int(hit_mask)
        self.flight_state = FlightState.FLYING
        self.result: FlightResult | None = None
        self._query_failed = False

    @property
    def shot_id(self) -> int:
        return self.state.shot_id

    @property
    def done(self) -> bool:
        return self.flight_state is not FlightState.FLYING

    def _query(self, origin: np.ndarray, direction: np.ndarray, dist: float):
        if self.collision is None:
            return None
        try:
            return self.collision.query(origin, direction, dist, self.hit_mask)
        except Exception as e:
            # Degrade to "no hit this step"; the lifetime bound ends the flight.
            if not self._query_failed:
                logger.warning(f"Collision query failed for shot {self.shot_id}, continuing without hits: {e}")
                self._query_failed = True
            return None

    def _finish(self, flight_state: FlightState, **kwargs) -> FlightResult:
        p = self.state
        self.flight_state = flight_state
        self.result = FlightResult(
            shot_id=p.shot_id,
            state=flight_state,
            position=p.pos.copy(),
            velocity=p.vel.copy(),
            elapsed_s=p.age,
            **kwargs,
        )
        return self.result

    def step(self, dt: float) -> FlightResult | None:
        """Advance one tick. Returns the terminal result on the tick it is reached."""
        if self.done:
            return None

        p = self.state
        mass = max(p.mass_kg, EPS)
        accel = drag_force(p.vel, p.drag_coefficient, p.frontal_area) / mass + self.gravity

        # Semi-implicit Euler
        p.vel = p.vel + accel * dt
        next_pos = p.pos + p.vel * dt

        seg = next_pos - p.pos
        dist = norm(seg)
        if dist > 0.0:
            hit = self._query(p.pos, seg / dist, dist)
            if hit is not None:
                p.pos = np.asarray(hit.point, dtype=np.float64).copy()
                p.age += dt
                return self._finish(
                    FlightState.HIT,
                    normal=np.asarray(hit.normal, dtype=np.float64).copy(),
                    target_id=hit.object_id,
                    target_label=hit.object_label,
                    energy_j=p.kinetic_energy_j,
                )

        p.pos = next_pos
        p.age += dt

        if p.pos[1] < self.floor_y_m:
            return self._finish(FlightState.MISS)
        if p.age > self.lifetime_s:
            return self._finish(FlightState.EXPIRED)
        return None

    def run(self, dt: float, max_steps: int | None = None) -> FlightResult | None:
        """Step until terminal (or `max_steps`). Convenience for tests and offline scoring."""
        if max_steps is None:
            max_steps = int(self.lifetime_s / dt) + 2
        for _ in range(max_steps):
            result = self.step(dt)
            if result is not None:
                return result
        return self.result
