from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np

from ..config import RangeConfig, WeaponPreset
from ..constants import PRESET_DISTANCES_M
from ..scoring.events import EventBus
from ..scoring.ledger import ShotLedger
from .collision import RangeScene, TargetBox
from .dispersion import apply_dispersion
from .projectile import FlightState, ProjectileSimulator, ProjectileState
from .target import TargetMotionModel
from .vecmath import as_list, normalize, vec3
from .world import VoxelWorld

if TYPE_CHECKING:
    from ..persistence.writer import SessionWriter

logger = logging.getLogger(__name__)

TARGET_ID = "target"
TARGET_LABEL = "Paper target"
TARGET_HEIGHT_M = 1.5
TARGET_HALF_EXTENTS = (0.3, 0.45, 0.05)  # 0.6 m x 0.9 m face


class AimObserver(Protocol):
    """Supplies the aim pose and gates fire attempts."""

    @property
    def is_aiming(self) -> bool: ...

    @property
    def aim_origin(self) -> np.ndarray: ...

    @property
    def aim_direction(self) -> np.ndarray: ...


@dataclass
class InFlight:
    sim: ProjectileSimulator
    generation: int  # ledger magazine cycle the shot belongs to


class RangeSim:
    """
    Explicit simulation context for one shooting lane.

    Owns the scene, the moving target, the ledger and every in-flight
    projectile. Everything advances from `step()`, one fixed tick of
    `config.dt_sim` seconds; `advance(frame_dt)` turns variable frame times
    into whole fixed ticks.
    """

    def __init__(
        self,
        scene: RangeScene,
        ledger: ShotLedger,
        config: RangeConfig,
        motion: TargetMotionModel | None = None,
        target_id: str | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.scene = scene
        self.ledger = ledger
        self.config = config
        self.motion = motion
        self.target_id = target_id
        self.dt = float(config.dt_sim)
        self.rng = rng if rng is not None else np.random.default_rng(config.seed)
        self.time_s = 0.0
        self.tick = 0
        self.projectiles: list[InFlight] = []
        self._accumulator = 0.0

    @classmethod
    def build(
        cls,
        config: RangeConfig | None = None,
        *,
        world: VoxelWorld | None = None,
        writer: SessionWriter | None = None,
        events: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ) -> RangeSim:
        """Standard lane: ground, backstop berm, one paper target down range."""
        config = config or RangeConfig()
        scene = RangeScene(world if world is not None else VoxelWorld.shooting_lane())
        center = np.array([0.0, TARGET_HEIGHT_M, config.target_distance_m])
        scene.add_target(TargetBox(TARGET_ID, TARGET_LABEL, center, np.array(TARGET_HALF_EXTENTS)))
        motion = TargetMotionModel(center, config.target_motion, distance_m=config.target_distance_m)
        ledger = ShotLedger(
            events=events,
            writer=writer,
            motion=motion,
            preset=config.preset,
            lock_delay_s=config.lock_delay_s,
            marker_offset_m=config.marker_offset_m,
            clock=clock,
        )
        return cls(scene, ledger, config, motion=motion, target_id=TARGET_ID)

    @property
    def events(self) -> EventBus:
        return self.ledger.events

    @property
    def preset(self) -> WeaponPreset:
        return self.ledger.preset

    @property
    def target_distance(self) -> float:
        if self.motion is not None:
            return self.motion.distance_m
        return self.config.target_distance_m

    def place_target(self, distance_m: float) -> None:
        """Move the target straight down range to `distance_m` and re-centre its sweep."""
        if self.motion is None or self.target_id is None:
            return
        center = np.array([0.0, TARGET_HEIGHT_M, float(distance_m)])
        self.motion.set_distance(distance_m)
        self.motion.rebind(center)
        self.scene.move_target(self.target_id, center)

    def place_target_at_preset(self, index: int) -> float:
        """Place the target at one of PRESET_DISTANCES_M. Returns the distance used."""
        distance = PRESET_DISTANCES_M[index]
        self.place_target(distance)
        return distance

    # ---------- Firing ----------

    def fire(self, origin: np.ndarray, direction: np.ndarray) -> int | None:
        """Fire one round. Returns the shot id, or None when the magazine or aim is locked."""
        if not self.ledger.can_fire() or self.ledger.aim_locked:
            return None

        origin = vec3(origin)
        aim = normalize(vec3(direction))
        preset = self.preset
        moving = self.motion.is_moving if self.motion is not None else False

        shot_id = self.ledger.register_shot_fired(origin, aim, preset.muzzle_velocity, self.target_distance, moving)
        self.ledger.notify_shot_fired()

        fire_dir = aim
        if self.config.apply_dispersion:
            fire_dir = apply_dispersion(aim, preset.weapon.accuracy_moa, self.rng)

        state = ProjectileState(
            shot_id=shot_id,
            pos=origin,
            vel=fire_dir * preset.muzzle_velocity,
            mass_kg=preset.ammo.mass_kg,
            drag_coefficient=preset.ammo.drag_coefficient,
            frontal_area=preset.ammo.frontal_area,
        )
        sim = ProjectileSimulator(
            state,
            self.scene,
            lifetime_s=self.config.projectile_lifetime_s,
            floor_y_m=self.config.floor_y_m,
            hit_mask=self.config.hit_mask,
        )
        self.projectiles.append(InFlight(sim=sim, generation=self.ledger.generation))
        return shot_id

    def fire_from(self, observer: AimObserver) -> int | None:
        if not observer.is_aiming:
            return None
        return self.fire(observer.aim_origin, observer.aim_direction)

    def reload(self, snapshot: bytes | None = None):
        return self.ledger.reload(snapshot)

    # ---------- Tick ----------

    def step(self) -> list[dict[str, Any]]:
        events: list[dict[str, Any]] = []
        self.tick += 1
        self.time_s += self.dt

        if self.motion is not None and self.target_id is not None:
            self.motion.step(self.dt)
            self.scene.move_target(self.target_id, self.motion.position)

        keep = []
        for flight in self.projectiles:
            result = flight.sim.step(self.dt)
            if result is None:
                keep.append(flight)
                continue
            if flight.generation != self.ledger.generation:
                logger.debug(f"Shot {result.shot_id} landed after reload; not scored")
                continue

            if result.is_hit:
                self.ledger.register_hit(
                    result.shot_id,
                    result.position,
                    result.normal if result.normal is not None else -normalize(result.velocity),
                    result.target_label or "",
                    result.energy_j,
                )
            else:
                self.ledger.register_miss(
                    result.shot_id, result.position, expired=result.state is FlightState.EXPIRED
                )
            events.append(
                {
                    "type": f"projectile_{result.state.value}",
                    "shot": result.shot_id,
                    "target": result.target_id,
                    "pos": as_list(result.position),
                    "energy_j": result.energy_j,
                    "t": result.elapsed_s,
                }
            )
        self.projectiles = keep

        self.ledger.tick(self.dt)
        return events

    def advance(self, frame_dt: float, max_steps: int = 100) -> list[dict[str, Any]]:
        """Run as many fixed ticks as `frame_dt` (plus carried remainder) covers."""
        events: list[dict[str, Any]] = []
        self._accumulator += max(0.0, float(frame_dt))
        steps = 0
        while self._accumulator + 1e-12 >= self.dt and steps < max_steps:
            events.extend(self.step())
            self._accumulator -= self.dt
            steps += 1
        if steps == max_steps and self._accumulator >= self.dt:
            logger.warning(f"Dropping {self._accumulator:.3f}s of frame time (sim fell behind)")
            self._accumulator = 0.0
        return events

    def run_until_idle(self, max_steps: int | None = None) -> list[dict[str, Any]]:
        """Step until every in-flight projectile has landed."""
        if max_steps is None:
            max_steps = int(self.config.projectile_lifetime_s / self.dt) + 2
        events: list[dict[str, Any]] = []
        for _ in range(max_steps):
            if not self.projectiles:
                break
            events.extend(self.step())
        return events

    def run_for(self, seconds: float) -> list[dict[str, Any]]:
        events: list[dict[str, Any]] = []
        for _ in range(int(round(seconds / self.dt))):
            events.extend(self.step())
        return events
