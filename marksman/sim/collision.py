from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import numpy as np

from ..constants import ALL_LAYERS, EPS
from .los import raycast_voxels
from .vecmath import normalize, vec3
from .world import VoxelWorld

logger = logging.getLogger(__name__)

# Dynamic targets sit on their own layer, above the voxel material layers.
TARGET_LAYER_BIT = 1 << 16


@dataclass(frozen=True)
class CollisionHit:
    point: np.ndarray
    normal: np.ndarray
    object_id: str
    object_label: str
    distance: float


@runtime_checkable
class CollisionQuery(Protocol):
    """Ray/segment intersection against scene geometry.

    Must be monotonic in `max_distance` and deterministic for a static scene.
    """

    def query(
        self,
        origin: np.ndarray,
        direction: np.ndarray,
        max_distance: float,
        mask: int = ALL_LAYERS,
    ) -> CollisionHit | None: ...


@dataclass
class TargetBox:
    """Axis-aligned box standing in for a (possibly moving) target."""

    object_id: str
    label: str
    center: np.ndarray
    half_extents: np.ndarray
    layer: int = TARGET_LAYER_BIT

    def __post_init__(self) -> None:
        self.center = vec3(self.center)
        self.half_extents = vec3(self.half_extents)


def segment_aabb(
    origin: np.ndarray, direction: np.ndarray, max_distance: float, box_min: np.ndarray, box_max: np.ndarray
) -> tuple[float, np.ndarray] | None:
    """
    Slab test of the ray `origin + t*direction`, t in [0, max_distance].

    `direction` must be unit length. Returns (t_entry, entry_normal) or None.
    A ray starting inside the box hits at t=0 facing back along the ray.
    """
    t_min = 0.0
    t_max = float(max_distance)
    normal = -direction
    for axis in range(3):
        d = float(direction[axis])
        o = float(origin[axis])
        if abs(d) <= 1e-12:
            if o < box_min[axis] or o > box_max[axis]:
                return None
            continue
        inv = 1.0 / d
        t1 = (float(box_min[axis]) - o) * inv
        t2 = (float(box_max[axis]) - o) * inv
        near_sign = -1.0
        if t1 > t2:
            t1, t2 = t2, t1
            near_sign = 1.0
        if t1 > t_min:
            t_min = t1
            normal = np.zeros(3, dtype=np.float64)
            normal[axis] = near_sign
        t_max = min(t_max, t2)
        if t_min > t_max:
            return None
    return t_min, normal


@dataclass
class RangeScene:
    """
    CollisionQuery over a static voxel world plus dynamic target boxes.

    The nearest intersection along the ray wins; ties go to the target box.
    """

    world: VoxelWorld
    targets: dict[str, TargetBox] = field(default_factory=dict)

    def add_target(self, box: TargetBox) -> TargetBox:
        self.targets[box.object_id] = box
        return box

    def remove_target(self, object_id: str) -> None:
        self.targets.pop(object_id, None)

    def move_target(self, object_id: str, center: np.ndarray) -> None:
        self.targets[object_id].center = vec3(center)

    def query(
        self,
        origin: np.ndarray,
        direction: np.ndarray,
        max_distance: float,
        mask: int = ALL_LAYERS,
    ) -> CollisionHit | None:
        origin = vec3(origin)
        unit = normalize(vec3(direction))
        if max_distance <= EPS or not unit.any():
            return None

        best: CollisionHit | None = None
        for box in self.targets.values():
            if not (box.layer & mask):
                continue
            found = segment_aabb(origin, unit, max_distance, box.center - box.half_extents, box.center + box.half_extents)
            if found is None:
                continue
            t, normal = found
            if best is None or t < best.distance:
                best = CollisionHit(
                    point=origin + unit * t,
                    normal=normal,
                    object_id=box.object_id,
                    object_label=box.label,
                    distance=float(t),
                )

        end = origin + unit * float(max_distance)
        hit = raycast_voxels(self.world, origin, end, mask=mask, include_end=True)
        if hit.blocked and hit.point is not None and hit.normal is not None:
            if best is None or hit.distance < best.distance:
                vx, vy, vz = hit.blocked_voxel  # type: ignore[misc]
                voxel_type = self.world.get_voxel(vx, vy, vz)
                best = CollisionHit(
                    point=hit.point,
                    normal=hit.normal,
                    object_id=f"voxel:{vx},{vy},{vz}",
                    object_label=self.world.label_for(voxel_type),
                    distance=hit.distance,
                )
        return best
