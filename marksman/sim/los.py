from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numba
import numpy as np

from ..constants import ALL_LAYERS
from .world import VoxelWorld


@dataclass(frozen=True)
class RaycastHit:
    blocked: bool
    blocked_voxel: tuple[int, int, int] | None
    point: np.ndarray | None = None  # world meters, on the entered face
    normal: np.ndarray | None = None  # outward face normal
    distance: float = 0.0  # world meters from start


def _raycast_dda_pure(
    voxels: np.ndarray,
    collides_lut: np.ndarray,
    start_x: float, start_y: float, start_z: float,
    end_x_f: float, end_y_f: float, end_z_f: float,
    include_end: bool,
) -> Tuple[bool, int, int, int, int, int, float]:
    """
    Pure-Python DDA raycast core (grid units, voxels indexed [y, z, x]).

    Returns: (blocked, hit_x, hit_y, hit_z, face_axis, face_step, t_hit)
             face_axis is 0/1/2 for the x/y/z face entered, -1 when the ray
             started inside the voxel. face_step is the traversal step on
             that axis (+1/-1). t_hit is the distance along the ray.
             If not blocked, hit coords are -1.
    """
    dx = end_x_f - start_x
    dy = end_y_f - start_y
    dz = end_z_f - start_z

    length = math.sqrt(dx*dx + dy*dy + dz*dz)
    if length <= 1e-9:
        return (False, -1, -1, -1, -1, 0, 0.0)

    # Unit direction
    ux, uy, uz = dx/length, dy/length, dz/length

    # Current voxel coordinates
    x = int(math.floor(start_x))
    y = int(math.floor(start_y))
    z = int(math.floor(start_z))
    end_x = int(math.floor(end_x_f))
    end_y = int(math.floor(end_y_f))
    end_z = int(math.floor(end_z_f))

    sy, sz, sx = voxels.shape

    # Starting inside a colliding voxel
    if 0 <= x < sx and 0 <= y < sy and 0 <= z < sz:
        if collides_lut[voxels[y, z, x]]:
            return (True, x, y, z, -1, 0, 0.0)

    step_x = 1 if ux > 0 else (-1 if ux < 0 else 0)
    step_y = 1 if uy > 0 else (-1 if uy < 0 else 0)
    step_z = 1 if uz > 0 else (-1 if uz < 0 else 0)

    t_delta_x = abs(1.0 / ux) if ux != 0 else 1e30
    t_delta_y = abs(1.0 / uy) if uy != 0 else 1e30
    t_delta_z = abs(1.0 / uz) if uz != 0 else 1e30

    if step_x > 0:
        t_max_x = (x + 1.0 - start_x) * t_delta_x
    elif step_x < 0:
        t_max_x = (start_x - x) * t_delta_x
    else:
        t_max_x = 1e30

    if step_y > 0:
        t_max_y = (y + 1.0 - start_y) * t_delta_y
    elif step_y < 0:
        t_max_y = (start_y - y) * t_delta_y
    else:
        t_max_y = 1e30

    if step_z > 0:
        t_max_z = (z + 1.0 - start_z) * t_delta_z
    elif step_z < 0:
        t_max_z = (start_z - z) * t_delta_z
    else:
        t_max_z = 1e30

    # Each step crosses one face; a segment crosses at most ~3 per unit length.
    max_steps = int(length * 3) + 6

    for _ in range(max_steps):
        if x == end_x and y == end_y and z == end_z:
            return (False, -1, -1, -1, -1, 0, 0.0)

        if t_max_x < t_max_y:
            if t_max_x < t_max_z:
                axis, step, t_hit = 0, step_x, t_max_x
                x += step_x
                t_max_x += t_delta_x
            else:
                axis, step, t_hit = 2, step_z, t_max_z
                z += step_z
                t_max_z += t_delta_z
        else:
            if t_max_y < t_max_z:
                axis, step, t_hit = 1, step_y, t_max_y
                y += step_y
                t_max_y += t_delta_y
            else:
                axis, step, t_hit = 2, step_z, t_max_z
                z += step_z
                t_max_z += t_delta_z

        if t_hit > length:
            return (False, -1, -1, -1, -1, 0, 0.0)

        # Outside the grid is open air; keep walking, the ray may re-enter.
        if not (0 <= x < sx and 0 <= y < sy and 0 <= z < sz):
            continue

        if (not include_end) and x == end_x and y == end_y and z == end_z:
            return (False, -1, -1, -1, -1, 0, 0.0)

        if collides_lut[voxels[y, z, x]]:
            return (True, x, y, z, axis, step, t_hit)

    return (False, -1, -1, -1, -1, 0, 0.0)


# Same source, compiled. The interpreted function stays importable for parity tests.
_raycast_dda_numba = numba.njit(cache=True)(_raycast_dda_pure)


def raycast_voxels(
    world: VoxelWorld,
    start_xyz: np.ndarray,
    end_xyz: np.ndarray,
    *,
    mask: int = ALL_LAYERS,
    include_end: bool = True,
) -> RaycastHit:
    """
    Fast voxel traversal (3D DDA) from start to end, in world meters.
    Uses the Numba-compiled core.
    """
    start_g = world.to_grid(start_xyz)
    end_g = world.to_grid(end_xyz)

    blocked, hx, hy, hz, axis, step, t_hit = _raycast_dda_numba(
        world.voxels,
        world.collides_lut(mask),
        float(start_g[0]), float(start_g[1]), float(start_g[2]),
        float(end_g[0]), float(end_g[1]), float(end_g[2]),
        include_end,
    )
    if not blocked:
        return RaycastHit(blocked=False, blocked_voxel=None)

    d = end_g - start_g
    length = float(np.linalg.norm(d))
    u = d / length
    point = world.to_world(start_g + u * t_hit)
    normal = np.zeros(3, dtype=np.float64)
    if axis >= 0:
        normal[axis] = -float(step)
    else:
        normal = -u
    return RaycastHit(
        blocked=True,
        blocked_voxel=(int(hx), int(hy), int(hz)),
        point=point,
        normal=normal,
        distance=float(t_hit) * world.voxel_size_m,
    )


def has_los(world: VoxelWorld, start_xyz: np.ndarray, end_xyz: np.ndarray, mask: int = ALL_LAYERS) -> bool:
    return not raycast_voxels(world, start_xyz, end_xyz, mask=mask, include_end=False).blocked
