from __future__ import annotations

import numpy as np

from ..constants import (
    GRAVITY_VEC,
    PREVIEW_MAX_DISTANCE_M,
    PREVIEW_MAX_SEGMENTS,
    PREVIEW_TIME_STEP_S,
)
from .vecmath import norm, normalize, vec3


def _point_at(origin: np.ndarray, vel: np.ndarray, t: float, gravity: np.ndarray) -> np.ndarray:
    return origin + vel * t + 0.5 * gravity * t * t


def predict_trajectory(
    origin: np.ndarray,
    direction: np.ndarray,
    muzzle_velocity: float,
    *,
    time_step: float = PREVIEW_TIME_STEP_S,
    max_segments: int = PREVIEW_MAX_SEGMENTS,
    max_distance: float = PREVIEW_MAX_DISTANCE_M,
    gravity: np.ndarray = GRAVITY_VEC,
) -> np.ndarray:
    """
    Drag-free aim-line preview: samples of origin + v*t + g*t^2/2.

    Stops once the accumulated path length reaches `max_distance`.
    Returns float64[n, 3] with n <= max_segments.
    """
    origin = vec3(origin)
    vel = normalize(vec3(direction)) * max(1.0, float(muzzle_velocity))
    gravity = vec3(gravity)

    points: list[np.ndarray] = []
    traveled = 0.0
    prev = origin
    for i in range(int(max_segments)):
        p = _point_at(origin, vel, i * time_step, gravity)
        traveled += norm(p - prev)
        points.append(p)
        prev = p
        if traveled >= max_distance:
            break
    return np.asarray(points, dtype=np.float64).reshape(-1, 3)


def predicted_point_at_distance(
    origin: np.ndarray,
    direction: np.ndarray,
    muzzle_velocity: float,
    distance_m: float,
    *,
    time_step: float = PREVIEW_TIME_STEP_S,
    max_segments: int = PREVIEW_MAX_SEGMENTS,
    gravity: np.ndarray = GRAVITY_VEC,
) -> np.ndarray:
    """First sample whose path length reaches `distance_m`, else the last sample."""
    origin = vec3(origin)
    vel = normalize(vec3(direction)) * max(1.0, float(muzzle_velocity))
    gravity = vec3(gravity)

    steps = max(8, int(max_segments))
    traveled = 0.0
    prev = origin
    for i in range(steps):
        p = _point_at(origin, vel, i * time_step, gravity)
        traveled += norm(p - prev)
        prev = p
        if traveled >= distance_m:
            return p
    return _point_at(origin, vel, (steps - 1) * time_step, gravity)
