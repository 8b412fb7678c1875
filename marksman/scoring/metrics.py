"""Deviation and angular-error scoring of a shot against its aim point."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from ..constants import (
    DEGENERATE_CROSS_EPS,
    FALLBACK_RIGHT_AXIS,
    MOA_PER_DEGREE,
    MRAD_PER_RADIAN,
    WORLD_UP,
)
from ..sim.vecmath import angle_between_deg, norm, normalize, vec3


@dataclass(frozen=True)
class ShotMetrics:
    deviation_m: float
    deviation_pct: float
    angular_error_deg: float
    angular_error_moa: float
    angular_error_mrad: float
    offset_h: float  # + right of the aim point
    offset_v: float  # + above the aim point


def scoring_basis(dir_pred: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    (right, up) axes of the target plane seen along `dir_pred`.

    right = normalize(cross(WORLD_UP, dir_pred)), up = normalize(cross(dir_pred, right)).
    A vertical aim makes the first cross product vanish; FALLBACK_RIGHT_AXIS,
    with its component along `dir_pred` removed, stands in for it.
    """
    fwd = normalize(dir_pred)
    right_raw = np.cross(WORLD_UP, fwd)
    if norm(right_raw) < DEGENERATE_CROSS_EPS:
        right_raw = FALLBACK_RIGHT_AXIS - fwd * float(np.dot(FALLBACK_RIGHT_AXIS, fwd))
        if norm(right_raw) < DEGENERATE_CROSS_EPS:
            # Only reachable for a zero-length aim.
            right_raw = FALLBACK_RIGHT_AXIS.copy()
    right = normalize(right_raw)
    up = normalize(np.cross(fwd, right))
    return right, up


def compute_metrics(
    observer_origin: np.ndarray,
    predicted_point: np.ndarray,
    actual_point: np.ndarray,
    target_distance: float,
) -> ShotMetrics:
    origin = vec3(observer_origin)
    predicted = vec3(predicted_point)
    actual = vec3(actual_point)

    delta = actual - predicted
    deviation_m = norm(delta)
    deviation_pct = deviation_m / target_distance * 100.0 if target_distance > 0 else 0.0

    dir_pred = normalize(predicted - origin)
    dir_real = normalize(actual - origin)
    angle_deg = angle_between_deg(dir_pred, dir_real)

    right, up = scoring_basis(dir_pred)
    return ShotMetrics(
        deviation_m=deviation_m,
        deviation_pct=deviation_pct,
        angular_error_deg=angle_deg,
        angular_error_moa=angle_deg * MOA_PER_DEGREE,
        angular_error_mrad=angle_deg * (math.pi / 180.0) * MRAD_PER_RADIAN,
        offset_h=float(np.dot(delta, right)),
        offset_v=float(np.dot(delta, up)),
    )


def explain_hit(label: str, metrics: ShotMetrics) -> str:
    side = "right" if metrics.offset_h >= 0 else "left"
    height = "high" if metrics.offset_v >= 0 else "low"
    return (
        f"Hit on '{label}': {abs(metrics.offset_h):.3f} m {side}, "
        f"{abs(metrics.offset_v):.3f} m {height} of the aim point "
        f"({metrics.angular_error_moa:.2f} MOA)"
    )


def explain_miss(metrics: ShotMetrics, expired: bool = False) -> str:
    verb = "expired" if expired else "ended"
    return f"Miss: projectile {verb} {metrics.deviation_m:.3f} m from the aim point"
