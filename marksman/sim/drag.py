from __future__ import annotations

import numpy as np

from ..constants import AIR_DENSITY_KG_M3
from .vecmath import norm


def drag_force(velocity: np.ndarray, drag_coefficient: float, frontal_area: float) -> np.ndarray:
    """
    Quadratic aerodynamic drag.

    F = -0.5 * rho * Cd * A * |v| * v

    Opposes the velocity, scales with speed squared, and is exactly zero
    for a projectile at rest.
    """
    speed = norm(velocity)
    if speed <= 0.0:
        return np.zeros(3, dtype=np.float64)
    return -0.5 * AIR_DENSITY_KG_M3 * drag_coefficient * frontal_area * speed * np.asarray(velocity, dtype=np.float64)
