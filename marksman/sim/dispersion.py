from __future__ import annotations

import math

import numpy as np

from ..constants import MOA_PER_DEGREE
from ..scoring.metrics import scoring_basis
from .vecmath import normalize, vec3


def apply_dispersion(direction: np.ndarray, accuracy_moa: float, rng: np.random.Generator) -> np.ndarray:
    """
    Perturb a firing direction by the weapon's mechanical accuracy.

    Yaw/pitch are drawn uniformly inside a disc of radius `accuracy_moa`
    minutes of angle. Seeded generators give reproducible strings.
    """
    fwd = normalize(vec3(direction))
    if accuracy_moa <= 0.0 or not fwd.any():
        return fwd

    radius_rad = math.radians(accuracy_moa / MOA_PER_DEGREE)
    r = radius_rad * math.sqrt(float(rng.random()))
    theta = 2.0 * math.pi * float(rng.random())
    yaw = r * math.cos(theta)
    pitch = r * math.sin(theta)

    right, up = scoring_basis(fwd)
    return normalize(fwd + right * math.tan(yaw) + up * math.tan(pitch))
