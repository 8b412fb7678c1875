from __future__ import annotations

import math
from typing import Any

import numpy as np

from ..constants import EPS


def vec3(v: Any) -> np.ndarray:
    """Coerce a 3-sequence to a float64 vector (copy)."""
    arr = np.array(v, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"expected a 3-vector, got shape {arr.shape}")
    return arr


def norm(v: np.ndarray) -> float:
    return float(math.sqrt(float(np.dot(v, v))))


def normalize(v: np.ndarray) -> np.ndarray:
    """Unit vector along v; the zero vector stays zero instead of going NaN."""
    n = norm(v)
    if n <= EPS:
        return np.zeros(3, dtype=np.float64)
    return np.asarray(v, dtype=np.float64) / n


def angle_between_deg(a: np.ndarray, b: np.ndarray) -> float:
    """Unsigned angle in [0, 180] degrees. Zero-length inputs give 0."""
    na = norm(a)
    nb = norm(b)
    if na <= EPS or nb <= EPS:
        return 0.0
    dot = float(np.dot(a, b)) / (na * nb)
    dot = max(-1.0, min(1.0, dot))
    return math.degrees(math.acos(dot))


def ping_pong(t: float, length: float) -> float:
    """Triangle wave bouncing between 0 and length."""
    if length <= 0.0:
        return 0.0
    period = length * 2.0
    t = t % period
    return period - t if t > length else t


def as_list(v: np.ndarray) -> list[float]:
    return [float(v[0]), float(v[1]), float(v[2])]
