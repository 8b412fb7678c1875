from __future__ import annotations

import math

import numpy as np

from ..config import TargetMotionConfig
from ..constants import DEFAULT_TARGET_DISTANCE_M
from .vecmath import normalize, ping_pong, vec3


class TargetMotionModel:
    """
    Lateral sweep of a target, sized by angle rather than meters.

    The sweep is given as a full angular travel seen from the shooter
    (4 deg = +/-2 deg), so a target at 100 m moves four times as far as the
    same target at 25 m. Motion is a triangle wave along `axis` around a
    rebindable base position.
    """

    def __init__(
        self,
        base_position: np.ndarray,
        config: TargetMotionConfig | None = None,
        distance_m: float = DEFAULT_TARGET_DISTANCE_M,
    ) -> None:
        config = config or TargetMotionConfig()
        self.angular_travel_deg = float(config.angular_travel_deg)
        self.angular_speed = float(config.angular_speed)
        self.axis = normalize(vec3(config.axis))
        self.base_position = vec3(base_position)
        self.position = self.base_position.copy()
        self.distance_m = float(distance_m)
        self.phase = 0.0
        self.is_moving = False
        self.was_ever_moved = False

    @property
    def max_offset_m(self) -> float:
        half_angle_rad = math.radians(self.angular_travel_deg * 0.5)
        return math.tan(half_angle_rad) * self.distance_m

    @property
    def offset_m(self) -> float:
        """Signed displacement from the base position along the axis."""
        return float(np.dot(self.position - self.base_position, self.axis))

    def step(self, dt: float) -> None:
        if not self.is_moving:
            return
        self.phase += dt * self.angular_speed
        max_offset = self.max_offset_m
        raw = ping_pong(self.phase, max_offset * 2.0) - max_offset
        self.position = self.base_position + self.axis * raw

    def set_distance(self, distance_m: float) -> None:
        self.distance_m = max(0.0, float(distance_m))

    def start(self) -> None:
        self.is_moving = True
        self.was_ever_moved = True

    def stop(self) -> None:
        self.is_moving = False

    def toggle(self) -> None:
        if self.is_moving:
            self.stop()
        else:
            self.start()

    def reset(self) -> None:
        self.is_moving = False
        self.phase = 0.0
        self.position = self.base_position.copy()

    def rebind(self, base_position: np.ndarray | None = None) -> None:
        """Adopt the current (or given) position as the new sweep centre."""
        self.base_position = vec3(base_position) if base_position is not None else self.position.copy()
        self.position = self.base_position.copy()
        self.phase = 0.0

    def clear_session_flag(self) -> None:
        self.was_ever_moved = self.is_moving
