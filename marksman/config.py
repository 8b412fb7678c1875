from __future__ import annotations

import math
from dataclasses import dataclass, field

from .constants import (
    ALL_LAYERS,
    DEFAULT_MAGAZINE_SIZE,
    DEFAULT_TARGET_DISTANCE_M,
    EMPTY_MAG_LOCK_DELAY_S,
    FIXED_DT_S,
    MARKER_OFFSET_M,
    PROJECTILE_FLOOR_Y_M,
    PROJECTILE_LIFETIME_S,
    TARGET_ANGULAR_TRAVEL_DEG,
    TARGET_SWEEP_SPEED,
)


@dataclass(frozen=True)
class AmmoSpec:
    name: str
    caliber: str
    mass_kg: float
    diameter_m: float
    drag_coefficient: float
    muzzle_velocity: float  # m/s from a standard barrel

    @property
    def frontal_area(self) -> float:
        return math.pi * (self.diameter_m * 0.5) ** 2


@dataclass(frozen=True)
class WeaponSpec:
    name: str
    barrel_length_m: float
    accuracy_moa: float
    velocity_multiplier: float = 1.0  # barrel adjustment on top of the ammo's nominal velocity


@dataclass(frozen=True)
class WeaponPreset:
    display_name: str
    weapon_type: str
    weapon: WeaponSpec
    ammo: AmmoSpec
    magazine_size: int = DEFAULT_MAGAZINE_SIZE
    description: str = ""

    @property
    def muzzle_velocity(self) -> float:
        return self.ammo.muzzle_velocity * self.weapon.velocity_multiplier

    @property
    def descriptor(self) -> str:
        """Weapon/ammo descriptor stamped on session records."""
        return f"{self.weapon.name} / {self.ammo.name} ({self.ammo.caliber})"


PARABELLUM_9MM = AmmoSpec(
    name="9mm FMJ 124gr",
    caliber="9x19mm",
    mass_kg=0.00804,
    diameter_m=0.00901,
    drag_coefficient=0.295,
    muzzle_velocity=360.0,
)

NATO_556 = AmmoSpec(
    name="M855 62gr",
    caliber="5.56x45mm",
    mass_kg=0.00402,
    diameter_m=0.0057,
    drag_coefficient=0.151,
    muzzle_velocity=940.0,
)

NATO_762 = AmmoSpec(
    name="M80 147gr",
    caliber="7.62x51mm",
    mass_kg=0.00953,
    diameter_m=0.00782,
    drag_coefficient=0.200,
    muzzle_velocity=838.0,
)

SERVICE_PISTOL = WeaponSpec(
    name="Service Pistol",
    barrel_length_m=0.114,
    accuracy_moa=4.0,
    velocity_multiplier=0.97,
)

CARBINE = WeaponSpec(
    name="Carbine",
    barrel_length_m=0.368,
    accuracy_moa=2.0,
    velocity_multiplier=0.94,
)

MARKSMAN_RIFLE = WeaponSpec(
    name="Marksman Rifle",
    barrel_length_m=0.559,
    accuracy_moa=1.0,
    velocity_multiplier=1.0,
)

PISTOL_PRESET = WeaponPreset(
    display_name="Pistol",
    weapon_type="Pistol",
    weapon=SERVICE_PISTOL,
    ammo=PARABELLUM_9MM,
    magazine_size=15,
    description="Compact sidearm. Short sight radius, generous dispersion.",
)

CARBINE_PRESET = WeaponPreset(
    display_name="Carbine",
    weapon_type="Rifle",
    weapon=CARBINE,
    ammo=NATO_556,
    magazine_size=30,
    description="Short-barrel rifle. Fast, flat shooting at range distances.",
)

RIFLE_PRESET = WeaponPreset(
    display_name="Marksman Rifle",
    weapon_type="Rifle",
    weapon=MARKSMAN_RIFLE,
    ammo=NATO_762,
    magazine_size=10,
    description="Full-power cartridge, tight groups.",
)

PRESETS: tuple[WeaponPreset, ...] = (PISTOL_PRESET, CARBINE_PRESET, RIFLE_PRESET)


@dataclass(frozen=True)
class TargetMotionConfig:
    angular_travel_deg: float = TARGET_ANGULAR_TRAVEL_DEG  # full sweep (4 = +/-2 deg)
    angular_speed: float = TARGET_SWEEP_SPEED
    axis: tuple[float, float, float] = (1.0, 0.0, 0.0)


@dataclass(frozen=True)
class RangeConfig:
    dt_sim: float = FIXED_DT_S
    projectile_lifetime_s: float = PROJECTILE_LIFETIME_S
    floor_y_m: float = PROJECTILE_FLOOR_Y_M
    hit_mask: int = ALL_LAYERS
    lock_delay_s: float = EMPTY_MAG_LOCK_DELAY_S
    marker_offset_m: float = MARKER_OFFSET_M
    target_distance_m: float = DEFAULT_TARGET_DISTANCE_M
    target_motion: TargetMotionConfig = field(default_factory=TargetMotionConfig)
    preset: WeaponPreset = RIFLE_PRESET
    # Shot dispersion from the weapon's accuracy rating. Off for reproducible drills.
    apply_dispersion: bool = False
    seed: int | None = None
