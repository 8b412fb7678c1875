"""Shot, session and magazine record structures."""

from __future__ import annotations

import itertools
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from ..constants import DEFAULT_MAGAZINE_SIZE

Point = tuple[float, float, float]

SESSION_NAME_FORMAT = "session_%Y%m%d_%H%M%S"


def to_point(v: Any) -> Point:
    return (float(v[0]), float(v[1]), float(v[2]))


class ShotOutcome(str, Enum):
    PENDING = "pending"
    HIT = "hit"
    MISS = "miss"
    EXPIRED = "expired"


@dataclass(frozen=True)
class ShotRecord:
    """One shot, pending until a single hit/miss report completes it."""

    shot_id: int
    fired_at: float  # Unix epoch
    origin: Point
    predicted_point: Point
    target_distance: float
    target_moving: bool = False
    muzzle_velocity: float = 0.0

    # Filled in on completion
    outcome: ShotOutcome = ShotOutcome.PENDING
    actual_point: Point | None = None
    target_label: str = ""
    deviation_m: float = 0.0
    deviation_pct: float = 0.0
    angular_error_deg: float = 0.0
    angular_error_moa: float = 0.0
    angular_error_mrad: float = 0.0
    offset_h: float = 0.0
    offset_v: float = 0.0
    energy_j: float = 0.0
    explanation: str = ""

    @property
    def hit(self) -> bool:
        return self.outcome is ShotOutcome.HIT

    @property
    def completed(self) -> bool:
        return self.outcome is not ShotOutcome.PENDING

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for JSON storage."""
        return {
            "shot_id": self.shot_id,
            "fired_at": self.fired_at,
            "origin": list(self.origin),
            "predicted_point": list(self.predicted_point),
            "actual_point": list(self.actual_point) if self.actual_point is not None else None,
            "outcome": self.outcome.value,
            "hit": self.hit,
            "target_distance": self.target_distance,
            "target_moving": self.target_moving,
            "target_label": self.target_label,
            "muzzle_velocity": self.muzzle_velocity,
            "deviation_m": self.deviation_m,
            "deviation_pct": self.deviation_pct,
            "angular_error_deg": self.angular_error_deg,
            "angular_error_moa": self.angular_error_moa,
            "angular_error_mrad": self.angular_error_mrad,
            "offset_h": self.offset_h,
            "offset_v": self.offset_v,
            "energy_j": self.energy_j,
            "explanation": self.explanation,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ShotRecord:
        """Deserialize from dict."""
        actual = d.get("actual_point")
        return cls(
            shot_id=int(d["shot_id"]),
            fired_at=float(d.get("fired_at", 0.0)),
            origin=to_point(d.get("origin", (0.0, 0.0, 0.0))),
            predicted_point=to_point(d["predicted_point"]),
            target_distance=float(d.get("target_distance", 0.0)),
            target_moving=bool(d.get("target_moving", False)),
            muzzle_velocity=float(d.get("muzzle_velocity", 0.0)),
            outcome=ShotOutcome(d.get("outcome", ShotOutcome.PENDING.value)),
            actual_point=to_point(actual) if actual is not None else None,
            target_label=d.get("target_label", ""),
            deviation_m=d.get("deviation_m", 0.0),
            deviation_pct=d.get("deviation_pct", 0.0),
            angular_error_deg=d.get("angular_error_deg", 0.0),
            angular_error_moa=d.get("angular_error_moa", 0.0),
            angular_error_mrad=d.get("angular_error_mrad", 0.0),
            offset_h=d.get("offset_h", 0.0),
            offset_v=d.get("offset_v", 0.0),
            energy_j=d.get("energy_j", 0.0),
            explanation=d.get("explanation", ""),
        )


@dataclass(frozen=True)
class SessionRecord:
    """Everything shot during one magazine cycle (between two reloads)."""

    session_name: str
    created_at: float  # Unix epoch of the first shot
    finalized_at: float
    weapon: str  # weapon/ammo descriptor
    magazine_size: int
    target_moved: bool
    shots: tuple[ShotRecord, ...] = ()
    snapshot_ref: str | None = None

    @staticmethod
    def name_for(timestamp: float) -> str:
        return datetime.fromtimestamp(timestamp).strftime(SESSION_NAME_FORMAT)

    @property
    def hit_count(self) -> int:
        return sum(1 for s in self.shots if s.hit)

    @property
    def miss_count(self) -> int:
        return len(self.shots) - self.hit_count

    @property
    def mean_deviation_m(self) -> float:
        if not self.shots:
            return 0.0
        return sum(s.deviation_m for s in self.shots) / len(self.shots)

    @property
    def mean_angular_error_moa(self) -> float:
        if not self.shots:
            return 0.0
        return sum(s.angular_error_moa for s in self.shots) / len(self.shots)

    @property
    def group_size_m(self) -> float:
        """Extreme spread: largest center-to-center distance between two hits."""
        points = [s.actual_point for s in self.shots if s.hit and s.actual_point is not None]
        spread = 0.0
        for a, b in itertools.combinations(points, 2):
            spread = max(spread, math.dist(a, b))
        return spread

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for JSON storage."""
        return {
            "session_name": self.session_name,
            "created_at": self.created_at,
            "finalized_at": self.finalized_at,
            "weapon": self.weapon,
            "magazine_size": self.magazine_size,
            "target_moved": self.target_moved,
            "snapshot_ref": self.snapshot_ref,
            "shots": [s.to_dict() for s in self.shots],
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> SessionRecord:
        """Deserialize from dict."""
        return cls(
            session_name=d["session_name"],
            created_at=float(d.get("created_at", 0.0)),
            finalized_at=float(d.get("finalized_at", 0.0)),
            weapon=d.get("weapon", ""),
            magazine_size=int(d.get("magazine_size", 0)),
            target_moved=bool(d.get("target_moved", False)),
            shots=tuple(ShotRecord.from_dict(s) for s in d.get("shots", [])),
            snapshot_ref=d.get("snapshot_ref"),
        )


@dataclass
class MagazineState:
    """Rounds in the magazine. Always 0 <= current_ammo <= max_ammo."""

    max_ammo: int = DEFAULT_MAGAZINE_SIZE
    current_ammo: int | None = None

    def __post_init__(self) -> None:
        self.max_ammo = max(0, int(self.max_ammo))
        if self.current_ammo is None:
            self.current_ammo = self.max_ammo
        self.current_ammo = min(max(0, int(self.current_ammo)), self.max_ammo)

    @property
    def empty(self) -> bool:
        return self.current_ammo <= 0

    def consume(self) -> int:
        self.current_ammo = max(0, self.current_ammo - 1)
        return self.current_ammo

    def refill(self) -> None:
        self.current_ammo = self.max_ammo

    def configure(self, max_ammo: int, current_ammo: int) -> None:
        self.max_ammo = max(0, int(max_ammo))
        self.current_ammo = min(max(0, int(current_ammo)), self.max_ammo)
