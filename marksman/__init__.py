from .config import PRESETS, AmmoSpec, RangeConfig, WeaponPreset, WeaponSpec
from .scoring.ledger import ShotLedger
from .sim.range import RangeSim

__all__ = ["PRESETS", "AmmoSpec", "RangeConfig", "RangeSim", "ShotLedger", "WeaponPreset", "WeaponSpec"]
