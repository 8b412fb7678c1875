# marksman/settings.py
"""Runtime settings with sensible defaults for a local range."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .config import RangeConfig
from .constants import (
    EMPTY_MAG_LOCK_DELAY_S,
    FIXED_DT_S,
    MARKER_OFFSET_M,
    PREVIEW_MAX_DISTANCE_M,
    PREVIEW_MAX_SEGMENTS,
    PREVIEW_TIME_STEP_S,
    PROJECTILE_FLOOR_Y_M,
    PROJECTILE_LIFETIME_S,
)


class Settings(BaseSettings):
    """Range settings, overridable via environment variables."""

    # Persistence
    SESSIONS_DIR: Path = Path("runs/sessions")

    # Simulation
    FIXED_DT_S: float = FIXED_DT_S
    PROJECTILE_LIFETIME_S: float = PROJECTILE_LIFETIME_S
    PROJECTILE_FLOOR_Y_M: float = PROJECTILE_FLOOR_Y_M

    # Magazine / markers
    LOCK_DELAY_S: float = EMPTY_MAG_LOCK_DELAY_S
    MARKER_OFFSET_M: float = MARKER_OFFSET_M

    # Trajectory preview
    PREVIEW_TIME_STEP_S: float = PREVIEW_TIME_STEP_S
    PREVIEW_MAX_SEGMENTS: int = PREVIEW_MAX_SEGMENTS
    PREVIEW_MAX_DISTANCE_M: float = PREVIEW_MAX_DISTANCE_M

    model_config = SettingsConfigDict(env_prefix="MARKSMAN_", env_file=".env", extra="ignore")

    def range_config(self, **overrides) -> RangeConfig:
        """Build a RangeConfig seeded from these settings."""
        values = {
            "dt_sim": self.FIXED_DT_S,
            "projectile_lifetime_s": self.PROJECTILE_LIFETIME_S,
            "floor_y_m": self.PROJECTILE_FLOOR_Y_M,
            "lock_delay_s": self.LOCK_DELAY_S,
            "marker_offset_m": self.MARKER_OFFSET_M,
        }
        values.update(overrides)
        return RangeConfig(**values)


settings = Settings()
