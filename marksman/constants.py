from __future__ import annotations

import numpy as np

# ==============================================================================
# Environment
# ==============================================================================

# Sea-level air density (kg/m^3), held constant for the whole range
AIR_DENSITY_KG_M3 = 1.225

# Gravity in meters per second squared (Earth standard)
GRAVITY_M_S2 = 9.81

# World frame is y-up. Gravity pulls along -y.
WORLD_UP = np.array([0.0, 1.0, 0.0])
GRAVITY_VEC = np.array([0.0, -GRAVITY_M_S2, 0.0])

# ==============================================================================
# Numeric Guards
# ==============================================================================

# Floor for divisions by mass/speed/length
EPS = 1e-6

# |cross(WORLD_UP, dir)| below this means the aim is (anti)parallel to up
DEGENERATE_CROSS_EPS = 1e-6

# Substitute for cross(WORLD_UP, dir) when the aim is vertical
FALLBACK_RIGHT_AXIS = np.array([1.0, 0.0, 0.0])

# ==============================================================================
# Projectile Simulation
# ==============================================================================

# Fixed integration step (100 Hz). Never derived from frame time.
FIXED_DT_S = 0.01

# A projectile still flying after this much simulated time expires
PROJECTILE_LIFETIME_S = 10.0

# Below this height the projectile is considered lost (miss)
PROJECTILE_FLOOR_Y_M = -50.0

# Collision mask accepting every layer
ALL_LAYERS = 0xFFFFFFFF

# ==============================================================================
# Scoring & Magazine
# ==============================================================================

MOA_PER_DEGREE = 60.0
MRAD_PER_RADIAN = 1000.0

# Marker spawn offset off the hit surface (avoids z-fighting)
MARKER_OFFSET_M = 0.01

# Delay between the last round and the aim lock, in simulated seconds.
# Lets the final shot land before input is blocked.
EMPTY_MAG_LOCK_DELAY_S = 0.5

DEFAULT_MAGAZINE_SIZE = 10

# ==============================================================================
# Target Placement & Motion
# ==============================================================================

PRESET_DISTANCES_M = (25.0, 50.0, 100.0)
DEFAULT_TARGET_DISTANCE_M = 25.0

# Full angular sweep of a moving target (4 deg = +/-2 deg)
TARGET_ANGULAR_TRAVEL_DEG = 4.0
TARGET_SWEEP_SPEED = 1.2

# ==============================================================================
# Trajectory Preview
# ==============================================================================

PREVIEW_TIME_STEP_S = 0.05
PREVIEW_MAX_SEGMENTS = 64
PREVIEW_MAX_DISTANCE_M = 150.0
