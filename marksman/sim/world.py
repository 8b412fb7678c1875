from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np

from ..constants import ALL_LAYERS


@dataclass
class VoxelWorld:
    """
    Static range geometry on a regular voxel grid.

    Voxels are stored y-major (`voxels[iy, iz, ix]`) because y is up, so
    `voxels[0]` is the ground layer. `origin_m` is the world position of the
    grid's (0, 0, 0) corner. Each voxel type lives on its own collision
    layer (bit `1 << type`).
    """

    # Voxel types
    AIR = 0
    GROUND = 1
    BERM = 2
    FRAME = 3
    WALL = 4

    LABELS = {
        GROUND: "Ground",
        BERM: "Backstop berm",
        FRAME: "Target frame",
        WALL: "Wall",
    }

    voxels: np.ndarray  # uint8[sy, sz, sx] (y-major)
    voxel_size_m: float = 1.0
    origin_m: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float64))
    meta: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.origin_m = np.asarray(self.origin_m, dtype=np.float64)

    @property
    def size_y(self) -> int:
        return int(self.voxels.shape[0])

    @property
    def size_z(self) -> int:
        return int(self.voxels.shape[1])

    @property
    def size_x(self) -> int:
        return int(self.voxels.shape[2])

    def in_bounds(self, ix: int, iy: int, iz: int) -> bool:
        return 0 <= ix < self.size_x and 0 <= iy < self.size_y and 0 <= iz < self.size_z

    def get_voxel(self, ix: int, iy: int, iz: int) -> int:
        if not self.in_bounds(ix, iy, iz):
            return self.AIR
        return int(self.voxels[iy, iz, ix])

    def to_grid(self, pos_m: np.ndarray) -> np.ndarray:
        return (np.asarray(pos_m, dtype=np.float64) - self.origin_m) / self.voxel_size_m

    def to_world(self, pos_grid: np.ndarray) -> np.ndarray:
        return np.asarray(pos_grid, dtype=np.float64) * self.voxel_size_m + self.origin_m

    def label_for(self, voxel_type: int) -> str:
        return self.LABELS.get(int(voxel_type), f"Voxel {int(voxel_type)}")

    def collides_lut(self, mask: int = ALL_LAYERS) -> np.ndarray:
        """Lookup table: voxel type -> collides under `mask`. AIR never collides."""
        lut = np.zeros(256, dtype=np.bool_)
        for v in range(1, 32):
            lut[v] = bool(mask & (1 << v))
        return lut

    def set_box(
        self,
        min_ix: int,
        min_iy: int,
        min_iz: int,
        max_ix_excl: int,
        max_iy_excl: int,
        max_iz_excl: int,
        value: int,
    ) -> None:
        min_ix = max(min_ix, 0)
        min_iy = max(min_iy, 0)
        min_iz = max(min_iz, 0)
        max_ix_excl = min(max_ix_excl, self.size_x)
        max_iy_excl = min(max_iy_excl, self.size_y)
        max_iz_excl = min(max_iz_excl, self.size_z)
        if min_ix >= max_ix_excl or min_iy >= max_iy_excl or min_iz >= max_iz_excl:
            return
        self.voxels[min_iy:max_iy_excl, min_iz:max_iz_excl, min_ix:max_ix_excl] = int(value)

    def ensure_ground_layer(self) -> None:
        if self.size_y <= 0:
            return
        layer = self.voxels[0]
        layer[layer == self.AIR] = self.GROUND

    @classmethod
    def empty(cls, size_x: int, size_y: int, size_z: int, **kwargs: Any) -> VoxelWorld:
        return cls(voxels=np.zeros((size_y, size_z, size_x), dtype=np.uint8), **kwargs)

    @classmethod
    def shooting_lane(
        cls,
        length_m: float = 130.0,
        width_m: float = 20.0,
        height_m: float = 12.0,
        berm_distance_m: float = 110.0,
        berm_height_m: float = 6.0,
        voxel_size_m: float = 1.0,
    ) -> VoxelWorld:
        """
        A straight outdoor lane down +z: one ground layer at y in [-1, 0),
        a backstop berm across the lane at `berm_distance_m`. The shooter
        stands at the world origin, the lane is centred on x = 0.
        """
        sx = int(np.ceil(width_m / voxel_size_m))
        sy = int(np.ceil(height_m / voxel_size_m)) + 1
        sz = int(np.ceil(length_m / voxel_size_m))
        origin = np.array([-sx * voxel_size_m * 0.5, -voxel_size_m, -5.0 * voxel_size_m])
        world = cls.empty(sx, sy, sz, voxel_size_m=voxel_size_m, origin_m=origin)
        world.ensure_ground_layer()

        berm_iz = int(np.floor((berm_distance_m - origin[2]) / voxel_size_m))
        berm_top = 1 + int(np.ceil(berm_height_m / voxel_size_m))
        world.set_box(0, 1, berm_iz, sx, berm_top, berm_iz + 3, cls.BERM)
        world.meta["berm_distance_m"] = float(berm_distance_m)
        return world
