"""Volumetric dose grid over the water phantom.

The grid covers integer voxel coordinates (x, y, z) in mm:

- x in [origin_x, origin_x + nx), y likewise, laterally centred on the beam axis
- z in [origin_z, origin_z + nz), depth from the phantom surface

Memory layout: dose[ix, iy, iz] with z as fastest-varying index, so a depth
profile through one voxel column is contiguous.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np

from pbs_dose.config.defaults import DOSE_DTYPE


@dataclass
class VolumetricDoseGrid:
    """Dense dose array with an integer coordinate origin.

    Lookups outside the grid read as zero. Contributions landing outside the
    grid are dropped by the accumulator.

    Attributes:
        shape: (nx, ny, nz) number of voxels per axis
        origin: (x, y, z) coordinate of voxel index (0, 0, 0) [mm]
        dose: Accumulated dose [nx, ny, nz], initialised to zero
    """

    shape: Tuple[int, int, int]
    origin: Tuple[int, int, int] = (0, 0, 0)
    dose: np.ndarray = field(default=None, repr=False)

    def __post_init__(self):
        """Validate grid configuration."""
        if len(self.shape) != 3 or any(n <= 0 for n in self.shape):
            raise ValueError(f"All grid dimensions must be positive, got {self.shape}")
        self.shape = tuple(int(n) for n in self.shape)
        self.origin = tuple(int(o) for o in self.origin)
        if self.dose is None:
            self.dose = np.zeros(self.shape, dtype=DOSE_DTYPE)
        elif self.dose.shape != self.shape:
            raise ValueError(f"dose shape {self.dose.shape} does not match grid shape {self.shape}")

    @classmethod
    def for_phantom(cls, phantom_size: int) -> "VolumetricDoseGrid":
        """Grid over a cubic phantom, laterally centred on the beam axis.

        Voxel index ``phantom_size // 2`` lies on the beam axis in x and y;
        depth starts at the surface (z = 0).
        """
        half = phantom_size // 2
        return cls(shape=(phantom_size,) * 3, origin=(-half, -half, 0))

    @property
    def extent(self) -> Tuple[Tuple[int, int], Tuple[int, int], Tuple[int, int]]:
        """Half-open coordinate ranges ((x0, x1), (y0, y1), (z0, z1))."""
        return tuple((o, o + n) for o, n in zip(self.origin, self.shape))

    def index_of(self, x: int, y: int, z: int) -> Tuple[int, int, int]:
        """Array index of a coordinate (not bounds checked)."""
        return x - self.origin[0], y - self.origin[1], z - self.origin[2]

    def contains(self, x: int, y: int, z: int) -> bool:
        index = self.index_of(x, y, z)
        return all(0 <= i < n for i, n in zip(index, self.shape))

    def __getitem__(self, coordinate: Tuple[int, int, int]) -> float:
        x, y, z = coordinate
        if not self.contains(x, y, z):
            return 0.0
        return float(self.dose[self.index_of(x, y, z)])

    def layer(self, z: int) -> np.ndarray:
        """Dose in the plane at depth z as [nx, ny]; zeros outside the grid."""
        iz = z - self.origin[2]
        if not 0 <= iz < self.shape[2]:
            return np.zeros(self.shape[:2], dtype=np.float64)
        return self.dose[:, :, iz].copy()

    def max(self) -> float:
        return float(self.dose.max())

    def copy(self) -> "VolumetricDoseGrid":
        return VolumetricDoseGrid(self.shape, self.origin, self.dose.copy())

    def reset(self) -> None:
        self.dose.fill(0.0)
