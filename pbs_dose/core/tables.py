"""Immutable dose tables produced by the synthesizers and the weight solver.

- DepthDoseTable: nominal range R -> depth Z -> relative dose
- PenumbraTable: depth Z -> lateral offset (x, y) -> lateral dose fraction
- WeightTable: depth -> Bragg peak weight

All tables are dense numpy arrays with explicit bounds checks: lookups
outside the populated region read as zero. Arrays are marked read-only once
built; recomputation produces a new table.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Tuple

import numpy as np


def _freeze(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


class DepthDoseTable:
    """Family of Bragg-peak depth-dose profiles indexed by nominal range.

    Row ``r - min_range`` of ``doses`` holds the profile of the peak with
    nominal range ``r`` for depths ``0 .. n_depths - 1``.

    Attributes:
        doses: Array [n_ranges, n_depths] of dose values
        min_range: First nominal range (mm)
    """

    def __init__(self, doses: np.ndarray, min_range: int = 0):
        doses = np.array(doses, dtype=np.float64)
        if doses.ndim != 2:
            raise ValueError(f"doses must be 2D [ranges, depths], got shape {doses.shape}")
        if min_range < 0:
            raise ValueError(f"min_range must be >= 0, got {min_range}")
        self.doses = _freeze(doses)
        self.min_range = int(min_range)

    @property
    def max_range(self) -> int:
        """One past the last nominal range (mm)."""
        return self.min_range + self.doses.shape[0]

    @property
    def n_depths(self) -> int:
        return self.doses.shape[1]

    @property
    def ranges(self) -> range:
        return range(self.min_range, self.max_range)

    def has_range(self, nominal_range: int) -> bool:
        return self.min_range <= nominal_range < self.max_range

    def profile(self, nominal_range: int, length: Optional[int] = None) -> np.ndarray:
        """Depth-dose profile of one peak.

        Args:
            nominal_range: Nominal range R (mm)
            length: Number of depths to return; the profile is zero padded or
                truncated. Defaults to ``n_depths``.

        Returns:
            Copy of the profile; all zeros if ``nominal_range`` is not in the table.
        """
        length = self.n_depths if length is None else length
        out = np.zeros(length, dtype=np.float64)
        if self.has_range(nominal_range):
            n = min(length, self.n_depths)
            out[:n] = self.doses[nominal_range - self.min_range, :n]
        return out

    def dose(self, nominal_range: int, depth: int) -> float:
        if self.has_range(nominal_range) and 0 <= depth < self.n_depths:
            return float(self.doses[nominal_range - self.min_range, depth])
        return 0.0

    def normalized(self, peak_dose: float = 100.0) -> "DepthDoseTable":
        """New table with every non-zero profile scaled to a maximum of ``peak_dose``."""
        maxima = self.doses.max(axis=1, keepdims=True)
        scale = np.divide(
            peak_dose, maxima, out=np.zeros_like(maxima), where=maxima > 0
        )
        return DepthDoseTable(self.doses * scale, self.min_range)

    @classmethod
    def from_profiles(
        cls, profiles: Mapping[int, Iterable[float]], n_depths: Optional[int] = None
    ) -> "DepthDoseTable":
        """Build a table from {nominal_range: profile}.

        Ranges between the smallest and largest key that are not given are
        stored as zero profiles.
        """
        if not profiles:
            raise ValueError("profiles must not be empty")
        arrays = {int(r): np.asarray(p, dtype=np.float64) for r, p in profiles.items()}
        min_range = min(arrays)
        n_ranges = max(arrays) - min_range + 1
        if n_depths is None:
            n_depths = max(a.size for a in arrays.values())
        doses = np.zeros((n_ranges, n_depths), dtype=np.float64)
        for r, array in arrays.items():
            n = min(n_depths, array.size)
            doses[r - min_range, :n] = array[:n]
        return cls(doses, min_range)

    def __getitem__(self, nominal_range: int) -> np.ndarray:
        return self.profile(nominal_range)

    def __len__(self) -> int:
        return self.doses.shape[0]

    def __repr__(self) -> str:
        return (
            f"DepthDoseTable(ranges=[{self.min_range}, {self.max_range}) mm, "
            f"depths={self.n_depths})"
        )


class PenumbraTable:
    """Radially symmetric lateral dose fractions for every depth.

    ``values[z, x, y]`` is the dose fraction at lateral offset (x, y) mm from
    the beam axis at depth z, for 0 <= x, y <= radius.

    Attributes:
        values: Array [n_depths, radius + 1, radius + 1]
        degenerate_depths: Depths whose scattering width could not be computed
            (e.g. missing range-energy data) and hold an on-axis-only profile
    """

    def __init__(self, values: np.ndarray, degenerate_depths: Iterable[int] = ()):
        values = np.array(values, dtype=np.float64)
        if values.ndim != 3 or values.shape[1] != values.shape[2]:
            raise ValueError(
                f"values must have shape [depths, radius + 1, radius + 1], got {values.shape}"
            )
        self.values = _freeze(values)
        self.degenerate_depths: Tuple[int, ...] = tuple(int(z) for z in degenerate_depths)
        self._kernels: Optional[np.ndarray] = None

    @property
    def radius(self) -> int:
        return self.values.shape[1] - 1

    @property
    def n_depths(self) -> int:
        return self.values.shape[0]

    def at(self, depth: int, x: int, y: int) -> float:
        """Dose fraction at depth and lateral offset; zero outside the table."""
        x, y = abs(x), abs(y)
        if 0 <= depth < self.n_depths and x <= self.radius and y <= self.radius:
            return float(self.values[depth, x, y])
        return 0.0

    @property
    def kernels(self) -> np.ndarray:
        """Full mirrored lateral kernels [n_depths, 2r + 1, 2r + 1].

        ``kernels[z, r + dx, r + dy] == values[z, |dx|, |dy|]``. Built once on
        first access.
        """
        if self._kernels is None:
            offsets = np.abs(np.arange(-self.radius, self.radius + 1))
            kernels = self.values[:, offsets[:, None], offsets[None, :]]
            self._kernels = _freeze(np.ascontiguousarray(kernels))
        return self._kernels

    def __getitem__(self, depth: int) -> np.ndarray:
        return self.values[depth]

    def __len__(self) -> int:
        return self.n_depths

    def __repr__(self) -> str:
        return f"PenumbraTable(depths={self.n_depths}, radius={self.radius} mm)"


class WeightTable:
    """Bragg-peak weight for every depth [mm].

    Depths outside the table read as zero.
    """

    def __init__(self, weights: Iterable[float]):
        self.weights = _freeze(np.array(list(weights), dtype=np.float64))

    def get(self, depth: int) -> float:
        if 0 <= depth < self.weights.size:
            return float(self.weights[depth])
        return 0.0

    def __getitem__(self, depth: int) -> float:
        return self.get(depth)

    def __len__(self) -> int:
        return self.weights.size

    def __iter__(self):
        return iter(self.weights.tolist())

    def __repr__(self) -> str:
        return f"WeightTable(depths={len(self)})"
