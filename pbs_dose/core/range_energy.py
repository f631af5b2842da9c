"""Range-indexed lookup tables for proton data in water.

This module provides the lookup table consumed by the depth-dose and penumbra
synthesizers: a mapping from integer depth (mm) to a real value. Two tables
are used:

- energy loss per mm for a proton with residual range r (stopping-power source)
- kinetic energy of a proton with range r (range-energy source)

Tables are stored densely. Depths that were never populated read as zero;
``missing_depths`` exposes them so that data-loading gaps can be detected
instead of silently producing zero dose.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np

from pbs_dose.core.constants import DEFAULT_CONSTANTS, DoseModelConstants

logger = logging.getLogger(__name__)


class RangeEnergyTable:
    """Lookup table from integer depth [mm] to a real value.

    Attributes:
        values: Dense values indexed by depth, zero where undefined
        defined: Boolean mask of depths that were explicitly populated
        name: Identifier used in diagnostics (e.g. "energy_loss")
    """

    def __init__(
        self,
        values: Union[Mapping[int, float], np.ndarray, Iterable[float]],
        name: str = "",
    ):
        """Initialize lookup table.

        Args:
            values: Either a mapping {depth: value} or a sequence indexed by
                depth starting at 0.
            name: Identifier used in diagnostics.

        Raises:
            ValueError: If a depth key is negative or the sequence is not 1D.
        """
        self.name = name

        if isinstance(values, Mapping):
            depths = [int(d) for d in values]
            if any(d < 0 for d in depths):
                raise ValueError(f"{name or 'table'}: depths must be >= 0")
            size = max(depths) + 1 if depths else 0
            self.values = np.zeros(size, dtype=np.float64)
            self.defined = np.zeros(size, dtype=bool)
            for depth, value in values.items():
                self.values[int(depth)] = float(value)
                self.defined[int(depth)] = True
        else:
            array = np.asarray(values, dtype=np.float64)
            if array.ndim != 1:
                raise ValueError(f"{name or 'table'}: values must be 1D, got shape {array.shape}")
            self.values = array.copy()
            self.defined = np.ones(array.size, dtype=bool)

        self.values.flags.writeable = False
        self.defined.flags.writeable = False

    @property
    def max_depth(self) -> int:
        """Deepest populated depth, or -1 for an empty table."""
        populated = np.flatnonzero(self.defined)
        return int(populated[-1]) if populated.size else -1

    def get(self, depth: int) -> float:
        """Value at ``depth``; zero for depths that are not populated."""
        if 0 <= depth < self.values.size:
            return float(self.values[depth])
        return 0.0

    def as_array(self, length: int) -> np.ndarray:
        """Dense copy of depths [0, length), zero padded."""
        out = np.zeros(length, dtype=np.float64)
        n = min(length, self.values.size)
        out[:n] = self.values[:n]
        return out

    def missing_depths(self, length: int) -> List[int]:
        """Depths in [0, length) that would be read as zero by default."""
        mask = np.zeros(length, dtype=bool)
        n = min(length, self.defined.size)
        mask[:n] = self.defined[:n]
        return np.flatnonzero(~mask).tolist()

    def to_pairs(self) -> List[Tuple[int, float]]:
        """Populated (depth, value) pairs in depth order."""
        return [(int(d), float(self.values[d])) for d in np.flatnonzero(self.defined)]

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[int, float]], name: str = "") -> "RangeEnergyTable":
        data: Dict[int, float] = {}
        for depth, value in pairs:
            data[int(depth)] = float(value)
        return cls(data, name=name)

    def __len__(self) -> int:
        """Return number of populated depths."""
        return int(self.defined.sum())

    def __repr__(self) -> str:
        return (
            f"RangeEnergyTable(name={self.name!r}, depths=[0, {self.max_depth}] mm, "
            f"populated={len(self)})"
        )


def energy_at_range(
    range_mm: Union[float, np.ndarray],
    constants: Optional[DoseModelConstants] = None,
) -> Union[float, np.ndarray]:
    """Kinetic energy [MeV] of a proton with CSDA range ``range_mm`` in water.

    Inverts the Bragg-Kleeman rule R[cm] = alpha * E^p.
    """
    c = constants or DEFAULT_CONSTANTS
    range_cm = np.asarray(range_mm, dtype=np.float64) / 10.0
    energy = (range_cm / c.bragg_kleeman_alpha) ** (1.0 / c.bragg_kleeman_exponent)
    return float(energy) if np.ndim(energy) == 0 else energy


def create_water_range_energy_table(
    max_depth: int,
    constants: Optional[DoseModelConstants] = None,
) -> RangeEnergyTable:
    """Create the range-energy table E(R) for depths [0, max_depth].

    Examples:
        >>> table = create_water_range_energy_table(300)
        >>> E_100mm = table.get(100)   # ~116.5 MeV for a 10 cm range
    """
    depths = np.arange(max_depth + 1, dtype=np.float64)
    return RangeEnergyTable(energy_at_range(depths, constants), name="range_energy")


def create_water_energy_loss_table(
    max_depth: int,
    constants: Optional[DoseModelConstants] = None,
) -> RangeEnergyTable:
    """Create the energy-loss table for residual ranges [0, max_depth].

    The value at residual range r is the energy deposited in the 1 mm slab a
    proton crosses while its residual range drops from r + 1 to r, i.e.
    E(r + 1) - E(r). This stays finite at the end of range.
    """
    depths = np.arange(max_depth + 2, dtype=np.float64)
    energies = energy_at_range(depths, constants)
    loss = np.diff(energies)
    logger.debug(f"Built water energy-loss table for residual ranges 0-{max_depth} mm")
    return RangeEnergyTable(loss, name="energy_loss")
