"""Spot-by-spot dose superposition into the volumetric grid.

Each spot deposits its Bragg-peak depth profile, spread laterally by the
penumbra table, over a bounded neighbourhood:

    grid[x0 + dx, y0 + dy, z] += depth_dose[spot.z][z] * weight * penumbra[z][|dx|][|dy|]

for z in [0, spot.z + depth_overrun] and |dx|, |dy| <= penumbra radius.
Contributions outside that neighbourhood, or outside the grid, are zero.

Import Policy:
    from pbs_dose.dose.accumulator import DoseAccumulator, calculate_dose

DO NOT use: from pbs_dose.dose.accumulator import *
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from pbs_dose.config.defaults import DEFAULT_DEPTH_OVERRUN
from pbs_dose.core.grid import VolumetricDoseGrid
from pbs_dose.core.scan_pattern import ScanPattern, SpotPosition
from pbs_dose.core.tables import DepthDoseTable, PenumbraTable

logger = logging.getLogger(__name__)


@dataclass
class AccumulationReport:
    """Diagnostics of one dose calculation.

    Attributes:
        spots_processed: Spots taken from the scan pattern
        spots_outside_table: Spots whose range has no depth-dose profile
            (they contribute zero dose)
    """

    spots_processed: int = 0
    spots_outside_table: List[SpotPosition] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.spots_outside_table


def _window(centre: int, radius: int, origin: int, size: int) -> Optional[Tuple[int, int, int]]:
    """Clip [centre - radius, centre + radius] to the grid axis.

    Returns (first grid index, last grid index + 1, kernel offset) or None if
    the window misses the grid.
    """
    start = centre - radius - origin
    lo = max(start, 0)
    hi = min(start + 2 * radius + 1, size)
    if hi <= lo:
        return None
    return lo, hi, lo - start


def add_spot(
    grid: VolumetricDoseGrid,
    spot: SpotPosition,
    depth_dose: DepthDoseTable,
    penumbra: PenumbraTable,
    depth_overrun: int = DEFAULT_DEPTH_OVERRUN,
) -> bool:
    """Add the dose of one spot to ``grid`` in place.

    Args:
        grid: Dose grid to accumulate into
        spot: Spot position; ``spot.z`` selects the depth-dose profile
        depth_dose: Bragg-peak table
        penumbra: Lateral dose table
        depth_overrun: Depths computed past the spot range [mm]

    Returns:
        False if the spot range is not in the depth-dose table (no dose added)
    """
    if not depth_dose.has_range(spot.z):
        return False

    ox, oy, oz = grid.origin
    nx, ny, nz = grid.shape
    radius = penumbra.radius

    z_stop = min(spot.z + depth_overrun + 1, depth_dose.n_depths, penumbra.n_depths)
    z_lo = max(0, oz)
    z_hi = min(z_stop, oz + nz)
    if z_hi <= z_lo:
        return True

    x_window = _window(spot.x, radius, ox, nx)
    y_window = _window(spot.y, radius, oy, ny)
    if x_window is None or y_window is None:
        return True
    ix_lo, ix_hi, kx = x_window
    iy_lo, iy_hi, ky = y_window

    profile = depth_dose.profile(spot.z)[z_lo:z_hi] * spot.weight
    kernel = penumbra.kernels[
        z_lo:z_hi,
        kx:kx + (ix_hi - ix_lo),
        ky:ky + (iy_hi - iy_lo),
    ]
    block = grid.dose[ix_lo:ix_hi, iy_lo:iy_hi, z_lo - oz:z_hi - oz]
    block += np.einsum("zxy,z->xyz", kernel, profile)
    return True


class DoseAccumulator:
    """Superposes every spot of a scan pattern into a dose grid.

    Example:
        >>> accumulator = DoseAccumulator(peaks, penumbra)
        >>> grid = VolumetricDoseGrid.for_phantom(300)
        >>> report = accumulator.calculate_dose(grid, pattern)
    """

    def __init__(
        self,
        depth_dose: DepthDoseTable,
        penumbra: PenumbraTable,
        depth_overrun: int = DEFAULT_DEPTH_OVERRUN,
    ):
        self.depth_dose = depth_dose
        self.penumbra = penumbra
        self.depth_overrun = int(depth_overrun)

    def add_spot(self, grid: VolumetricDoseGrid, spot: SpotPosition) -> bool:
        return add_spot(grid, spot, self.depth_dose, self.penumbra, self.depth_overrun)

    def calculate_dose(self, grid: VolumetricDoseGrid, pattern: ScanPattern) -> AccumulationReport:
        """Reset ``pattern`` and add each of its spots once, in delivery order."""
        report = AccumulationReport()
        pattern.reset()
        spot = pattern.get_spot()
        while spot is not None:
            if not self.add_spot(grid, spot):
                report.spots_outside_table.append(spot)
            report.spots_processed += 1
            spot = pattern.get_next_spot()

        if report.spots_outside_table:
            logger.debug(
                f"{len(report.spots_outside_table)} spots have no depth-dose profile "
                f"in {self.depth_dose!r}"
            )
        logger.debug(f"Accumulated {report.spots_processed} spots")
        return report


def calculate_dose(
    grid: VolumetricDoseGrid,
    pattern: ScanPattern,
    depth_dose: DepthDoseTable,
    penumbra: PenumbraTable,
    depth_overrun: int = DEFAULT_DEPTH_OVERRUN,
) -> AccumulationReport:
    """Accumulate the dose of every spot in ``pattern`` into ``grid``."""
    return DoseAccumulator(depth_dose, penumbra, depth_overrun).calculate_dose(grid, pattern)
