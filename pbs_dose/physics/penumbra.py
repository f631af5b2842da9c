"""Lateral penumbra synthesis from multiple Coulomb scattering.

For every depth z the lateral spread of the beam is a Gaussian whose width
follows the Highland formula integrated over the path (Lee et al. 1993):

    pv   = E (E + 2M) / (E + M)
    SDz  = 14.1 (1 + log10(z / L) / 9) sqrt(z^3 / (3 L pv^2))

The lateral dose at radial distance d is the Gaussian kernel summed along the
last ``path_length`` mm of the path (100 samples per mm), normalised to 1 on
the beam axis. Each (x, y) pair with x <= y is computed once and mirrored.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional

import numpy as np

from pbs_dose.config.defaults import (
    DEFAULT_PATH_LENGTH,
    DEFAULT_PENUMBRA_RADIUS,
    DEFAULT_SAMPLES_PER_MM,
)
from pbs_dose.core.constants import DEFAULT_CONSTANTS, DoseModelConstants
from pbs_dose.core.range_energy import RangeEnergyTable
from pbs_dose.core.tables import PenumbraTable

logger = logging.getLogger(__name__)

SQRT_2PI = math.sqrt(2.0 * math.pi)


class PenumbraSynthesizer:
    """Builds the PenumbraTable for depths [0, max_range].

    Depth 0, and any depth where the scattering width cannot be computed
    (no range-energy data), hold an on-axis-only profile and are listed in
    ``PenumbraTable.degenerate_depths``.
    """

    def __init__(
        self,
        range_energy: RangeEnergyTable,
        radius: int = DEFAULT_PENUMBRA_RADIUS,
        samples_per_mm: int = DEFAULT_SAMPLES_PER_MM,
        path_length: float = DEFAULT_PATH_LENGTH,
        constants: Optional[DoseModelConstants] = None,
    ):
        """Initialize synthesizer.

        Args:
            range_energy: Proton energy [MeV] indexed by range [mm]
            radius: Lateral extent of the table in each direction [mm]
            samples_per_mm: Integration samples per mm of path
            path_length: Path length integrated upstream of each depth [mm]
            constants: Physics constants (defaults to DEFAULT_CONSTANTS)
        """
        if radius < 0:
            raise ValueError(f"radius must be >= 0, got {radius}")
        if samples_per_mm <= 0:
            raise ValueError(f"samples_per_mm must be > 0, got {samples_per_mm}")

        self.range_energy = range_energy
        self.radius = int(radius)
        self.samples_per_mm = int(samples_per_mm)
        self.path_length = float(path_length)
        self.constants = constants or DEFAULT_CONSTANTS

        n_samples = int(round(self.path_length * self.samples_per_mm))
        self._path = np.arange(-n_samples, 1, dtype=np.float64) / self.samples_per_mm

        rows, cols = np.triu_indices(self.radius + 1)
        self._rows = rows
        self._cols = cols
        self._distances = np.hypot(rows, cols).astype(np.float64)
        self._work = np.empty((rows.size, self._path.size), dtype=np.float64)

    def lateral_sigma(self, depth: int) -> float:
        """Lateral standard deviation SDz [mm] at ``depth``; 0.0 if undefined."""
        c = self.constants
        energy = self.range_energy.get(depth)
        if depth <= 0 or energy <= 0:
            return 0.0

        pv = energy * (energy + 2.0 * c.proton_mass) / (energy + c.proton_mass)
        L = c.radiation_length
        spread = depth ** 3 / 3.0 / L / (pv * pv)
        return (
            c.highland_coefficient
            * (1.0 + c.highland_log_factor * math.log10(depth / L))
            * math.sqrt(spread)
        )

    def radial_profile(self, sigma: float) -> np.ndarray:
        """Unnormalised lateral dose for each (x <= y) pair of the table.

        Values are ordered as ``np.triu_indices(radius + 1)``; index 0 is the axis.
        """
        work = self._work
        np.subtract(self._distances[:, None], self._path[None, :], out=work)
        np.square(work, out=work)
        work /= -2.0 * sigma * sigma
        np.exp(work, out=work)
        integral = work.sum(axis=1) / self.samples_per_mm
        return integral / (SQRT_2PI * sigma)

    def synthesize(self, max_range: int) -> PenumbraTable:
        """Compute the penumbra for depths [0, max_range].

        Args:
            max_range: Deepest depth of the table [mm]

        Returns:
            PenumbraTable with ``max_range + 1`` depths
        """
        if max_range < 0:
            raise ValueError(f"max_range must be >= 0, got {max_range}")

        size = self.radius + 1
        values = np.zeros((max_range + 1, size, size), dtype=np.float64)
        degenerate: List[int] = [0]
        values[0, 0, 0] = 1.0

        for z in range(1, max_range + 1):
            sigma = self.lateral_sigma(z)
            if not (math.isfinite(sigma) and sigma > 0):
                values[z, 0, 0] = 1.0
                degenerate.append(z)
                continue

            profile = self.radial_profile(sigma)
            profile /= profile[0]
            values[z, self._rows, self._cols] = profile
            values[z, self._cols, self._rows] = profile

        if len(degenerate) > 1:
            logger.debug(
                f"Penumbra undefined at {len(degenerate) - 1} depths (missing range-energy data)"
            )
        logger.debug(f"Penumbra calculated for depths 0-{max_range} mm")
        return PenumbraTable(values, degenerate_depths=degenerate)
