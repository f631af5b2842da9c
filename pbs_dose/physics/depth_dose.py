"""Depth-dose (Bragg peak) synthesis.

Builds monoenergetic depth-dose curves from an energy-loss table and
convolves them with a Gaussian range-straggling kernel (Lee, Nahum & Webb
1993, eqns 1 and 3):

    Dmono[R][R - dist] = loss[dist] * (1 + k dist) / (1 + k R),  dist in [0, R]
    Dele[Ro][Z] = sum_R exp(-(R - Ro)^2 / sd) * Dmono[R][Z]

The integral over R is a plain sum at 1 mm resolution. The input data is only
defined at whole millimetres, so a higher-order rule gains nothing.

Import Policy:
    from pbs_dose.physics.depth_dose import DepthDoseSynthesizer

DO NOT use: from pbs_dose.physics.depth_dose import *
"""

from __future__ import annotations

import logging

import numpy as np

from pbs_dose.config.defaults import (
    DEFAULT_DISTANCE_SCALING,
    DEFAULT_RANGE_MARGIN,
    DEFAULT_RANGE_SHIFT,
)
from pbs_dose.core.range_energy import RangeEnergyTable
from pbs_dose.core.tables import DepthDoseTable

logger = logging.getLogger(__name__)


class DepthDoseSynthesizer:
    """Synthesizes range-straggled Bragg peaks from an energy-loss table.

    Missing energy-loss entries are read as zero.

    Example:
        >>> loss = create_water_energy_loss_table(320)
        >>> peaks = DepthDoseSynthesizer(loss, sd=10.0).synthesize(0, 300)
        >>> profile = peaks.profile(150)
    """

    def __init__(
        self,
        energy_loss: RangeEnergyTable,
        sd: float,
        distance_scaling: float = DEFAULT_DISTANCE_SCALING,
        range_margin: int = DEFAULT_RANGE_MARGIN,
        range_shift: int = DEFAULT_RANGE_SHIFT,
    ):
        """Initialize synthesizer.

        Args:
            energy_loss: Energy loss per mm indexed by residual range [mm]
            sd: Straggling variance parameter of the Gaussian kernel
            distance_scaling: Constant k of the distance scaling term
            range_margin: Depths computed past the maximum range [mm]
            range_shift: Kernel centre offset relative to the stored range [mm]

        Raises:
            ValueError: If sd is not positive or range_margin is negative.
        """
        if sd <= 0:
            raise ValueError(f"sd must be > 0, got {sd}")
        if range_margin < 0:
            raise ValueError(f"range_margin must be >= 0, got {range_margin}")

        self.energy_loss = energy_loss
        self.sd = float(sd)
        self.distance_scaling = float(distance_scaling)
        self.range_margin = int(range_margin)
        self.range_shift = int(range_shift)

    def monoenergetic(self, n: int) -> np.ndarray:
        """Monoenergetic depth-dose curves Dmono [R, Z] for R, Z in [0, n).

        Row R is the dose of protons with exact range R; it is zero past Z = R.
        """
        loss = self.energy_loss.as_array(n)
        k = self.distance_scaling

        R = np.arange(n)[:, None]
        Z = np.arange(n)[None, :]
        dist = R - Z
        inside = dist >= 0
        dist = np.where(inside, dist, 0)

        dmono = loss[dist] * (1.0 + k * dist) / (1.0 + k * R)
        dmono[~inside] = 0.0
        return dmono

    def straggling_kernel(self, min_range: int, max_range: int, n: int) -> np.ndarray:
        """Gaussian weights G[r - min_range, R] = exp(-(R - (r + shift))^2 / sd)."""
        centres = np.arange(min_range, max_range)[:, None] + self.range_shift
        R = np.arange(n)[None, :]
        return np.exp(-((R - centres) ** 2) / self.sd)

    def synthesize(self, min_range: int, max_range: int) -> DepthDoseTable:
        """Build Bragg peaks for nominal ranges [min_range, max_range).

        Args:
            min_range: First nominal range [mm]
            max_range: One past the last nominal range [mm]

        Returns:
            DepthDoseTable with depths [0, max_range + range_margin)

        Raises:
            ValueError: If the range window is empty or negative.
        """
        if min_range < 0 or max_range <= min_range:
            raise ValueError(
                f"Invalid range window: min_range={min_range}, max_range={max_range}"
            )

        n = max_range + self.range_margin
        missing = self.energy_loss.missing_depths(n)
        if missing:
            logger.debug(
                f"{len(missing)} energy-loss depths below {n} mm are missing and read as zero"
            )

        dmono = self.monoenergetic(n)
        kernel = self.straggling_kernel(min_range, max_range, n)
        dele = kernel @ dmono

        logger.debug(f"Bragg peaks calculated from {min_range} mm to {max_range} mm")
        return DepthDoseTable(dele, min_range)
