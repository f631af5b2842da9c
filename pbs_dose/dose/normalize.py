"""Global dose normalisation to a 100% maximum."""

from __future__ import annotations

import logging

from pbs_dose.config.defaults import DEFAULT_TARGET_DOSE
from pbs_dose.core.grid import VolumetricDoseGrid

logger = logging.getLogger(__name__)


def normalize(grid: VolumetricDoseGrid, peak: float = DEFAULT_TARGET_DOSE) -> float:
    """Rescale ``grid`` in place so its maximum voxel equals ``peak``.

    Args:
        grid: Dose grid to rescale
        peak: Dose assigned to the hottest voxel (percent)

    Returns:
        Divisor applied to every voxel (max / peak), or 0.0 if the grid holds
        no positive dose and was left unchanged.
    """
    maximum = grid.max()
    if maximum <= 0:
        logger.debug("Grid holds no positive dose; normalisation skipped")
        return 0.0

    divisor = maximum / peak
    grid.dose /= divisor
    logger.debug(f"Normalised dose grid (max {maximum:.4g} -> {peak:g})")
    return divisor
