"""Cumulative dose-volume histograms of the target and surrounding tissue.

``histogram[i]`` is the number of voxels receiving at least i percent dose,
for i in [0, 120). Voxel doses are rounded half up to whole percent.

Import Policy:
    from pbs_dose.evaluation.dvh import DoseVolumeAnalyzer, DoseVolumeHistogram

DO NOT use: from pbs_dose.evaluation.dvh import *
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import numpy as np

from pbs_dose.config.defaults import DVH_BUCKETS
from pbs_dose.core.exceptions import PreconditionError
from pbs_dose.core.grid import VolumetricDoseGrid

logger = logging.getLogger(__name__)

TARGET = "target"
TISSUE = "tissue"


@dataclass
class DoseVolumeHistogram:
    """Cumulative DVHs per region.

    Attributes:
        target: Voxel counts receiving at least i percent dose, i in [0, 120)
        tissue: Same for every phantom voxel outside the target
        max_dose: Highest dose in the target (percent, at least 0)
        min_dose: Lowest dose in the target (percent, at most 120)
        target_voxels: Number of voxels in the target region
        tissue_voxels: Number of voxels outside the target region
        errors: Voxels whose rounded dose fell outside [0, 120), per region
    """

    target: np.ndarray
    tissue: np.ndarray
    max_dose: float
    min_dose: float
    target_voxels: int
    tissue_voxels: int
    errors: List[str] = field(default_factory=list)

    def __getitem__(self, region: str) -> np.ndarray:
        if region == TARGET:
            return self.target
        if region == TISSUE:
            return self.tissue
        raise KeyError(f"Unknown region '{region}', expected '{TARGET}' or '{TISSUE}'")

    def percent_volume(self, region: str = TARGET) -> np.ndarray:
        """Percentage of the region volume receiving at least i percent dose."""
        counts = self[region]
        volume = self.target_voxels if region == TARGET else self.tissue_voxels
        if volume == 0:
            return np.zeros(counts.shape, dtype=np.float64)
        return counts * 100.0 / volume

    @property
    def ok(self) -> bool:
        return not self.errors


def cumulative_histogram(doses: np.ndarray, buckets: int = DVH_BUCKETS) -> Tuple[np.ndarray, np.ndarray]:
    """Cumulative "at least" histogram of percent doses.

    Returns:
        (counts, out_of_range) where ``out_of_range`` holds the rounded
        percent doses that fell outside [0, buckets) and were skipped.
    """
    percent = np.floor(np.ravel(doses) + 0.5).astype(np.int64)
    valid = (percent >= 0) & (percent < buckets)
    counts = np.bincount(percent[valid], minlength=buckets)
    return counts[::-1].cumsum()[::-1], percent[~valid]


class DoseVolumeAnalyzer:
    """DVH over a cubic target centred in the phantom.

    The target occupies grid indices [P//2 - T//2, P//2 + T//2) along every
    axis, P the phantom size and T the target size.
    """

    def __init__(self, phantom_size: int, target_size: int, buckets: int = DVH_BUCKETS):
        if target_size > phantom_size:
            raise ValueError(
                f"target_size ({target_size}) must not exceed phantom_size ({phantom_size})"
            )
        self.phantom_size = int(phantom_size)
        self.target_size = int(target_size)
        self.buckets = int(buckets)

    @property
    def target_slice(self) -> slice:
        lo = self.phantom_size // 2 - self.target_size // 2
        hi = self.phantom_size // 2 + self.target_size // 2
        return slice(lo, hi)

    def analyze(self, grid: VolumetricDoseGrid) -> DoseVolumeHistogram:
        """Compute the target and tissue DVHs of a normalised dose grid.

        Raises:
            PreconditionError: If the grid is smaller than the phantom.
        """
        P = self.phantom_size
        if any(n < P for n in grid.shape):
            raise PreconditionError(
                f"Dose grid {grid.shape} is smaller than the phantom ({P} mm); "
                "calculate dose first"
            )

        phantom = grid.dose[:P, :P, :P]
        region = (self.target_slice,) * 3
        inside = np.zeros(phantom.shape, dtype=bool)
        inside[region] = True

        target_doses = phantom[inside]
        tissue_doses = phantom[~inside]
        target, target_bad = cumulative_histogram(target_doses, self.buckets)
        tissue, tissue_bad = cumulative_histogram(tissue_doses, self.buckets)

        max_dose, min_dose = 0.0, float(self.buckets)
        if target_doses.size:
            max_dose = max(max_dose, float(target_doses.max()))
            min_dose = min(min_dose, float(target_doses.min()))

        errors: List[str] = []
        for name, bad in ((TARGET, target_bad), (TISSUE, tissue_bad)):
            if bad.size:
                errors.append(
                    f"Percent dose out of range in {name}: {bad.size} voxels "
                    f"(e.g. {int(bad[0])}%)"
                )
        for message in errors:
            logger.debug(message)

        return DoseVolumeHistogram(
            target=target,
            tissue=tissue,
            max_dose=max_dose,
            min_dose=min_dose,
            target_voxels=int(target_doses.size),
            tissue_voxels=int(tissue_doses.size),
            errors=errors,
        )

    def summary(self, dvh: DoseVolumeHistogram) -> Dict[str, float]:
        """Headline numbers of a target DVH."""
        volume = dvh.percent_volume(TARGET)
        return {
            "max_dose": dvh.max_dose,
            "min_dose": dvh.min_dose,
            "v95": float(volume[95]) if volume.size > 95 else 0.0,
            "v100": float(volume[100]) if volume.size > 100 else 0.0,
        }
