"""Plan evaluation: dose-volume histograms."""

from pbs_dose.evaluation.dvh import (
    TARGET,
    TISSUE,
    DoseVolumeAnalyzer,
    DoseVolumeHistogram,
    cumulative_histogram,
)

__all__ = [
    "TARGET",
    "TISSUE",
    "DoseVolumeAnalyzer",
    "DoseVolumeHistogram",
    "cumulative_histogram",
]
