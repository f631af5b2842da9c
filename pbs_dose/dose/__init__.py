"""Dose superposition and normalisation."""

from pbs_dose.dose.accumulator import (
    AccumulationReport,
    DoseAccumulator,
    add_spot,
    calculate_dose,
)
from pbs_dose.dose.normalize import normalize

__all__ = [
    "AccumulationReport",
    "DoseAccumulator",
    "add_spot",
    "calculate_dose",
    "normalize",
]
