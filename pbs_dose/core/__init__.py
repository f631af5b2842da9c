"""Core data structures: lookup tables, dose tables, dose grid and scan pattern."""

from pbs_dose.core.constants import DEFAULT_CONSTANTS, DoseModelConstants
from pbs_dose.core.exceptions import DoseEngineError, PreconditionError
from pbs_dose.core.grid import VolumetricDoseGrid
from pbs_dose.core.range_energy import (
    RangeEnergyTable,
    create_water_energy_loss_table,
    create_water_range_energy_table,
    energy_at_range,
)
from pbs_dose.core.scan_pattern import ScanPattern, ScanSpeed, ScanState, SpotPosition
from pbs_dose.core.tables import DepthDoseTable, PenumbraTable, WeightTable

__all__ = [
    "DEFAULT_CONSTANTS",
    "DoseModelConstants",
    "DoseEngineError",
    "PreconditionError",
    "VolumetricDoseGrid",
    "RangeEnergyTable",
    "create_water_energy_loss_table",
    "create_water_range_energy_table",
    "energy_at_range",
    "ScanPattern",
    "ScanSpeed",
    "ScanState",
    "SpotPosition",
    "DepthDoseTable",
    "PenumbraTable",
    "WeightTable",
]
