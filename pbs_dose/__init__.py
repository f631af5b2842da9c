"""Scanned Proton Beam Dose Engine

Computes the three-dimensional dose distribution delivered to a water phantom
by a spot-scanned proton beam. Pristine Bragg peaks are synthesized from
stopping-power data with Gaussian range straggling, spread laterally by a
multiple Coulomb scattering penumbra, weighted to form a spread-out Bragg peak
across the target, and superposed spot by spot into a dose grid that is
evaluated with a cumulative dose-volume histogram.

Key Principles:
- Immutable dense tables: recomputation produces a new table
- Bounded local superposition: 40 mm laterally, 40 mm past the spot range
- Missing table entries read as zero and are reported as diagnostics

Version: 1.0
"""

__version__ = '1.0'

# Core data structures
from pbs_dose.core.grid import VolumetricDoseGrid
from pbs_dose.core.range_energy import (
    RangeEnergyTable,
    create_water_energy_loss_table,
    create_water_range_energy_table,
)
from pbs_dose.core.scan_pattern import ScanPattern, ScanSpeed, SpotPosition
from pbs_dose.core.tables import DepthDoseTable, PenumbraTable, WeightTable
from pbs_dose.core.exceptions import DoseEngineError, PreconditionError

# Physics
from pbs_dose.physics.depth_dose import DepthDoseSynthesizer
from pbs_dose.physics.penumbra import PenumbraSynthesizer

# Dose, optimisation and evaluation
from pbs_dose.dose.accumulator import AccumulationReport, DoseAccumulator, add_spot, calculate_dose
from pbs_dose.dose.normalize import normalize
from pbs_dose.optimization.weight_solver import WeightSolver, WeightSolveResult
from pbs_dose.evaluation.dvh import DoseVolumeAnalyzer, DoseVolumeHistogram

# Configuration
from pbs_dose.config import PlanConfig, create_default_config, resolve_plan_config

# Orchestration
from pbs_dose.planner import DosePlanner

__all__ = [
    # Core
    'VolumetricDoseGrid',
    'RangeEnergyTable',
    'create_water_energy_loss_table',
    'create_water_range_energy_table',
    'ScanPattern',
    'ScanSpeed',
    'SpotPosition',
    'DepthDoseTable',
    'PenumbraTable',
    'WeightTable',
    'DoseEngineError',
    'PreconditionError',
    # Physics
    'DepthDoseSynthesizer',
    'PenumbraSynthesizer',
    # Dose
    'AccumulationReport',
    'DoseAccumulator',
    'add_spot',
    'calculate_dose',
    'normalize',
    'WeightSolver',
    'WeightSolveResult',
    'DoseVolumeAnalyzer',
    'DoseVolumeHistogram',
    # Configuration
    'PlanConfig',
    'create_default_config',
    'resolve_plan_config',
    # Orchestration
    'DosePlanner',
]
