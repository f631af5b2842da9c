"""Dose planning session.

``DosePlanner`` owns the plan configuration and the tables of one planning
session and runs the dose engine steps in order:

    peaks -> penumbra -> weights -> scan pattern -> dose -> DVH

Each step checks its preconditions and raises ``PreconditionError`` before
changing any state. Recomputing a step replaces its table with a new one.

Example:
    >>> planner = DosePlanner(resolve_plan_config({'geometry': {'phantom_size': 200}}))
    >>> planner.compute_peaks()
    >>> planner.compute_penumbra()
    >>> result = planner.solve_weights()
    >>> planner.define_target_pattern()
    >>> planner.calculate_dose()
    >>> dvh = planner.dose_volume_histogram()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from pbs_dose.config import (
    PlanConfig,
    create_default_config,
    resolve_plan_config,
    validate_config,
    warn_if_unsafe,
)
from pbs_dose.core.exceptions import PreconditionError
from pbs_dose.core.grid import VolumetricDoseGrid
from pbs_dose.core.range_energy import (
    RangeEnergyTable,
    create_water_energy_loss_table,
    create_water_range_energy_table,
)
from pbs_dose.core.scan_pattern import ScanPattern
from pbs_dose.core.tables import DepthDoseTable, PenumbraTable, WeightTable
from pbs_dose.dose.accumulator import AccumulationReport, DoseAccumulator
from pbs_dose.dose.normalize import normalize
from pbs_dose.evaluation.dvh import DoseVolumeAnalyzer, DoseVolumeHistogram
from pbs_dose.io import exporters, text_io
from pbs_dose.optimization.weight_solver import WeightSolver, WeightSolveResult
from pbs_dose.physics.depth_dose import DepthDoseSynthesizer
from pbs_dose.physics.penumbra import PenumbraSynthesizer

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _merge(base: dict, updates: Mapping[str, Any]) -> dict:
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class DosePlanner:
    """Planning session holding the configuration and the current tables.

    Args:
        config: Plan configuration (defaults if None)
        energy_loss: Energy loss per mm by residual range; water if None
        range_energy: Proton energy by range; water if None
    """

    def __init__(
        self,
        config: Optional[PlanConfig] = None,
        energy_loss: Optional[RangeEnergyTable] = None,
        range_energy: Optional[RangeEnergyTable] = None,
    ):
        self.config = config or create_default_config()
        validate_config(self.config)
        warn_if_unsafe(self.config)

        self.energy_loss = energy_loss
        self.range_energy = range_energy

        self.peaks: Optional[DepthDoseTable] = None
        self.penumbra: Optional[PenumbraTable] = None
        self.weights: Optional[WeightTable] = None
        self.solve_result: Optional[WeightSolveResult] = None
        self.pattern = ScanPattern()
        self.grid: Optional[VolumetricDoseGrid] = None
        self.report: Optional[AccumulationReport] = None
        self.dvh: Optional[DoseVolumeHistogram] = None

    def _progress(self, message: str) -> None:
        logger.log(logging.INFO if self.config.verbose else logging.DEBUG, message)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def update_config(self, values: Mapping[str, Any]) -> PlanConfig:
        """Apply nested parameter updates with range checking.

        Out-of-range values fall back to their defaults with a
        ConfigurationWarning. Changing a peak parameter discards the current
        peaks and penumbra.
        """
        current = self.config.to_dict()
        config = resolve_plan_config(_merge(current, values))
        validate_config(config)
        warn_if_unsafe(config)

        if config.to_dict()["peaks"] != current["peaks"]:
            self.peaks = None
            self.penumbra = None
        self.config = config
        self._progress(
            f"Configuration updated: phantom {config.geometry.phantom_size} mm, "
            f"target {config.geometry.target_size} mm, SOBP {config.sobp_min}-{config.sobp_max} mm"
        )
        return config

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def compute_peaks(self) -> DepthDoseTable:
        """Synthesize Bragg peaks for ranges [min_range, max_range)."""
        cfg = self.config.peaks
        energy_loss = self.energy_loss
        if energy_loss is None:
            energy_loss = create_water_energy_loss_table(cfg.max_range + cfg.range_margin)

        self._progress(f"Calculating Bragg peaks {cfg.min_range}-{cfg.max_range} mm")
        synthesizer = DepthDoseSynthesizer(
            energy_loss,
            sd=cfg.sd,
            distance_scaling=cfg.distance_scaling,
            range_margin=cfg.range_margin,
            range_shift=cfg.range_shift,
        )
        self.peaks = synthesizer.synthesize(cfg.min_range, cfg.max_range)
        self._progress("Bragg peaks calculated")
        return self.peaks

    def compute_penumbra(self) -> PenumbraTable:
        """Compute the lateral penumbra for depths [0, max_range]."""
        max_range = self.config.peaks.max_range
        range_energy = self.range_energy
        if range_energy is None:
            range_energy = create_water_range_energy_table(max_range)

        cfg = self.config.penumbra
        self._progress(f"Calculating penumbra to {max_range} mm")
        synthesizer = PenumbraSynthesizer(
            range_energy,
            radius=cfg.radius,
            samples_per_mm=cfg.samples_per_mm,
            path_length=cfg.path_length,
        )
        self.penumbra = synthesizer.synthesize(max_range)
        if len(self.penumbra.degenerate_depths) > 1:
            logger.warning(
                f"Penumbra has no lateral spread at {len(self.penumbra.degenerate_depths) - 1} "
                "depths with missing range-energy data"
            )
        self._progress("Penumbra calculated")
        return self.penumbra

    def _dose_table(self) -> DepthDoseTable:
        if self.peaks is None:
            raise PreconditionError("No Bragg peaks: calculate or load the peaks first")
        if self.config.peaks.normalize_peaks:
            return self.peaks.normalized(self.config.solver.target_dose)
        return self.peaks

    # ------------------------------------------------------------------
    # Weights and scan pattern
    # ------------------------------------------------------------------

    def solve_weights(self) -> WeightSolveResult:
        """Solve SOBP weights over the configured depth window.

        A failed solve keeps any previous weights.
        """
        table = self._dose_table()
        config = self.config
        self._progress(f"Solving weights for SOBP {config.sobp_min}-{config.sobp_max} mm")
        result = WeightSolver(config.solver).solve(
            table, config.sobp_min, config.sobp_max, config.geometry.phantom_size
        )
        self.solve_result = result
        if result.success:
            self.weights = result.weights
            self._progress(result.message)
        else:
            logger.error(result.message)
        return result

    def define_scan_pattern(self) -> ScanPattern:
        """Fill the scan pattern from the fixed template of the configuration."""
        self.pattern.define_scan_pattern(self.config.scan)
        self._progress(f"Scan pattern defined: {self.pattern!r}")
        return self.pattern

    def define_target_pattern(self) -> ScanPattern:
        """Fill the scan pattern to cover the target with the solved weights."""
        if self.weights is None:
            raise PreconditionError("No weights: solve or load the weights first")
        config = self.config
        size = config.geometry.target_size
        self.pattern.define_target_pattern(
            x_width=size,
            y_width=size,
            z_min=config.sobp_min,
            z_max=config.sobp_max,
            spacing=config.solver.spot_spacing,
            weights=self.weights,
        )
        self._progress(f"Scan pattern defined: {self.pattern!r}")
        return self.pattern

    # ------------------------------------------------------------------
    # Dose
    # ------------------------------------------------------------------

    def calculate_dose(self, normalize_dose: bool = True) -> VolumetricDoseGrid:
        """Superpose every spot of the scan pattern into a new dose grid.

        Args:
            normalize_dose: Rescale the result to a 100% maximum

        Raises:
            PreconditionError: If peaks, penumbra or scan pattern are missing,
                or the peaks do not reach max_range.
        """
        table = self._dose_table()
        if self.penumbra is None:
            raise PreconditionError("No penumbra: calculate the penumbra first")
        max_range = self.config.peaks.max_range
        if table.max_range < max_range:
            raise PreconditionError(
                f"Bragg peaks only reach {table.max_range} mm, max_range is {max_range} mm"
            )
        if len(self.pattern) == 0:
            raise PreconditionError("No scan pattern: define the scan pattern first")

        self._progress(f"Calculating dose for {len(self.pattern)} spots")
        grid = VolumetricDoseGrid.for_phantom(self.config.geometry.phantom_size)
        accumulator = DoseAccumulator(table, self.penumbra, self.config.penumbra.depth_overrun)
        self.report = accumulator.calculate_dose(grid, self.pattern)
        if not self.report.complete:
            logger.warning(
                f"{len(self.report.spots_outside_table)} spots have no Bragg peak and add no dose"
            )
        if normalize_dose:
            normalize(grid, self.config.solver.target_dose)

        self.grid = grid
        self.dvh = None
        self._progress("Dose calculated")
        return grid

    def normalize(self) -> float:
        if self.grid is None:
            raise PreconditionError("No dose grid: calculate dose first")
        return normalize(self.grid, self.config.solver.target_dose)

    def dose_volume_histogram(self) -> DoseVolumeHistogram:
        """Cumulative DVH of the target and surrounding tissue."""
        if self.grid is None:
            raise PreconditionError("No dose grid: calculate dose first")
        g = self.config.geometry
        self.dvh = DoseVolumeAnalyzer(g.phantom_size, g.target_size).analyze(self.grid)
        for message in self.dvh.errors:
            logger.error(message)
        self._progress(
            f"Dose volume histogram calculated (max {self.dvh.max_dose:.4g}%, "
            f"min {self.dvh.min_dose:.4g}%)"
        )
        return self.dvh

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save_peaks(self, path: PathLike) -> Path:
        if self.peaks is None:
            raise PreconditionError("No Bragg peaks to save")
        return text_io.write_all_peaks(path, self.peaks, self.config.peaks.max_range)

    def load_peaks(self, path: PathLike) -> DepthDoseTable:
        """Load peaks saved by ``save_peaks``; max_range follows the file."""
        peaks = text_io.read_all_peaks(path)
        if peaks.max_range != self.config.peaks.max_range:
            self.update_config({"peaks": {"max_range": peaks.max_range}})
        self.peaks = peaks
        self._progress(f"Loaded {peaks!r} from {path}")
        return peaks

    def save_peak(self, path: PathLike, nominal_range: int) -> Path:
        table = self._dose_table()
        if not table.has_range(nominal_range):
            raise PreconditionError(f"No Bragg peak with range {nominal_range} mm")
        return text_io.write_peak(path, table.profile(nominal_range))

    def save_penumbra_row(self, path: PathLike, depth: int, x: int = 0) -> Path:
        """Save the penumbra along y at lateral offset ``x`` for one depth."""
        if self.penumbra is None:
            raise PreconditionError("No penumbra to save")
        if not 0 <= depth < self.penumbra.n_depths:
            raise PreconditionError(f"Penumbra has no depth {depth} mm")
        row = [self.penumbra.at(depth, x, y) for y in range(self.penumbra.radius + 1)]
        return text_io.write_peak(path, row)

    def save_weights(self, path: PathLike) -> Path:
        if self.weights is None:
            raise PreconditionError("No weights to save")
        return text_io.write_weights(path, self.weights)

    def load_weights(self, path: PathLike) -> WeightTable:
        self.weights = text_io.read_weights(path)
        return self.weights

    def save_dose_slice(self, path: PathLike, z: int) -> Path:
        if self.grid is None:
            raise PreconditionError("No dose grid: calculate dose first")
        return text_io.write_dose_slice(path, self.grid, z)

    def save_histogram(self, path: PathLike) -> Path:
        if self.dvh is None:
            raise PreconditionError("No dose volume histogram: calculate it first")
        g = self.config.geometry
        return text_io.write_histogram(path, self.dvh, g.phantom_size, g.target_size)

    def export_dose(self, path: PathLike) -> Path:
        if self.grid is None:
            raise PreconditionError("No dose grid: calculate dose first")
        g = self.config.geometry
        return exporters.export_dose_hdf5(
            self.grid,
            path,
            metadata={"phantom_size": g.phantom_size, "target_size": g.target_size},
        )
