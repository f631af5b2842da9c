"""Bragg-peak weights for a flat spread-out Bragg peak (SOBP).

Fixed-point relaxation over a table of depth-dose curves:

1. Seed weights from the deepest peak upwards in ``seed_step`` mm steps,
   ``w[d] = (100 - running[d]) / 100``, adding each seeded peak to the running
   depth dose. A seeded weight outside [0, 1] aborts the solve.
2. Subtract ``deepest_peak_correction`` from the weight of the deepest peak.
3. Up to ``max_iterations`` rounds: sum the weighted peaks every
   ``spot_spacing`` mm, stop once max - min of the sum over [min, max) is below
   ``max_error``, otherwise move every weight by (100 - dose) / ``damping``.
   A weight outside [0, 2] aborts the solve.

Import Policy:
    from pbs_dose.optimization.weight_solver import WeightSolver, WeightSolveResult

DO NOT use: from pbs_dose.optimization.weight_solver import *
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from pbs_dose.config.defaults import ITERATION_WEIGHT_BOUNDS, SEED_WEIGHT_BOUNDS
from pbs_dose.config.plan_config import SolverConfig
from pbs_dose.core.exceptions import PreconditionError
from pbs_dose.core.tables import DepthDoseTable, WeightTable

logger = logging.getLogger(__name__)


@dataclass
class WeightSolveResult:
    """Outcome of a weight solve.

    Attributes:
        success: False if a weight left its allowed bounds and the run stopped
        converged: True if the plateau flatness reached the tolerance
        iterations: Relaxation rounds evaluated
        error: Last max - min of the depth dose over [min, max) (percent)
        weights: Weight per depth, None for aborted runs
        depth_dose: Last weighted depth-dose sum
        message: Human-readable summary
    """

    success: bool
    converged: bool
    iterations: int
    error: float
    weights: Optional[WeightTable]
    depth_dose: np.ndarray
    message: str


class WeightSolver:
    """Iterative SOBP weight solver.

    Example:
        >>> solver = WeightSolver(SolverConfig(max_error=3))
        >>> result = solver.solve(peaks, sobp_min=90, sobp_max=210, phantom_size=300)
        >>> if result.success:
        ...     weights = result.weights
    """

    def __init__(self, config: Optional[SolverConfig] = None):
        self.config = config or SolverConfig()
        errors = self.config.validate()
        if errors:
            raise ValueError("Invalid solver configuration: " + "; ".join(errors))

    def _check_preconditions(
        self, depth_dose: DepthDoseTable, sobp_min: int, sobp_max: int, phantom_size: int
    ) -> None:
        if sobp_max > phantom_size or sobp_min < 0 or sobp_max < sobp_min:
            raise PreconditionError(
                f"Max or min value out of range: max={sobp_max}, min={sobp_min}, "
                f"phantom_size={phantom_size}"
            )
        if not (depth_dose.has_range(sobp_min) and depth_dose.has_range(sobp_max)):
            raise PreconditionError(
                f"Depth-dose table {depth_dose!r} does not cover ranges "
                f"{sobp_min}-{sobp_max} mm; calculate or load the peaks first"
            )

    def solve(
        self,
        depth_dose: DepthDoseTable,
        sobp_min: int,
        sobp_max: int,
        phantom_size: int,
    ) -> WeightSolveResult:
        """Solve for weights flattening the dose over [sobp_min, sobp_max).

        Args:
            depth_dose: Bragg peaks, normally scaled to a maximum of 100
            sobp_min: Shallowest peak depth [mm]
            sobp_max: Deepest peak depth [mm]
            phantom_size: Phantom depth; weights are defined over [0, phantom_size)

        Returns:
            WeightSolveResult

        Raises:
            PreconditionError: If the window is invalid or not covered by the table.
        """
        self._check_preconditions(depth_dose, sobp_min, sobp_max, phantom_size)
        cfg = self.config
        target = cfg.target_dose

        n_weights = max(phantom_size, sobp_max + 1)
        n_depths = max(phantom_size, sobp_max + cfg.dose_lookahead, sobp_max + 1)
        weights = np.ones(n_weights, dtype=np.float64)

        # Seeding
        running = np.zeros(n_depths, dtype=np.float64)
        seed_lo, seed_hi = SEED_WEIGHT_BOUNDS
        for depth in range(sobp_max, sobp_min - 1, -cfg.seed_step):
            w = (target - running[depth]) / target
            weights[depth] = w
            if w < seed_lo or w > seed_hi:
                message = f"Weight error while seeding: weight {w:.6g} at depth {depth} mm"
                logger.debug(message)
                return WeightSolveResult(False, False, 0, float("nan"), None, running, message)
            running[:phantom_size] += w * depth_dose.profile(depth, phantom_size)

        weights[sobp_max] -= cfg.deepest_peak_correction

        # Relaxation
        depths = np.arange(sobp_max, sobp_min - 1, -cfg.spot_spacing)
        lookahead = sobp_max + cfg.dose_lookahead
        peaks = np.zeros((depths.size, n_depths), dtype=np.float64)
        for row, depth in enumerate(depths):
            peaks[row, :lookahead] = depth_dose.profile(int(depth), lookahead)

        iter_lo, iter_hi = ITERATION_WEIGHT_BOUNDS
        working = running
        error = float("inf")
        for iteration in range(1, cfg.max_iterations + 1):
            working = weights[depths] @ peaks
            plateau = working[sobp_min:sobp_max]
            error = float(plateau.max() - plateau.min()) if plateau.size else 0.0
            if error < cfg.max_error:
                message = f"Converged after {iteration} iterations (error {error:.4g}%)"
                logger.debug(message)
                return WeightSolveResult(
                    True, True, iteration, error, WeightTable(weights), working, message
                )

            weights[depths] += (target - working[depths]) / cfg.damping
            out_of_bounds = (weights[depths] < iter_lo) | (weights[depths] > iter_hi)
            if out_of_bounds.any():
                bad = int(depths[np.argmax(out_of_bounds)])
                message = (
                    f"Weight error: weight {weights[bad]:.6g} at depth {bad} mm "
                    f"(dose {working[bad]:.4g}) after {iteration} iterations"
                )
                logger.debug(message)
                return WeightSolveResult(False, False, iteration, error, None, working, message)

        message = (
            f"No convergence after {cfg.max_iterations} iterations "
            f"(error {error:.4g}% >= {cfg.max_error:g}%)"
        )
        logger.debug(message)
        return WeightSolveResult(
            True, False, cfg.max_iterations, error, WeightTable(weights), working, message
        )
