"""Tests for the SOBP weight solver."""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from pbs_dose.config.plan_config import SolverConfig
from pbs_dose.core.exceptions import PreconditionError
from pbs_dose.core.tables import DepthDoseTable, WeightTable
from pbs_dose.optimization.weight_solver import WeightSolver, WeightSolveResult


@pytest.fixture
def solver():
    return WeightSolver(SolverConfig(max_error=3, spot_spacing=5))


class TestConvergence:
    """Tests for the relaxation outcome."""

    def test_box_peaks_converge(self, solver, box_peaks):
        result = solver.solve(box_peaks, sobp_min=30, sobp_max=70, phantom_size=100)

        assert result.success
        assert result.converged
        assert result.iterations == 10
        assert result.error < 3
        assert isinstance(result.weights, WeightTable)
        assert len(result.weights) == 100
        # Only the deepest weight moves; its 0.18 gap shrinks by 0.8 per correction
        assert_allclose(result.weights[70], 1.0 - 0.18 * 0.8 ** 9)
        assert result.error == pytest.approx(18 * 0.8 ** 9)
        for depth in range(30, 70, 5):
            assert_allclose(result.weights[depth], 1.0)

        plateau = result.depth_dose[30:70]
        assert plateau.max() - plateau.min() < 3

    def test_seeding_correction_on_deepest_peak(self, box_peaks):
        # A single iteration leaves the correction visible in the weights
        solver = WeightSolver(SolverConfig(max_error=3, spot_spacing=5, max_iterations=1))
        result = solver.solve(box_peaks, 30, 70, 100)
        assert not result.converged
        assert_allclose(result.weights[70], 0.82 + (100 - 82) / 500)

    def test_unseeded_depths_keep_unit_weight(self, solver, box_peaks):
        result = solver.solve(box_peaks, 30, 70, 100)
        assert result.weights[31] == 1.0
        assert result.weights[99] == 1.0

    def test_no_convergence_within_cap(self, delta_peaks):
        solver = WeightSolver(SolverConfig(max_error=3, spot_spacing=5, max_iterations=50))
        result = solver.solve(delta_peaks, 30, 70, 100)

        assert result.success
        assert not result.converged
        assert result.iterations == 50
        assert result.error == pytest.approx(100.0, abs=1.0)
        weights = np.array(list(result.weights))
        assert np.all((weights >= 0) & (weights <= 2))
        assert "No convergence" in result.message


class TestBoundViolations:
    """Tests for aborted solves."""

    def test_seeding_bound(self, solver):
        doses = np.zeros((130, 130))
        for r in range(130):
            doses[r, :r + 1] = 150.0
        result = solver.solve(DepthDoseTable(doses), 30, 70, 100)

        assert not result.success
        assert not result.converged
        assert result.weights is None
        assert result.iterations == 0
        assert "seeding" in result.message
        assert "65" in result.message

    def test_iteration_bound(self, solver):
        peaks = DepthDoseTable(np.eye(130) * 10.0)
        result = solver.solve(peaks, 30, 70, 100)

        assert not result.success
        assert result.weights is None
        assert result.iterations == 6
        assert "Weight error" in result.message


class TestPreconditions:
    """Tests for invalid windows and tables."""

    @pytest.mark.parametrize("sobp_min,sobp_max", [(30, 120), (-5, 70), (70, 30)])
    def test_invalid_window(self, solver, box_peaks, sobp_min, sobp_max):
        with pytest.raises(PreconditionError, match="out of range"):
            solver.solve(box_peaks, sobp_min, sobp_max, phantom_size=100)

    def test_table_does_not_cover_window(self, solver):
        peaks = DepthDoseTable(np.ones((10, 50)), min_range=40)
        with pytest.raises(PreconditionError, match="does not cover"):
            solver.solve(peaks, 30, 45, 100)

    def test_window_at_phantom_depth(self, box_peaks):
        solver = WeightSolver(SolverConfig(max_error=3, spot_spacing=5, dose_lookahead=0))
        result = solver.solve(box_peaks, 30, 100, 100)
        assert isinstance(result, WeightSolveResult)
        assert result.depth_dose.size == 101

    def test_invalid_config(self):
        with pytest.raises(ValueError, match="damping"):
            WeightSolver(SolverConfig(damping=0))
