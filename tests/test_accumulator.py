"""Tests for spot-by-spot dose accumulation."""

import pytest
import numpy as np
from numpy.testing import assert_allclose, assert_array_equal

from pbs_dose.core.grid import VolumetricDoseGrid
from pbs_dose.core.scan_pattern import ScanPattern, SpotPosition
from pbs_dose.core.tables import DepthDoseTable
from pbs_dose.dose.accumulator import DoseAccumulator, add_spot, calculate_dose
from pbs_dose.physics.penumbra import PenumbraSynthesizer


@pytest.fixture
def wide_grid():
    """Grid covering x, y in [-50, 50] and z in [0, 160)."""
    return VolumetricDoseGrid(shape=(101, 101, 160), origin=(-50, -50, 0))


@pytest.fixture
def unit_table():
    """One peak of range 50 depositing 1 at every depth."""
    return DepthDoseTable(np.ones((1, 200)), min_range=50)


class TestAddSpot:
    """Tests for a single spot."""

    def test_single_spot_on_axis(self, wide_grid, single_peak_table, flat_penumbra):
        assert add_spot(wide_grid, SpotPosition(0, 0, 100), single_peak_table, flat_penumbra)

        for z in range(0, 141, 10):
            assert wide_grid[0, 0, z] == pytest.approx(single_peak_table.dose(100, z))
        assert wide_grid[0, 0, 0] == pytest.approx(1.0)
        assert wide_grid[0, 0, 101] == 0.0
        assert wide_grid[40, -40, 60] == pytest.approx(single_peak_table.dose(100, 60))
        assert wide_grid[41, 0, 60] == 0.0
        assert wide_grid[0, -41, 60] == 0.0

    def test_depth_overrun_limit(self, wide_grid, unit_table, flat_penumbra):
        add_spot(wide_grid, SpotPosition(0, 0, 50), unit_table, flat_penumbra, depth_overrun=40)
        assert wide_grid[0, 0, 90] == 1.0
        assert wide_grid[0, 0, 91] == 0.0

    def test_each_voxel_written_once(self, wide_grid, unit_table, flat_penumbra):
        add_spot(wide_grid, SpotPosition(0, 0, 50), unit_table, flat_penumbra)
        layer = wide_grid.layer(30)
        assert layer.max() == 1.0
        assert layer.sum() == pytest.approx(81 * 81)

    def test_weight_scales_dose(self, wide_grid, unit_table, flat_penumbra):
        add_spot(wide_grid, SpotPosition(0, 0, 50, 0.25), unit_table, flat_penumbra)
        assert wide_grid[10, 10, 20] == pytest.approx(0.25)

    def test_quadrant_symmetry(self, range_energy):
        penumbra = PenumbraSynthesizer(range_energy, radius=10, samples_per_mm=20).synthesize(60)
        table = DepthDoseTable(np.ones((1, 60)), min_range=30)
        grid = VolumetricDoseGrid(shape=(41, 41, 60), origin=(-20, -20, 0))
        add_spot(grid, SpotPosition(0, 0, 30), table, penumbra)

        dose = grid.dose
        assert_allclose(dose, dose[::-1, :, :])
        assert_allclose(dose, dose[:, ::-1, :])
        assert_allclose(dose, dose.transpose(1, 0, 2))
        assert grid[0, 0, 40] == pytest.approx(1.0)
        assert grid[3, 0, 40] < grid[1, 0, 40]

    def test_clipped_at_grid_edge(self, wide_grid, unit_table, flat_penumbra):
        add_spot(wide_grid, SpotPosition(45, 0, 50), unit_table, flat_penumbra)
        assert wide_grid[50, 0, 20] == 1.0
        assert wide_grid[5, 0, 20] == 1.0
        assert wide_grid[4, 0, 20] == 0.0
        assert wide_grid.layer(20).sum() == pytest.approx(46 * 81)

    def test_spot_outside_grid_adds_nothing(self, wide_grid, unit_table, flat_penumbra):
        assert add_spot(wide_grid, SpotPosition(200, 0, 50), unit_table, flat_penumbra)
        assert wide_grid.max() == 0.0

    def test_spot_outside_table(self, wide_grid, single_peak_table, flat_penumbra):
        assert not add_spot(wide_grid, SpotPosition(0, 0, 99), single_peak_table, flat_penumbra)
        assert wide_grid.max() == 0.0


class TestDoseAccumulator:
    """Tests for whole-pattern accumulation."""

    @pytest.fixture
    def spots(self):
        return [
            SpotPosition(0, 0, 100, 1.0),
            SpotPosition(-5, 3, 100, 0.5),
            SpotPosition(7, -2, 100, 2.0),
            SpotPosition(20, 20, 100, 0.1),
        ]

    def test_matches_sum_of_spots(self, wide_grid, spots, single_peak_table, flat_penumbra):
        expected = wide_grid.copy()
        for spot in spots:
            add_spot(expected, spot, single_peak_table, flat_penumbra)

        report = calculate_dose(wide_grid, ScanPattern([spots]), single_peak_table, flat_penumbra)
        assert report.spots_processed == 4
        assert report.complete
        assert_allclose(wide_grid.dose, expected.dose)

    def test_order_independent(self, spots, single_peak_table, flat_penumbra):
        accumulator = DoseAccumulator(single_peak_table, flat_penumbra)
        forward = VolumetricDoseGrid(shape=(101, 101, 160), origin=(-50, -50, 0))
        backward = forward.copy()

        accumulator.calculate_dose(forward, ScanPattern([spots]))
        accumulator.calculate_dose(backward, ScanPattern([[s] for s in reversed(spots)]))
        assert_allclose(forward.dose, backward.dose)

    def test_reports_spots_outside_table(self, wide_grid, single_peak_table, flat_penumbra):
        pattern = ScanPattern([[SpotPosition(0, 0, 100), SpotPosition(0, 0, 250)]])
        report = DoseAccumulator(single_peak_table, flat_penumbra).calculate_dose(wide_grid, pattern)

        assert report.spots_processed == 2
        assert not report.complete
        assert report.spots_outside_table == [SpotPosition(0, 0, 250)]

    def test_pattern_reset_before_accumulation(self, wide_grid, spots, single_peak_table, flat_penumbra):
        pattern = ScanPattern([spots])
        for _ in range(10):
            pattern.get_next_spot()
        report = calculate_dose(wide_grid, pattern, single_peak_table, flat_penumbra)
        assert report.spots_processed == 4

    def test_empty_pattern(self, wide_grid, single_peak_table, flat_penumbra):
        report = calculate_dose(wide_grid, ScanPattern(), single_peak_table, flat_penumbra)
        assert report.spots_processed == 0
        assert_array_equal(wide_grid.dose, 0.0)
