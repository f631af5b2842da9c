"""Tests for dose normalisation and dose-volume histograms."""

import pytest
import numpy as np
from numpy.testing import assert_allclose, assert_array_equal

from pbs_dose.core.exceptions import PreconditionError
from pbs_dose.core.grid import VolumetricDoseGrid
from pbs_dose.dose.normalize import normalize
from pbs_dose.evaluation.dvh import (
    TARGET,
    TISSUE,
    DoseVolumeAnalyzer,
    cumulative_histogram,
)


@pytest.fixture
def grid20():
    return VolumetricDoseGrid.for_phantom(20)


@pytest.fixture
def analyzer():
    return DoseVolumeAnalyzer(phantom_size=20, target_size=10)


class TestNormalize:
    """Tests for global normalisation."""

    def test_maximum_becomes_100(self, grid20):
        grid20.dose[3, 4, 5] = 40.0
        grid20.dose[1, 1, 1] = 10.0
        divisor = normalize(grid20)

        assert divisor == pytest.approx(0.4)
        assert grid20.max() == pytest.approx(100.0)
        assert grid20.dose[1, 1, 1] == pytest.approx(25.0)

    def test_idempotent(self, grid20):
        rng = np.random.default_rng(1)
        grid20.dose[:] = rng.random(grid20.shape) * 7.0
        normalize(grid20)
        once = grid20.dose.copy()

        assert normalize(grid20) == pytest.approx(1.0)
        assert_allclose(grid20.dose, once)

    def test_custom_peak(self, grid20):
        grid20.dose[0, 0, 0] = 2.0
        normalize(grid20, peak=50.0)
        assert grid20.max() == pytest.approx(50.0)

    def test_zero_grid_unchanged(self, grid20):
        assert normalize(grid20) == 0.0
        assert_array_equal(grid20.dose, 0.0)


class TestCumulativeHistogram:
    """Tests for the at-least counting."""

    def test_round_half_up(self):
        counts, bad = cumulative_histogram(np.array([49.5, 49.49, 0.5, 0.49]), buckets=120)
        assert bad.size == 0
        assert counts[0] == 4
        assert counts[1] == 3
        assert counts[49] == 2
        assert counts[50] == 1
        assert counts[51] == 0

    def test_non_increasing(self):
        rng = np.random.default_rng(2)
        counts, _ = cumulative_histogram(rng.random(1000) * 110.0)
        assert np.all(np.diff(counts) <= 0)
        assert counts[0] == 1000

    def test_out_of_range_skipped(self):
        counts, bad = cumulative_histogram(np.array([10.0, 125.0, -3.0]), buckets=120)
        assert counts[0] == 1
        assert sorted(bad.tolist()) == [-3, 125]


class TestDoseVolumeAnalyzer:
    """Tests for target and tissue DVHs."""

    def test_target_region(self, analyzer):
        assert analyzer.target_slice == slice(5, 15)

    def test_uniform_dose(self, grid20, analyzer):
        grid20.dose[:] = 50.0
        dvh = analyzer.analyze(grid20)

        assert dvh.ok
        assert dvh.target_voxels == 1000
        assert dvh.tissue_voxels == 7000
        assert dvh[TARGET][0] == 1000
        assert dvh[TARGET][50] == 1000
        assert dvh[TARGET][51] == 0
        assert dvh[TISSUE][50] == 7000
        assert dvh.max_dose == 50.0
        assert dvh.min_dose == 50.0
        assert_allclose(dvh.percent_volume(TARGET)[:51], 100.0)

    def test_target_and_tissue_separated(self, grid20, analyzer):
        grid20.dose[5:15, 5:15, 5:15] = 100.0
        dvh = analyzer.analyze(grid20)

        assert dvh[TARGET][100] == 1000
        assert dvh[TISSUE][1] == 0
        assert dvh[TISSUE][0] == 7000
        summary = analyzer.summary(dvh)
        assert summary["v95"] == 100.0
        assert summary["v100"] == 100.0
        assert summary["max_dose"] == 100.0

    def test_out_of_range_voxel_reported(self, grid20, analyzer):
        grid20.dose[:] = 50.0
        grid20.dose[10, 10, 10] = 130.0
        dvh = analyzer.analyze(grid20)

        assert not dvh.ok
        assert dvh[TARGET][0] == 999
        assert dvh.max_dose == 130.0
        assert len(dvh.errors) == 1
        assert "target" in dvh.errors[0]
        assert "130%" in dvh.errors[0]

    def test_zero_dose(self, grid20, analyzer):
        dvh = analyzer.analyze(grid20)
        assert dvh[TARGET][0] == 1000
        assert dvh[TARGET][1] == 0
        assert dvh.max_dose == 0.0
        assert dvh.min_dose == 0.0

    def test_grid_smaller_than_phantom(self, analyzer):
        with pytest.raises(PreconditionError):
            analyzer.analyze(VolumetricDoseGrid.for_phantom(10))

    def test_target_larger_than_phantom(self):
        with pytest.raises(ValueError):
            DoseVolumeAnalyzer(phantom_size=10, target_size=20)

    def test_unknown_region(self, grid20, analyzer):
        dvh = analyzer.analyze(grid20)
        with pytest.raises(KeyError):
            dvh["lung"]
