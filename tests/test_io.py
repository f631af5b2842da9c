"""Tests for text persistence and HDF5 export."""

import pytest
import numpy as np
from numpy.testing import assert_allclose, assert_array_equal

from pbs_dose.core.grid import VolumetricDoseGrid
from pbs_dose.core.range_energy import RangeEnergyTable
from pbs_dose.core.tables import DepthDoseTable, PenumbraTable, WeightTable
from pbs_dose.evaluation.dvh import DoseVolumeAnalyzer
from pbs_dose.io.exporters import (
    export_dose_hdf5,
    export_tables_hdf5,
    load_dose_hdf5,
    load_tables_hdf5,
)
from pbs_dose.io.text_io import (
    read_all_peaks,
    read_pairs,
    read_weights,
    write_all_peaks,
    write_dose_slice,
    write_histogram,
    write_pairs,
    write_peak,
    write_weights,
)


class TestPairFiles:
    """Tests for depth/value pair files."""

    def test_read_with_gaps(self, tmp_path):
        path = tmp_path / "stoppingPower"
        path.write_text("0 2.5\n1\t2.0\n\n4 1.0\n")
        table = read_pairs(path)

        assert table.name == "stoppingPower"
        assert table.get(1) == 2.0
        assert table.get(2) == 0.0
        assert table.missing_depths(5) == [2, 3]

    def test_round_trip(self, tmp_path):
        table = RangeEnergyTable({0: 1.25, 3: 7.5})
        loaded = read_pairs(write_pairs(tmp_path / "pairs", table))
        assert loaded.to_pairs() == table.to_pairs()

    def test_malformed_line(self, tmp_path):
        path = tmp_path / "bad"
        path.write_text("0 1.0\n1 x\n")
        with pytest.raises(ValueError, match=":2:"):
            read_pairs(path)

    def test_wrong_field_count(self, tmp_path):
        path = tmp_path / "bad"
        path.write_text("0 1.0 2.0\n")
        with pytest.raises(ValueError, match="expected 'depth value'"):
            read_pairs(path)


class TestAllPeaks:
    """Tests for the all-peaks file."""

    def test_layout(self, tmp_path):
        peaks = DepthDoseTable(np.arange(9.0).reshape(3, 3))
        path = write_all_peaks(tmp_path / "allPeaks", peaks)
        lines = path.read_text().splitlines()

        assert lines[0] == "3"
        assert len(lines) == 1 + 9
        assert lines[1] == "0\t0"
        assert lines[4] == "0\t3"
        assert lines[9] == "2\t8"

    def test_round_trip(self, tmp_path, energy_loss):
        from pbs_dose.physics.depth_dose import DepthDoseSynthesizer

        peaks = DepthDoseSynthesizer(energy_loss, sd=10.0).synthesize(0, 40)
        loaded = read_all_peaks(write_all_peaks(tmp_path / "allPeaks", peaks, max_range=40))

        assert loaded.min_range == 0
        assert loaded.max_range == 40
        assert loaded.n_depths == 40
        assert_allclose(loaded.doses, peaks.doses[:40, :40], rtol=1e-5)

    def test_missing_ranges_written_as_zero(self, tmp_path, single_peak_table):
        loaded = read_all_peaks(write_all_peaks(tmp_path / "allPeaks", single_peak_table, max_range=102))
        assert_array_equal(loaded[50], 0.0)
        assert loaded.dose(100, 0) == pytest.approx(1.0)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "allPeaks"
        path.write_text("")
        with pytest.raises(ValueError, match="empty"):
            read_all_peaks(path)

    def test_truncated_file(self, tmp_path):
        path = tmp_path / "allPeaks"
        path.write_text("2\n0\t1\n1\t2\n0\t3\n")
        with pytest.raises(ValueError, match="expected 4 dose records, found 3"):
            read_all_peaks(path)

    def test_invalid_header(self, tmp_path):
        path = tmp_path / "allPeaks"
        path.write_text("zero\n")
        with pytest.raises(ValueError, match="invalid max_range"):
            read_all_peaks(path)
        path.write_text("0\n")
        with pytest.raises(ValueError, match="max_range must be > 0"):
            read_all_peaks(path)


class TestOtherTextFiles:
    """Tests for peaks, weights, dose slices and histograms."""

    def test_write_peak(self, tmp_path):
        path = write_peak(tmp_path / "peak", [0.5, 1.0, 0.0])
        assert path.read_text() == "0\t0.5\n1\t1\n2\t0\n"

    def test_weights_round_trip(self, tmp_path):
        weights = WeightTable([1.0, 0.123456789, 1.5])
        path = write_weights(tmp_path / "weights", weights)

        assert path.read_text().splitlines()[1] == "0.12345679"
        loaded = read_weights(path)
        assert len(loaded) == 3
        assert loaded[1] == pytest.approx(0.12345679)

    def test_dose_slice(self, tmp_path):
        grid = VolumetricDoseGrid(shape=(3, 2, 4))
        grid.dose[:, :, 1] = [[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]]
        path = write_dose_slice(tmp_path / "slice", grid, 1)

        assert path.read_text().splitlines() == ["1\t3\t5", "2\t4\t6"]

    def test_histogram(self, tmp_path):
        grid = VolumetricDoseGrid.for_phantom(20)
        grid.dose[:] = 50.0
        dvh = DoseVolumeAnalyzer(20, 10).analyze(grid)
        lines = write_histogram(tmp_path / "dvh", dvh, 20, 10).read_text().splitlines()

        assert lines[0] == "\t\tPhantom size: 20\tTarget size: 10\tMax Dose: 50\tMin Dose: 50"
        assert len(lines) == 1 + 120
        assert lines[1] == "0\t100"
        assert lines[51] == "50\t100"
        assert lines[52] == "51\t0"


class TestHDF5:
    """Tests for HDF5 export."""

    def test_dose_round_trip(self, tmp_path):
        grid = VolumetricDoseGrid.for_phantom(10)
        grid.dose[2, 3, 4] = 42.0
        path = export_dose_hdf5(grid, tmp_path / "dose.h5", metadata={"phantom_size": 10})

        loaded = load_dose_hdf5(path)
        assert loaded.shape == grid.shape
        assert loaded.origin == (-5, -5, 0)
        assert_allclose(loaded.dose, grid.dose)

    def test_dose_attributes(self, tmp_path):
        import h5py

        grid = VolumetricDoseGrid.for_phantom(10)
        grid.dose[0, 0, 0] = 7.0
        path = export_dose_hdf5(grid, tmp_path / "dose.h5", metadata={"target_size": 4})

        with h5py.File(path, "r") as f:
            assert f["dose"].dtype == np.float32
            assert f.attrs["max_dose"] == 7.0
            assert f.attrs["target_size"] == 4

    def test_tables_round_trip(self, tmp_path, single_peak_table):
        penumbra = PenumbraTable(np.ones((4, 3, 3)), degenerate_depths=[0, 2])
        path = export_tables_hdf5(tmp_path / "tables.h5", single_peak_table, penumbra)
        depth_dose, loaded = load_tables_hdf5(path)

        assert depth_dose.min_range == 100
        assert_array_equal(depth_dose.doses, single_peak_table.doses)
        assert loaded.degenerate_depths == (0, 2)
        assert_array_equal(loaded.values, penumbra.values)

    def test_tables_partial(self, tmp_path, single_peak_table):
        path = export_tables_hdf5(tmp_path / "tables.h5", depth_dose=single_peak_table)
        depth_dose, penumbra = load_tables_hdf5(path)
        assert depth_dose is not None
        assert penumbra is None
