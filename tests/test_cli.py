"""Tests for the command-line interface."""

import pytest

from pbs_dose.cli import main
from pbs_dose.config import ConfigurationWarning


SMALL_PLAN = """\
geometry:
  phantom_size: 60
  target_size: 20
  margin: 5
peaks:
  max_range: 80
penumbra:
  radius: 10
  samples_per_mm: 20
scan:
  z: [20, 40, 10]
"""


@pytest.fixture
def plan_file(tmp_path):
    path = tmp_path / "plan.yaml"
    path.write_text(SMALL_PLAN)
    return path


class TestCLI:
    """Tests for the pbs-dose subcommands."""

    def test_no_command(self, capsys):
        assert main([]) == 2
        assert "usage" in capsys.readouterr().out

    def test_info(self, capsys):
        assert main(["info"]) == 0
        out = capsys.readouterr().out
        assert "geometry.phantom_size" in out
        assert "Depth window: 90 - 210 mm" in out

    def test_info_with_config(self, plan_file, capsys):
        assert main(["--config", str(plan_file), "info"]) == 0
        assert "Depth window: 15 - 45 mm" in capsys.readouterr().out

    def test_peaks(self, plan_file, tmp_path):
        output = tmp_path / "allPeaks"
        assert main(["--config", str(plan_file), "peaks", "--output", str(output)]) == 0
        lines = output.read_text().splitlines()
        assert lines[0] == "80"
        assert len(lines) == 1 + 80 * 80

    def test_dose_with_template(self, plan_file, tmp_path):
        histogram = tmp_path / "dvh.txt"
        slice_output = tmp_path / "slice.txt"
        hdf5 = tmp_path / "dose.h5"
        code = main([
            "--config", str(plan_file), "dose", "--template",
            "--histogram", str(histogram),
            "--slice", "30", "--slice-output", str(slice_output),
            "--hdf5", str(hdf5),
        ])

        assert code == 0
        assert histogram.read_text().startswith("\t\tPhantom size: 60\tTarget size: 20")
        assert len(slice_output.read_text().splitlines()) == 60
        assert hdf5.exists()

    def test_dose_with_loaded_weights(self, plan_file, tmp_path):
        weights = tmp_path / "weights"
        weights.write_text("1\n" * 60)
        histogram = tmp_path / "dvh.txt"
        code = main([
            "--config", str(plan_file), "dose",
            "--weights", str(weights), "--histogram", str(histogram),
        ])

        assert code == 0
        assert histogram.exists()

    def test_missing_peaks_file(self, plan_file, tmp_path):
        with pytest.raises(FileNotFoundError):
            main(["--config", str(plan_file), "weights", "--peaks", str(tmp_path / "missing")])

    def test_malformed_plan_falls_back_to_defaults(self, tmp_path, capsys):
        path = tmp_path / "plan.yaml"
        path.write_text("geometry:\n  phantom: 200\npeaks: 5\n")
        with pytest.warns(ConfigurationWarning):
            assert main(["--config", str(path), "info"]) == 0
        assert "Depth window: 90 - 210 mm" in capsys.readouterr().out

    def test_unparsable_plan(self, tmp_path):
        path = tmp_path / "plan.yaml"
        path.write_text("geometry: [1, 2\n")
        assert main(["--config", str(path), "info"]) == 1
