"""Plain-text persistence of tables, weights, dose slices and DVHs.

All formats are whitespace/newline delimited, one record per line:

- pair files: ``depth value`` (stopping power, range energy)
- all-peaks file: first line ``max_range``, then for every range r and depth
  Z in [0, max_range) a line ``Z<TAB>dose``
- single peak: ``Z<TAB>dose``
- weights: one real per line, 8 significant digits
- dose slice: one line per y, tab separated doses along x
- DVH: a header line, then ``percent<TAB>percent_volume``
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from pbs_dose.core.grid import VolumetricDoseGrid
from pbs_dose.core.range_energy import RangeEnergyTable
from pbs_dose.core.tables import DepthDoseTable, WeightTable
from pbs_dose.evaluation.dvh import TARGET, DoseVolumeHistogram

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _records(path: PathLike) -> Iterable[Tuple[int, List[str]]]:
    with open(path, "r") as f:
        for lineno, line in enumerate(f, start=1):
            fields = line.split()
            if fields:
                yield lineno, fields


def read_pairs(path: PathLike, name: str = "") -> RangeEnergyTable:
    """Read a ``depth value`` pair file into a RangeEnergyTable.

    Raises:
        ValueError: If a line does not hold an integer depth and a real value.
    """
    pairs = []
    for lineno, fields in _records(path):
        if len(fields) != 2:
            raise ValueError(f"{path}:{lineno}: expected 'depth value', got {' '.join(fields)!r}")
        try:
            pairs.append((int(fields[0]), float(fields[1])))
        except ValueError as e:
            raise ValueError(f"{path}:{lineno}: {e}") from e
    table = RangeEnergyTable.from_pairs(pairs, name=name or Path(path).stem)
    logger.debug(f"Read {len(pairs)} pairs from {path}")
    return table


def write_pairs(path: PathLike, table: RangeEnergyTable) -> Path:
    path = Path(path)
    with open(path, "w") as f:
        for depth, value in table.to_pairs():
            f.write(f"{depth}\t{value:.8g}\n")
    return path


def write_all_peaks(path: PathLike, peaks: DepthDoseTable, max_range: Optional[int] = None) -> Path:
    """Save every peak with range [0, max_range), depths [0, max_range).

    Ranges or depths missing from ``peaks`` are written as zero dose.
    """
    path = Path(path)
    max_range = peaks.max_range if max_range is None else int(max_range)
    with open(path, "w") as f:
        f.write(f"{max_range}\n")
        for r in range(max_range):
            profile = peaks.profile(r, max_range)
            f.writelines(f"{z}\t{dose:.6g}\n" for z, dose in enumerate(profile))
    logger.debug(f"Wrote {max_range} peaks to {path}")
    return path


def read_all_peaks(path: PathLike) -> DepthDoseTable:
    """Load a file written by ``write_all_peaks``.

    Raises:
        ValueError: If the file is empty, malformed or truncated.
    """
    records = _records(path)
    try:
        _, header = next(records)
    except StopIteration:
        raise ValueError(f"{path}: empty all-peaks file") from None
    try:
        max_range = int(header[0])
    except ValueError as e:
        raise ValueError(f"{path}:1: invalid max_range {header[0]!r}") from e
    if max_range <= 0:
        raise ValueError(f"{path}:1: max_range must be > 0, got {max_range}")

    doses = np.zeros((max_range, max_range), dtype=np.float64)
    count = 0
    for lineno, fields in records:
        if count >= doses.size:
            break
        if len(fields) != 2:
            raise ValueError(f"{path}:{lineno}: expected 'depth dose', got {' '.join(fields)!r}")
        r, z = divmod(count, max_range)
        try:
            doses[r, z] = float(fields[1])
        except ValueError as e:
            raise ValueError(f"{path}:{lineno}: {e}") from e
        count += 1
    if count < doses.size:
        raise ValueError(f"{path}: expected {doses.size} dose records, found {count}")

    logger.debug(f"Read {max_range} peaks from {path}")
    return DepthDoseTable(doses, min_range=0)


def write_peak(path: PathLike, profile: Sequence[float]) -> Path:
    """Write one depth-dose profile (or one penumbra row) as ``Z<TAB>dose``."""
    path = Path(path)
    with open(path, "w") as f:
        f.writelines(f"{z}\t{float(dose):.6g}\n" for z, dose in enumerate(profile))
    return path


def write_weights(path: PathLike, weights: WeightTable) -> Path:
    path = Path(path)
    with open(path, "w") as f:
        f.writelines(f"{w:.8g}\n" for w in weights)
    return path


def read_weights(path: PathLike) -> WeightTable:
    values = []
    for lineno, fields in _records(path):
        try:
            values.append(float(fields[0]))
        except ValueError as e:
            raise ValueError(f"{path}:{lineno}: {e}") from e
    return WeightTable(values)


def write_dose_slice(path: PathLike, grid: VolumetricDoseGrid, z: int) -> Path:
    """Write the dose plane at depth ``z``: one line per y, doses along x."""
    path = Path(path)
    layer = grid.layer(z)
    with open(path, "w") as f:
        for iy in range(layer.shape[1]):
            f.write("\t".join(f"{d:.6g}" for d in layer[:, iy]) + "\n")
    logger.debug(f"Wrote dose layer z={z} mm to {path}")
    return path


def write_histogram(
    path: PathLike,
    dvh: DoseVolumeHistogram,
    phantom_size: int,
    target_size: int,
    region: str = TARGET,
) -> Path:
    """Write the cumulative DVH of ``region`` as percent volume per percent dose."""
    path = Path(path)
    volume = dvh.percent_volume(region)
    with open(path, "w") as f:
        f.write(
            f"\t\tPhantom size: {phantom_size}\tTarget size: {target_size}"
            f"\tMax Dose: {dvh.max_dose:.6g}\tMin Dose: {dvh.min_dose:.6g}\n"
        )
        f.writelines(f"{i}\t{v:.6g}\n" for i, v in enumerate(volume))
    return path
