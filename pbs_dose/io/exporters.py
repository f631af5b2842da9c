"""HDF5 export of dose grids and dose tables."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import h5py
import numpy as np

from pbs_dose.core.grid import VolumetricDoseGrid
from pbs_dose.core.tables import DepthDoseTable, PenumbraTable


def export_dose_hdf5(
    grid: VolumetricDoseGrid,
    filename="pbs_dose.h5",
    metadata: Optional[dict] = None,
):
    """Export a dose grid to HDF5.

    Args:
        grid: Dose grid
        filename: Output HDF5 filename
        metadata: Extra scalar attributes (e.g. phantom and target size)

    Returns:
        Path to output file
    """
    with h5py.File(filename, 'w') as f:
        f.create_dataset('dose', data=grid.dose.astype(np.float32),
                        compression='gzip', compression_opts=4)
        f.attrs['origin'] = np.array(grid.origin, dtype=np.int64)
        f.attrs['shape'] = np.array(grid.shape, dtype=np.int64)
        f.attrs['max_dose'] = grid.max()
        for key, value in (metadata or {}).items():
            f.attrs[key] = value

    return Path(filename)


def load_dose_hdf5(filename) -> VolumetricDoseGrid:
    """Load a dose grid written by ``export_dose_hdf5``."""
    with h5py.File(filename, 'r') as f:
        dose = np.asarray(f['dose'][...], dtype=np.float64)
        origin = tuple(int(o) for o in f.attrs['origin'])

    return VolumetricDoseGrid(shape=dose.shape, origin=origin, dose=dose)


def export_tables_hdf5(
    filename,
    depth_dose: Optional[DepthDoseTable] = None,
    penumbra: Optional[PenumbraTable] = None,
):
    """Export the depth-dose and penumbra tables to HDF5.

    Returns:
        Path to output file
    """
    with h5py.File(filename, 'w') as f:
        if depth_dose is not None:
            ds = f.create_dataset('depth_dose', data=depth_dose.doses,
                                  compression='gzip', compression_opts=4)
            ds.attrs['min_range'] = depth_dose.min_range
        if penumbra is not None:
            ds = f.create_dataset('penumbra', data=penumbra.values,
                                  compression='gzip', compression_opts=4)
            ds.attrs['degenerate_depths'] = np.array(penumbra.degenerate_depths, dtype=np.int64)

    return Path(filename)


def load_tables_hdf5(filename):
    """Load tables written by ``export_tables_hdf5``.

    Returns:
        (depth_dose, penumbra), either None if absent from the file
    """
    depth_dose = penumbra = None
    with h5py.File(filename, 'r') as f:
        if 'depth_dose' in f:
            ds = f['depth_dose']
            depth_dose = DepthDoseTable(ds[...], int(ds.attrs['min_range']))
        if 'penumbra' in f:
            ds = f['penumbra']
            penumbra = PenumbraTable(ds[...], ds.attrs['degenerate_depths'].tolist())

    return depth_dose, penumbra
