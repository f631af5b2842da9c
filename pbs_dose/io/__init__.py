"""Persistence: plain-text tables and HDF5 export."""

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

__all__ = [
    "export_dose_hdf5",
    "export_tables_hdf5",
    "load_dose_hdf5",
    "load_tables_hdf5",
    "read_all_peaks",
    "read_pairs",
    "read_weights",
    "write_all_peaks",
    "write_dose_slice",
    "write_histogram",
    "write_pairs",
    "write_peak",
    "write_weights",
]
