"""Utilities package."""

from pbs_dose.utils.visualization import (
    plot_depth_dose,
    plot_dose_slice,
    plot_dvh,
    plot_penumbra,
    plot_sobp,
)

__all__ = [
    'plot_depth_dose',
    'plot_dose_slice',
    'plot_dvh',
    'plot_penumbra',
    'plot_sobp',
]
