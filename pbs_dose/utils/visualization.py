"""Simple visualization utilities for depth-dose curves, dose slices and DVHs."""

from typing import Iterable, Optional

import numpy as np
import matplotlib.pyplot as plt

from pbs_dose.core.grid import VolumetricDoseGrid
from pbs_dose.core.tables import DepthDoseTable, PenumbraTable
from pbs_dose.evaluation.dvh import TARGET, TISSUE, DoseVolumeHistogram


def _finish(fig, save_path: Optional[str]):
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"Saved: {save_path}")
    else:
        plt.show()

    plt.close(fig)


def plot_depth_dose(
    peaks: DepthDoseTable,
    ranges: Iterable[int],
    title: str = 'Bragg Peaks',
    save_path: str = None,
):
    """Plot the depth-dose curves of selected nominal ranges.

    Args:
        peaks: Depth-dose table
        ranges: Nominal ranges to draw [mm]
        title: Plot title
        save_path: If provided, save to file
    """
    fig, ax = plt.subplots(figsize=(10, 6))

    z = np.arange(peaks.n_depths)
    for r in ranges:
        ax.plot(z, peaks.profile(r), linewidth=2, label=f'R = {r} mm')
    ax.set_xlabel('Depth z [mm]')
    ax.set_ylabel('Relative dose')
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    ax.legend()

    _finish(fig, save_path)


def plot_sobp(
    depth_dose: np.ndarray,
    sobp_min: int,
    sobp_max: int,
    title: str = 'Spread-Out Bragg Peak',
    save_path: str = None,
):
    """Plot the weighted depth-dose sum of a weight solve.

    Args:
        depth_dose: Weighted depth-dose sum [percent]
        sobp_min: Shallow end of the plateau [mm]
        sobp_max: Deep end of the plateau [mm]
        title: Plot title
        save_path: If provided, save to file
    """
    fig, ax = plt.subplots(figsize=(10, 6))

    ax.plot(np.arange(depth_dose.size), depth_dose, linewidth=2)
    ax.axvspan(sobp_min, sobp_max, color='gray', alpha=0.15, label='SOBP window')
    ax.set_xlabel('Depth z [mm]')
    ax.set_ylabel('Dose [%]')
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    ax.legend()

    _finish(fig, save_path)


def plot_dose_slice(
    grid: VolumetricDoseGrid,
    z: int,
    title: str = None,
    save_path: str = None,
):
    """Create 2D dose heatmap of the plane at depth z.

    Args:
        grid: Dose grid
        z: Depth of the plane [mm]
        title: Plot title
        save_path: If provided, save to file
    """
    (x0, x1), (y0, y1), _ = grid.extent

    fig, ax = plt.subplots(figsize=(8, 7))

    im = ax.imshow(
        grid.layer(z).T,  # Transpose to match x-y orientation
        origin='lower',
        aspect='equal',
        extent=[x0, x1, y0, y1],
        cmap='viridis',
    )

    plt.colorbar(im, ax=ax, label='Dose [%]')
    ax.set_xlabel('x [mm]')
    ax.set_ylabel('y [mm]')
    ax.set_title(title or f'Dose at z = {z} mm')

    _finish(fig, save_path)


def plot_dvh(
    dvh: DoseVolumeHistogram,
    title: str = 'Dose Volume Histogram',
    save_path: str = None,
):
    """Plot cumulative target and tissue DVHs.

    Args:
        dvh: Dose-volume histogram
        title: Plot title
        save_path: If provided, save to file
    """
    fig, ax = plt.subplots(figsize=(10, 6))

    for region in (TARGET, TISSUE):
        volume = dvh.percent_volume(region)
        ax.plot(np.arange(volume.size), volume, linewidth=2, label=region)
    ax.set_xlabel('Dose [%]')
    ax.set_ylabel('Volume [%]')
    ax.set_ylim(0, 105)
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    ax.legend()

    _finish(fig, save_path)


def plot_penumbra(
    penumbra: PenumbraTable,
    depths: Iterable[int],
    title: str = 'Lateral Penumbra',
    save_path: str = None,
):
    """Plot the lateral dose fraction along x (y = 0) at selected depths.

    Args:
        penumbra: Penumbra table
        depths: Depths to draw [mm]
        title: Plot title
        save_path: If provided, save to file
    """
    fig, ax = plt.subplots(figsize=(10, 6))

    offsets = np.arange(-penumbra.radius, penumbra.radius + 1)
    for z in depths:
        profile = [penumbra.at(z, x, 0) for x in offsets]
        ax.plot(offsets, profile, linewidth=2, label=f'z = {z} mm')
    ax.set_xlabel('x [mm]')
    ax.set_ylabel('Relative dose')
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    ax.legend()

    _finish(fig, save_path)
