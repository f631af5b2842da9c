"""Pytest configuration and shared fixtures for pbs_dose tests."""

import matplotlib

matplotlib.use("Agg")

import pytest
import numpy as np

from pbs_dose.config import PlanConfig, resolve_plan_config
from pbs_dose.core.grid import VolumetricDoseGrid
from pbs_dose.core.range_energy import (
    create_water_energy_loss_table,
    create_water_range_energy_table,
)
from pbs_dose.core.tables import DepthDoseTable, PenumbraTable


# Fixtures for tables


@pytest.fixture
def energy_loss():
    """Water energy-loss table to 320 mm."""
    return create_water_energy_loss_table(320)


@pytest.fixture
def range_energy():
    """Water range-energy table to 320 mm."""
    return create_water_range_energy_table(320)


@pytest.fixture
def single_peak_table():
    """Depth-dose table with a single range R=100: loss 1 per mm over [0, 100].

    Dose follows Dmono[100][100 - dist] = (1 + k dist) / (1 + 100 k), zero
    past the range, for depths [0, 150).
    """
    k = 0.0012
    profile = np.zeros(150)
    dist = np.arange(101)
    profile[100 - dist] = (1.0 + k * dist) / (1.0 + k * 100)
    return DepthDoseTable(profile[None, :], min_range=100)


@pytest.fixture
def flat_penumbra():
    """Penumbra of all ones (no lateral fall-off) for depths [0, 160)."""
    return PenumbraTable(np.ones((160, 41, 41)))


@pytest.fixture
def box_peaks():
    """Peaks of dose 100 on the 5 mm just proximal to their range (r-5, r].

    Seeding every 5 mm tiles these peaks into a flat plateau.
    """
    n = 130
    doses = np.zeros((n, n))
    for r in range(n):
        doses[r, max(r - 4, 0):r + 1] = 100.0
    return DepthDoseTable(doses, min_range=0)


@pytest.fixture
def delta_peaks():
    """Peaks depositing 100 at their range only."""
    n = 130
    return DepthDoseTable(np.eye(n) * 100.0, min_range=0)


@pytest.fixture
def small_grid():
    """Dose grid over a 100 mm phantom, laterally centred on the beam axis."""
    return VolumetricDoseGrid.for_phantom(100)


@pytest.fixture
def small_config():
    """Small plan: 60 mm phantom, 20 mm target, peaks to 80 mm."""
    return resolve_plan_config({
        "geometry": {"phantom_size": 60, "target_size": 20, "margin": 5},
        "peaks": {"min_range": 0, "max_range": 80, "sd": 10},
        "solver": {"max_error": 5, "spot_spacing": 5},
        "penumbra": {"radius": 10, "samples_per_mm": 20},
    })


@pytest.fixture
def default_config():
    """Default plan configuration."""
    return PlanConfig()
