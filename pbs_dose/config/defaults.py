"""
Default Model Constants for the pbs_dose Engine

This module contains the numerical constants of the dose model that are not
user-facing scan-geometry parameters. User-facing parameters and their valid
ranges live in defaults.yaml.

IMPORTANT Import Policies:
    1. DO NOT use: from pbs_dose.config.defaults import *
       This causes namespace pollution and makes tracking difficult.

    2. DO use explicit imports:
       from pbs_dose.config.defaults import DEFAULT_DAMPING, DEFAULT_MAX_ITERATIONS

    3. DO NOT define defaults elsewhere. All model defaults must be in this file.
"""

# =============================================================================
# Depth-Dose (Bragg Peak) Synthesis Defaults
# =============================================================================

# Distance scaling constant k in Dmono[R][R-dist] = loss[dist] (1 + k dist) / (1 + k R)
# Accounts for the loss of primary protons through nuclear interactions
DEFAULT_DISTANCE_SCALING = 0.0012

# Extra depths computed past max_range (mm)
# Monoenergetic curves and output profiles cover [0, max_range + margin)
DEFAULT_RANGE_MARGIN = 10

# Offset between the straggling kernel centre and the stored nominal range (mm)
# Dele[Ro - shift] is built from a Gaussian centred on Ro
DEFAULT_RANGE_SHIFT = 3

# Whether peak profiles are scaled to a maximum of 100 before weighting
# The weight solver targets a plateau of 100, which presumes normalized peaks
DEFAULT_NORMALIZE_PEAKS = True

# =============================================================================
# Penumbra (Lateral Scatter) Defaults
# =============================================================================

# Lateral extent of the penumbra table in each direction (mm)
# Dose beyond this radius is exactly zero
DEFAULT_PENUMBRA_RADIUS = 40

# Integration samples per mm along the beam path
DEFAULT_SAMPLES_PER_MM = 100

# Length of the path integrated upstream of each depth (mm)
DEFAULT_PATH_LENGTH = 10.0

# Depth past the nominal range a spot still deposits dose (mm)
DEFAULT_DEPTH_OVERRUN = 40

# =============================================================================
# Weight Solver Defaults
# =============================================================================

# Depth step used when seeding initial weights (mm)
DEFAULT_SEED_STEP = 5

# Empirical correction subtracted from the deepest peak after seeding
# Tuned for the default geometry; reduces the number of iterations required
DEFAULT_DEEPEST_PEAK_CORRECTION = 0.18

# Damping divisor of the proportional correction: w += (100 - dose) / damping
DEFAULT_DAMPING = 500.0

# Hard iteration cap of the relaxation
DEFAULT_MAX_ITERATIONS = 1000

# Depths summed past the deepest peak when recomputing the plateau (mm)
DEFAULT_DOSE_LOOKAHEAD = 20

# Plateau dose the solver flattens to (percent)
DEFAULT_TARGET_DOSE = 100.0

# Bounds on seeded weights and iterated weights
SEED_WEIGHT_BOUNDS = (0.0, 1.0)
ITERATION_WEIGHT_BOUNDS = (0.0, 2.0)

# =============================================================================
# Dose-Volume Histogram Defaults
# =============================================================================

# Number of percent-dose buckets (0..119)
DVH_BUCKETS = 120

# =============================================================================
# Scan Pattern Template Defaults
# =============================================================================

# Lateral spot grid of each layer (mm): (start, stop inclusive, step)
DEFAULT_TEMPLATE_X = (-10, 10, 5)
DEFAULT_TEMPLATE_Y = (-10, 10, 5)

# Layer depths (mm): (start, stop inclusive, step)
DEFAULT_TEMPLATE_Z = (280, 300, 5)

# Time to paint a layer once (s)
DEFAULT_LAYER_TIME = 0.7073

# Time to change beam energy between layers (s)
DEFAULT_ENERGY_CHANGE_TIME = 2.0

# Number of repaintings per layer
DEFAULT_PAINTINGS = (20, 3, 5, 3, 4, 3, 3, 2, 2, 2, 2)

# =============================================================================
# Data Type Policies
# =============================================================================

# Dose grid and table dtype
DOSE_DTYPE = "float64"
