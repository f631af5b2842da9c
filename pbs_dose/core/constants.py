"""Physics constants for the empirical proton dose model.

This module is the Single Source of Truth (SSOT) for all physics constants
used by the dose model. Import from here rather than defining constants locally.

The values follow the empirical model of Lee, Nahum & Webb (1993), which uses
rounded constants (e.g. a 500 mm radiation length for water) rather than the
current PDG values.

Import Policy:
    from pbs_dose.core.constants import DEFAULT_CONSTANTS, PROTON_REST_MASS_MEV

DO NOT use: from pbs_dose.core.constants import *
"""

from dataclasses import dataclass

# =============================================================================
# Model Constants (Lee et al. 1993)
# =============================================================================

# Proton rest mass energy [MeV]
PROTON_REST_MASS_MEV = 938.3

# Radiation length of water used by the scattering model [mm]
WATER_RADIATION_LENGTH_MM = 500.0

# Highland formula coefficient [MeV]
HIGHLAND_COEFFICIENT_MEV = 14.1

# Logarithmic correction factor of the Highland formula
HIGHLAND_LOG_FACTOR = 1.0 / 9.0

# =============================================================================
# Range-Energy Relation for Water (Bragg-Kleeman rule)
# =============================================================================

# R[cm] = ALPHA * E[MeV] ** P
BRAGG_KLEEMAN_ALPHA_CM = 0.0022
BRAGG_KLEEMAN_EXPONENT = 1.77


@dataclass
class DoseModelConstants:
    """Physics constants of the penumbra and range-energy models.

    Units: MeV and mm.
    """

    proton_mass: float = PROTON_REST_MASS_MEV
    """Proton rest mass [MeV/c²]"""

    radiation_length: float = WATER_RADIATION_LENGTH_MM
    """Radiation length of water [mm]"""

    highland_coefficient: float = HIGHLAND_COEFFICIENT_MEV
    """Highland formula constant [MeV]"""

    highland_log_factor: float = HIGHLAND_LOG_FACTOR
    """Coefficient of log10(z/L) in the Highland correction"""

    bragg_kleeman_alpha: float = BRAGG_KLEEMAN_ALPHA_CM
    """Bragg-Kleeman coefficient [cm MeV^-p]"""

    bragg_kleeman_exponent: float = BRAGG_KLEEMAN_EXPONENT
    """Bragg-Kleeman exponent p"""


DEFAULT_CONSTANTS = DoseModelConstants()
