"""Physical models: Bragg-peak depth dose and lateral penumbra."""

from pbs_dose.physics.depth_dose import DepthDoseSynthesizer
from pbs_dose.physics.penumbra import PenumbraSynthesizer

__all__ = [
    "DepthDoseSynthesizer",
    "PenumbraSynthesizer",
]
