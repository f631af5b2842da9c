"""Plan Configuration - Single Source of Truth (SSOT)

This module provides the central configuration dataclasses for a dose run.
ALL plan parameters must flow through these configuration classes.

Import Policy:
    from pbs_dose.config.plan_config import PlanConfig, GeometryConfig, PeakConfig

DO NOT use: from pbs_dose.config.plan_config import *
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Tuple

from pbs_dose.config.defaults import (
    DEFAULT_DAMPING,
    DEFAULT_DEEPEST_PEAK_CORRECTION,
    DEFAULT_DEPTH_OVERRUN,
    DEFAULT_DISTANCE_SCALING,
    DEFAULT_DOSE_LOOKAHEAD,
    DEFAULT_ENERGY_CHANGE_TIME,
    DEFAULT_LAYER_TIME,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_NORMALIZE_PEAKS,
    DEFAULT_PAINTINGS,
    DEFAULT_PATH_LENGTH,
    DEFAULT_PENUMBRA_RADIUS,
    DEFAULT_RANGE_MARGIN,
    DEFAULT_RANGE_SHIFT,
    DEFAULT_SAMPLES_PER_MM,
    DEFAULT_SEED_STEP,
    DEFAULT_TARGET_DOSE,
    DEFAULT_TEMPLATE_X,
    DEFAULT_TEMPLATE_Y,
    DEFAULT_TEMPLATE_Z,
)
from pbs_dose.config.yaml_loader import parameter_default


def _yaml_default(section: str, name: str):
    return field(default_factory=lambda: parameter_default(section, name))


@dataclass
class GeometryConfig:
    """Phantom and target geometry.

    The phantom is a cube of ``phantom_size`` mm. The target is a cube of
    ``target_size`` mm centred laterally on the beam axis and in depth at
    ``phantom_size // 2``.

    Attributes:
        phantom_size: Phantom edge length (mm)
        target_size: Target edge length (mm)
        margin: Margin added around the target in depth (mm)
        beams: Number of beams (independent superposition only)

    """

    phantom_size: int = _yaml_default("geometry", "phantom_size")
    target_size: int = _yaml_default("geometry", "target_size")
    margin: int = _yaml_default("geometry", "margin")
    beams: int = _yaml_default("geometry", "beams")

    def validate(self) -> list[str]:
        """Validate geometry configuration.

        Returns:
            List of error messages (empty if valid)

        """
        errors = []

        if self.phantom_size <= 0:
            errors.append(f"phantom_size must be > 0, got {self.phantom_size}")
        if self.target_size <= 0:
            errors.append(f"target_size must be > 0, got {self.target_size}")
        if self.target_size > self.phantom_size - 2:
            errors.append(
                f"target_size ({self.target_size}) must be <= phantom_size - 2 "
                f"({self.phantom_size - 2})",
            )
        if self.margin < 0:
            errors.append(f"margin must be >= 0, got {self.margin}")
        if self.beams < 1:
            errors.append(f"beams must be >= 1, got {self.beams}")

        return errors


@dataclass
class PeakConfig:
    """Depth-dose (Bragg peak) synthesis configuration.

    Attributes:
        min_range, max_range: Nominal ranges of the synthesized peaks,
            half-open [min_range, max_range) in mm
        sd: Range straggling variance parameter of the Gaussian kernel
        distance_scaling: Constant k of the distance scaling term
        range_margin: Extra depths computed past max_range (mm)
        range_shift: Offset between kernel centre and stored range (mm)
        normalize_peaks: Scale every peak to a maximum of 100

    """

    min_range: int = _yaml_default("peaks", "min_range")
    max_range: int = _yaml_default("peaks", "max_range")
    sd: float = _yaml_default("peaks", "sd")
    distance_scaling: float = DEFAULT_DISTANCE_SCALING
    range_margin: int = DEFAULT_RANGE_MARGIN
    range_shift: int = DEFAULT_RANGE_SHIFT
    normalize_peaks: bool = DEFAULT_NORMALIZE_PEAKS

    def validate(self) -> list[str]:
        errors = []

        if self.min_range < 0:
            errors.append(f"min_range must be >= 0, got {self.min_range}")
        if self.max_range <= self.min_range:
            errors.append(
                f"max_range ({self.max_range}) must be > min_range ({self.min_range})",
            )
        if self.sd <= 0:
            errors.append(f"sd must be > 0, got {self.sd}")
        if self.range_margin < 0:
            errors.append(f"range_margin must be >= 0, got {self.range_margin}")

        return errors


@dataclass
class PenumbraConfig:
    """Lateral scatter configuration.

    Attributes:
        radius: Lateral extent of the penumbra table (mm)
        samples_per_mm: Integration samples per mm of path
        path_length: Path length integrated upstream of each depth (mm)
        depth_overrun: Depth past the nominal range a spot deposits dose (mm)

    """

    radius: int = DEFAULT_PENUMBRA_RADIUS
    samples_per_mm: int = DEFAULT_SAMPLES_PER_MM
    path_length: float = DEFAULT_PATH_LENGTH
    depth_overrun: int = DEFAULT_DEPTH_OVERRUN

    def validate(self) -> list[str]:
        errors = []

        if self.radius < 0:
            errors.append(f"radius must be >= 0, got {self.radius}")
        if self.samples_per_mm <= 0:
            errors.append(f"samples_per_mm must be > 0, got {self.samples_per_mm}")
        if self.path_length <= 0:
            errors.append(f"path_length must be > 0, got {self.path_length}")
        if self.depth_overrun < 0:
            errors.append(f"depth_overrun must be >= 0, got {self.depth_overrun}")

        return errors


@dataclass
class SolverConfig:
    """SOBP weight solver configuration.

    The correction and damping constants are empirical and were tuned for the
    default geometry.

    Attributes:
        max_error: Plateau flatness tolerance, max - min (percent)
        spot_spacing: Depth spacing of the iterated peaks (mm)
        seed_step: Depth step of the initial weight seeding (mm)
        deepest_peak_correction: Subtracted from the deepest seeded weight
        damping: Divisor of the proportional weight correction
        max_iterations: Iteration cap
        dose_lookahead: Depths summed past the deepest peak (mm)
        target_dose: Plateau dose (percent)

    """

    max_error: float = _yaml_default("solver", "max_error")
    spot_spacing: int = _yaml_default("solver", "spot_spacing")
    seed_step: int = DEFAULT_SEED_STEP
    deepest_peak_correction: float = DEFAULT_DEEPEST_PEAK_CORRECTION
    damping: float = DEFAULT_DAMPING
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    dose_lookahead: int = DEFAULT_DOSE_LOOKAHEAD
    target_dose: float = DEFAULT_TARGET_DOSE

    def validate(self) -> list[str]:
        errors = []

        if self.max_error <= 0:
            errors.append(f"max_error must be > 0, got {self.max_error}")
        if self.spot_spacing <= 0:
            errors.append(f"spot_spacing must be > 0, got {self.spot_spacing}")
        if self.seed_step <= 0:
            errors.append(f"seed_step must be > 0, got {self.seed_step}")
        if self.damping <= 0:
            errors.append(f"damping must be > 0, got {self.damping}")
        if self.max_iterations <= 0:
            errors.append(f"max_iterations must be > 0, got {self.max_iterations}")
        if self.dose_lookahead < 0:
            errors.append(f"dose_lookahead must be >= 0, got {self.dose_lookahead}")

        return errors


@dataclass
class ScanConfig:
    """Fixed scan-pattern template and scan-speed metadata.

    Attributes:
        x, y: Lateral spot grid of each layer, (start, stop inclusive, step) in mm
        z: Layer depths, (start, stop inclusive, step) in mm
        layer_time: Time to paint one layer (s)
        energy_change_time: Time to change energy between layers (s)
        paintings: Number of repaintings per layer

    """

    x: Tuple[int, int, int] = DEFAULT_TEMPLATE_X
    y: Tuple[int, int, int] = DEFAULT_TEMPLATE_Y
    z: Tuple[int, int, int] = DEFAULT_TEMPLATE_Z
    layer_time: float = DEFAULT_LAYER_TIME
    energy_change_time: float = DEFAULT_ENERGY_CHANGE_TIME
    paintings: Tuple[int, ...] = DEFAULT_PAINTINGS

    def validate(self) -> list[str]:
        errors = []

        for axis in ("x", "y", "z"):
            start, stop, step = getattr(self, axis)
            if step <= 0:
                errors.append(f"{axis} template step must be > 0, got {step}")
            if stop < start:
                errors.append(f"{axis} template stop ({stop}) must be >= start ({start})")
        if self.z[0] < 0:
            errors.append(f"template depths must be >= 0, got {self.z[0]}")

        return errors


@dataclass
class PlanConfig:
    """Complete plan configuration (SSOT).

    Example:
        >>> config = PlanConfig()
        >>> config.sobp_min, config.sobp_max
        (90, 210)

    Attributes:
        geometry: Phantom and target geometry
        peaks: Depth-dose synthesis parameters
        penumbra: Lateral scatter parameters
        solver: Weight solver parameters
        scan: Scan pattern template
        verbose: Report progress at INFO level from the orchestration layer

    """

    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    peaks: PeakConfig = field(default_factory=PeakConfig)
    penumbra: PenumbraConfig = field(default_factory=PenumbraConfig)
    solver: SolverConfig = field(default_factory=SolverConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    verbose: bool = False

    @property
    def sobp_max(self) -> int:
        """Deepest SOBP depth: distal target edge plus margin (mm)."""
        g = self.geometry
        return g.phantom_size // 2 + g.target_size // 2 + g.margin

    @property
    def sobp_min(self) -> int:
        """Shallowest SOBP depth: proximal target edge minus margin (mm)."""
        g = self.geometry
        return g.phantom_size // 2 - g.target_size // 2 - g.margin

    def validate(self) -> list[str]:
        """Validate complete plan configuration.

        Returns:
            List of error messages (empty if valid)

        """
        errors = []

        errors.extend(self.geometry.validate())
        errors.extend(self.peaks.validate())
        errors.extend(self.penumbra.validate())
        errors.extend(self.solver.validate())
        errors.extend(self.scan.validate())

        return errors

    def to_dict(self) -> dict:
        """Convert configuration to dictionary for serialization."""
        config_dict = asdict(self)
        for key in ("x", "y", "z", "paintings"):
            config_dict["scan"][key] = list(config_dict["scan"][key])
        return config_dict

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlanConfig":
        """Create configuration from dictionary.

        Values are taken as given; use
        :func:`pbs_dose.config.validation.resolve_plan_config` to apply the
        range checks of defaults.yaml.

        Args:
            data: Dictionary representation of configuration

        Returns:
            PlanConfig instance

        """
        scan = dict(data.get("scan", {}))
        for key in ("x", "y", "z", "paintings"):
            if key in scan:
                scan[key] = tuple(scan[key])

        return cls(
            geometry=GeometryConfig(**data.get("geometry", {})),
            peaks=PeakConfig(**data.get("peaks", {})),
            penumbra=PenumbraConfig(**data.get("penumbra", {})),
            solver=SolverConfig(**data.get("solver", {})),
            scan=ScanConfig(**scan),
            verbose=bool(data.get("verbose", False)),
        )


def create_default_config() -> PlanConfig:
    """Create a plan configuration with all defaults."""
    return PlanConfig()
