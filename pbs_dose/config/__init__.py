"""Configuration Module - Single Source of Truth for Plan Parameters

Default Configuration (loaded from defaults.yaml):
    from pbs_dose.config import parameter_default

    phantom_size = parameter_default('geometry', 'phantom_size')

Recommended Usage:
    from pbs_dose.config import resolve_plan_config

    # Out-of-range values are replaced by defaults with a ConfigurationWarning
    config = resolve_plan_config({'geometry': {'phantom_size': 200, 'target_size': 60}})

    # Or from a file
    from pbs_dose.config import load_plan_config
    config = load_plan_config("plan.yaml")

Import Policy:
    DO NOT use: from pbs_dose.config import *

Submodules:
    yaml_loader: Parameter specifications from defaults.yaml
    defaults: Numerical model constants
    plan_config: Configuration dataclasses (GeometryConfig, PeakConfig, ...)
    validation: Range coercion and validation utilities
"""

from pbs_dose.config.yaml_loader import (
    get_parameter_spec,
    is_declared,
    parameter_default,
    parameter_specs,
)
from pbs_dose.config.plan_config import (
    GeometryConfig,
    PeakConfig,
    PenumbraConfig,
    PlanConfig,
    ScanConfig,
    SolverConfig,
    create_default_config,
)
from pbs_dose.config.validation import (
    ConfigurationError,
    ConfigurationWarning,
    coerce_parameter,
    load_plan_config,
    resolve_plan_config,
    validate_config,
    warn_if_unsafe,
)


__all__ = [
    # Config classes
    "GeometryConfig",
    "PeakConfig",
    "PenumbraConfig",
    "SolverConfig",
    "ScanConfig",
    "PlanConfig",
    "create_default_config",
    # Validation
    "ConfigurationError",
    "ConfigurationWarning",
    "coerce_parameter",
    "resolve_plan_config",
    "load_plan_config",
    "validate_config",
    "warn_if_unsafe",
    # YAML defaults access
    "get_parameter_spec",
    "is_declared",
    "parameter_default",
    "parameter_specs",
]
