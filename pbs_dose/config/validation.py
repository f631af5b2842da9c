"""
Configuration Validation Utilities

This module provides range coercion for user-supplied plan parameters,
invariant checking, and safety checks.

Out-of-range or unparsable values never fail a run: they are replaced by the
documented default from defaults.yaml and a ConfigurationWarning is issued.

Import Policy:
    from pbs_dose.config.validation import resolve_plan_config, validate_config

DO NOT use: from pbs_dose.config.validation import *
"""

from __future__ import annotations

import json
import logging
import warnings
from dataclasses import fields
from pathlib import Path
from typing import Any, List, Mapping, Sequence, Tuple, Union

import yaml

from pbs_dose.config.plan_config import (
    GeometryConfig,
    PeakConfig,
    PenumbraConfig,
    PlanConfig,
    ScanConfig,
    SolverConfig,
)
from pbs_dose.config.yaml_loader import get_parameter_spec, is_declared, parameter_default

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


class ConfigurationWarning(Warning):
    """Warning for configuration values replaced by their defaults."""

    pass


def _warn(message: str) -> None:
    logger.warning(message)
    warnings.warn(message, ConfigurationWarning, stacklevel=3)


def _parse(value: Any, kind: str) -> Union[int, float, None]:
    """Parse a raw value as int or float, returning None if it cannot be parsed."""
    if isinstance(value, bool):
        return None
    try:
        if kind == "int":
            if isinstance(value, float):
                return int(value) if value.is_integer() else None
            return int(str(value).strip())
        return float(str(value).strip())
    except (TypeError, ValueError):
        return None


def coerce_parameter(section: str, name: str, value: Any) -> Union[int, float]:
    """Coerce one user-supplied parameter into its documented range.

    Args:
        section: Section of defaults.yaml (e.g. 'geometry')
        name: Parameter name (e.g. 'phantom_size')
        value: Raw value (number or string)

    Returns:
        The parsed value, or the default if the value is unparsable or
        outside [min, max].

    Example:
        >>> coerce_parameter('geometry', 'margin', 50)   # warns
        10
    """
    spec = get_parameter_spec(section, name)
    default = spec["default"]
    parsed = _parse(value, spec.get("type", "float"))

    if parsed is None:
        _warn(f"{name} value {value!r} could not be parsed, set to default: {default}")
        return default

    low = spec.get("min")
    high = spec.get("max")
    if (low is not None and parsed < low) or (high is not None and parsed > high):
        _warn(
            f"{name} ({parsed}) outside valid range ({low}-{high}), "
            f"set to default: {default}"
        )
        return default

    return parsed


_SECTIONS = {
    "geometry": GeometryConfig,
    "peaks": PeakConfig,
    "penumbra": PenumbraConfig,
    "solver": SolverConfig,
    "scan": ScanConfig,
}


def _parse_field(value: Any, annotation: str) -> Any:
    """Parse a raw value by the annotated type of an undeclared field.

    Returns None if the value does not fit the annotation.
    """
    if annotation == "bool":
        return value if isinstance(value, bool) else None
    if annotation in ("int", "float"):
        return _parse(value, annotation)
    if annotation.startswith("Tuple["):
        if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
            return None
        items = [_parse(item, "int") for item in value]
        if any(item is None for item in items):
            return None
        if "..." not in annotation and len(items) != annotation.count(",") + 1:
            return None
        return tuple(items)
    return value


def _resolve_section(section: str, raw: Mapping[str, Any]) -> dict[str, Any]:
    field_types = {f.name: str(f.type) for f in fields(_SECTIONS[section])}
    resolved: dict[str, Any] = {}

    for name, value in raw.items():
        if name not in field_types:
            _warn(f"Unknown parameter {section}.{name} ignored")
        elif is_declared(section, name):
            resolved[name] = coerce_parameter(section, name, value)
        else:
            parsed = _parse_field(value, field_types[name])
            if parsed is None:
                _warn(
                    f"{section}.{name} value {value!r} is not a valid "
                    f"{field_types[name]}, default kept"
                )
            else:
                resolved[name] = parsed

    return resolved


def resolve_plan_config(values: Mapping[str, Any] | None = None) -> PlanConfig:
    """Build a PlanConfig from raw nested values, substituting defaults.

    Parameters declared in defaults.yaml are range-checked with
    :func:`coerce_parameter`; other fields are parsed by their annotated
    type. Unknown keys, malformed sections and unparsable values are dropped
    with a ConfigurationWarning so that the defaults apply. A target larger
    than ``phantom_size - 2`` is replaced by its default.

    Args:
        values: Nested dictionary, e.g. ``{'geometry': {'phantom_size': 200}}``

    Returns:
        PlanConfig with every declared parameter in range.
    """
    if values is None:
        values = {}
    if not isinstance(values, Mapping):
        _warn(f"Plan configuration must be a mapping, got {type(values).__name__}; using defaults")
        values = {}

    data: dict[str, Any] = {}

    for section, raw in values.items():
        if section == "verbose":
            if isinstance(raw, bool):
                data["verbose"] = raw
            else:
                _warn(f"verbose value {raw!r} is not a boolean, default kept")
        elif section not in _SECTIONS:
            _warn(f"Unknown configuration section {section!r} ignored")
        elif not isinstance(raw, Mapping):
            _warn(f"Section {section!r} must be a mapping, got {raw!r}; using defaults")
        else:
            data[section] = _resolve_section(section, raw)

    config = PlanConfig.from_dict(data)

    geometry = config.geometry
    if geometry.target_size > geometry.phantom_size - 2:
        default = parameter_default("geometry", "target_size")
        if default > geometry.phantom_size - 2:
            default = geometry.phantom_size - 2
        _warn(
            f"target_size ({geometry.target_size}) larger than phantom_size - 2 "
            f"({geometry.phantom_size - 2}), set to: {default}"
        )
        geometry.target_size = default

    return config


def load_plan_config(config_path: Union[str, Path]) -> PlanConfig:
    """Load a plan configuration from a YAML or JSON file.

    Args:
        config_path: Path to a .yaml, .yml or .json file

    Returns:
        Resolved PlanConfig

    Raises:
        ValueError: If the file format is not supported
        ConfigurationError: If the file cannot be parsed
    """
    config_path = Path(config_path)

    try:
        if config_path.suffix in (".yaml", ".yml"):
            with open(config_path, encoding="utf-8") as f:
                config_dict = yaml.safe_load(f)
        elif config_path.suffix == ".json":
            with open(config_path, encoding="utf-8") as f:
                config_dict = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {config_path.suffix}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot parse {config_path}: {e}") from e

    return resolve_plan_config(config_dict)


def validate_config(config: PlanConfig, raise_on_error: bool = True) -> Tuple[bool, List[str]]:
    """Validate a plan configuration.

    Args:
        config: PlanConfig to validate
        raise_on_error: If True, raise ConfigurationError on validation failure

    Returns:
        Tuple of (is_valid, error_messages)

    Raises:
        ConfigurationError: If validation fails and raise_on_error=True
    """
    errors = config.validate()

    if errors:
        if raise_on_error:
            raise ConfigurationError(
                f"Configuration validation failed with {len(errors)} error(s):\n"
                + "\n".join(f"  - {err}" for err in errors)
            )
        return False, errors

    return True, []


def warn_if_unsafe(config: PlanConfig) -> List[str]:
    """Check for configuration choices that will make a run fail or degrade.

    Warnings are issued via Python's warnings module.

    Args:
        config: PlanConfig to check

    Returns:
        List of warning messages (empty if no warnings)
    """
    warnings_list = []

    if config.sobp_max >= config.peaks.max_range:
        warnings_list.append(
            f"SOBP max depth ({config.sobp_max} mm) is not covered by the "
            f"depth-dose table (max_range {config.peaks.max_range} mm). "
            "Increase max_range before solving weights."
        )

    if config.sobp_min < config.peaks.min_range:
        warnings_list.append(
            f"SOBP min depth ({config.sobp_min} mm) is below min_range "
            f"({config.peaks.min_range} mm)."
        )

    if config.solver.spot_spacing % config.solver.seed_step != 0:
        warnings_list.append(
            f"spot_spacing ({config.solver.spot_spacing}) is not a multiple of "
            f"seed_step ({config.solver.seed_step}); unseeded peaks start at weight 1."
        )

    for warning_msg in warnings_list:
        logger.warning(warning_msg)
        warnings.warn(warning_msg, ConfigurationWarning, stacklevel=2)

    return warnings_list
