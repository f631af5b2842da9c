"""Parameter Specifications from defaults.yaml

Every user-facing plan parameter is declared once in defaults.yaml as
``section -> name -> {default, min, max, type, units}``. This module reads
that file and answers lookups by (section, name). It has no dependencies on
other config modules to avoid circular imports.

Import Policy:
    from pbs_dose.config.yaml_loader import get_parameter_spec, parameter_default

DO NOT use: from pbs_dose.config.yaml_loader import *
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULTS_PATH = Path(__file__).with_name("defaults.yaml")

ParameterSpec = Dict[str, Any]


@lru_cache(maxsize=None)
def _read_specs(path: Path) -> Dict[str, Dict[str, ParameterSpec]]:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    for section, params in data.items():
        for name, spec in params.items():
            if "default" not in spec:
                raise ValueError(f"{path.name}: {section}.{name} has no default")
            if spec.get("type", "float") not in ("int", "float"):
                raise ValueError(f"{path.name}: {section}.{name} has unknown type {spec['type']!r}")
    return data


def parameter_specs() -> Dict[str, Dict[str, ParameterSpec]]:
    """All declared parameters, keyed by section then name.

    Example:
        >>> parameter_specs()['geometry']['margin']['max']
        20
    """
    return {
        section: {name: dict(spec) for name, spec in params.items()}
        for section, params in _read_specs(DEFAULTS_PATH).items()
    }


def is_declared(section: str, name: str) -> bool:
    """Whether ``section.name`` has a range declared in defaults.yaml."""
    return name in _read_specs(DEFAULTS_PATH).get(section, {})


def get_parameter_spec(section: str, name: str) -> ParameterSpec:
    """Get the full specification (default, min, max, type) of one parameter.

    Raises:
        KeyError: If the parameter is not declared in defaults.yaml.
    """
    if not is_declared(section, name):
        raise KeyError(f"Unknown configuration parameter: {section}.{name}")
    return dict(_read_specs(DEFAULTS_PATH)[section][name])


def parameter_default(section: str, name: str) -> Any:
    """Documented default of ``section.name``."""
    return get_parameter_spec(section, name)["default"]
