"""
Configuration for experiment container defaults.

Supports YAML and JSON config files. The loaded values become process-wide
defaults used where an accessor argument is left as None.

Examples:
    >>> from pathlib import Path
    >>> from cellexperiment.config import config_from_file, set_config
    >>> set_config(config_from_file(Path("cellexperiment.yaml")))
"""

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict

import yaml

__all__ = [
    'ExperimentConfig',
    'load_config',
    'config_from_file',
    'get_config',
    'set_config',
]


@dataclass(frozen=True)
class ExperimentConfig:
    """
    Defaults for container accessors.

    Attributes:
        alt_exp_with_coldata: Attach the parent's sample metadata to alternative
            experiments returned by alt_exp() when with_coldata is not given
        unnamed_prefix: Prefix for synthesized names of unnamed registry entries
            (entry i becomes f"{prefix}{i}", 1-based)
        warn_deprecated: Emit DeprecationWarning from legacy size-factor and
            spike-in accessors
    """
    alt_exp_with_coldata: bool = False
    unnamed_prefix: str = "unnamed"
    warn_deprecated: bool = True


_config = ExperimentConfig()


_FIELD_TYPES = {f.name: f.type for f in fields(ExperimentConfig)}


def _read_mapping(config_path: Path) -> Dict[str, Any]:
    suffix = config_path.suffix.lower()
    if suffix not in ('.yaml', '.yml', '.json'):
        raise ValueError(f"Unsupported config format: {suffix}. Use .yaml, .yml, or .json")

    with open(config_path, 'r') as f:
        try:
            values = json.load(f) if suffix == '.json' else yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in config file {config_path}: {e}")

    if values is None:
        return {}
    if not isinstance(values, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping at top level")
    return values


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Read container defaults from a YAML or JSON file.

    Only ExperimentConfig fields may appear, each with a value of the field's
    type; an empty file yields an empty mapping.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Mapping of ExperimentConfig field name -> value, for the fields set
        in the file

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If the format is unsupported, the file does not parse,
            or a key or value does not fit ExperimentConfig
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    values = _read_mapping(config_path)

    unknown = sorted(set(values) - set(_FIELD_TYPES))
    if unknown:
        raise ValueError(f"Unknown config keys: {unknown}. Valid keys: {sorted(_FIELD_TYPES)}")
    for key, value in values.items():
        expected = _FIELD_TYPES[key]
        if not isinstance(value, expected):
            raise ValueError(
                f"Config key '{key}' must be {expected.__name__}, got {type(value).__name__}"
            )
    if values.get('unnamed_prefix') == "":
        raise ValueError("Config key 'unnamed_prefix' must not be empty")

    return values


def config_from_file(config_path: Path) -> ExperimentConfig:
    """
    Build an ExperimentConfig from a YAML or JSON file.

    Keys not present in the file keep their defaults.
    """
    return replace(ExperimentConfig(), **load_config(config_path))


def get_config() -> ExperimentConfig:
    """Current process-wide defaults."""
    return _config


def set_config(config: ExperimentConfig | None = None, **overrides: Any) -> ExperimentConfig:
    """
    Replace the process-wide defaults.

    Parameters:
        config: New configuration (None keeps the current one)
        **overrides: Individual fields to change on top of config

    Returns:
        The previous configuration, so callers can restore it
    """
    global _config
    previous = _config
    base = config if config is not None else _config
    _config = replace(base, **overrides) if overrides else base
    return previous
