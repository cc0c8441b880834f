from dataclasses import dataclass, fields
from typing import Optional
import math
import os

import yaml

from tvdenoise.errors import InvalidParameterError


@dataclass
class Config:
    # Display intensities are in the range [0, display_scaling]
    display_scaling: float = 255.0
    # Number of discrepancy principle rounds when tuning lambda
    tune_iterations: int = 5
    jpeg_quality: int = 95
    # Coarse solves while tuning lambda
    coarse_tol: float = 1e-2
    coarse_max_iter: int = 40
    # Final solve at the selected lambda
    final_tol: float = 5e-4
    final_max_iter: int = 100
    # Split Bregman penalty parameters
    gamma1: float = 5.0
    gamma2: float = 8.0


def load_config(config_path):
    """Loads a configuration mapping from a YAML file."""
    try:
        with open(config_path, "r") as file:
            params = yaml.safe_load(file)
    except OSError as e:
        raise InvalidParameterError(f"Cannot read config file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise InvalidParameterError(f"Invalid YAML in {config_path}: {e}") from e
    if params is None:
        return {}
    if not isinstance(params, dict):
        raise InvalidParameterError(
            f"Config file {config_path} must contain a mapping of settings."
        )
    return params


def _coerce(name, field_type, value):
    """Converts a config value to the field type, rejecting lossy conversions."""
    if isinstance(value, bool):
        raise InvalidParameterError(f"{name} must be a number, got {value!r}.")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidParameterError(f"{name} must be a number, got {value!r}.") from None
    if not math.isfinite(number):
        raise InvalidParameterError(f"{name} must be finite, got {value!r}.")
    if field_type is int:
        if not number.is_integer():
            raise InvalidParameterError(f"{name} must be an integer, got {value!r}.")
        return int(number)
    return number


def get_config(config_path: Optional[str] = None, **overrides) -> Config:
    """
    Build the run configuration.

    Values from the YAML file at ``config_path`` (if any) replace the
    defaults, and keyword ``overrides`` replace both.
    """
    params = {}
    if config_path is not None:
        if not os.path.exists(config_path):
            raise InvalidParameterError(f"Config file {config_path} not found.")
        params.update(load_config(config_path))
    params.update({k: v for k, v in overrides.items() if v is not None})

    types = {f.name: f.type for f in fields(Config)}
    unknown = set(params) - set(types)
    if unknown:
        raise InvalidParameterError(
            f"Unknown configuration keys: {', '.join(sorted(unknown))}"
        )

    config = Config(**{k: _coerce(k, types[k], v) for k, v in params.items()})
    if config.display_scaling <= 0:
        raise InvalidParameterError("display_scaling must be positive.")
    if config.tune_iterations < 0:
        raise InvalidParameterError("tune_iterations must be non-negative.")
    if not 1 <= config.jpeg_quality <= 100:
        raise InvalidParameterError("JPEG quality must be between 1 and 100.")
    for name in ("coarse_tol", "final_tol", "gamma1", "gamma2"):
        if getattr(config, name) <= 0:
            raise InvalidParameterError(f"{name} must be positive.")
    for name in ("coarse_max_iter", "final_max_iter"):
        if getattr(config, name) < 1:
            raise InvalidParameterError(f"{name} must be at least 1.")
    return config
