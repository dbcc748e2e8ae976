"""
Configuration helpers.

Every component takes a dataclass config (SLAMConfig, PlannerConfig,
AvoidanceConfig, NavigationConfig). This module holds what they share:
construction from plain dicts and YAML files, and the error raised for
invalid settings.
"""

import dataclasses
from typing import Any, Dict, Optional, Type, TypeVar

import yaml


T = TypeVar('T')


class ConfigurationError(ValueError):
    """Invalid configuration, raised at construction time."""


def config_from_dict(cls: Type[T], data: Optional[Dict[str, Any]]) -> T:
    """
    Build a dataclass config from a dict.

    Unknown keys are rejected rather than ignored so that a typo in a
    config file does not silently fall back to a default.
    """
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"{cls.__name__} expects a mapping, got {type(data).__name__}")

    known = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown {cls.__name__} option(s): {', '.join(unknown)}")

    return cls(**data)


def load_yaml(path: str) -> Dict[str, Any]:
    """Read a YAML mapping from disk (empty file -> {})."""
    with open(path, 'r') as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")
    return data


def require_positive(name: str, value: float):
    if not value > 0:
        raise ConfigurationError(f"{name} must be > 0, got {value}")


def require_non_negative(name: str, value: float):
    if not value >= 0:
        raise ConfigurationError(f"{name} must be >= 0, got {value}")
