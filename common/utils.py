"""Common utility functions."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml


def normalize_source(value: Any) -> Any:
    """Turn store-native nested maps and arrays into plain dicts and lists.

    Keys are converted to ``str`` at every level.
    """
    if isinstance(value, Mapping):
        return {str(key): normalize_source(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_source(item) for item in value]
    return value


def format_duration(seconds: float) -> str:
    """Format seconds to human-readable duration."""
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    elif seconds < 3600:
        minutes = seconds // 60
        secs = seconds % 60
        return f"{minutes}m {secs}s"
    else:
        hours = seconds // 3600
        minutes = (seconds % 3600) // 60
        secs = seconds % 60
        return f"{hours}h {minutes}m {secs}s"


def load_yaml(path: str | Path) -> dict:
    """Load a YAML file."""
    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result
