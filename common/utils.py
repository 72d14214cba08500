"""Common utility functions."""

from __future__ import annotations

import os
import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Union

import yaml


_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ms|us|h|m|s)')

_DURATION_UNITS = {
    'us': 0.000001,
    'ms': 0.001,
    's': 1,
    'm': 60,
    'h': 3600,
}


def generate_id(prefix: str = "") -> str:
    """Generate a unique identifier."""
    timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
    short_uuid = uuid.uuid4().hex[:8]
    if prefix:
        return f"{prefix}_{timestamp}_{short_uuid}"
    return f"{timestamp}_{short_uuid}"


def generate_run_id() -> str:
    """Generate a load test run ID."""
    return generate_id("run")


def parse_duration(value: Union[str, int, float]) -> float:
    """Parse a duration (e.g., '10s', '1m30s', '500ms', 5) to seconds."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise ValueError(f"Duration must not be negative: {value}")
        return float(value)

    text = value.strip().lower()
    if not text:
        raise ValueError("Empty duration")

    # Bare numbers are seconds
    if re.match(r'^\d+(?:\.\d+)?$', text):
        return float(text)

    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"Invalid duration format: {value}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos != len(text):
        raise ValueError(f"Invalid duration format: {value}")

    return total


def format_duration(seconds: float) -> str:
    """Format seconds to human-readable duration."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"

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


def get_env(key: str, default: Any = None, required: bool = False) -> Any:
    """Get environment variable with optional default and required check."""
    value = os.environ.get(key, default)
    if required and value is None:
        raise ValueError(f"Required environment variable not set: {key}")
    return value


def ensure_dir(path: str | Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path

