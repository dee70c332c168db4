"""YAML config loader with environment variable interpolation."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from consul_insight.config.models import InsightConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".consul-insight.yaml"

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _interpolate_env(value: str) -> str:
    """Expand ${VAR} and ${VAR:-default}; unset variables without a default are left as written."""

    def _replace(match: re.Match[str]) -> str:
        name, sep, default = match.group(1).partition(":-")
        name = name.strip()
        if sep:
            return os.environ.get(name, default)
        return os.environ.get(name, match.group(0))

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(data: Any) -> Any:
    if isinstance(data, str):
        return _interpolate_env(data)
    if isinstance(data, dict):
        return {key: _interpolate_recursive(item) for key, item in data.items()}
    if isinstance(data, list):
        return [_interpolate_recursive(item) for item in data]
    return data


def find_config_file(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default cwd) looking for .consul-insight.yaml."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path | None = None) -> InsightConfig:
    """Load and validate .consul-insight.yaml, applying env-var interpolation."""
    config_path = path or find_config_file()
    if not config_path or not config_path.exists():
        raise FileNotFoundError(
            f"Could not find {CONFIG_FILENAME}. Create one from {CONFIG_FILENAME}.example or pass --path."
        )
    with config_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid configuration in {config_path}: top level must be a mapping")
    try:
        return InsightConfig(**_interpolate_recursive(raw))
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration in {config_path}: {exc}") from exc


def load_config_or_default(path: Path | None = None) -> InsightConfig:
    """Like load_config, but a missing file yields defaults (Consul address/token from the environment)."""
    try:
        return load_config(path)
    except FileNotFoundError:
        if path is not None:
            raise
        logger.debug("No %s found, using defaults", CONFIG_FILENAME)
        return InsightConfig()
