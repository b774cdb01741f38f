# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/trine/config/loader.py

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import BootstrapConfig

log = logging.getLogger("trine")

CONFIG_ENV = "TRINE_CONFIG"
OVERRIDES_ENV = "TRINE_OVERRIDES_FILE"


class ConfigError(ValueError):
    """Raised when a configuration file cannot be read or validated."""


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        else:
            if value not in (None, ""):
                base[key] = value
    return base


def _find_overrides_file(config_path: Path) -> Path | None:
    """
    Locate an overrides file using this priority:

    1. TRINE_OVERRIDES_FILE environment variable (explicit override)
    2. overrides.yaml in the same directory as the config
    """
    env = os.environ.get(OVERRIDES_ENV)
    if env:
        p = Path(env)
        if p.is_file():
            return p
        log.warning("%s=%s does not exist, skipping", OVERRIDES_ENV, env)
        return None

    p = config_path.parent / "overrides.yaml"
    if p.is_file():
        return p

    return None


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    try:
        raw = path.read_text()
    except OSError as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    expanded = os.path.expandvars(raw)
    try:
        data = yaml.safe_load(expanded) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def load_config(path: str | Path | None = None) -> BootstrapConfig:
    """
    Load and validate a bootstrap config.

    Resolution order for the config file:
      1. explicit ``path`` (the ``--config`` option)
      2. ``TRINE_CONFIG`` environment variable
      3. none: built-in defaults (three localhost helpers, ipa images)

    An ``overrides.yaml`` next to the config (or ``TRINE_OVERRIDES_FILE``) is
    deep-merged on top before validation, which keeps site specific values
    such as the builder command out of the shared file.
    """
    if path is None:
        env = os.environ.get(CONFIG_ENV)
        if not env:
            log.debug("No config file given, using defaults")
            return BootstrapConfig()
        path = env

    path = Path(path)
    data = _load_yaml(path)

    overrides_path = _find_overrides_file(path)
    if overrides_path:
        log.debug("Merging overrides from %s", overrides_path)
        _deep_merge(data, _load_yaml(overrides_path))

    try:
        return BootstrapConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"invalid config {path}:\n{exc}") from exc
