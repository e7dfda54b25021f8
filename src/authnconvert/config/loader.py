# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/authnconvert/config/loader.py

import logging
import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional

from .models import ConverterSettings

log = logging.getLogger("authnconvert")

CONFIG_ENV_VAR = "AUTHN_CONVERT_CONFIG"


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


def _find_config_file(explicit: Optional[str | Path]) -> Path | None:
    """
    Locate the settings file:

    1. explicit --config path (must exist)
    2. AUTHN_CONVERT_CONFIG environment variable
    """
    if explicit:
        p = Path(explicit)
        if not p.is_file():
            raise FileNotFoundError(f"config file {p} does not exist")
        return p

    env = os.environ.get(CONFIG_ENV_VAR)
    if env:
        p = Path(env)
        if p.is_file():
            return p
        log.warning("%s=%s does not exist, skipping", CONFIG_ENV_VAR, env)
    return None


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    return yaml.safe_load(expanded) or {}


def load_settings(
    path: Optional[str | Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ConverterSettings:
    """
    Build ConverterSettings from defaults < config file < CLI overrides.

    Override values of None or "" leave the file value in place, so unset
    CLI flags never clobber configuration.
    """
    data: dict = {}
    cfg_path = _find_config_file(path)
    if cfg_path:
        log.debug("Loading settings from %s", cfg_path)
        data = _load_yaml(cfg_path)
    if overrides:
        _deep_merge(data, overrides)
    return ConverterSettings.model_validate(data)
