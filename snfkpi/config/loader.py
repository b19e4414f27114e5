import copy
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .defaults import DEFAULT_CONFIG

# section -> key -> True: must be > 0, False: must be >= 0
_POSITIVE_SETTINGS = {
    "estimation": {"nursing_wage_ratio": True, "blended_hourly_rate": True},
    "occupancy": {"default_days_in_month": True},
    "denominators": {"payer_days_epsilon": False, "skilled_reconciliation_tolerance": False},
    "benchmarks": {"min_cohort_size": True, "outlier_k": True},
}


# -------------------------------------------------
# MAIN CONFIG LOADER
# -------------------------------------------------
def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load a YAML config and merge it over the engine defaults.

    Rules:
    - Every section is optional; omitted keys keep their default
    - The file must hold a mapping
    - Numeric settings are checked once here, not at every KPI
    """
    overrides: Dict[str, Any] = {}

    if path:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            overrides = yaml.safe_load(f) or {}

        if not isinstance(overrides, dict):
            raise ValueError(f"Config file must contain a YAML mapping: {config_path}")

    return merge_config(overrides)


def merge_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Defaults + overrides, nested sections merged key by key."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    for section, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(config.get(section), dict):
            config[section].update(value)
        else:
            config[section] = value

    _check_numbers(config)
    return config


def _check_numbers(config: Dict[str, Any]) -> None:
    for section, keys in _POSITIVE_SETTINGS.items():
        values = config.get(section)
        if not isinstance(values, dict):
            raise ValueError(f"Config section '{section}' must be a mapping")

        for key, strict in keys.items():
            value = values.get(key)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{section}.{key} must be a number, got {value!r}")
            if value < 0 or (strict and value == 0):
                raise ValueError(f"{section}.{key} must be {'> 0' if strict else '>= 0'}, got {value}")


def get_setting(config: Optional[Dict[str, Any]], section: str, key: str) -> Any:
    """
    Section/key lookup that falls back to DEFAULT_CONFIG,
    so partial dicts passed by callers are always safe.
    """
    if config:
        value = (config.get(section) or {}).get(key)
        if value is not None:
            return value
    return DEFAULT_CONFIG[section][key]
