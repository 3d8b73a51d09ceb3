"""Engine configuration loaded from ``gridcalc.yaml``, with defaults."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from gridcalc.formulas.context import DEFAULT_MAX_DEPTH

CONFIG_FILENAME = "gridcalc.yaml"

DEFAULT_CONFIG = {
    "max_depth": DEFAULT_MAX_DEPTH,
    "display_precision": 10,
    "logging_fsync": False,
    "log_dir": None,  # default: events are discarded
}


def _validate(config: dict[str, Any]) -> dict[str, Any]:
    for key in ("max_depth", "display_precision"):
        value = config.get(key)
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValueError(f"{key} must be a positive integer, got {value!r}")
    return config


def load_config(path: Path | str | None = None) -> dict[str, Any]:
    """Load configuration from ``gridcalc.yaml``, with defaults.

    Args:
        path: A directory containing ``gridcalc.yaml``, the config file
            itself, or None for defaults only.  A missing file is not an
            error.

    Returns:
        Merged configuration dict.  Unknown keys are kept.

    Raises:
        ValueError: If the file is not a mapping or a value is invalid.
    """
    config = dict(DEFAULT_CONFIG)
    if path is None:
        return config

    config_path = Path(path)
    if config_path.is_dir():
        config_path = config_path / CONFIG_FILENAME
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path}: expected a mapping at top level")
        config.update(user_config)

    return _validate(config)


def get_max_depth(config: dict[str, Any]) -> int:
    """Return the formula nesting limit from *config*."""
    return int(config.get("max_depth", DEFAULT_MAX_DEPTH))


def get_display_precision(config: dict[str, Any]) -> int:
    """Return the number of significant digits used for display."""
    return int(config.get("display_precision", DEFAULT_CONFIG["display_precision"]))
