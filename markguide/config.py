"""Configuration loading for the markguide app."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


@dataclass(frozen=True)
class AppConfig:
    """Runtime configuration values."""

    stable_sec: float
    cooldown_sec: float
    tick_hz: float
    language_code: str
    min_column_height: float
    verbose: bool
    timeline: bool
    timeline_path: Optional[str]
    dry_run: bool


DEFAULT_STABLE_SEC = 3.0
DEFAULT_COOLDOWN_SEC = 10.0
DEFAULT_TICK_HZ = 30.0
DEFAULT_LANGUAGE_CODE = "en-US"
DEFAULT_MIN_COLUMN_HEIGHT = 0.1

CONFIG_PATH = Path.home() / ".markguide" / "config.yaml"


def _load_yaml_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load YAML config file. Returns empty dict if not found."""
    p = path or CONFIG_PATH
    if not p.exists():
        return {}
    try:
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (yaml.YAMLError, OSError):
        return {}


def _read_positive_float(value: str, default: float, name: str) -> float:
    try:
        parsed = float(value)
    except ValueError:
        return default
    if parsed <= 0:
        raise ValueError(f"{name} must be > 0.")
    return parsed


def _read_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _setting(env_key: str, yaml_defaults: Dict[str, Any], yaml_key: str, default: Any) -> str:
    """Env var first, then the YAML ``defaults`` section, then the built-in default."""
    env_value = os.getenv(env_key, "").strip()
    if env_value:
        return env_value
    yaml_value = yaml_defaults.get(yaml_key)
    if yaml_value is not None and str(yaml_value).strip():
        return str(yaml_value).strip()
    return str(default)


def load_config(dry_run: bool = False, path: Optional[Path] = None) -> AppConfig:
    """Load configuration from ~/.markguide/config.yaml + environment variables.

    YAML provides defaults; env vars override everything.
    """
    yaml_cfg = _load_yaml_config(path)
    yaml_defaults: Dict[str, Any] = yaml_cfg.get("defaults", {}) or {}

    stable_sec = _read_positive_float(
        _setting("MARKGUIDE_STABLE_SEC", yaml_defaults, "stable_sec", DEFAULT_STABLE_SEC),
        DEFAULT_STABLE_SEC,
        "MARKGUIDE_STABLE_SEC",
    )
    cooldown_sec = _read_positive_float(
        _setting(
            "MARKGUIDE_COOLDOWN_SEC", yaml_defaults, "cooldown_sec", DEFAULT_COOLDOWN_SEC
        ),
        DEFAULT_COOLDOWN_SEC,
        "MARKGUIDE_COOLDOWN_SEC",
    )
    tick_hz = _read_positive_float(
        _setting("MARKGUIDE_TICK_HZ", yaml_defaults, "tick_hz", DEFAULT_TICK_HZ),
        DEFAULT_TICK_HZ,
        "MARKGUIDE_TICK_HZ",
    )
    min_column_height = _read_positive_float(
        _setting(
            "MARKGUIDE_MIN_COLUMN_HEIGHT",
            yaml_defaults,
            "min_column_height",
            DEFAULT_MIN_COLUMN_HEIGHT,
        ),
        DEFAULT_MIN_COLUMN_HEIGHT,
        "MARKGUIDE_MIN_COLUMN_HEIGHT",
    )
    language_code = _setting(
        "MARKGUIDE_LANGUAGE", yaml_defaults, "language", DEFAULT_LANGUAGE_CODE
    )

    verbose = _read_bool(os.getenv("MARKGUIDE_VERBOSE", ""))
    timeline = _read_bool(os.getenv("MARKGUIDE_TIMELINE", ""))
    timeline_path = os.getenv("MARKGUIDE_TIMELINE_PATH", "").strip() or None

    return AppConfig(
        stable_sec=stable_sec,
        cooldown_sec=cooldown_sec,
        tick_hz=tick_hz,
        language_code=language_code,
        min_column_height=min_column_height,
        verbose=verbose,
        timeline=timeline,
        timeline_path=timeline_path,
        dry_run=dry_run,
    )
