# src/treasurehunt/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/treasurehunt/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `TREASUREHUNT_LAUNCH_SECRET`, `BOT_TOKEN`)
- an external YAML file via `TREASUREHUNT_CONFIG_PATH`

Design rule:
- Tuning knobs (find threshold, radius schedule, heat scale) live in YAML, not in game logic.
- The launch secret is only ever read from the environment or an operator-owned config file.
"""

from __future__ import annotations

from datetime import date
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, SecretStr

from treasurehunt.core.env import env, load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `treasurehunt.config`."""
    text = resources.files("treasurehunt.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "TreasureHunt"
    log_level: str = "INFO"


class HuntSettings(BaseModel):
    find_threshold_m: float = Field(5.0, gt=0)
    default_radius_m: float = Field(100.0, gt=0)
    heat_max_distance_m: float = Field(100.0, gt=0)
    launch_date: date = date(2024, 11, 23)
    base_radius_m: float = Field(20.0, gt=0)
    radius_step_m: float = Field(5.0, ge=0)
    max_radius_m: float | None = Field(default=None, gt=0)


class LaunchSettings(BaseModel):
    secret: SecretStr | None = None
    # None disables the auth_date freshness check.
    max_age_seconds: int | None = Field(default=None, gt=0)


class StoreSettings(BaseModel):
    backend: Literal["memory", "json"] = "memory"
    path: str = ".data/scores.json"


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    hunt: HuntSettings = Field(default_factory=HuntSettings)
    launch: LaunchSettings = Field(default_factory=LaunchSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = env("LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    secret = env("LAUNCH_SECRET", "BOT_TOKEN")
    if secret:
        data.setdefault("launch", {})["secret"] = secret

    max_age = env("LAUNCH_MAX_AGE_SECONDS")
    if max_age:
        data.setdefault("launch", {})["max_age_seconds"] = int(max_age)

    store_backend = env("STORE_BACKEND")
    if store_backend:
        data.setdefault("store", {})["backend"] = store_backend

    store_path = env("STORE_PATH")
    if store_path:
        data.setdefault("store", {})["path"] = store_path

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = env("CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
