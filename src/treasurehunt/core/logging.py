"""
Logging configuration.

The handler/formatter layout comes from the packaged `config/logging.yaml`; the level
comes from settings (`TREASUREHUNT_LOG_LEVEL`) unless the caller passes one (CLI `--log-level`).
"""

from __future__ import annotations

import copy
import logging
import logging.config

from treasurehunt.config.settings import get_logging_config, get_settings


def _level_name(level: str) -> str:
    name = level.strip().upper()
    if not isinstance(logging.getLevelName(name), int):
        raise ValueError(f"Unknown log level '{level}'")
    return name


def configure_logging(level: str | None = None) -> None:
    """Apply the packaged dictConfig with the effective level on root and every handler."""
    name = _level_name(level or get_settings().app.log_level)
    # The YAML mapping is cached; never mutate the shared copy.
    config = copy.deepcopy(get_logging_config())

    config.setdefault("root", {})["level"] = name
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict):
            handler["level"] = name

    logging.config.dictConfig(config)
