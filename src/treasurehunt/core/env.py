"""
Environment + project-root helpers.

The launch secret (bot token) usually lives in a repo-local `.env` file, and the
API/CLI/tests run from different working directories. This module provides:
- `env()`: read a `TREASUREHUNT_*` variable (blank values count as unset)
- `load_dotenv_if_present()`: best-effort `.env` loading (never overrides the process env)
- `get_project_root()` / `resolve_project_path()`: anchor relative paths (e.g. the score file)
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TREASUREHUNT_"
_ROOT_MARKERS = (".env", ".git", "pyproject.toml")


def env(name: str, *fallbacks: str) -> str | None:
    """Return `TREASUREHUNT_<name>`, else the first set fallback variable (unprefixed)."""
    for key in (f"{ENV_PREFIX}{name}", *fallbacks):
        value = os.getenv(key)
        if value is not None and value.strip():
            return value.strip()
    return None


@lru_cache
def get_project_root() -> Path:
    """Return the nearest ancestor of the CWD holding a root marker (cached)."""
    override = env("PROJECT_ROOT")
    if override:
        return Path(override).expanduser().resolve()

    cwd = Path.cwd().resolve()
    for candidate in (cwd, *cwd.parents):
        if any((candidate / marker).exists() for marker in _ROOT_MARKERS):
            return candidate
    return cwd


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load `.env` once (explicit `TREASUREHUNT_ENV_FILE` first); return its path or None."""
    explicit = env("ENV_FILE")
    env_path = Path(explicit).expanduser().resolve() if explicit else get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Resolve a possibly-relative path against the project root."""
    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    return (get_project_root() / p).resolve()
