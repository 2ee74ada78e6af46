"""Treasure-hunt game backend: geo engine, launch-data verification and scoring."""

__version__ = "0.1.0"
