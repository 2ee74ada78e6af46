"""Packaged configuration (defaults.yaml, logging.yaml) and the settings loader."""
