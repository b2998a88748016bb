"""
Configuration loading for git_tracker.

See :mod:`git_tracker.config.loader` for the file format and defaults.
"""

from .loader import Config, ConfigCorruptError, ConfigError, ConfigStore, load_config  # noqa: F401
