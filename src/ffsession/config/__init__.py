"""Configuration module for ffsession.

Provides configuration models and loading with precedence:
explicit arguments > environment variables > config file > defaults.
"""

from ffsession.config.env import EnvReader
from ffsession.config.loader import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_CONFIG_FILE,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from ffsession.config.models import (
    FFSessionConfig,
    LoggingConfig,
    SessionConfig,
    ToolPathsConfig,
)

__all__ = [
    "DEFAULT_CONFIG_DIR",
    "DEFAULT_CONFIG_FILE",
    "EnvReader",
    "FFSessionConfig",
    "LoggingConfig",
    "SessionConfig",
    "ToolPathsConfig",
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "load_config_file",
]
