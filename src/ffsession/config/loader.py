"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. Arguments passed directly to get_config()
2. Environment variables (FFSESSION_*)
3. Config file (~/.ffsession/config.toml)
4. Default values

Environment variables:
- FFSESSION_CONFIG_PATH: Path to config file (overrides default location)
- FFSESSION_FFMPEG_PATH: Path to ffmpeg executable
- FFSESSION_TIMEOUT: Default session timeout (seconds or HH:MM:SS)
- FFSESSION_PRIORITY: Default niceness for spawned processes
- FFSESSION_KILL_GRACE: Seconds to wait after SIGTERM before SIGKILL
- FFSESSION_LOG_LEVEL: Log level (debug, info, warning, error)
- FFSESSION_LOG_FORMAT: Log format (text, json)
- FFSESSION_LOG_FILE: Log file path
"""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from pathlib import Path
from typing import Any

from ffsession.config.env import EnvReader
from ffsession.config.models import (
    FFSessionConfig,
    LoggingConfig,
    SessionConfig,
    ToolPathsConfig,
)
from ffsession.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".ffsession"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict, float]] = {}
_config_cache_lock = threading.Lock()


def get_default_config_path() -> Path:
    """Get the default config file path.

    Can be overridden by FFSESSION_CONFIG_PATH environment variable.
    """
    env_path = os.environ.get("FFSESSION_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_FILE


def load_toml_file(path: Path, *, strict: bool = False) -> dict[str, Any]:
    """Parse a TOML file.

    Args:
        path: Path to the TOML file.
        strict: If True, raise ConfigError on read or parse failures.

    Returns:
        Parsed dict. Empty dict if the file doesn't exist, or on failure
        in non-strict mode.
    """
    if not path.exists():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        if strict:
            raise ConfigError(f"Cannot parse config file {path}: {e}") from e
        logger.warning("Ignoring unparseable config file %s: %s", path, e)
        return {}


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from TOML file.

    Results are cached with mtime-based invalidation. Thread-safe.

    Args:
        path: Path to config file. If None, uses default location.
        strict: If True, raise ConfigError on parse failures.

    Returns:
        Parsed configuration dict. Empty dict if file doesn't exist.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        current_mtime = 0.0

    with _config_cache_lock:
        if path in _config_cache:
            cached_config, cached_mtime = _config_cache[path]
            if current_mtime == cached_mtime:
                return cached_config

        result = load_toml_file(path, strict=strict)
        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def _pick(*values: Any) -> Any:
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def _as_path(value: Any) -> Path | None:
    if value is None or value == "":
        return None
    return Path(str(value)).expanduser()


_TYPE_NAMES = {
    float: "a number",
    int: "an integer",
    bool: "true or false",
    str: "a string",
}


def _table(file_config: dict[str, Any], section: str) -> dict[str, Any]:
    value = file_config.get(section, {})
    if not isinstance(value, dict):
        raise ValueError(f"[{section}] must be a table, got {value!r}")
    return value


def _typed(table: dict[str, Any], section: str, key: str, kind: type) -> Any:
    """Fetch a config file value, checking its TOML type.

    Integers are accepted where a number is expected. TOML booleans are
    never accepted as numbers.

    Raises:
        ValueError: If the value is present with the wrong type.
    """
    value = table.get(key)
    if value is None:
        return None
    if kind is float:
        valid = isinstance(value, (int, float)) and not isinstance(value, bool)
    elif kind is int:
        valid = isinstance(value, int) and not isinstance(value, bool)
    else:
        valid = isinstance(value, kind)
    if not valid:
        raise ValueError(
            f"[{section}] {key} must be {_TYPE_NAMES[kind]}, got {value!r}"
        )
    return value


def get_config(
    config_path: Path | None = None,
    # Explicit overrides (highest precedence)
    ffmpeg_path: Path | None = None,
    timeout: float | None = None,
    priority: int | None = None,
    log_level: str | None = None,
    log_format: str | None = None,
    log_file: Path | None = None,
    # Optional dependency injection for testing
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> FFSessionConfig:
    """Get ffsession configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides FFSESSION_CONFIG_PATH).
        ffmpeg_path: Override for ffmpeg path.
        timeout: Override for the default session timeout.
        priority: Override for the default niceness.
        log_level: Override for the log level.
        log_format: Override for the log format.
        log_file: Override for the log file.
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, raise ConfigError on config file parse failures.

    Returns:
        FFSessionConfig with merged configuration.

    Raises:
        ConfigError: When strict=True and the config file cannot be parsed.
        ValueError: When a file value has the wrong type, or a merged value
            fails validation.
    """
    reader = env_reader or EnvReader()
    file_config = load_config_file(config_path, strict=strict)

    tools_file = _table(file_config, "tools")
    session_file = _table(file_config, "session")
    logging_file = _table(file_config, "logging")

    defaults = SessionConfig()
    tools = ToolPathsConfig(
        ffmpeg=_pick(
            ffmpeg_path,
            reader.get_path("FFSESSION_FFMPEG_PATH", must_exist=False),
            _as_path(_typed(tools_file, "tools", "ffmpeg", str)),
        ),
    )
    session = SessionConfig(
        default_timeout=_pick(
            timeout,
            reader.get_seconds("FFSESSION_TIMEOUT"),
            _typed(session_file, "session", "default_timeout", float),
        ),
        default_priority=_pick(
            priority,
            reader.get_int("FFSESSION_PRIORITY"),
            _typed(session_file, "session", "default_priority", int),
        ),
        kill_grace=_pick(
            reader.get_seconds("FFSESSION_KILL_GRACE"),
            _typed(session_file, "session", "kill_grace", float),
            defaults.kill_grace,
        ),
        poll_interval=_pick(
            _typed(session_file, "session", "poll_interval", float),
            defaults.poll_interval,
        ),
        tail_lines=_pick(
            _typed(session_file, "session", "tail_lines", int), defaults.tail_lines
        ),
        chunk_size=_pick(
            _typed(session_file, "session", "chunk_size", int), defaults.chunk_size
        ),
    )

    logging_defaults = LoggingConfig()
    logging_config = LoggingConfig(
        level=_pick(
            log_level,
            reader.get_str("FFSESSION_LOG_LEVEL"),
            _typed(logging_file, "logging", "level", str),
            logging_defaults.level,
        ),
        format=_pick(
            log_format,
            reader.get_str("FFSESSION_LOG_FORMAT"),
            _typed(logging_file, "logging", "format", str),
            logging_defaults.format,
        ),
        file=_pick(
            log_file,
            reader.get_path("FFSESSION_LOG_FILE", must_exist=False),
            _as_path(_typed(logging_file, "logging", "file", str)),
        ),
        include_stderr=_pick(
            _typed(logging_file, "logging", "include_stderr", bool),
            logging_defaults.include_stderr,
        ),
        max_bytes=_pick(
            _typed(logging_file, "logging", "max_bytes", int),
            logging_defaults.max_bytes,
        ),
        backup_count=_pick(
            _typed(logging_file, "logging", "backup_count", int),
            logging_defaults.backup_count,
        ),
    )

    return FFSessionConfig(tools=tools, session=session, logging=logging_config)
