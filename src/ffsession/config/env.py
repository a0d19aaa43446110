"""Typed access to FFSESSION_* environment variables.

The mapping is injectable so tests never have to touch os.environ:

    reader = EnvReader(env={"FFSESSION_TIMEOUT": "00:05:00"})
    reader.get_seconds("FFSESSION_TIMEOUT")  # 300.0

A value that fails to convert is logged at WARNING and replaced by the
default; a typo in the environment never stops a transcode. Empty values
count as unset.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TypeVar

from ffsession.tools.ffmpeg_progress import parse_timestamp

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _to_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValueError(value)


def _to_seconds(value: str) -> float:
    seconds = parse_timestamp(value)
    if seconds is None:
        raise ValueError(value)
    return seconds


class EnvReader:
    """Reads environment variables with type conversion."""

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def _raw(self, var: str) -> str | None:
        value = self._env.get(var)
        if value is None:
            return None
        return value.strip() or None

    def _convert(
        self,
        var: str,
        default: T | None,
        convert: Callable[[str], T],
        kind: str,
    ) -> T | None:
        raw = self._raw(var)
        if raw is None:
            return default
        try:
            return convert(raw)
        except ValueError:
            logger.warning("Invalid %s value for %s: %s", kind, var, raw)
            return default

    def get_str(self, var: str, default: str | None = None) -> str | None:
        raw = self._raw(var)
        return raw if raw is not None else default

    def get_int(self, var: str, default: int | None = None) -> int | None:
        return self._convert(var, default, int, "integer")

    def get_float(self, var: str, default: float | None = None) -> float | None:
        return self._convert(var, default, float, "float")

    def get_seconds(self, var: str, default: float | None = None) -> float | None:
        """Read a duration given as seconds ("90", "1.5") or HH:MM:SS(.ff)."""
        return self._convert(var, default, _to_seconds, "duration")

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        """Read a flag: 1/true/yes/on or 0/false/no/off, case-insensitive."""
        return self._convert(var, default, _to_bool, "boolean")

    def get_path(
        self, var: str, must_exist: bool = True, default: Path | None = None
    ) -> Path | None:
        """Read a path with ~ expanded.

        With must_exist, a path that does not exist is logged and the
        default is returned instead.
        """
        raw = self._raw(var)
        if raw is None:
            return default
        path = Path(raw).expanduser()
        if must_exist and not path.exists():
            logger.warning("%s points to a missing path: %s", var, raw)
            return default
        return path
