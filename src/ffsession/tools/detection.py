"""External tool detection.

This module locates the ffmpeg binary (and the renice helper) either from
a configured path or from PATH, and reads the ffmpeg version for the
doctor command.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess  # nosec B404 - subprocess is required for tool detection
from dataclasses import dataclass
from pathlib import Path

from ffsession.core.subprocess_utils import run_command

logger = logging.getLogger(__name__)

# Timeout for version detection commands (seconds)
DETECTION_TIMEOUT = 10


@dataclass(frozen=True)
class ToolInfo:
    """Detection result for one external tool."""

    name: str
    path: Path | None = None
    version: str | None = None

    def is_available(self) -> bool:
        return self.path is not None


def find_tool(name: str, configured_path: Path | None = None) -> Path | None:
    """Find a tool executable.

    Args:
        name: Tool name (e.g., "ffmpeg").
        configured_path: Optional configured path override.

    Returns:
        Path to tool executable, or None if not found.
    """
    if configured_path:
        if configured_path.is_file():
            return configured_path
        logger.warning(
            "Configured path for %s is not a file: %s", name, configured_path
        )

    which_result = shutil.which(name)
    if which_result:
        return Path(which_result)

    return None


def require_tool(name: str, configured_path: Path | None = None) -> Path:
    """Find a tool executable or fail.

    Raises:
        FileNotFoundError: If the tool cannot be found.
    """
    path = find_tool(name, configured_path)
    if path is None:
        raise FileNotFoundError(f"Required tool '{name}' not found on PATH")
    return path


def parse_ffmpeg_version(output: str) -> str | None:
    """Extract the version from `ffmpeg -version` output.

    Handles release ("ffmpeg version 6.1.1 ...") and nightly
    ("ffmpeg version N-112345-g...") builds.
    """
    match = re.search(r"ffmpeg version (\S+)", output)
    return match.group(1) if match else None


def detect_ffmpeg(configured_path: Path | None = None) -> ToolInfo:
    """Locate ffmpeg and read its version."""
    path = find_tool("ffmpeg", configured_path)
    if path is None:
        return ToolInfo(name="ffmpeg")

    try:
        stdout, _, returncode = run_command(
            [path, "-version"], timeout=DETECTION_TIMEOUT
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("Could not query ffmpeg version: %s", e)
        return ToolInfo(name="ffmpeg", path=path)

    version = parse_ffmpeg_version(stdout) if returncode == 0 else None
    return ToolInfo(name="ffmpeg", path=path, version=version)


def detect_renice() -> ToolInfo:
    """Locate the renice utility used for priority adjustment."""
    return ToolInfo(name="renice", path=find_tool("renice"))
