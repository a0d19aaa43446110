"""Configuration data models for ffsession."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

LOG_LEVELS = ("debug", "info", "warning", "error")
LOG_FORMATS = ("text", "json")


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths."""

    # None = look up on PATH
    ffmpeg: Path | None = None


@dataclass
class SessionConfig:
    """Defaults applied to every transcode session."""

    # Wall-clock limit in seconds (None = no limit)
    default_timeout: float | None = None

    # Niceness applied to the child (None = leave unchanged)
    default_priority: int | None = None

    # Seconds between SIGTERM and SIGKILL
    kill_grace: float = 2.0

    # Granularity of the completion/timeout/cancel wait loop
    poll_interval: float = 0.05

    # Diagnostic lines retained for failure reporting
    tail_lines: int = 50

    # Read/write size for stream pumps
    chunk_size: int = 65536

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.default_timeout is not None and self.default_timeout < 0:
            raise ValueError(
                f"default_timeout must be >= 0, got {self.default_timeout}"
            )
        if self.default_priority is not None and not (
            -20 <= self.default_priority <= 19
        ):
            raise ValueError(
                f"default_priority must be between -20 and 19, "
                f"got {self.default_priority}"
            )
        if self.kill_grace < 0:
            raise ValueError(f"kill_grace must be >= 0, got {self.kill_grace}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {self.poll_interval}")
        if self.tail_lines < 1:
            raise ValueError(f"tail_lines must be >= 1, got {self.tail_lines}")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")


@dataclass
class LoggingConfig:
    """Where and how ffsession writes its own log records.

    level and format are normalized to lower case.
    """

    level: str = "info"
    format: str = "text"

    # None = stderr only
    file: Path | None = None
    include_stderr: bool = False

    # Rotation of the log file
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5

    def __post_init__(self) -> None:
        self.level = self.level.lower()
        self.format = self.format.lower()
        if self.level not in LOG_LEVELS:
            raise ValueError(
                f"level must be one of {', '.join(LOG_LEVELS)}, got {self.level!r}"
            )
        if self.format not in LOG_FORMATS:
            raise ValueError(
                f"format must be one of {', '.join(LOG_FORMATS)}, got {self.format!r}"
            )
        if self.max_bytes < 0 or self.backup_count < 0:
            raise ValueError("max_bytes and backup_count must be >= 0")


@dataclass
class FFSessionConfig:
    """Main configuration container."""

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
