"""Session data types: configuration, events, and outcomes.

This module defines the immutable values that flow through a transcode
session. Events are produced by the output parser while the child runs;
exactly one Outcome is produced when the session ends.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import IO, Union

from ffsession.tools.ffmpeg_metrics import FFmpegMetricsSummary

# Reason code distinguishing timeout-triggered termination from exit codes
TIMEOUT_REASON_CODE = -99

# Reason code for termination requested through cancel()
CANCEL_REASON_CODE = -98

Locator = Union[str, os.PathLike, IO[bytes]]


@dataclass(frozen=True)
class TranscodeConfig:
    """Immutable description of one ffmpeg invocation.

    Attributes:
        source: Input path, or a readable binary stream piped to stdin.
        output: Output path, or a writable binary stream fed from stdout.
        args: Output options, placed between the input and the output.
        input_args: Input options, placed before -i.
        timeout: Wall-clock limit in seconds (None = session default).
        priority: Niceness hint for the child, -20..19 (None = unchanged).
        overwrite: Pass -y so existing outputs are replaced.
    """

    source: Locator
    output: Locator
    args: tuple[str, ...] = ()
    input_args: tuple[str, ...] = ()
    timeout: float | None = None
    priority: int | None = None
    overwrite: bool = True

    def __post_init__(self) -> None:
        # A bare string would otherwise be split into characters
        for name in ("args", "input_args"):
            if isinstance(getattr(self, name), (str, bytes)):
                raise ValueError(f"{name} must be a sequence of options, not a string")
        # Freeze caller lists so the config cannot change during a run
        object.__setattr__(self, "args", tuple(str(a) for a in self.args))
        object.__setattr__(
            self, "input_args", tuple(str(a) for a in self.input_args)
        )
        if self.timeout is not None and self.timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {self.timeout}")
        if self.priority is not None and not (-20 <= self.priority <= 19):
            raise ValueError(
                f"priority must be between -20 and 19, got {self.priority}"
            )


class SupervisorState(Enum):
    """Lifecycle states of a supervised process."""

    UNSTARTED = "unstarted"
    RUNNING = "running"
    COMPLETED = "completed"
    KILLED = "killed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            SupervisorState.COMPLETED,
            SupervisorState.KILLED,
            SupervisorState.FAILED,
        )


# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True)
class CodecDetected:
    """Audio and video codecs of the input, emitted at most once."""

    audio: str
    video: str
    format: str | None = None
    duration: float | None = None
    audio_details: str | None = None
    video_details: str | None = None


@dataclass(frozen=True)
class ProgressUpdate:
    """Periodic encoding position report."""

    frames: int | None
    current_time: float
    percent: float | None = None
    fps: float | None = None
    bitrate: str | None = None
    speed: str | None = None


@dataclass(frozen=True)
class DurationKnown:
    """Total input duration in seconds."""

    duration: float


@dataclass(frozen=True)
class ErrorDetected:
    """A diagnostic line matching a known fatal-error pattern."""

    message: str


Event = Union[CodecDetected, ProgressUpdate, DurationKnown, ErrorDetected]


# =============================================================================
# Outcomes
# =============================================================================


@dataclass(frozen=True)
class Outcome:
    """Terminal result of a session."""

    @property
    def succeeded(self) -> bool:
        return False


@dataclass(frozen=True)
class Success(Outcome):
    """The child exited with code zero."""

    exit_code: int = 0
    stdout_tail: str = ""
    stderr_tail: str = ""
    metrics: FFmpegMetricsSummary | None = None
    artifacts: tuple[Path, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        return True


@dataclass(frozen=True)
class Killed(Outcome):
    """The child was terminated by the supervisor (timeout or cancel)."""

    reason_code: int = TIMEOUT_REASON_CODE
    stderr_tail: str = ""

    @property
    def timed_out(self) -> bool:
        return self.reason_code == TIMEOUT_REASON_CODE


@dataclass(frozen=True)
class Failed(Outcome):
    """The child exited non-zero, or a caller stream failed."""

    exit_code: int | None = None
    stderr_tail: str = ""
    error: BaseException | None = None
