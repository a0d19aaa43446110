"""ffsession: supervised ffmpeg transcode sessions.

Runs the ffmpeg binary as a child process, streams caller data in and out,
turns its diagnostic output into typed events, and resolves every run to
exactly one outcome.
"""

from ffsession.exceptions import (
    FFSessionError,
    InvalidConfigurationError,
    InvalidSinkError,
    InvalidSourceError,
    SinkStreamError,
    SnapshotCountError,
    SnapshotOptionsError,
    SourceStreamError,
    SpawnError,
    StreamError,
)
from ffsession.executor import (
    CANCEL_REASON_CODE,
    TIMEOUT_REASON_CODE,
    CodecDetected,
    DurationKnown,
    ErrorDetected,
    Failed,
    Killed,
    Outcome,
    ProgressUpdate,
    SnapshotOptions,
    Success,
    TranscodeConfig,
    TranscodeSession,
)

__version__ = "0.1.0"

__all__ = [
    "CANCEL_REASON_CODE",
    "TIMEOUT_REASON_CODE",
    "CodecDetected",
    "DurationKnown",
    "ErrorDetected",
    "FFSessionError",
    "Failed",
    "InvalidConfigurationError",
    "InvalidSinkError",
    "InvalidSourceError",
    "Killed",
    "Outcome",
    "ProgressUpdate",
    "SinkStreamError",
    "SnapshotCountError",
    "SnapshotOptions",
    "SnapshotOptionsError",
    "SourceStreamError",
    "SpawnError",
    "StreamError",
    "Success",
    "TranscodeConfig",
    "TranscodeSession",
    "__version__",
]
