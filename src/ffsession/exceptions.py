"""Custom exceptions for ffmpeg session supervision.

This module provides specific exception types for the session lifecycle,
enabling callers to handle different error conditions appropriately.
Configuration errors are raised before any process is spawned; stream
errors are reported on the session outcome rather than raised.
"""

from __future__ import annotations

from collections.abc import Sequence


class FFSessionError(Exception):
    """Base exception for ffsession errors.

    All session-related exceptions inherit from this class, allowing callers
    to catch all errors with a single except clause if desired.
    """


class SpawnError(FFSessionError):
    """Raised when the external binary cannot be located or launched.

    Attributes:
        argv: The argument vector that was being executed.
        cause: The underlying OS error, if any.
    """

    def __init__(self, argv: Sequence[str], cause: BaseException | None = None) -> None:
        """Initialize the exception.

        Args:
            argv: The argument vector that was being executed.
            cause: The underlying OS error, if any.
        """
        self.argv = list(argv)
        self.cause = cause
        binary = self.argv[0] if self.argv else "<empty argv>"
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Cannot spawn {binary}{detail}")


class InvalidConfigurationError(FFSessionError):
    """Raised when a transcode configuration cannot be executed."""


class InvalidSourceError(InvalidConfigurationError):
    """Raised when the source is neither a path nor a readable stream."""


class InvalidSinkError(InvalidConfigurationError):
    """Raised when the output is neither a path nor a writable stream."""


class StreamError(FFSessionError):
    """Base class for failures of caller-provided streams during a session."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class SourceStreamError(StreamError):
    """Raised when reading the caller's source stream fails."""


class SinkStreamError(StreamError):
    """Raised when writing to the caller's output stream fails."""


class SnapshotOptionsError(FFSessionError):
    """Raised when snapshot options are invalid or cannot be resolved."""


class SnapshotCountError(FFSessionError):
    """Raised when fewer snapshot files exist than were requested.

    Attributes:
        expected: Number of snapshots requested.
        found: Number of non-empty snapshot files present.
    """

    def __init__(self, expected: int, found: int) -> None:
        self.expected = expected
        self.found = found
        super().__init__(f"Expected {expected} snapshot(s), found {found}")


class ConfigError(FFSessionError):
    """Raised when the configuration file cannot be parsed (strict mode)."""
