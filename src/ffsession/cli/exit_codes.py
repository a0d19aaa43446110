"""Centralized exit codes for all CLI commands.

Exit code ranges:
    0: Success
    10-19: Validation errors (arguments, config)
    30-39: Tool/dependency errors
    40-49: Operation errors
    60-69: Warning states
    124, 130: Conventional timeout and interrupt codes
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for ffsession CLI commands."""

    # Success (0)
    SUCCESS = 0

    # Validation errors (10-19)
    INVALID_ARGUMENTS = 10
    CONFIG_ERROR = 11

    # Tool/dependency errors (30-39)
    TOOL_NOT_AVAILABLE = 30

    # Operation errors (40-49)
    OPERATION_FAILED = 40
    STREAM_ERROR = 41
    SNAPSHOT_MISMATCH = 42

    # Warning states (60-69)
    WARNINGS = 60
    CRITICAL = 61

    # Same code as coreutils `timeout`
    TIMEOUT = 124
    INTERRUPTED = 130
