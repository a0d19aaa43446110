"""Shared CLI output helpers.

Session results are reported on stderr so that stdout stays free for
transcoded data when the output is "-".
"""

from __future__ import annotations

import sys
from typing import NoReturn

import click

from ffsession.exceptions import SnapshotCountError, StreamError
from ffsession.executor.types import Failed, Killed, Outcome, Success

from .exit_codes import ExitCode

# Diagnostic lines shown when a run fails
FAILURE_TAIL_LINES = 10


def error_exit(message: str, code: ExitCode | int) -> NoReturn:
    """Print an error message to stderr and exit with code."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(int(code))


def outcome_exit_code(outcome: Outcome) -> int:
    """Map a session outcome to a process exit code.

    A failed child's own exit code is passed through when it is a usable
    positive value.
    """
    if isinstance(outcome, Success):
        return ExitCode.SUCCESS
    if isinstance(outcome, Killed):
        return ExitCode.TIMEOUT if outcome.timed_out else ExitCode.INTERRUPTED
    if isinstance(outcome, Failed):
        if isinstance(outcome.error, SnapshotCountError):
            return ExitCode.SNAPSHOT_MISMATCH
        if isinstance(outcome.error, StreamError):
            return ExitCode.STREAM_ERROR
        if outcome.exit_code is not None and 0 < outcome.exit_code < 256:
            return outcome.exit_code
    return ExitCode.OPERATION_FAILED


def report_outcome(outcome: Outcome) -> None:
    """Print a one-line summary of the outcome, plus diagnostics on failure."""
    if isinstance(outcome, Success):
        summary = "Completed"
        if outcome.metrics is not None and outcome.metrics.total_frames:
            summary += f" ({outcome.metrics.total_frames} frames"
            if outcome.metrics.avg_fps:
                summary += f", {outcome.metrics.avg_fps:.1f} fps avg"
            summary += ")"
        click.echo(summary, err=True)
        return

    if isinstance(outcome, Killed):
        if outcome.timed_out:
            click.echo("Killed: ffmpeg exceeded the timeout", err=True)
        else:
            click.echo("Killed: run was cancelled", err=True)
        return

    if isinstance(outcome, Failed):
        if outcome.error is not None:
            click.echo(f"Failed: {outcome.error}", err=True)
        else:
            click.echo(f"Failed: ffmpeg exited with code {outcome.exit_code}", err=True)
        tail = outcome.stderr_tail.splitlines()[-FAILURE_TAIL_LINES:]
        for line in tail:
            click.echo(f"  {line}", err=True)
