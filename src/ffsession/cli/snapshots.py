"""CLI command for extracting still images."""

from __future__ import annotations

from pathlib import Path

import click

from ffsession.cli.exit_codes import ExitCode
from ffsession.cli.output import error_exit, outcome_exit_code, report_outcome
from ffsession.cli.transcode import STDIO_MARKER
from ffsession.exceptions import (
    InvalidConfigurationError,
    SnapshotOptionsError,
    SpawnError,
)
from ffsession.executor import Success, TranscodeSession
from ffsession.executor.snapshots import DEFAULT_FILENAME


@click.command("snapshots")
@click.argument("source")
@click.argument(
    "destination",
    type=click.Path(file_okay=False, path_type=Path),
)
@click.option(
    "--count",
    "-n",
    type=click.IntRange(min=1),
    default=None,
    help="Number of snapshots (default: 1, or one per timemark).",
)
@click.option(
    "--timemark",
    "-t",
    "timemarks",
    multiple=True,
    help="Position: seconds, HH:MM:SS.ff, or a percentage like 50%. Repeatable.",
)
@click.option(
    "--size",
    "-s",
    default=None,
    help="Image size WxH; use ? on one side to keep the aspect ratio.",
)
@click.option(
    "--filename",
    "-f",
    default=DEFAULT_FILENAME,
    show_default=True,
    help="Name pattern: %s seconds, %i index, %f source name, %r size.",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0),
    default=None,
    help="Kill ffmpeg after this many seconds.",
)
@click.pass_context
def snapshots_command(
    ctx: click.Context,
    source: str,
    destination: Path,
    count: int | None,
    timemarks: tuple[str, ...],
    size: str | None,
    filename: str,
    timeout: float | None,
) -> None:
    """Save still images from SOURCE into DESTINATION.

    Without --timemark, snapshots are spread evenly across the input.
    """
    options = {
        "count": count if count is not None or timemarks else 1,
        "timemarks": list(timemarks) or None,
        "filename": filename,
        "size": size,
    }
    input_source = click.get_binary_stream("stdin") if source == STDIO_MARKER else source

    session = TranscodeSession(settings=ctx.obj["config"])
    try:
        outcome = session.take_snapshots(
            input_source, options, destination, timeout=timeout
        )
    except SnapshotOptionsError as e:
        error_exit(str(e), ExitCode.INVALID_ARGUMENTS)
    except SpawnError as e:
        error_exit(str(e), ExitCode.TOOL_NOT_AVAILABLE)
    except InvalidConfigurationError as e:
        error_exit(str(e), ExitCode.INVALID_ARGUMENTS)

    report_outcome(outcome)
    if isinstance(outcome, Success):
        for path in outcome.artifacts:
            click.echo(str(path))
    ctx.exit(outcome_exit_code(outcome))
