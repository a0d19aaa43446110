"""CLI command for running a single transcode session."""

from __future__ import annotations

import logging
import shlex

import click

from ffsession.cli.exit_codes import ExitCode
from ffsession.cli.output import error_exit, outcome_exit_code, report_outcome
from ffsession.exceptions import InvalidConfigurationError, SpawnError
from ffsession.executor import (
    CodecDetected,
    ProgressUpdate,
    TranscodeConfig,
    TranscodeSession,
)

logger = logging.getLogger(__name__)

STDIO_MARKER = "-"


def split_args(values: tuple[str, ...]) -> list[str]:
    """Split repeated option values shell-style.

    `-o "-c:v libx264" -o "-crf 23"` yields four arguments.
    """
    args: list[str] = []
    for value in values:
        args.extend(shlex.split(value))
    return args


class ProgressPrinter:
    """Renders progress on a single rewritten stderr line."""

    def __init__(self) -> None:
        self.printed = False

    def codec(self, event: CodecDetected) -> None:
        click.echo(f"Input: video={event.video} audio={event.audio}", err=True)

    def progress(self, event: ProgressUpdate) -> None:
        if event.percent is not None:
            position = f"{event.percent:5.1f}%"
        else:
            position = f"{event.current_time:.1f}s"
        speed = f" speed={event.speed}" if event.speed else ""
        click.echo(f"\r{position}{speed}   ", err=True, nl=False)
        self.printed = True

    def finish(self) -> None:
        if self.printed:
            click.echo("", err=True)


@click.command("transcode")
@click.argument("source")
@click.argument("output")
@click.option(
    "--timeout",
    type=click.FloatRange(min=0),
    default=None,
    help="Kill ffmpeg after this many seconds.",
)
@click.option(
    "--nice",
    "priority",
    type=click.IntRange(-20, 19),
    default=None,
    help="Niceness for the ffmpeg process.",
)
@click.option(
    "-o",
    "--output-option",
    "output_options",
    multiple=True,
    help="Output option(s) for ffmpeg, e.g. -o '-c:v libx264'. Repeatable.",
)
@click.option(
    "-i",
    "--input-option",
    "input_options",
    multiple=True,
    help="Input option(s) placed before -i. Repeatable.",
)
@click.option(
    "--no-overwrite",
    is_flag=True,
    default=False,
    help="Do not pass -y to ffmpeg.",
)
@click.option(
    "--progress/--no-progress",
    default=None,
    help="Show progress on stderr (default: when stderr is a terminal).",
)
@click.pass_context
def transcode_command(
    ctx: click.Context,
    source: str,
    output: str,
    timeout: float | None,
    priority: int | None,
    output_options: tuple[str, ...],
    input_options: tuple[str, ...],
    no_overwrite: bool,
    progress: bool | None,
) -> None:
    """Transcode SOURCE into OUTPUT.

    Use "-" as SOURCE to read from stdin and as OUTPUT to write to stdout.

    Exit codes: 0 on success, 124 on timeout, ffmpeg's own exit code when
    it fails.
    """
    settings = ctx.obj["config"]

    try:
        config = TranscodeConfig(
            source=(
                click.get_binary_stream("stdin") if source == STDIO_MARKER else source
            ),
            output=(
                click.get_binary_stream("stdout") if output == STDIO_MARKER else output
            ),
            args=split_args(output_options),
            input_args=split_args(input_options),
            timeout=timeout,
            priority=priority,
            overwrite=not no_overwrite,
        )
    except ValueError as e:
        error_exit(str(e), ExitCode.INVALID_ARGUMENTS)

    session = TranscodeSession(settings=settings)
    if progress is None:
        progress = click.get_text_stream("stderr").isatty()
    printer = ProgressPrinter()
    if progress:
        session.on_codec_data(printer.codec).on_progress(printer.progress)

    try:
        outcome = session.run(config)
    except SpawnError as e:
        error_exit(str(e), ExitCode.TOOL_NOT_AVAILABLE)
    except InvalidConfigurationError as e:
        error_exit(str(e), ExitCode.INVALID_ARGUMENTS)
    except KeyboardInterrupt:
        printer.finish()
        error_exit("Interrupted", ExitCode.INTERRUPTED)

    printer.finish()
    report_outcome(outcome)
    ctx.exit(outcome_exit_code(outcome))
