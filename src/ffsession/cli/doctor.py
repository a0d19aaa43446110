"""ffsession doctor command for checking external tool health."""

from __future__ import annotations

import click

from ffsession.cli.exit_codes import ExitCode
from ffsession.tools import ToolInfo, detect_ffmpeg, detect_renice


def _format_status(available: bool) -> str:
    """Format status for display."""
    return "✓" if available else "✗"


def _format_version(tool: ToolInfo) -> str:
    if not tool.is_available():
        return "not found"
    return tool.version or "unknown version"


@click.command("doctor")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show tool paths.",
)
@click.pass_context
def doctor_command(ctx: click.Context, verbose: bool) -> None:
    """Check that ffmpeg and renice are available.

    Exit codes:
      0 - All tools available
      60 - renice missing (priority hints will be ignored)
      61 - ffmpeg missing
    """
    config = ctx.obj["config"]

    ffmpeg = detect_ffmpeg(config.tools.ffmpeg)
    renice = detect_renice()

    click.echo("ffsession External Tool Health Check")
    click.echo("=" * 40)

    for tool in (ffmpeg, renice):
        path_info = f" ({tool.path})" if tool.path and verbose else ""
        click.echo(
            f"  {_format_status(tool.is_available())} {tool.name}: "
            f"{_format_version(tool)}{path_info}"
        )

    if not ffmpeg.is_available():
        click.echo("    └─ Install ffmpeg: https://ffmpeg.org/download.html")
        ctx.exit(ExitCode.CRITICAL)
    if not renice.is_available():
        click.echo("    └─ renice not found; --nice will have no effect")
        ctx.exit(ExitCode.WARNINGS)
    ctx.exit(ExitCode.SUCCESS)
