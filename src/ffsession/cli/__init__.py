"""ffsession command line: transcode, snapshots and doctor."""

import logging
from pathlib import Path

import click

from ffsession.config import get_config
from ffsession.config.models import LOG_LEVELS
from ffsession.logging import configure_logging

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(package_name="ffsession")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level for ffsession's own messages (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write logs to this rotating file instead of stderr.",
)
@click.option(
    "--log-json",
    is_flag=True,
    help="Emit logs as JSON objects.",
)
@click.pass_context
def main(
    ctx: click.Context,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Run and supervise ffmpeg transcodes."""
    ctx.ensure_object(dict)

    # Tests inject a ready-made config
    if "config" not in ctx.obj:
        try:
            ctx.obj["config"] = get_config(
                log_level=log_level,
                log_file=log_file,
                log_format="json" if log_json else None,
            )
        except ValueError as e:
            from ffsession.cli.exit_codes import ExitCode
            from ffsession.cli.output import error_exit

            error_exit(f"Invalid configuration: {e}", ExitCode.CONFIG_ERROR)

    configure_logging(ctx.obj["config"].logging)
    logger.debug("Running command %s", ctx.invoked_subcommand)


# Deferred so the command modules can import from this package
def _register_commands() -> None:
    from ffsession.cli.doctor import doctor_command
    from ffsession.cli.snapshots import snapshots_command
    from ffsession.cli.transcode import transcode_command

    for command in (transcode_command, snapshots_command, doctor_command):
        main.add_command(command)


_register_commands()
