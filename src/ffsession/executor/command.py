"""FFmpeg command building.

This module turns a TranscodeConfig into the argument vector handed to the
supervisor. Option resolution (presets, codecs, sizes) happens upstream;
the config already carries ordered, resolved options.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .types import TranscodeConfig

logger = logging.getLogger(__name__)


def build_ffmpeg_command(
    config: TranscodeConfig,
    ffmpeg_path: Path | str,
    input_locator: str,
    output_locator: str,
) -> list[str]:
    """Build the complete ffmpeg argument vector.

    Layout: ffmpeg [input_args] -i <input> [args] [-y] <output>

    Args:
        config: Session configuration.
        ffmpeg_path: Path to the ffmpeg executable.
        input_locator: Input path, or "pipe:0" for a stream source.
        output_locator: Output path, or "pipe:1" for a stream sink.

    Returns:
        List of command arguments, binary first.
    """
    cmd = [str(ffmpeg_path)]
    cmd.extend(config.input_args)
    cmd.extend(["-i", input_locator])
    cmd.extend(config.args)
    if config.overwrite:
        cmd.append("-y")
    cmd.append(output_locator)

    logger.debug("Built ffmpeg command: %s", " ".join(cmd))
    return cmd


def build_probe_command(ffmpeg_path: Path | str, input_locator: str) -> list[str]:
    """Build an `ffmpeg -i <input>` invocation used to read input metadata.

    ffmpeg exits non-zero because no output is given, but it prints the
    input analysis block (format, duration, streams) first.
    """
    return [str(ffmpeg_path), "-hide_banner", "-i", input_locator]
