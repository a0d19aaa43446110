"""Bounded invocation of short helper commands.

Used for renice and `ffmpeg -version`. Transcode sessions themselves are
long-running and go through ffsession.executor.supervisor instead.
"""

from __future__ import annotations

import logging
import os
import subprocess  # nosec B404 - subprocess is required for tool invocation
import time
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)


def run_command(
    args: Sequence[str | os.PathLike], timeout: float = 10
) -> tuple[str, str, int]:
    """Run a helper command to completion and capture its output.

    Output is decoded with errors="replace"; stdin is /dev/null.

    Returns:
        Tuple of (stdout, stderr, returncode).

    Raises:
        FileNotFoundError: If the command does not exist.
        subprocess.TimeoutExpired: If it outlives timeout. subprocess.run()
            has already killed the child when this is raised.

    Example:
        >>> _, stderr, rc = run_command(["renice", "-n", "19", "-p", "1234"])
    """
    argv = [os.fspath(arg) for arg in args]
    name = Path(argv[0]).name if argv else "<empty>"
    started = time.monotonic()

    try:
        completed = subprocess.run(  # nosec B603 - caller validates args
            argv,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning(
            "%s did not finish within %ss",
            name,
            timeout,
            extra={"command": name, "timeout_seconds": timeout},
        )
        raise

    logger.debug(
        "%s exited with %d",
        name,
        completed.returncode,
        extra={
            "command": name,
            "returncode": completed.returncode,
            "elapsed_seconds": round(time.monotonic() - started, 3),
        },
    )
    return completed.stdout or "", completed.stderr or "", completed.returncode
