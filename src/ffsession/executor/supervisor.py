"""Process supervision for the external ffmpeg binary.

ProcessSupervisor spawns ffmpeg, owns its lifecycle, and resolves exactly
one outcome per process. Natural exit, timeout, and cancellation race in a
single wait loop on the handle's cancel event; whichever is observed first
wins, and every later resolution attempt returns the recorded outcome.
A child that has already exited keeps its natural outcome even when a
cancel request is pending.

State machine:
    UNSTARTED -> RUNNING -> {COMPLETED, KILLED, FAILED}
"""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - subprocess is required for FFmpeg invocation
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

from ffsession.core.subprocess_utils import run_command
from ffsession.exceptions import SpawnError
from ffsession.tools.detection import require_tool

from .bridge import classify_source
from .types import (
    CANCEL_REASON_CODE,
    TIMEOUT_REASON_CODE,
    Failed,
    Killed,
    Outcome,
    Success,
    SupervisorState,
    TranscodeConfig,
)

logger = logging.getLogger(__name__)

# Timeout for the renice helper (seconds)
RENICE_TIMEOUT = 5


@dataclass
class ProcessHandle:
    """A spawned child and its resolution state.

    Created by ProcessSupervisor.start(); pass it back to supervisor
    operations rather than driving the process directly.
    """

    argv: list[str]
    process: subprocess.Popen
    started_at: float = field(default_factory=time.monotonic)
    state: SupervisorState = SupervisorState.UNSTARTED
    outcome: Outcome | None = None
    cancel_event: threading.Event = field(default_factory=threading.Event)
    kill_reason: int | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def stdin(self) -> IO[bytes] | None:
        return self.process.stdin

    @property
    def stdout(self) -> IO[bytes] | None:
        return self.process.stdout

    @property
    def stderr(self) -> IO[bytes] | None:
        return self.process.stderr

    @property
    def is_running(self) -> bool:
        return self.state is SupervisorState.RUNNING


class ProcessSupervisor:
    """Spawns ffmpeg and resolves its outcome.

    All public methods are safe to call from any thread. cancel() in
    particular may race with await_completion() from another thread.
    """

    DEFAULT_KILL_GRACE: float = 2.0
    DEFAULT_POLL_INTERVAL: float = 0.05

    def __init__(
        self,
        ffmpeg_path: Path | None = None,
        kill_grace: float | None = None,
        poll_interval: float | None = None,
    ) -> None:
        """Initialize the supervisor.

        Args:
            ffmpeg_path: Configured ffmpeg location (None = look up on PATH).
            kill_grace: Seconds between SIGTERM and SIGKILL.
            poll_interval: Upper bound on how long the wait loop sleeps.
        """
        self._configured_path = ffmpeg_path
        self._binary: Path | None = None
        self._kill_grace = (
            kill_grace if kill_grace is not None else self.DEFAULT_KILL_GRACE
        )
        self._poll_interval = (
            poll_interval if poll_interval is not None else self.DEFAULT_POLL_INTERVAL
        )

    @property
    def binary(self) -> Path:
        """Get path to ffmpeg, verifying availability.

        Raises:
            SpawnError: If ffmpeg cannot be located.
        """
        if self._binary is None:
            try:
                self._binary = require_tool("ffmpeg", self._configured_path)
            except FileNotFoundError as e:
                raise SpawnError(["ffmpeg"], e) from e
        return self._binary

    def start(self, argv: Sequence[str], config: TranscodeConfig) -> ProcessHandle:
        """Spawn the child process.

        stdin is a pipe only when the source is a stream; stdout and stderr
        are always pipes so they can be drained.

        Args:
            argv: Fully resolved argument vector, binary first.
            config: Session configuration (source shape and priority).

        Returns:
            Handle in the RUNNING state.

        Raises:
            SpawnError: If the OS refuses to create the process.
        """
        str_argv = [str(a) for a in argv]
        stdin_target = (
            subprocess.PIPE
            if classify_source(config.source) == "stream"
            else subprocess.DEVNULL
        )

        try:
            process = subprocess.Popen(  # nosec B603 - argv built from config
                str_argv,
                stdin=stdin_target,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                bufsize=0,
                close_fds=True,
            )
        except OSError as e:
            logger.warning(
                "Failed to spawn %s: %s",
                str_argv[0] if str_argv else "<empty>",
                e,
                extra={"command": str_argv[0] if str_argv else None},
            )
            raise SpawnError(str_argv, e) from e

        handle = ProcessHandle(argv=str_argv, process=process)
        handle.state = SupervisorState.RUNNING
        logger.info(
            "Started ffmpeg (pid %d)",
            handle.pid,
            extra={"pid": handle.pid, "arg_count": len(str_argv)},
        )

        if config.priority is not None:
            self.apply_priority(handle, config.priority)

        return handle

    def apply_priority(self, handle: ProcessHandle, nice_value: int) -> bool:
        """Best-effort renice of the child.

        Failures are logged at WARNING and never affect the outcome.

        Returns:
            True if renice succeeded.
        """
        try:
            _, stderr, returncode = run_command(
                ["renice", "-n", str(nice_value), "-p", str(handle.pid)],
                timeout=RENICE_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(
                "Could not renice pid %d to %d: %s",
                handle.pid,
                nice_value,
                e,
                extra={"pid": handle.pid},
            )
            return False

        if returncode != 0:
            logger.warning(
                "renice exited with %d for pid %d: %s",
                returncode,
                handle.pid,
                stderr.strip(),
                extra={"pid": handle.pid, "returncode": returncode},
            )
            return False

        logger.debug("Reniced pid %d to %d", handle.pid, nice_value)
        return True

    def await_completion(
        self, handle: ProcessHandle, timeout: float | None = None
    ) -> Outcome:
        """Block until the child exits, the timeout elapses, or cancel() is called.

        A timeout resolves to Killed(reason_code=-99), a cancel to
        Killed(reason_code=-98). Natural exit resolves to Success for code
        zero, Failed otherwise. Tails are left empty; the session fills them.

        Args:
            handle: Handle returned by start().
            timeout: Wall-clock limit in seconds (None = no limit).

        Returns:
            The outcome recorded on the handle.
        """
        if handle.outcome is not None:
            return handle.outcome

        deadline = handle.started_at + timeout if timeout is not None else None

        while True:
            if handle.cancel_event.is_set():
                # A child that already exited keeps its natural outcome
                returncode = handle.process.poll()
                if returncode is not None:
                    return self._resolve_exit(handle, returncode)
                reason = (
                    handle.kill_reason
                    if handle.kill_reason is not None
                    else CANCEL_REASON_CODE
                )
                logger.info(
                    "Cancelling ffmpeg (pid %d)",
                    handle.pid,
                    extra={"pid": handle.pid, "reason_code": reason},
                )
                self.terminate(handle)
                return self._resolve(
                    handle, Killed(reason_code=reason), SupervisorState.KILLED
                )

            returncode = handle.process.poll()
            if returncode is not None:
                return self._resolve_exit(handle, returncode)

            wait = self._poll_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.warning(
                        "ffmpeg timed out after %s seconds",
                        timeout,
                        extra={"pid": handle.pid, "timeout_seconds": timeout},
                    )
                    self.terminate(handle)
                    return self._resolve(
                        handle,
                        Killed(reason_code=TIMEOUT_REASON_CODE),
                        SupervisorState.KILLED,
                    )
                wait = min(wait, remaining)

            handle.cancel_event.wait(wait)

    def cancel(self, handle: ProcessHandle, reason_code: int = CANCEL_REASON_CODE) -> bool:
        """Request early termination.

        Only has effect while the child is running; a no-op once it has
        exited, even if the exit has not been observed yet.

        Returns:
            True if this call requested termination.
        """
        with handle._lock:
            if handle.state is not SupervisorState.RUNNING:
                return False
            if handle.cancel_event.is_set():
                return False
            if handle.process.poll() is not None:
                return False
            handle.kill_reason = reason_code
            handle.cancel_event.set()
        logger.debug("Cancel requested for pid %d", handle.pid)
        return True

    def terminate(self, handle: ProcessHandle) -> None:
        """Stop the child: SIGTERM, then SIGKILL after the grace window.

        Pipes stay open so the session can drain them; release() closes them.
        """
        process = handle.process
        if process.poll() is not None:
            return

        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            process.wait(timeout=self._kill_grace)
        except subprocess.TimeoutExpired:
            logger.warning(
                "ffmpeg (pid %d) did not exit after SIGTERM, killing",
                handle.pid,
                extra={"pid": handle.pid},
            )
            process.kill()
            process.wait()

    def release(self, handle: ProcessHandle) -> None:
        """Close every pipe of the child and reap it.

        Called once the session has drained what it needs. Kills the child
        first if it is somehow still alive.
        """
        if handle.process.poll() is None:
            self.terminate(handle)
        for pipe in (handle.stdin, handle.stdout, handle.stderr):
            if pipe is None:
                continue
            try:
                pipe.close()
            except OSError as e:
                logger.debug("Error closing pipe for pid %d: %s", handle.pid, e)
        handle.process.wait()

    def _resolve_exit(self, handle: ProcessHandle, returncode: int) -> Outcome:
        elapsed = time.monotonic() - handle.started_at
        logger.debug(
            "ffmpeg exited",
            extra={
                "pid": handle.pid,
                "returncode": returncode,
                "elapsed_seconds": round(elapsed, 3),
            },
        )
        if returncode == 0:
            return self._resolve(
                handle, Success(exit_code=0), SupervisorState.COMPLETED
            )
        return self._resolve(
            handle, Failed(exit_code=returncode), SupervisorState.FAILED
        )

    def _resolve(
        self, handle: ProcessHandle, outcome: Outcome, state: SupervisorState
    ) -> Outcome:
        with handle._lock:
            if handle.outcome is None:
                handle.outcome = outcome
                handle.state = state
            return handle.outcome
