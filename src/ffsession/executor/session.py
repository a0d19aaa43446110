"""Transcode session orchestration.

TranscodeSession ties the pieces of one ffmpeg run together:

    validate -> spawn -> pump streams -> parse diagnostics -> await outcome

Listeners registered on the session receive parsed events as they happen
and the terminal outcome exactly once. Live events are dispatched from the
diagnostic reader thread; events produced by the final flush are
dispatched from the caller's thread after the reader has finished. A
single dispatch lock keeps them ordered.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import shutil
import tempfile
import threading
import time
import uuid
from collections.abc import Callable, Mapping
from contextlib import ExitStack
from pathlib import Path
from typing import IO, Any

from ffsession.config import FFSessionConfig, get_config
from ffsession.core.file_utils import FileSystem, LocalFileSystem, count_non_empty
from ffsession.exceptions import (
    InvalidConfigurationError,
    InvalidSourceError,
    SnapshotCountError,
    SourceStreamError,
    StreamError,
)
from ffsession.logging import session_context
from ffsession.tools.ffmpeg_metrics import FFmpegMetricsAggregator

from .bridge import PATH, STREAM, StreamBridge, classify_source
from .command import build_ffmpeg_command, build_probe_command
from .parser import OutputParser
from .snapshots import SnapshotOptions, parse_snapshot_options, plan_snapshots
from .supervisor import ProcessHandle, ProcessSupervisor
from .types import (
    TIMEOUT_REASON_CODE,
    CodecDetected,
    DurationKnown,
    ErrorDetected,
    Event,
    Failed,
    Killed,
    Locator,
    Outcome,
    ProgressUpdate,
    Success,
    TranscodeConfig,
)

logger = logging.getLogger(__name__)

# Upper bound for reading the remaining diagnostics after the child exits
STDERR_DRAIN_TIMEOUT = 5.0

# Upper bound for the stream pumps to finish after the child exits
PUMP_DRAIN_TIMEOUT = 5.0

# Wall-clock limit for the metadata probe run
PROBE_TIMEOUT = 30.0

EventCallback = Callable[[Any], None]
CompletionCallback = Callable[[Outcome], None]


def _describe(value: Locator) -> str:
    """Short human-readable description of a source for log context."""
    if isinstance(value, (str, os.PathLike)):
        return os.fspath(value)
    name = getattr(value, "name", None)
    if isinstance(name, str):
        return name
    return f"<{type(value).__name__}>"


def _source_stem(value: Locator) -> str:
    if isinstance(value, (str, os.PathLike)):
        return Path(os.fspath(value)).stem
    name = getattr(value, "name", None)
    if isinstance(name, str) and name:
        return Path(name).stem
    return "stream"


class TranscodeSession:
    """Runs ffmpeg once per run() call and reports events and one outcome.

    Example:
        session = TranscodeSession()
        session.on_progress(lambda p: print(p.percent))
        outcome = session.run(TranscodeConfig(source="in.avi", output="out.mp4"))
        if outcome.succeeded:
            ...

    A session runs one child at a time. cancel() may be called from any
    thread, including from inside a listener.
    """

    def __init__(
        self,
        supervisor: ProcessSupervisor | None = None,
        parser: OutputParser | None = None,
        settings: FFSessionConfig | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            supervisor: Process supervisor (default: built from settings).
            parser: Diagnostic parser (default: built from settings).
            settings: Configuration (default: get_config()).
            filesystem: Filesystem used to verify snapshot files.
        """
        self._settings = settings if settings is not None else get_config()
        session_settings = self._settings.session
        self._supervisor = supervisor or ProcessSupervisor(
            ffmpeg_path=self._settings.tools.ffmpeg,
            kill_grace=session_settings.kill_grace,
            poll_interval=session_settings.poll_interval,
        )
        self._parser = parser or OutputParser(tail_lines=session_settings.tail_lines)
        self._filesystem = filesystem or LocalFileSystem()
        self._metrics = FFmpegMetricsAggregator()

        self._listeners: dict[type, list[EventCallback]] = {
            CodecDetected: [],
            ProgressUpdate: [],
            DurationKnown: [],
            ErrorDetected: [],
        }
        self._complete_listeners: list[CompletionCallback] = []
        self._dispatch_lock = threading.Lock()
        self._handle_lock = threading.Lock()
        self._handle: ProcessHandle | None = None

    @property
    def settings(self) -> FFSessionConfig:
        return self._settings

    @property
    def parser(self) -> OutputParser:
        return self._parser

    # -------------------------------------------------------------------------
    # Listener registration
    # -------------------------------------------------------------------------

    def subscribe(self, event_type: type, callback: EventCallback) -> TranscodeSession:
        """Register a callback for one event type.

        Callbacks run in registration order. A callback that raises is
        logged and skipped; it never stops the session.

        Raises:
            ValueError: If event_type is not a session event.
        """
        if event_type not in self._listeners:
            raise ValueError(f"Unknown event type: {event_type!r}")
        self._listeners[event_type].append(callback)
        return self

    def on_codec_data(self, callback: Callable[[CodecDetected], None]) -> TranscodeSession:
        return self.subscribe(CodecDetected, callback)

    def on_progress(self, callback: Callable[[ProgressUpdate], None]) -> TranscodeSession:
        return self.subscribe(ProgressUpdate, callback)

    def on_duration(self, callback: Callable[[DurationKnown], None]) -> TranscodeSession:
        return self.subscribe(DurationKnown, callback)

    def on_error(self, callback: Callable[[ErrorDetected], None]) -> TranscodeSession:
        return self.subscribe(ErrorDetected, callback)

    def on_complete(self, callback: CompletionCallback) -> TranscodeSession:
        """Register a callback invoked once with the outcome of each run."""
        self._complete_listeners.append(callback)
        return self

    # -------------------------------------------------------------------------
    # Running
    # -------------------------------------------------------------------------

    def run(self, config: TranscodeConfig) -> Outcome:
        """Run ffmpeg for config and block until it resolves.

        Returns:
            Success, Killed, or Failed.

        Raises:
            InvalidSourceError: If the source is neither a path nor a stream.
            InvalidSinkError: If the output is neither a path nor a stream.
            SpawnError: If ffmpeg cannot be found or launched.
        """
        outcome = self._run(config)
        self._notify_complete(outcome)
        return outcome

    def cancel(self) -> bool:
        """Request termination of the running child.

        Returns:
            True if this call requested termination; False before start,
            after the outcome is resolved, or when already cancelled.
        """
        with self._handle_lock:
            handle = self._handle
        if handle is None:
            return False
        return self._supervisor.cancel(handle)

    def _run(self, config: TranscodeConfig) -> Outcome:
        try:
            bridge = StreamBridge(
                config,
                chunk_size=self._settings.session.chunk_size,
                on_abort=self._abort,
            )
        except InvalidConfigurationError as e:
            logger.warning("Rejected session configuration: %s", e)
            raise

        if config.priority is None and self._settings.session.default_priority is not None:
            config = dataclasses.replace(
                config, priority=self._settings.session.default_priority
            )

        argv = build_ffmpeg_command(
            config,
            self._supervisor.binary,
            bridge.input_locator(),
            bridge.output_locator(),
        )
        timeout = (
            config.timeout
            if config.timeout is not None
            else self._settings.session.default_timeout
        )
        return self._execute(argv, config, bridge, timeout)

    def _execute(
        self,
        argv: list[str],
        config: TranscodeConfig,
        bridge: StreamBridge,
        timeout: float | None,
    ) -> Outcome:
        session_id = uuid.uuid4().hex[:8]
        with session_context(session_id, _describe(config.source)):
            self._parser.reset()
            self._metrics.reset()

            handle = self._supervisor.start(argv, config)
            with self._handle_lock:
                self._handle = handle

            start = time.monotonic()
            reader = threading.Thread(
                target=self._read_diagnostics,
                args=(handle.stderr,),
                name="ffsession-stderr",
                daemon=True,
            )
            try:
                bridge.attach(handle)
                reader.start()

                result = self._supervisor.await_completion(handle, timeout)

                reader.join(timeout=STDERR_DRAIN_TIMEOUT)
                if reader.is_alive():
                    logger.error(
                        "Diagnostic reader failed to terminate. "
                        "Thread will be abandoned (potential leak).",
                        extra={"pid": handle.pid},
                    )
                with self._dispatch_lock:
                    self._dispatch_all(self._parser.flush())

                bridge.join(timeout=PUMP_DRAIN_TIMEOUT)
                bridge.close()
            finally:
                self._supervisor.release(handle)

            outcome = self._map_outcome(result, handle, bridge)
            logger.info(
                "Session finished: %s",
                type(outcome).__name__,
                extra={
                    "pid": handle.pid,
                    "returncode": handle.process.returncode,
                    "elapsed_seconds": round(time.monotonic() - start, 3),
                },
            )
            return outcome

    def _map_outcome(
        self, result: Outcome, handle: ProcessHandle, bridge: StreamBridge
    ) -> Outcome:
        stderr_tail = self._parser.tail_text()
        error = bridge.error

        if isinstance(result, Killed):
            if error is not None and result.reason_code != TIMEOUT_REASON_CODE:
                # The kill was the stream-error abort
                return Failed(
                    exit_code=handle.process.returncode,
                    stderr_tail=stderr_tail,
                    error=error,
                )
            return Killed(reason_code=result.reason_code, stderr_tail=stderr_tail)

        if isinstance(result, Failed):
            return Failed(
                exit_code=result.exit_code, stderr_tail=stderr_tail, error=error
            )

        if error is not None:
            return Failed(exit_code=0, stderr_tail=stderr_tail, error=error)

        return Success(
            exit_code=0,
            stdout_tail=bridge.stdout_tail(),
            stderr_tail=stderr_tail,
            metrics=self._metrics.summarize(),
        )

    def _abort(self, error: StreamError) -> None:
        """Kill the child after a caller stream failed."""
        with self._handle_lock:
            handle = self._handle
        if handle is not None:
            logger.info("Aborting ffmpeg after stream failure: %s", error)
            self._supervisor.cancel(handle)

    # -------------------------------------------------------------------------
    # Diagnostics and dispatch
    # -------------------------------------------------------------------------

    def _read_diagnostics(self, pipe: IO[bytes] | None) -> None:
        if pipe is None:
            return
        chunk_size = self._settings.session.chunk_size
        while True:
            try:
                chunk = pipe.read(chunk_size)
            except (OSError, ValueError) as e:
                logger.debug("Diagnostic reader stopped: %s", e)
                break
            if not chunk:
                break
            with self._dispatch_lock:
                if self._parser.finished:
                    break
                self._dispatch_all(self._parser.feed(chunk))

    def _dispatch_all(self, events: list[Event]) -> None:
        for event in events:
            self._dispatch(event)

    def _dispatch(self, event: Event) -> None:
        if isinstance(event, ProgressUpdate):
            self._metrics.add_sample(event)
        elif isinstance(event, ErrorDetected):
            logger.debug("ffmpeg reported: %s", event.message)

        for callback in self._listeners.get(type(event), []):
            try:
                callback(event)
            except Exception:
                logger.warning(
                    "Listener %r raised while handling %s",
                    callback,
                    type(event).__name__,
                    exc_info=True,
                )

    def _notify_complete(self, outcome: Outcome) -> None:
        for callback in self._complete_listeners:
            try:
                callback(outcome)
            except Exception:
                logger.warning(
                    "Completion listener %r raised", callback, exc_info=True
                )

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def probe_duration(self, source: str | os.PathLike) -> float | None:
        """Read the input duration by running `ffmpeg -i <source>`.

        The probe runs on a private session so this session's listeners
        see nothing from it.

        Returns:
            Duration in seconds, or None if ffmpeg did not report one.

        Raises:
            InvalidSourceError: If source is not a path.
            SpawnError: If ffmpeg cannot be launched.
        """
        if classify_source(source) != PATH:
            raise InvalidSourceError("Probing requires a path source")
        config = TranscodeConfig(source=source, output=os.devnull)

        prober = TranscodeSession(
            supervisor=self._supervisor,
            settings=self._settings,
            filesystem=self._filesystem,
        )
        bridge = StreamBridge(config, chunk_size=self._settings.session.chunk_size)
        argv = build_probe_command(self._supervisor.binary, bridge.input_locator())
        prober._execute(argv, config, bridge, PROBE_TIMEOUT)
        duration = prober.parser.duration
        logger.debug("Probed duration of %s: %s", _describe(source), duration)
        return duration

    def take_snapshots(
        self,
        source: Locator,
        options: SnapshotOptions | Mapping[str, Any] | int,
        destination_dir: str | os.PathLike,
        *,
        timeout: float | None = None,
        priority: int | None = None,
    ) -> Outcome:
        """Extract still images from source into destination_dir.

        Args:
            source: Input path or readable binary stream.
            options: SnapshotOptions, an equivalent mapping, or a count.
            destination_dir: Directory for the images (created if missing).
            timeout: Wall-clock limit in seconds (None = session default).
            priority: Niceness hint for the child.

        Returns:
            Success with the image paths in artifacts, or Killed/Failed.
            With explicit timemarks, a missing image yields
            Failed(error=SnapshotCountError).

        Raises:
            SnapshotOptionsError: If options are invalid, or a needed
                duration cannot be determined.
            InvalidSourceError: If source is neither a path nor a stream.
            SpawnError: If ffmpeg cannot be launched.
        """
        opts = parse_snapshot_options(options)
        source_kind = classify_source(source)
        stem = _source_stem(source)
        destination = Path(destination_dir)
        self._filesystem.makedirs(destination)

        with ExitStack() as stack:
            duration = None
            if opts.needs_duration:
                if source_kind == STREAM:
                    spool_dir = stack.enter_context(
                        tempfile.TemporaryDirectory(prefix="ffsession-")
                    )
                    try:
                        source = self._spool(source, Path(spool_dir))
                    except SourceStreamError as e:
                        outcome: Outcome = Failed(exit_code=None, error=e)
                        self._notify_complete(outcome)
                        return outcome
                duration = self.probe_duration(source)

            plan = plan_snapshots(opts, destination, stem, duration)
            logger.info(
                "Taking %d snapshot(s) at %s",
                len(plan.timemarks),
                ", ".join(f"{t:.2f}s" for t in plan.timemarks),
            )
            config = TranscodeConfig(
                source=source,
                output=plan.final_output,
                args=plan.args,
                timeout=timeout,
                priority=priority,
            )
            outcome = self._run(config)

        if isinstance(outcome, Success):
            outcome = self._verify_snapshots(outcome, plan.outputs, plan.explicit)
        self._notify_complete(outcome)
        return outcome

    def _spool(self, stream: IO[bytes], directory: Path) -> Path:
        """Copy a source stream to a temporary file so it can be probed."""
        target = directory / "source"
        try:
            with target.open("wb") as f:
                shutil.copyfileobj(stream, f, self._settings.session.chunk_size)
        except (OSError, ValueError, TypeError) as e:
            raise SourceStreamError(f"Reading source stream failed: {e}", e) from e
        logger.debug("Spooled source stream to %s", target)
        return target

    def _verify_snapshots(
        self, outcome: Success, outputs: list[Path], explicit: bool
    ) -> Outcome:
        found = count_non_empty(self._filesystem, outputs)
        if explicit and found != len(outputs):
            error = SnapshotCountError(expected=len(outputs), found=found)
            logger.warning("%s", error)
            return Failed(exit_code=0, stderr_tail=outcome.stderr_tail, error=error)
        if found != len(outputs):
            logger.warning("Expected %d snapshot(s), found %d", len(outputs), found)

        artifacts = tuple(
            p
            for p in outputs
            if self._filesystem.exists(p) and self._filesystem.size(p) > 0
        )
        return dataclasses.replace(outcome, artifacts=artifacts)
