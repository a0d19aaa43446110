"""Stream plumbing between caller-provided streams and the child's stdio.

A source or output given as a path is passed to ffmpeg on the command line
and needs no bridging. A source given as a readable stream is pumped into
the child's stdin; an output given as a writable stream is fed from the
child's stdout. stdout is drained in every case so the child never blocks
on a full pipe.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from typing import IO, Any

from ffsession.exceptions import (
    InvalidSinkError,
    InvalidSourceError,
    SinkStreamError,
    SourceStreamError,
    StreamError,
)

from .types import TranscodeConfig

logger = logging.getLogger(__name__)

PATH = "path"
STREAM = "stream"

STDIN_LOCATOR = "pipe:0"
STDOUT_LOCATOR = "pipe:1"

DEFAULT_CHUNK_SIZE = 65536
STDOUT_TAIL_BYTES = 8192


def _is_path(value: Any) -> bool:
    return isinstance(value, (str, os.PathLike))


def _has_method(value: Any, name: str) -> bool:
    return callable(getattr(value, name, None))


def _check_mode(value: Any, probe: str) -> bool:
    """Return False if the stream reports it cannot be used in this direction."""
    check = getattr(value, probe, None)
    if not callable(check):
        return True
    try:
        return bool(check())
    except (OSError, ValueError):
        # Closed file objects raise from readable()/writable()
        return False


def classify_source(value: Any) -> str:
    """Classify a source as PATH or STREAM.

    Raises:
        InvalidSourceError: If value is neither, or ambiguously both.
    """
    is_path = _is_path(value)
    is_stream = _has_method(value, "read")
    if is_path and is_stream:
        raise InvalidSourceError(
            f"Source {value!r} is both a path and a stream; pass exactly one"
        )
    if is_path:
        if not os.fspath(value):
            raise InvalidSourceError("Source path is empty")
        return PATH
    if is_stream:
        if not _check_mode(value, "readable"):
            raise InvalidSourceError(f"Source stream {value!r} is not readable")
        return STREAM
    raise InvalidSourceError(
        f"Source must be a path or a readable stream, got {type(value).__name__}"
    )


def classify_sink(value: Any) -> str:
    """Classify an output as PATH or STREAM.

    Raises:
        InvalidSinkError: If value is neither, or ambiguously both.
    """
    is_path = _is_path(value)
    is_stream = _has_method(value, "write")
    if is_path and is_stream:
        raise InvalidSinkError(
            f"Output {value!r} is both a path and a stream; pass exactly one"
        )
    if is_path:
        if not os.fspath(value):
            raise InvalidSinkError("Output path is empty")
        return PATH
    if is_stream:
        if not _check_mode(value, "writable"):
            raise InvalidSinkError(f"Output stream {value!r} is not writable")
        return STREAM
    raise InvalidSinkError(
        f"Output must be a path or a writable stream, got {type(value).__name__}"
    )


def _write_all(pipe: IO[bytes], data: bytes) -> None:
    """Write data fully to an unbuffered pipe, which may accept partial writes."""
    view = memoryview(data)
    while view:
        written = pipe.write(view)
        view = view[written:]


class StreamBridge:
    """Connects one session's source and output to the child's stdio.

    Usage:
        bridge = StreamBridge(config, on_abort=abort)
        handle = supervisor.start(argv, config)
        bridge.attach(handle)
        ...
        bridge.join(timeout)
        bridge.close()
    """

    def __init__(
        self,
        config: TranscodeConfig,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        on_abort: Callable[[StreamError], None] | None = None,
    ) -> None:
        """Validate the config and prepare the bridge.

        Args:
            config: Session configuration.
            chunk_size: Read size for the pumps.
            on_abort: Called once, from a pump thread, when a caller stream
                fails. The session uses it to kill the child.

        Raises:
            InvalidSourceError: If the source is neither a path nor a stream.
            InvalidSinkError: If the output is neither a path nor a stream.
        """
        self.source_kind, self.sink_kind = self.validate(config)
        self._config = config
        self._chunk_size = chunk_size
        self._on_abort = on_abort

        self._threads: list[threading.Thread] = []
        self._stop = threading.Event()
        self._error: StreamError | None = None
        self._error_lock = threading.Lock()
        self._stdout_tail = bytearray()
        self._closed = False
        self.bytes_in = 0
        self.bytes_out = 0
        self.bytes_written = 0

    @staticmethod
    def validate(config: TranscodeConfig) -> tuple[str, str]:
        """Check source and output shapes before anything is spawned.

        Returns:
            Tuple of (source_kind, sink_kind).
        """
        return classify_source(config.source), classify_sink(config.output)

    @property
    def error(self) -> StreamError | None:
        """First caller-stream failure, if any."""
        return self._error

    def input_locator(self) -> str:
        if self.source_kind == STREAM:
            return STDIN_LOCATOR
        return os.fspath(self._config.source)

    def output_locator(self) -> str:
        if self.sink_kind == STREAM:
            return STDOUT_LOCATOR
        return os.fspath(self._config.output)

    def stdout_tail(self) -> str:
        """Tail of the child's stdout when the output is a path."""
        return self._stdout_tail.decode("utf-8", errors="replace")

    def attach(self, handle: Any) -> None:
        """Start pump threads for the spawned child.

        Args:
            handle: ProcessHandle from the supervisor.
        """
        if self.source_kind == STREAM:
            if handle.stdin is None:
                raise RuntimeError("Stream source requires a stdin pipe")
            self._start(self._pump_source, handle.stdin, "ffsession-source")
        if handle.stdout is not None:
            self._start(self._pump_stdout, handle.stdout, "ffsession-stdout")

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the pumps to finish.

        Returns:
            True if every pump finished within the timeout.
        """
        all_done = True
        for thread in self._threads:
            thread.join(timeout=timeout)
            if thread.is_alive():
                all_done = False
                logger.error(
                    "Pump thread %s failed to terminate. "
                    "Thread will be abandoned (potential leak).",
                    thread.name,
                )
        return all_done

    def close(self) -> None:
        """Flush the caller's output stream. Caller streams stay open."""
        if self._closed:
            return
        self._closed = True
        self._stop.set()
        if self.sink_kind == STREAM and self._error is None:
            flush = getattr(self._config.output, "flush", None)
            if callable(flush):
                try:
                    flush()
                except (OSError, ValueError) as e:
                    self._fail(SinkStreamError(f"Flushing output stream failed: {e}", e))

    def _start(self, target: Callable[[IO[bytes]], None], pipe: IO[bytes], name: str) -> None:
        thread = threading.Thread(target=target, args=(pipe,), name=name, daemon=True)
        self._threads.append(thread)
        thread.start()

    def _fail(self, error: StreamError) -> None:
        with self._error_lock:
            if self._error is not None:
                return
            self._error = error
        logger.warning("%s", error)
        self._stop.set()
        if self._on_abort is not None:
            self._on_abort(error)

    def _pump_source(self, pipe: IO[bytes]) -> None:
        source = self._config.source
        try:
            while not self._stop.is_set():
                try:
                    chunk = source.read(self._chunk_size)
                except (OSError, ValueError) as e:
                    self._fail(SourceStreamError(f"Reading source stream failed: {e}", e))
                    return
                if not chunk:
                    break
                if not isinstance(chunk, (bytes, bytearray, memoryview)):
                    self._fail(
                        SourceStreamError(
                            f"Source stream returned {type(chunk).__name__}, "
                            "expected bytes"
                        )
                    )
                    return
                try:
                    _write_all(pipe, chunk)
                except (OSError, ValueError) as e:
                    # Child closed its input (e.g. it already has what it needs)
                    logger.debug("Child stopped reading stdin: %s", e)
                    return
                self.bytes_in += len(chunk)
        finally:
            try:
                pipe.close()
            except OSError as e:
                logger.debug("Error closing child stdin: %s", e)

    def _pump_stdout(self, pipe: IO[bytes]) -> None:
        forwarding = self.sink_kind == STREAM
        sink = self._config.output
        while True:
            try:
                chunk = pipe.read(self._chunk_size)
            except (OSError, ValueError) as e:
                logger.debug("Stdout reader stopped: %s", e)
                break
            if not chunk:
                break
            self.bytes_out += len(chunk)
            if forwarding:
                if self._stop.is_set():
                    # Keep draining so the child never blocks on a full pipe
                    continue
                try:
                    sink.write(chunk)
                    self.bytes_written += len(chunk)
                except (OSError, ValueError) as e:
                    forwarding = False
                    self._fail(SinkStreamError(f"Writing output stream failed: {e}", e))
            else:
                self._stdout_tail.extend(chunk)
                if len(self._stdout_tail) > STDOUT_TAIL_BYTES:
                    del self._stdout_tail[:-STDOUT_TAIL_BYTES]
