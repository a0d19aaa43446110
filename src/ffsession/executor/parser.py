"""Incremental parser for ffmpeg's diagnostic (stderr) stream.

ffmpeg interleaves several kinds of text on stderr: the input analysis
block (format, duration, streams), a progress line rewritten in place with
carriage returns, and error messages. OutputParser consumes raw chunks as
they arrive, splits them into lines with an explicit byte buffer, and
classifies each complete line into at most one event.

Classification order (first match wins):
    1. Input analysis block: Input/Output headers, Stream lines
    2. Duration line
    3. Progress line
    4. Known fatal-error line
    5. Anything else (kept only in the raw tail)
"""

from __future__ import annotations

import logging
import re
from collections import deque

from ffsession.tools.ffmpeg_progress import parse_stderr_progress, parse_timestamp

from .types import (
    CodecDetected,
    DurationKnown,
    ErrorDetected,
    Event,
    ProgressUpdate,
)

logger = logging.getLogger(__name__)

_LF = 0x0A
_CR = 0x0D

_INPUT_HEADER = re.compile(r"^Input #\d+,\s*(.+?),\s*from\b")
_BLOCK_END = re.compile(r"^(Output #\d+|Stream mapping:)")
_STREAM_LINE = re.compile(r"^Stream #\d+[:.]\d+.*?:\s*(Video|Audio):\s*(.+)$")
_CODEC_NAME = re.compile(r"^([^\s,]+)")
_DURATION = re.compile(r"Duration:\s*(\d+:\d{2}:\d{2}(?:\.\d+)?)")

# Fatal-error wording shared across ffmpeg releases
FATAL_ERROR_PATTERNS = (
    re.compile(r"^Error\b"),
    re.compile(r"Conversion failed!"),
    re.compile(r"Invalid data found when processing input"),
    re.compile(r"No such file or directory"),
    re.compile(r"Unknown encoder"),
    re.compile(r"Unrecognized option"),
    re.compile(r"Invalid argument"),
    re.compile(r"Permission denied"),
    re.compile(r"Output file #\d+ does not contain any stream"),
)

DEFAULT_TAIL_LINES = 50


class OutputParser:
    """Line-oriented classifier for ffmpeg stderr.

    Each instance parses one session at a time; call reset() before reusing
    it. Not thread-safe: the session serializes feed() and flush().
    """

    def __init__(self, tail_lines: int = DEFAULT_TAIL_LINES) -> None:
        """Initialize the parser.

        Args:
            tail_lines: Number of raw diagnostic lines kept for reporting.
        """
        self._tail_lines = tail_lines
        self.reset()

    def reset(self) -> None:
        """Restore the initial state for a new session."""
        self._buffer = bytearray()
        self._tail: deque[str] = deque(maxlen=self._tail_lines)
        self._finished = False

        self._duration: float | None = None
        self._in_input_block = False
        self._format: str | None = None
        self._audio: str | None = None
        self._audio_details: str | None = None
        self._video: str | None = None
        self._video_details: str | None = None
        self._codec_emitted = False
        self._last_time: float | None = None

    @property
    def duration(self) -> float | None:
        """Input duration in seconds, once a duration line has been seen."""
        return self._duration

    @property
    def finished(self) -> bool:
        return self._finished

    def tail(self) -> list[str]:
        """Return the most recent diagnostic lines, oldest first."""
        return list(self._tail)

    def tail_text(self) -> str:
        return "\n".join(self._tail)

    def feed(self, chunk: bytes) -> list[Event]:
        """Consume a chunk of stderr bytes.

        Complete lines (terminated by LF or CR) are classified; the trailing
        fragment stays buffered for the next call.

        Returns:
            Events for the lines completed by this chunk, in order.
        """
        if self._finished:
            logger.debug("Ignoring %d bytes fed after flush", len(chunk))
            return []

        self._buffer.extend(chunk)
        events: list[Event] = []

        start = 0
        for index, byte in enumerate(self._buffer):
            if byte == _LF or byte == _CR:
                self._handle_line(bytes(self._buffer[start:index]), events)
                start = index + 1
        del self._buffer[:start]

        return events

    def flush(self) -> list[Event]:
        """Classify any buffered fragment and mark end of input.

        Returns:
            Events for the final unterminated line, if any.
        """
        if self._finished:
            return []

        events: list[Event] = []
        if self._buffer:
            self._handle_line(bytes(self._buffer), events)
            self._buffer.clear()
        self._finished = True
        return events

    def _handle_line(self, raw: bytes, events: list[Event]) -> None:
        line = raw.decode("utf-8", errors="replace").strip()
        if not line:
            return
        self._tail.append(line)
        try:
            event = self._classify(line)
        except Exception as e:
            logger.debug("Failed to classify diagnostic line %r: %s", line, e)
            return
        if event is not None:
            events.append(event)

    def _classify(self, line: str) -> Event | None:
        # 1. Input analysis block
        header = _INPUT_HEADER.match(line)
        if header:
            self._in_input_block = True
            if self._format is None:
                self._format = header.group(1)
            return None
        if _BLOCK_END.match(line):
            self._in_input_block = False
            return None
        stream = _STREAM_LINE.match(line)
        if stream:
            if self._in_input_block:
                return self._record_stream(stream.group(1), stream.group(2))
            return None

        # 2. Duration
        duration = _DURATION.search(line)
        if duration:
            if self._duration is None:
                seconds = parse_timestamp(duration.group(1))
                if seconds is not None:
                    self._duration = seconds
                    return DurationKnown(duration=seconds)
            return None

        # 3. Progress
        progress = parse_stderr_progress(line)
        if progress is not None:
            current_time = progress.time
            if current_time is None:
                return None
            if self._last_time is not None and current_time < self._last_time:
                logger.debug(
                    "Dropping regressing progress time %.3f < %.3f",
                    current_time,
                    self._last_time,
                )
                return None
            self._last_time = current_time
            return ProgressUpdate(
                frames=progress.frame,
                current_time=current_time,
                percent=progress.percent_of(self._duration),
                fps=progress.fps,
                bitrate=progress.bitrate,
                speed=progress.speed,
            )

        # 4. Fatal errors
        for pattern in FATAL_ERROR_PATTERNS:
            if pattern.search(line):
                return ErrorDetected(message=line)

        # 5. Discard
        return None

    def _record_stream(self, kind: str, details: str) -> CodecDetected | None:
        if self._codec_emitted:
            return None

        name_match = _CODEC_NAME.match(details)
        codec = name_match.group(1) if name_match else details
        if kind == "Video" and self._video is None:
            self._video = codec
            self._video_details = details
        elif kind == "Audio" and self._audio is None:
            self._audio = codec
            self._audio_details = details

        if self._audio is None or self._video is None:
            return None

        self._codec_emitted = True
        return CodecDetected(
            audio=self._audio,
            video=self._video,
            format=self._format,
            duration=self._duration,
            audio_details=self._audio_details,
            video_details=self._video_details,
        )
