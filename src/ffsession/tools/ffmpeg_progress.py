"""Parsing of ffmpeg's progress reports and timestamps.

While encoding, ffmpeg keeps rewriting one status line on stderr:

    frame=  250 fps= 25 q=2.0 size=    1000kB time=00:00:10.00 bitrate= 800.0kbits/s speed=2.0x

Audio-only encodes omit frame= and fps=, the final summary says Lsize=,
and fields that are not known yet are printed as N/A.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

_FIELD = re.compile(r"(\w+)=\s*(\S+)")
_LEADING_INT = re.compile(r"\d+")
_TIMESTAMP = re.compile(r"^(\d+):(\d{1,2}):(\d{1,2}(?:\.\d+)?)$")


@dataclass(frozen=True)
class FFmpegProgress:
    """One parsed progress report. Fields ffmpeg did not report are None."""

    time: float | None = None  # seconds of output written so far
    frame: int | None = None
    fps: float | None = None
    size_kb: int | None = None
    bitrate: str | None = None
    speed: str | None = None

    def percent_of(self, duration: float | None) -> float | None:
        """Share of duration covered by time, capped at 100."""
        if self.time is None or duration is None or duration <= 0:
            return None
        return min(100.0, self.time / duration * 100)


def parse_timestamp(value: str) -> float | None:
    """Parse "HH:MM:SS", "HH:MM:SS.ff" or plain seconds ("12", "0.5").

    Returns:
        Seconds, or None for anything else, including negative and
        non-finite values.
    """
    text = value.strip()
    match = _TIMESTAMP.match(text)
    if match:
        hours, minutes, seconds = match.groups()
        return int(hours) * 3600 + int(minutes) * 60 + float(seconds)
    try:
        seconds = float(text)
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds


def is_progress_line(line: str) -> bool:
    return "time=" in line and ("frame=" in line or "size=" in line)


def _int(value: str | None) -> int | None:
    if value is None:
        return None
    match = _LEADING_INT.match(value)
    return int(match.group()) if match else None


def _float(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def parse_stderr_progress(line: str) -> FFmpegProgress | None:
    """Parse a progress line into its key=value fields.

    A time ffmpeg prints as negative (before the first packet is muxed)
    is reported as unknown.

    Returns:
        FFmpegProgress, or None if line is not a progress report.
    """
    if not is_progress_line(line):
        return None

    fields = {
        key.lower(): value for key, value in _FIELD.findall(line) if value != "N/A"
    }
    time_text = fields.get("time")
    return FFmpegProgress(
        time=parse_timestamp(time_text) if time_text is not None else None,
        frame=_int(fields.get("frame")),
        fps=_float(fields.get("fps")),
        size_kb=_int(fields.get("size", fields.get("lsize"))),
        bitrate=fields.get("bitrate"),
        speed=fields.get("speed"),
    )
