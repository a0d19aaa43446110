"""Encoding metrics for one session.

The session feeds every accepted ProgressUpdate into an aggregator and
attaches the summary to Success.metrics.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ffsession.executor.types import ProgressUpdate

_BITRATE = re.compile(r"^(\d+(?:\.\d+)?)\s*(?:([kmg])bits/s)?$", re.IGNORECASE)
_KBPS_PER_UNIT = {None: 1, "k": 1, "m": 1000, "g": 1_000_000}


@dataclass(frozen=True)
class FFmpegMetricsSummary:
    """Aggregated metrics of a finished session.

    Attributes:
        avg_fps: Mean encoding frames per second.
        peak_fps: Highest encoding frames per second.
        avg_bitrate_kbps: Mean output bitrate in kilobits per second.
        avg_speed: Mean speed as a multiple of realtime.
        total_frames: Frame count of the last report.
        sample_count: Number of progress updates seen.
    """

    avg_fps: float | None = None
    peak_fps: float | None = None
    avg_bitrate_kbps: int | None = None
    avg_speed: float | None = None
    total_frames: int | None = None
    sample_count: int = 0


def parse_bitrate_kbps(bitrate: str | None) -> int | None:
    """Convert "800.0kbits/s", "5.2Mbits/s" or a bare kbps number to kbps."""
    if not bitrate:
        return None
    match = _BITRATE.match(bitrate.strip())
    if not match:
        return None
    unit = match.group(2).lower() if match.group(2) else None
    return round(float(match.group(1)) * _KBPS_PER_UNIT[unit])


def parse_speed(speed: str | None) -> float | None:
    """Convert "1.5x" to 1.5."""
    if not speed:
        return None
    try:
        value = float(speed.strip().removesuffix("x"))
    except ValueError:
        return None
    return value if value >= 0 else None


class _Mean:
    __slots__ = ("total", "count")

    def __init__(self) -> None:
        self.total = 0.0
        self.count = 0

    def add(self, value: float) -> None:
        self.total += value
        self.count += 1

    @property
    def value(self) -> float | None:
        return self.total / self.count if self.count else None


class FFmpegMetricsAggregator:
    """Running statistics over the progress updates of one session.

    Zero readings, which ffmpeg prints while warming up, are left out of
    the averages.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._fps = _Mean()
        self._bitrate = _Mean()
        self._speed = _Mean()
        self._peak_fps: float | None = None
        self._last_frame: int | None = None
        self._samples = 0

    def add_sample(self, progress: ProgressUpdate) -> None:
        self._samples += 1

        if progress.fps:
            self._fps.add(progress.fps)
            if self._peak_fps is None or progress.fps > self._peak_fps:
                self._peak_fps = progress.fps

        kbps = parse_bitrate_kbps(progress.bitrate)
        if kbps:
            self._bitrate.add(kbps)

        speed = parse_speed(progress.speed)
        if speed:
            self._speed.add(speed)

        if progress.frames is not None:
            self._last_frame = progress.frames

    def summarize(self) -> FFmpegMetricsSummary:
        bitrate = self._bitrate.value
        return FFmpegMetricsSummary(
            avg_fps=self._fps.value,
            peak_fps=self._peak_fps,
            avg_bitrate_kbps=int(bitrate) if bitrate is not None else None,
            avg_speed=self._speed.value,
            total_frames=self._last_frame,
            sample_count=self._samples,
        )
