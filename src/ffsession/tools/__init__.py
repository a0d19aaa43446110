"""External tool helpers: detection, progress parsing, metrics."""

from ffsession.tools.detection import (
    ToolInfo,
    detect_ffmpeg,
    detect_renice,
    find_tool,
    require_tool,
)
from ffsession.tools.ffmpeg_metrics import (
    FFmpegMetricsAggregator,
    FFmpegMetricsSummary,
)
from ffsession.tools.ffmpeg_progress import (
    FFmpegProgress,
    parse_stderr_progress,
    parse_timestamp,
)

__all__ = [
    "FFmpegMetricsAggregator",
    "FFmpegMetricsSummary",
    "FFmpegProgress",
    "ToolInfo",
    "detect_ffmpeg",
    "detect_renice",
    "find_tool",
    "parse_stderr_progress",
    "parse_timestamp",
    "require_tool",
]
