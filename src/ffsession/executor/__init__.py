"""Execution layer for ffsession.

This module runs and supervises the external ffmpeg binary:
- types: TranscodeConfig, events, and outcomes
- command: Argument vector construction
- supervisor: Process spawning, timeout, cancellation, and reaping
- parser: Incremental parsing of ffmpeg diagnostics into events
- bridge: Pumping caller streams to and from the child's stdio
- session: TranscodeSession orchestrating one run
- snapshots: Still image extraction planning
"""

from ffsession.executor.bridge import StreamBridge, classify_sink, classify_source
from ffsession.executor.command import build_ffmpeg_command, build_probe_command
from ffsession.executor.parser import OutputParser
from ffsession.executor.session import TranscodeSession
from ffsession.executor.snapshots import (
    SnapshotOptions,
    SnapshotPlan,
    parse_snapshot_options,
    plan_snapshots,
)
from ffsession.executor.supervisor import ProcessHandle, ProcessSupervisor
from ffsession.executor.types import (
    CANCEL_REASON_CODE,
    TIMEOUT_REASON_CODE,
    CodecDetected,
    DurationKnown,
    ErrorDetected,
    Event,
    Failed,
    Killed,
    Outcome,
    ProgressUpdate,
    Success,
    SupervisorState,
    TranscodeConfig,
)

__all__ = [
    # Configuration and results
    "TranscodeConfig",
    "Outcome",
    "Success",
    "Killed",
    "Failed",
    "TIMEOUT_REASON_CODE",
    "CANCEL_REASON_CODE",
    # Events
    "Event",
    "CodecDetected",
    "ProgressUpdate",
    "DurationKnown",
    "ErrorDetected",
    # Components
    "TranscodeSession",
    "ProcessSupervisor",
    "ProcessHandle",
    "SupervisorState",
    "OutputParser",
    "StreamBridge",
    "classify_source",
    "classify_sink",
    # Command building
    "build_ffmpeg_command",
    "build_probe_command",
    # Snapshots
    "SnapshotOptions",
    "SnapshotPlan",
    "parse_snapshot_options",
    "plan_snapshots",
]
