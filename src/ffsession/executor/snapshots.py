"""Snapshot (still image) extraction planning.

Snapshots are taken with a single ffmpeg invocation that writes one output
per timemark:

    ffmpeg -i <src> -ss <t1> -frames:v 1 -an ... tn_1.jpg -ss <t2> ... tn_2.jpg

Output seeking decodes up to each mark, which works identically for file
and piped input.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from ffsession.exceptions import SnapshotOptionsError
from ffsession.tools.ffmpeg_progress import parse_timestamp

DEFAULT_FILENAME = "tn_%s"
DEFAULT_EXTENSION = ".jpg"

_PERCENT_MARK = re.compile(r"^(\d+(?:\.\d+)?)%$")
_SIZE = re.compile(r"^(\d+|\?)x(\d+|\?)$")


def _is_valid_timemark(mark: str) -> bool:
    percent = _PERCENT_MARK.match(mark)
    if percent:
        return float(percent.group(1)) <= 100
    return parse_timestamp(mark) is not None


class SnapshotOptions(BaseModel):
    """Validated options for take_snapshots().

    Attributes:
        count: Number of snapshots. Defaults to the number of timemarks.
        timemarks: Explicit positions: seconds ("0.5"), timestamps
            ("00:01:02.5") or percentages of the duration ("50%").
        filename: Output name pattern. %s = timemark seconds, %i = 1-based
            index, %f = source file stem, %r = size.
        size: Output size "WxH"; either side may be "?" to keep aspect.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    count: int | None = Field(default=None, ge=1)
    timemarks: tuple[str, ...] | None = None
    filename: str = DEFAULT_FILENAME
    size: str | None = None

    @field_validator("timemarks", mode="before")
    @classmethod
    def coerce_timemarks(cls, v: Any) -> Any:
        """Accept numbers as timemarks."""
        if v is None:
            return v
        if isinstance(v, (str, bytes)):
            raise ValueError("timemarks must be a list, not a single string")
        return tuple(str(mark).strip() for mark in v)

    @field_validator("timemarks")
    @classmethod
    def validate_timemarks(cls, v: tuple[str, ...] | None) -> tuple[str, ...] | None:
        """Validate each timemark."""
        if v is None:
            return v
        if not v:
            raise ValueError("timemarks must not be empty")
        for idx, mark in enumerate(v):
            if not _is_valid_timemark(mark):
                raise ValueError(
                    f"Invalid timemark '{mark}' at timemarks[{idx}]. "
                    "Use seconds ('0.5'), HH:MM:SS.ff, or a percentage ('50%')."
                )
        return v

    @field_validator("filename")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        """Filename must be a bare name inside the destination directory."""
        if not v.strip():
            raise ValueError("filename must not be empty")
        if "/" in v or "\\" in v:
            raise ValueError(f"filename must not contain path separators: '{v}'")
        return v

    @field_validator("size")
    @classmethod
    def validate_size(cls, v: str | None) -> str | None:
        """Validate "WxH" with optional "?" on one side."""
        if v is None:
            return v
        if not _SIZE.match(v) or v == "?x?":
            raise ValueError(f"Invalid size '{v}'. Use WxH, Wx? or ?xH.")
        return v

    @model_validator(mode="after")
    def validate_count(self) -> SnapshotOptions:
        """Require a count or timemarks, and no more count than timemarks."""
        if self.count is None and self.timemarks is None:
            raise ValueError("Either count or timemarks must be given")
        if (
            self.count is not None
            and self.timemarks is not None
            and self.count > len(self.timemarks)
        ):
            raise ValueError(
                f"count ({self.count}) exceeds the number of timemarks "
                f"({len(self.timemarks)})"
            )
        return self

    @property
    def explicit(self) -> bool:
        """True when positions were given rather than computed."""
        return self.timemarks is not None

    @property
    def effective_count(self) -> int:
        if self.timemarks is not None:
            return min(self.count or len(self.timemarks), len(self.timemarks))
        assert self.count is not None
        return self.count

    @property
    def selected_timemarks(self) -> tuple[str, ...]:
        if self.timemarks is None:
            return ()
        return self.timemarks[: self.effective_count]

    @property
    def needs_duration(self) -> bool:
        """True if the input duration is needed to place the snapshots."""
        if self.timemarks is None:
            return True
        return any(_PERCENT_MARK.match(m) for m in self.selected_timemarks)


def parse_snapshot_options(value: SnapshotOptions | Mapping[str, Any] | int) -> SnapshotOptions:
    """Build SnapshotOptions from options, a mapping, or a bare count.

    Raises:
        SnapshotOptionsError: If validation fails.
    """
    if isinstance(value, SnapshotOptions):
        return value
    try:
        if isinstance(value, int) and not isinstance(value, bool):
            return SnapshotOptions(count=value)
        if isinstance(value, Mapping):
            return SnapshotOptions.model_validate(dict(value))
    except ValidationError as e:
        raise SnapshotOptionsError(f"Invalid snapshot options: {e}") from e
    raise SnapshotOptionsError(
        f"Snapshot options must be a mapping or a count, got {type(value).__name__}"
    )


@dataclass
class SnapshotPlan:
    """Resolved snapshot positions, output files, and ffmpeg output options."""

    timemarks: list[float]
    outputs: list[Path]
    explicit: bool
    args: list[str] = field(default_factory=list)

    @property
    def final_output(self) -> Path:
        return self.outputs[-1]


def format_seconds(seconds: float) -> str:
    """Format seconds compactly: 1.0 -> "1", 0.5 -> "0.5"."""
    text = f"{seconds:.3f}".rstrip("0").rstrip(".")
    return text or "0"


def resolve_timemarks(options: SnapshotOptions, duration: float | None) -> list[float]:
    """Turn options into absolute positions in seconds.

    Raises:
        SnapshotOptionsError: If a duration is required but unknown.
    """
    if options.needs_duration and (duration is None or duration <= 0):
        raise SnapshotOptionsError(
            "Input duration is unknown; cannot place snapshots without "
            "explicit second or timestamp timemarks"
        )

    if options.timemarks is None:
        assert duration is not None
        count = options.effective_count
        interval = duration / (count + 1)
        return [interval * i for i in range(1, count + 1)]

    marks: list[float] = []
    for mark in options.selected_timemarks:
        percent = _PERCENT_MARK.match(mark)
        if percent:
            assert duration is not None
            marks.append(duration * float(percent.group(1)) / 100)
        else:
            seconds = parse_timestamp(mark)
            assert seconds is not None  # checked by the validator
            marks.append(seconds)
    return marks


def size_args(size: str | None) -> list[str]:
    """Translate a WxH size string into ffmpeg options."""
    if size is None:
        return []
    width, _, height = size.partition("x")
    if width == "?":
        return ["-vf", f"scale=-2:{height}"]
    if height == "?":
        return ["-vf", f"scale={width}:-2"]
    return ["-s", size]


def build_filenames(
    options: SnapshotOptions, timemarks: list[float], source_stem: str
) -> list[str]:
    """Expand the filename pattern for every timemark.

    Raises:
        SnapshotOptionsError: If the pattern yields duplicate names.
    """
    pattern = options.filename
    stem, ext = Path(pattern).stem, Path(pattern).suffix
    if not ext:
        stem, ext = pattern, DEFAULT_EXTENSION
    if len(timemarks) > 1 and "%s" not in stem and "%i" not in stem:
        stem = f"{stem}_%i"

    names = []
    for index, mark in enumerate(timemarks, start=1):
        name = (
            stem.replace("%s", format_seconds(mark))
            .replace("%i", str(index))
            .replace("%f", source_stem)
            .replace("%r", options.size or "")
        )
        names.append(name + ext)

    if len(set(names)) != len(names):
        raise SnapshotOptionsError(
            f"Filename pattern '{options.filename}' produces duplicate names: {names}"
        )
    return names


def plan_snapshots(
    options: SnapshotOptions,
    destination_dir: Path,
    source_stem: str,
    duration: float | None = None,
) -> SnapshotPlan:
    """Resolve positions and build ffmpeg output options.

    The returned args list contains every output except the last one; the
    last output is the session's output locator so that the command ends
    with it.

    Args:
        options: Validated snapshot options.
        destination_dir: Directory receiving the images.
        source_stem: Source file stem for the %f placeholder.
        duration: Input duration in seconds, if known.

    Returns:
        SnapshotPlan ready to be turned into a TranscodeConfig.
    """
    timemarks = resolve_timemarks(options, duration)
    names = build_filenames(options, timemarks, source_stem)
    outputs = [Path(destination_dir) / name for name in names]

    per_output = ["-frames:v", "1", "-an", *size_args(options.size), "-update", "1"]
    args: list[str] = []
    for index, (mark, output) in enumerate(zip(timemarks, outputs)):
        args.extend(["-ss", format_seconds(mark), *per_output])
        if index < len(outputs) - 1:
            args.append(str(output))

    return SnapshotPlan(
        timemarks=timemarks,
        outputs=outputs,
        explicit=options.explicit,
        args=args,
    )
