"""Tests for snapshot option validation and planning."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from ffsession.exceptions import SnapshotOptionsError
from ffsession.executor.snapshots import (
    SnapshotOptions,
    build_filenames,
    format_seconds,
    parse_snapshot_options,
    plan_snapshots,
    resolve_timemarks,
    size_args,
)


class TestSnapshotOptions:
    """Tests for SnapshotOptions validation."""

    def test_numbers_accepted_as_timemarks(self) -> None:
        options = SnapshotOptions(timemarks=[0.5, 1, "00:00:02.5", "50%"])

        assert options.timemarks == ("0.5", "1", "00:00:02.5", "50%")

    def test_count_defaults_to_timemark_count(self) -> None:
        options = SnapshotOptions(timemarks=["1", "2", "3"])

        assert options.effective_count == 3
        assert options.explicit is True

    def test_smaller_count_truncates(self) -> None:
        options = SnapshotOptions(count=2, timemarks=["1", "2", "3"])

        assert options.selected_timemarks == ("1", "2")

    def test_count_exceeding_timemarks_rejected(self) -> None:
        with pytest.raises(ValidationError, match="exceeds"):
            SnapshotOptions(count=3, timemarks=["1", "2"])

    def test_count_or_timemarks_required(self) -> None:
        with pytest.raises(ValidationError):
            SnapshotOptions()

    @pytest.mark.parametrize("mark", ["abc", "-1", "150%", "1:2:3:4"])
    def test_invalid_timemark_rejected(self, mark: str) -> None:
        with pytest.raises(ValidationError, match="Invalid timemark"):
            SnapshotOptions(timemarks=[mark])

    def test_single_string_timemarks_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SnapshotOptions(timemarks="1")

    def test_filename_with_separator_rejected(self) -> None:
        with pytest.raises(ValidationError, match="path separators"):
            SnapshotOptions(count=1, filename="../tn_%s")

    @pytest.mark.parametrize("size", ["320x240", "150x?", "?x100"])
    def test_valid_sizes(self, size: str) -> None:
        assert SnapshotOptions(count=1, size=size).size == size

    @pytest.mark.parametrize("size", ["?x?", "320", "320x", "big"])
    def test_invalid_sizes(self, size: str) -> None:
        with pytest.raises(ValidationError):
            SnapshotOptions(count=1, size=size)

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            SnapshotOptions(count=1, folder="/tmp")

    def test_needs_duration(self) -> None:
        assert SnapshotOptions(count=2).needs_duration is True
        assert SnapshotOptions(timemarks=["1", "2"]).needs_duration is False
        assert SnapshotOptions(timemarks=["1", "50%"]).needs_duration is True
        # Truncated-away percentage marks do not matter
        assert SnapshotOptions(count=1, timemarks=["1", "50%"]).needs_duration is False


class TestParseSnapshotOptions:
    def test_from_mapping(self) -> None:
        options = parse_snapshot_options({"count": 2, "timemarks": ["0.5", "1"]})
        assert options.effective_count == 2

    def test_from_count(self) -> None:
        assert parse_snapshot_options(4).count == 4

    def test_passthrough(self) -> None:
        options = SnapshotOptions(count=1)
        assert parse_snapshot_options(options) is options

    def test_validation_error_wrapped(self) -> None:
        with pytest.raises(SnapshotOptionsError):
            parse_snapshot_options({"count": 0})

    def test_wrong_type_rejected(self) -> None:
        with pytest.raises(SnapshotOptionsError):
            parse_snapshot_options("3")


class TestResolveTimemarks:
    """Tests for turning options into seconds."""

    def test_even_spread(self) -> None:
        """count marks should be spread as duration * i / (count + 1)."""
        marks = resolve_timemarks(SnapshotOptions(count=3), duration=10.0)

        assert marks == pytest.approx([2.5, 5.0, 7.5])

    def test_explicit_forms(self) -> None:
        options = SnapshotOptions(timemarks=["0.5", "00:01:00.5", "25%"])

        marks = resolve_timemarks(options, duration=200.0)

        assert marks == pytest.approx([0.5, 60.5, 50.0])

    def test_explicit_seconds_need_no_duration(self) -> None:
        marks = resolve_timemarks(SnapshotOptions(timemarks=["1", "2"]), None)
        assert marks == [1.0, 2.0]

    def test_unknown_duration_rejected(self) -> None:
        with pytest.raises(SnapshotOptionsError, match="duration"):
            resolve_timemarks(SnapshotOptions(count=2), duration=None)

    def test_percentage_requires_duration(self) -> None:
        with pytest.raises(SnapshotOptionsError):
            resolve_timemarks(SnapshotOptions(timemarks=["50%"]), duration=None)


class TestFilenames:
    """Tests for filename pattern expansion."""

    def test_default_pattern(self) -> None:
        names = build_filenames(SnapshotOptions(count=2), [0.5, 1.0], "clip")
        assert names == ["tn_0.5.jpg", "tn_1.jpg"]

    def test_index_inserted_when_pattern_is_static(self) -> None:
        options = SnapshotOptions(count=2, filename="thumb.png")

        names = build_filenames(options, [1.0, 2.0], "clip")

        assert names == ["thumb_1.png", "thumb_2.png"]

    def test_single_static_pattern_unchanged(self) -> None:
        options = SnapshotOptions(count=1, filename="poster.png")
        assert build_filenames(options, [1.0], "clip") == ["poster.png"]

    def test_placeholders(self) -> None:
        options = SnapshotOptions(count=1, filename="%f-%i-%r-%s", size="320x240")

        names = build_filenames(options, [3.25], "movie")

        assert names == ["movie-1-320x240-3.25.jpg"]

    def test_duplicate_names_rejected(self) -> None:
        options = SnapshotOptions(timemarks=["1", "1"])
        with pytest.raises(SnapshotOptionsError, match="duplicate"):
            build_filenames(options, [1.0, 1.0], "clip")


class TestPlanSnapshots:
    """Tests for the multi-output ffmpeg plan."""

    def test_one_output_per_mark(self, tmp_path: Path) -> None:
        options = SnapshotOptions(count=2, timemarks=["0.5", "1"], size="160x120")

        plan = plan_snapshots(options, tmp_path, "clip")

        assert plan.outputs == [tmp_path / "tn_0.5.jpg", tmp_path / "tn_1.jpg"]
        assert plan.final_output == tmp_path / "tn_1.jpg"
        assert plan.explicit is True
        # Every output but the last is named inside args
        assert str(tmp_path / "tn_0.5.jpg") in plan.args
        assert str(tmp_path / "tn_1.jpg") not in plan.args
        assert plan.args[:2] == ["-ss", "0.5"]
        assert plan.args.count("-frames:v") == 2
        assert plan.args.count("-s") == 2

    def test_auto_plan_not_explicit(self, tmp_path: Path) -> None:
        plan = plan_snapshots(SnapshotOptions(count=1), tmp_path, "clip", 8.0)

        assert plan.timemarks == [4.0]
        assert plan.explicit is False
        assert plan.outputs == [tmp_path / "tn_4.jpg"]


class TestHelpers:
    @pytest.mark.parametrize(
        ("seconds", "text"), [(1.0, "1"), (0.5, "0.5"), (2.125, "2.125"), (0.0, "0")]
    )
    def test_format_seconds(self, seconds: float, text: str) -> None:
        assert format_seconds(seconds) == text

    def test_size_args(self) -> None:
        assert size_args(None) == []
        assert size_args("320x240") == ["-s", "320x240"]
        assert size_args("150x?") == ["-vf", "scale=150:-2"]
        assert size_args("?x100") == ["-vf", "scale=-2:100"]
