"""Tests for session data types."""

import dataclasses

import pytest

from ffsession.executor.types import (
    CANCEL_REASON_CODE,
    TIMEOUT_REASON_CODE,
    Failed,
    Killed,
    Success,
    SupervisorState,
    TranscodeConfig,
)


class TestTranscodeConfig:
    """Tests for TranscodeConfig validation and immutability."""

    def test_lists_are_frozen_to_tuples(self) -> None:
        args = ["-c:v", "copy"]
        config = TranscodeConfig(source="in.avi", output="out.mp4", args=args)
        args.append("-an")

        assert config.args == ("-c:v", "copy")

    @pytest.mark.parametrize("field", ["args", "input_args"])
    @pytest.mark.parametrize("value", ["-an", b"-an"])
    def test_single_string_options_rejected(self, field: str, value) -> None:
        """A bare string must not be split into one option per character."""
        with pytest.raises(ValueError, match=field):
            TranscodeConfig(source="in.avi", output="out.mp4", **{field: value})

    def test_config_is_immutable(self) -> None:
        config = TranscodeConfig(source="in.avi", output="out.mp4")

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.timeout = 5  # type: ignore[misc]

    def test_negative_timeout_rejected(self) -> None:
        with pytest.raises(ValueError, match="timeout"):
            TranscodeConfig(source="in.avi", output="out.mp4", timeout=-1)

    @pytest.mark.parametrize("priority", [-21, 20])
    def test_priority_out_of_range_rejected(self, priority: int) -> None:
        with pytest.raises(ValueError, match="priority"):
            TranscodeConfig(source="in.avi", output="out.mp4", priority=priority)

    def test_fractional_timeout_allowed(self) -> None:
        config = TranscodeConfig(source="in.avi", output="out.mp4", timeout=0.25)
        assert config.timeout == 0.25


class TestOutcomes:
    """Tests for outcome helpers."""

    def test_success_is_the_only_success(self) -> None:
        assert Success().succeeded is True
        assert Killed().succeeded is False
        assert Failed(exit_code=1).succeeded is False

    def test_killed_reason_codes(self) -> None:
        assert TIMEOUT_REASON_CODE == -99
        assert Killed(reason_code=TIMEOUT_REASON_CODE).timed_out is True
        assert Killed(reason_code=CANCEL_REASON_CODE).timed_out is False

    def test_terminal_states(self) -> None:
        assert not SupervisorState.UNSTARTED.is_terminal
        assert not SupervisorState.RUNNING.is_terminal
        assert SupervisorState.COMPLETED.is_terminal
        assert SupervisorState.KILLED.is_terminal
        assert SupervisorState.FAILED.is_terminal
