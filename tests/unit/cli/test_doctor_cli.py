"""Tests for the doctor command and CLI group options."""

from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from ffsession.cli import main
from ffsession.cli.exit_codes import ExitCode
from ffsession.config import FFSessionConfig
from ffsession.tools import ToolInfo

RENICE = ToolInfo(name="renice", path=Path("/usr/bin/renice"))


class TestDoctorCommand:
    """Tests for `ffsession doctor`."""

    def test_all_available(
        self, runner: CliRunner, settings: FFSessionConfig, fake_ffmpeg: Path
    ) -> None:
        with patch("ffsession.cli.doctor.detect_renice", return_value=RENICE):
            result = runner.invoke(
                main, ["doctor", "--verbose"], obj={"config": settings}
            )

        assert result.exit_code == ExitCode.SUCCESS
        assert "6.1-fake" in result.output
        assert str(fake_ffmpeg) in result.output

    def test_missing_ffmpeg_is_critical(
        self, runner: CliRunner, settings: FFSessionConfig
    ) -> None:
        with (
            patch(
                "ffsession.cli.doctor.detect_ffmpeg",
                return_value=ToolInfo(name="ffmpeg"),
            ),
            patch("ffsession.cli.doctor.detect_renice", return_value=RENICE),
        ):
            result = runner.invoke(main, ["doctor"], obj={"config": settings})

        assert result.exit_code == ExitCode.CRITICAL
        assert "not found" in result.output

    def test_missing_renice_is_warning(
        self, runner: CliRunner, settings: FFSessionConfig
    ) -> None:
        with patch(
            "ffsession.cli.doctor.detect_renice",
            return_value=ToolInfo(name="renice"),
        ):
            result = runner.invoke(main, ["doctor"], obj={"config": settings})

        assert result.exit_code == ExitCode.WARNINGS


class TestMainGroup:
    def test_invalid_environment_config(
        self, runner: CliRunner, tmp_path: Path
    ) -> None:
        """A bad value from the environment should exit with 11."""
        result = runner.invoke(
            main,
            ["doctor"],
            env={
                "FFSESSION_CONFIG_PATH": str(tmp_path / "none.toml"),
                "FFSESSION_PRIORITY": "99",
            },
        )

        assert result.exit_code == ExitCode.CONFIG_ERROR

    def test_wrongly_typed_config_file(
        self, runner: CliRunner, tmp_path: Path
    ) -> None:
        """A config file value of the wrong type should exit with 11."""
        config_file = tmp_path / "config.toml"
        config_file.write_text('[session]\nkill_grace = "5"\n')

        result = runner.invoke(
            main, ["doctor"], env={"FFSESSION_CONFIG_PATH": str(config_file)}
        )

        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert "kill_grace" in result.output

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        for name in ("doctor", "snapshots", "transcode"):
            assert name in result.output
