"""Tests for configuration loading and precedence."""

import logging
import os
from pathlib import Path

import pytest

from ffsession.config import (
    EnvReader,
    FFSessionConfig,
    SessionConfig,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from ffsession.config.models import LoggingConfig
from ffsession.exceptions import ConfigError

SAMPLE_TOML = """
[tools]
ffmpeg = "/opt/ffmpeg/bin/ffmpeg"

[session]
default_timeout = 120.0
default_priority = 10
kill_grace = 3.0
tail_lines = 20

[logging]
level = "debug"
format = "json"
"""


@pytest.fixture(autouse=True)
def fresh_cache():
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(SAMPLE_TOML)
    return path


class TestLoadConfigFile:
    """Tests for load_config_file."""

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert load_config_file(tmp_path / "nope.toml") == {}

    def test_parses_file(self, config_file: Path) -> None:
        data = load_config_file(config_file)
        assert data["session"]["kill_grace"] == 3.0

    def test_cache_invalidated_by_mtime(self, config_file: Path) -> None:
        """A modified file should be re-read."""
        assert load_config_file(config_file)["session"]["tail_lines"] == 20

        config_file.write_text("[session]\ntail_lines = 5\n")
        stat = config_file.stat()
        os.utime(config_file, (stat.st_atime, stat.st_mtime + 10))

        assert load_config_file(config_file)["session"]["tail_lines"] == 5

    def test_invalid_toml_lenient(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = tmp_path / "broken.toml"
        path.write_text("[session\n")

        with caplog.at_level(logging.WARNING):
            assert load_config_file(path) == {}

        assert "Ignoring unparseable config file" in caplog.text

    def test_invalid_toml_strict(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.toml"
        path.write_text("[session\n")

        with pytest.raises(ConfigError):
            load_config_file(path, strict=True)


class TestGetDefaultConfigPath:
    def test_env_override(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("FFSESSION_CONFIG_PATH", str(tmp_path / "c.toml"))
        assert get_default_config_path() == tmp_path / "c.toml"

    def test_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("FFSESSION_CONFIG_PATH", raising=False)
        assert get_default_config_path().name == "config.toml"


class TestGetConfig:
    """Tests for get_config precedence."""

    def test_defaults(self, tmp_path: Path) -> None:
        config = get_config(
            config_path=tmp_path / "none.toml", env_reader=EnvReader(env={})
        )

        assert config == FFSessionConfig()

    def test_file_values(self, config_file: Path) -> None:
        config = get_config(config_path=config_file, env_reader=EnvReader(env={}))

        assert config.tools.ffmpeg == Path("/opt/ffmpeg/bin/ffmpeg")
        assert config.session.default_timeout == 120.0
        assert config.session.default_priority == 10
        assert config.session.kill_grace == 3.0
        assert config.session.tail_lines == 20
        assert config.logging.level == "debug"
        assert config.logging.format == "json"

    def test_env_overrides_file(self, config_file: Path) -> None:
        """Environment variables should beat the config file."""
        env = EnvReader(
            env={
                "FFSESSION_FFMPEG_PATH": "/usr/local/bin/ffmpeg",
                "FFSESSION_TIMEOUT": "30",
                "FFSESSION_LOG_LEVEL": "warning",
            }
        )

        config = get_config(config_path=config_file, env_reader=env)

        assert config.tools.ffmpeg == Path("/usr/local/bin/ffmpeg")
        assert config.session.default_timeout == 30.0
        assert config.logging.level == "warning"

    def test_arguments_override_env(self, config_file: Path) -> None:
        """Explicit arguments should have the highest precedence."""
        env = EnvReader(env={"FFSESSION_TIMEOUT": "30", "FFSESSION_PRIORITY": "5"})

        config = get_config(
            config_path=config_file,
            timeout=5.0,
            priority=-2,
            log_format="text",
            env_reader=env,
        )

        assert config.session.default_timeout == 5.0
        assert config.session.default_priority == -2
        assert config.logging.format == "text"

    @pytest.mark.parametrize(
        "toml, match",
        [
            ('[session]\nkill_grace = "5"\n', r"\[session\] kill_grace"),
            ("[session]\ntail_lines = 2.5\n", r"\[session\] tail_lines"),
            ("[session]\ndefault_priority = true\n", r"\[session\] default_priority"),
            ("[logging]\nlevel = 10\n", r"\[logging\] level"),
            ('[logging]\ninclude_stderr = "yes"\n', r"\[logging\] include_stderr"),
            ("[tools]\nffmpeg = 1\n", r"\[tools\] ffmpeg"),
            ("session = 5\n", r"\[session\] must be a table"),
        ],
    )
    def test_wrong_file_type_raises_value_error(
        self, tmp_path: Path, toml: str, match: str
    ) -> None:
        """Values of the wrong TOML type are rejected with a clear message."""
        path = tmp_path / "config.toml"
        path.write_text(toml)

        with pytest.raises(ValueError, match=match):
            get_config(config_path=path, env_reader=EnvReader(env={}))

    def test_integer_accepted_for_seconds(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("[session]\nkill_grace = 5\ndefault_timeout = 60\n")

        config = get_config(config_path=path, env_reader=EnvReader(env={}))

        assert config.session.kill_grace == 5
        assert config.session.default_timeout == 60

    def test_invalid_merged_value_raises(self, tmp_path: Path) -> None:
        env = EnvReader(env={"FFSESSION_PRIORITY": "40"})

        with pytest.raises(ValueError, match="default_priority"):
            get_config(config_path=tmp_path / "none.toml", env_reader=env)


class TestModelValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"default_timeout": -1},
            {"default_priority": 20},
            {"kill_grace": -0.5},
            {"poll_interval": 0},
            {"tail_lines": 0},
            {"chunk_size": 0},
        ],
    )
    def test_session_config_rejects(self, kwargs) -> None:
        with pytest.raises(ValueError):
            SessionConfig(**kwargs)

    def test_logging_config_rejects_unknown_level(self) -> None:
        with pytest.raises(ValueError, match="level"):
            LoggingConfig(level="verbose")

    def test_logging_config_rejects_unknown_format(self) -> None:
        with pytest.raises(ValueError, match="format"):
            LoggingConfig(format="xml")
