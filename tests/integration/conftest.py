"""Fixtures for tests that run the real ffmpeg binary."""

import shutil
import subprocess
from pathlib import Path

import pytest

from ffsession.config import FFSessionConfig, SessionConfig, ToolPathsConfig
from ffsession.executor import TranscodeSession

FFMPEG = shutil.which("ffmpeg")


@pytest.fixture
def real_settings() -> FFSessionConfig:
    return FFSessionConfig(
        tools=ToolPathsConfig(ffmpeg=Path(FFMPEG)),
        session=SessionConfig(kill_grace=2.0, poll_interval=0.02),
    )


@pytest.fixture
def real_session(real_settings: FFSessionConfig) -> TranscodeSession:
    return TranscodeSession(settings=real_settings)


@pytest.fixture(scope="session")
def sample_clip(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """A 2 second test clip with mpeg4 video and aac audio."""
    if FFMPEG is None:
        pytest.skip("ffmpeg not installed")
    path = tmp_path_factory.mktemp("media") / "clip.mkv"
    subprocess.run(  # nosec B603 - fixed arguments
        [
            FFMPEG,
            "-hide_banner",
            "-loglevel",
            "error",
            "-f",
            "lavfi",
            "-i",
            "testsrc=duration=2:size=160x120:rate=25",
            "-f",
            "lavfi",
            "-i",
            "sine=frequency=440:duration=2",
            "-c:v",
            "mpeg4",
            "-c:a",
            "aac",
            "-shortest",
            str(path),
        ],
        check=True,
        timeout=60,
    )
    return path
