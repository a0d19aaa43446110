"""Shared test fixtures for ffsession."""

import sys
from pathlib import Path

import pytest

from ffsession.config import FFSessionConfig, SessionConfig, ToolPathsConfig
from ffsession.executor import TranscodeSession

# Stand-in for the ffmpeg binary. Behaviour is selected with the
# FAKE_FFMPEG_MODE environment variable:
#   transcode    banner, progress (with one regressing line), then outputs
#   hang         banner, then sleep until killed
#   ignore-term  like hang, but SIGTERM is ignored
#   skip-last    like transcode, but the last output file is not written
# FAKE_FFMPEG_EXIT=<n> makes a transcode fail with exit code n.
# `-version` prints a version line to stdout.
# An invocation without an output (`-i <src>` last) behaves like ffmpeg
# probing: banner, then exit code 1.
FAKE_FFMPEG_SCRIPT = r'''
import os
import signal
import sys
import time

args = sys.argv[1:]
mode = os.environ.get("FAKE_FFMPEG_MODE", "transcode")


def say(text, end="\n"):
    sys.stderr.write(text + end)
    sys.stderr.flush()


if args == ["-version"]:
    print("ffmpeg version 6.1-fake Copyright (c) 2000-2023 the FFmpeg developers")
    sys.exit(0)

if mode == "ignore-term":
    signal.signal(signal.SIGTERM, signal.SIG_IGN)

source = args[args.index("-i") + 1] if "-i" in args else None

say("ffmpeg version 6.1-fake Copyright (c) 2000-2023 the FFmpeg developers")
say(f"Input #0, avi, from '{source}':")
say("  Duration: 00:00:10.00, start: 0.000000, bitrate: 1000 kb/s")
say("  Stream #0:0: Video: mpeg4 (Simple Profile), yuv420p, 320x240, 25 fps")
say("  Stream #0:1: Audio: mp3, 44100 Hz, stereo, fltp, 128 kb/s")

if len(args) >= 2 and args[-2] == "-i":
    say("At least one output file must be specified")
    sys.exit(1)

say("Output #0, mp4, to 'out':")
say("  Stream #0:0: Video: h264, yuv420p, 320x240")
say("  Stream #0:1: Audio: aac, 44100 Hz, stereo")
say("Stream mapping:")

if mode in ("hang", "ignore-term"):
    deadline = time.time() + 30
    while time.time() < deadline:
        time.sleep(0.05)
    sys.exit(0)

data = b""
if source == "pipe:0":
    data = sys.stdin.buffer.read()

for seconds in (2.5, 5.0, 4.0, 7.5, 10.0):
    frame = int(seconds * 25)
    say(
        f"frame={frame:5d} fps= 25 q=2.0 size={frame * 4:8d}kB "
        f"time=00:00:{seconds:05.2f} bitrate= 800.0kbits/s speed=2.0x",
        end="\r",
    )
    time.sleep(0.01)

exit_code = int(os.environ.get("FAKE_FFMPEG_EXIT", "0"))
if exit_code:
    say("")
    say("Conversion failed!")
    sys.exit(exit_code)

output = args[-1]
if output == "pipe:1":
    sys.stdout.buffer.write(data or b"fake-output")
    sys.stdout.buffer.flush()
else:
    start = args.index("-i") + 2
    outputs = [a for a in args[start:] if a.endswith((".jpg", ".png"))]
    if output not in outputs:
        outputs.append(output)
    if mode == "skip-last":
        outputs = outputs[:-1]
    for path in outputs:
        with open(path, "wb") as f:
            f.write(data or b"fake")

say("")
say("video:100kB audio:10kB subtitle:0kB other streams:0kB")
sys.exit(0)
'''


@pytest.fixture
def fake_ffmpeg(tmp_path: Path) -> Path:
    """Write an executable fake ffmpeg into a temp bin directory."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    script = bin_dir / "ffmpeg"
    script.write_text(f"#!{sys.executable}\n{FAKE_FFMPEG_SCRIPT}")
    script.chmod(0o755)
    return script


@pytest.fixture
def settings(fake_ffmpeg: Path) -> FFSessionConfig:
    """Configuration pointing at the fake ffmpeg with fast timings."""
    return FFSessionConfig(
        tools=ToolPathsConfig(ffmpeg=fake_ffmpeg),
        session=SessionConfig(kill_grace=1.0, poll_interval=0.01),
    )


@pytest.fixture
def session(settings: FFSessionConfig) -> TranscodeSession:
    """TranscodeSession running the fake ffmpeg."""
    return TranscodeSession(settings=settings)


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    """A dummy input file (content is never decoded by the fake)."""
    path = tmp_path / "in.avi"
    path.write_bytes(b"RIFF" + b"\x00" * 1024)
    return path
