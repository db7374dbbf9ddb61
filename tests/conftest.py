"""
Shared pytest fixtures for all test levels.
Unit tests never touch ffmpeg; integration tests synthesize clips with lavfi.
"""
import os
import shutil
import subprocess
from pathlib import Path
from typing import Callable

import pytest

from src.config import CompositorConfig, PluginOptions, resolve_config
from src.timeline.models import Mode


# ---------------------------------------------------------------------------
# Environment setup: keep developer env vars from leaking into tests
# ---------------------------------------------------------------------------
_ENV_KEYS = (
    "AUDIO_FILE_PATTERN", "AUDIO_OUTPUT_TYPES", "AUDIO_FILENAME", "AUDIO_TEMP_DIR",
    "AUDIO_OUTPUT_DIR", "AUDIO_PUBLIC_DIR", "AUDIO_SECONDARY_CODEC", "FFMPEG_PATH",
    "FFMPEG_TIMEOUT_SEC", "DEBOUNCE_SEC",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    yield


# ---------------------------------------------------------------------------
# Config helpers
# ---------------------------------------------------------------------------

def make_config(root: Path, mode: Mode = Mode.BUILD, base: str = "/", **options) -> CompositorConfig:
    """Resolve a CompositorConfig rooted at `root` with option overrides."""
    return resolve_config(PluginOptions(**options), root=root, base=base, mode=mode)


@pytest.fixture
def build_config(tmp_path: Path) -> CompositorConfig:
    return make_config(tmp_path, Mode.BUILD)


@pytest.fixture
def interactive_config(tmp_path: Path) -> CompositorConfig:
    return make_config(tmp_path, Mode.INTERACTIVE)


# ---------------------------------------------------------------------------
# Fake prober
# ---------------------------------------------------------------------------

def fake_prober(durations: dict[str, int]) -> Callable:
    """Prober returning canned durations keyed by basename; records every call."""
    calls: list[str] = []

    def _probe(path: str, config) -> int:
        calls.append(path)
        return durations[os.path.basename(path)]

    _probe.calls = calls
    return _probe


# ---------------------------------------------------------------------------
# Sample ffmpeg diagnostic output
# ---------------------------------------------------------------------------

def ffmpeg_header(duration: str = "00:00:03.50") -> str:
    """Text ffmpeg prints for `ffmpeg -i clip.mp3` with no output file."""
    return (
        "Input #0, mp3, from 'clip.mp3':\n"
        "  Metadata:\n"
        "    encoder         : Lavf60.3.100\n"
        f"  Duration: {duration}, start: 0.025057, bitrate: 64 kb/s\n"
        "  Stream #0:0: Audio: mp3, 44100 Hz, mono, fltp, 64 kb/s\n"
        "At least one output file must be specified\n"
    )


# ---------------------------------------------------------------------------
# Synthetic audio fixtures (integration)
# ---------------------------------------------------------------------------

def make_sine_mp3(output_path: Path, seconds: float, frequency: int = 440) -> Path:
    """Generate a mono sine-wave MP3 with the ffmpeg lavfi source."""
    if shutil.which("ffmpeg") is None:
        pytest.skip("ffmpeg not installed")
    cmd = [
        "ffmpeg", "-y", "-loglevel", "error",
        "-f", "lavfi",
        "-i", f"sine=frequency={frequency}:sample_rate=44100:duration={seconds}",
        "-ac", "1",
        "-c:a", "libmp3lame", "-b:a", "64k",
        str(output_path),
    ]
    result = subprocess.run(cmd, capture_output=True)
    if result.returncode != 0:
        pytest.skip(f"ffmpeg cannot encode mp3: {result.stderr.decode()[:200]}")
    return output_path
