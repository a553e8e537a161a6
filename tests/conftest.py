"""Shared pytest fixtures for the EVA hook tests."""

import os
import subprocess
import sys
from pathlib import Path
from typing import Any

import pytest

# Repository root importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from eva_hooks.catalog import SOUND_MAPPINGS  # noqa: E402
from eva_hooks.config import HookConfig  # noqa: E402
from eva_hooks.player import PlayerCommand  # noqa: E402


class FakeClock:
    """Manually advanced clock; sleep() advances it instead of blocking."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class RecordingLock:
    """PlaybackLock stand-in that records calls."""

    def __init__(self, grant: bool = True):
        self.grant = grant
        self.calls: list[str] = []

    def acquire(self, timeout: float = 10.0, staleness: float = 5.0) -> bool:
        self.calls.append("acquire")
        return self.grant

    def release(self) -> None:
        self.calls.append("release")


class FakeRunner:
    """subprocess.run stand-in."""

    def __init__(self, returncode: int = 0, error: Exception | None = None):
        self.returncode = returncode
        self.error = error
        self.argvs: list[list[str]] = []

    def __call__(self, argv, **kwargs):
        self.argvs.append(list(argv))
        if self.error is not None:
            raise self.error
        return subprocess.CompletedProcess(argv, self.returncode)


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test files."""
    return tmp_path


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def assets_root(tmp_path: Path) -> Path:
    """Assets tree with an (empty) WAV file for every catalog entry."""
    root = tmp_path / "assets" / "audio"
    for entry in SOUND_MAPPINGS.values():
        for faction, names in entry.items():
            directory = root / faction.directory
            directory.mkdir(parents=True, exist_ok=True)
            for name in names:
                (directory / name).write_bytes(b"RIFF")
    return root


@pytest.fixture
def hook_config(tmp_path: Path, assets_root: Path) -> HookConfig:
    """Config pointing every path into tmp_path."""
    return HookConfig(
        assets_root=assets_root,
        lock_path=tmp_path / "ra2-eva-audio.lock",
        mute_marker=tmp_path / "eva-muted",
    )


@pytest.fixture
def fake_player() -> PlayerCommand:
    return PlayerCommand("aplay", ("/usr/bin/aplay", "-q"))


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """HOME and CLAUDE_HOME inside tmp_path, no EVA_HOOKS_* leaking in."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.setenv("CLAUDE_HOME", str(home / ".claude"))
    for name in list(os.environ):
        if name.startswith("EVA_HOOKS_"):
            monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture
def session_start_payload() -> dict[str, Any]:
    """Sample sessionStart input with the common host fields."""
    return {
        "hook_event_name": "sessionStart",
        "conversation_id": "conv-123",
        "generation_id": "gen-456",
        "model": "claude-sonnet-4",
        "cursor_version": "1.7.0",
        "workspace_roots": ["/home/user/project"],
        "user_email": None,
        "transcript_path": None,
        "session_id": "sess-789",
        "is_background_agent": False,
        "composer_mode": "agent",
    }

