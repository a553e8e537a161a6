"""Tests for eva_hooks/config.py"""

import json
from pathlib import Path

import pytest

from eva_hooks.config import (
    MAX_WAIT,
    POLL_INTERVAL,
    STALE_AFTER,
    HookConfig,
    LockBackend,
    PlaybackPolicy,
    load_config,
)


def test_defaults(isolated_env):
    config = load_config()

    assert config.policy == PlaybackPolicy.SYNC
    assert config.lock_backend == LockBackend.MARKER
    assert (config.poll_interval, config.stale_after, config.max_wait) == (POLL_INTERVAL, STALE_AFTER, MAX_WAIT)
    assert config.lock_path.name == "ra2-eva-audio.lock"
    assert config.assets_root == isolated_env / ".cursor" / "hooks" / "ra2-eva" / "assets" / "audio"
    assert config.mute_marker == isolated_env / ".claude" / "eva-muted"
    assert config.is_muted is False


def test_default_timing_ordering():
    assert POLL_INTERVAL < STALE_AFTER < MAX_WAIT


def test_config_file_values(isolated_env):
    config_file = isolated_env / ".claude" / "eva-hooks.json"
    config_file.parent.mkdir(parents=True)
    config_file.write_text(json.dumps({"policy": "detached", "volume": 0.4, "assets_root": "~/sounds"}))

    config = load_config()

    assert config.policy == PlaybackPolicy.DETACHED
    assert config.volume == 0.4
    assert config.assets_root == isolated_env / "sounds"


def test_env_beats_file(isolated_env, monkeypatch, tmp_path):
    config_file = tmp_path / "eva.json"
    config_file.write_text(json.dumps({"policy": "detached", "max_wait": 20}))
    monkeypatch.setenv("EVA_HOOKS_CONFIG", str(config_file))
    monkeypatch.setenv("EVA_HOOKS_POLICY", "sync")

    config = load_config()

    assert config.policy == PlaybackPolicy.SYNC
    assert config.max_wait == 20.0


def test_overrides_beat_env(isolated_env, monkeypatch):
    monkeypatch.setenv("EVA_HOOKS_LOCK_BACKEND", "advisory")
    config = load_config(lock_backend="marker")
    assert config.lock_backend == LockBackend.MARKER


def test_mute_env(isolated_env, monkeypatch):
    monkeypatch.setenv("EVA_HOOKS_MUTE", "yes")
    assert load_config().is_muted is True


def test_mute_marker_file(isolated_env):
    config = load_config()
    config.mute_marker.parent.mkdir(parents=True, exist_ok=True)
    config.mute_marker.touch()
    assert config.is_muted is True


def test_invalid_value_falls_back(isolated_env, monkeypatch):
    monkeypatch.setenv("EVA_HOOKS_POLICY", "loud")
    monkeypatch.setenv("EVA_HOOKS_VOLUME", "7")
    monkeypatch.setenv("EVA_HOOKS_MAX_WAIT", "soon")

    config = load_config()

    assert config.policy == PlaybackPolicy.SYNC
    assert config.volume == 1.0
    assert config.max_wait == MAX_WAIT


def test_bad_timing_order_resets_all_timing(isolated_env):
    config = load_config(stale_after=20.0, max_wait=10.0, poll_interval=0.1)
    assert (config.poll_interval, config.stale_after, config.max_wait) == (POLL_INTERVAL, STALE_AFTER, MAX_WAIT)


def test_custom_valid_timing_kept(isolated_env):
    config = load_config(poll_interval=0.02, stale_after=3.0, max_wait=6.0)
    assert (config.poll_interval, config.stale_after, config.max_wait) == (0.02, 3.0, 6.0)


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", ""])
def test_unreadable_config_file_ignored(isolated_env, tmp_path, content):
    config_file = tmp_path / "broken.json"
    config_file.write_text(content)
    config = load_config(config_file=config_file)
    assert config.policy == PlaybackPolicy.SYNC


def test_unknown_keys_ignored(isolated_env, tmp_path):
    config_file = tmp_path / "eva.json"
    config_file.write_text(json.dumps({"colour": "red", "muted": True}))
    config = load_config(config_file=config_file)
    assert config.muted is True


def test_timing_is_valid():
    assert HookConfig().timing_is_valid()
    assert not HookConfig(poll_interval=6.0).timing_is_valid()
    assert isinstance(HookConfig().lock_path, Path)
