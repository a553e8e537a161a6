"""Configuration for the EVA hooks.

Precedence (highest to lowest):
1. Explicit overrides passed to load_config()
2. Environment variables (EVA_HOOKS_*)
3. JSON config file (EVA_HOOKS_CONFIG or ~/.claude/eva-hooks.json)
4. Defaults

Invalid values are logged and replaced by their defaults; a hook must keep
working with a broken config file.
"""

import json
import os
import tempfile
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any

from eva_hooks.log import get_logger

logger = get_logger("config")


class PlaybackPolicy(str, Enum):
    """How playback is sequenced against the lock.

    SYNC:     acquire, play to completion, release. Sounds never overlap;
              the hook returns only after the line has finished.
    DETACHED: acquire, start the player, release at once. The hook returns
              quickly but a following sound may start over this one.
    """

    SYNC = "sync"
    DETACHED = "detached"


class LockBackend(str, Enum):
    MARKER = "marker"
    ADVISORY = "advisory"


POLL_INTERVAL = 0.05
STALE_AFTER = 5.0
MAX_WAIT = 10.0

ENV_PREFIX = "EVA_HOOKS_"
_TRUTHY = ("1", "true", "yes", "on")


def get_claude_home() -> Path:
    """Return CLAUDE_HOME, defaulting to ~/.claude."""
    env = os.environ.get("CLAUDE_HOME")
    if env:
        return Path(env)
    return Path.home() / ".claude"


def default_install_dir() -> Path:
    return Path.home() / ".cursor" / "hooks" / "ra2-eva"


def default_assets_root() -> Path:
    return default_install_dir() / "assets" / "audio"


def default_lock_path() -> Path:
    return Path(tempfile.gettempdir()) / "ra2-eva-audio.lock"


@dataclass
class HookConfig:
    """Resolved settings for one hook invocation."""

    assets_root: Path = field(default_factory=default_assets_root)
    lock_path: Path = field(default_factory=default_lock_path)
    lock_backend: LockBackend = LockBackend.MARKER
    poll_interval: float = POLL_INTERVAL
    stale_after: float = STALE_AFTER
    max_wait: float = MAX_WAIT
    policy: PlaybackPolicy = PlaybackPolicy.SYNC
    muted: bool = False
    volume: float = 1.0
    mute_marker: Path = field(default_factory=lambda: get_claude_home() / "eva-muted")

    @property
    def is_muted(self) -> bool:
        """Muted by setting or by the marker file from ``/sounds off``."""
        return self.muted or self.mute_marker.exists()

    def timing_is_valid(self) -> bool:
        """Polling must be much faster than staleness, staleness below the wait ceiling."""
        return 0 < self.poll_interval < self.stale_after < self.max_wait


# =============================================================================
# Value coercion
# =============================================================================

def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def _to_positive_float(value: Any) -> float:
    number = float(value)
    if number <= 0:
        raise ValueError(f"must be positive, got {value}")
    return number


def _to_volume(value: Any) -> float:
    number = float(value)
    if not 0.0 <= number <= 1.0:
        raise ValueError(f"volume must be within 0.0-1.0, got {value}")
    return number


def _to_path(value: Any) -> Path:
    return Path(str(value)).expanduser()


_COERCERS = {
    "assets_root": _to_path,
    "lock_path": _to_path,
    "lock_backend": LockBackend,
    "poll_interval": _to_positive_float,
    "stale_after": _to_positive_float,
    "max_wait": _to_positive_float,
    "policy": PlaybackPolicy,
    "muted": _to_bool,
    "volume": _to_volume,
    "mute_marker": _to_path,
}

_ENV_NAMES = {
    "assets_root": "ASSETS",
    "lock_path": "LOCK_FILE",
    "lock_backend": "LOCK_BACKEND",
    "poll_interval": "POLL_INTERVAL",
    "stale_after": "STALE_AFTER",
    "max_wait": "MAX_WAIT",
    "policy": "POLICY",
    "muted": "MUTE",
    "volume": "VOLUME",
}


def config_file_path() -> Path:
    env = os.environ.get(f"{ENV_PREFIX}CONFIG")
    if env:
        return Path(env).expanduser()
    return get_claude_home() / "eva-hooks.json"


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Ignoring unreadable config {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config {path}: top level is not an object")
        return {}
    return data


def _read_env() -> dict[str, str]:
    values = {}
    for key, suffix in _ENV_NAMES.items():
        raw = os.environ.get(f"{ENV_PREFIX}{suffix}")
        if raw is not None and raw != "":
            values[key] = raw
    return values


def load_config(config_file: Path | None = None, **overrides: Any) -> HookConfig:
    """Load configuration from file, environment and overrides.

    Args:
        config_file: Explicit JSON file; defaults to config_file_path()
        **overrides: Field values that win over every other source

    Returns:
        HookConfig with every value validated
    """
    merged: dict[str, Any] = {}
    merged.update(_read_config_file(config_file or config_file_path()))
    merged.update(_read_env())
    merged.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(HookConfig)}
    values: dict[str, Any] = {}
    for key, raw in merged.items():
        if key not in known:
            logger.debug(f"Unknown config key ignored: {key}")
            continue
        try:
            values[key] = _COERCERS[key](raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid value for {key} ({raw!r}), using default: {e}")

    config = HookConfig(**values)

    if not config.timing_is_valid():
        logger.warning(
            f"Lock timing must satisfy poll_interval < stale_after < max_wait "
            f"(got {config.poll_interval}/{config.stale_after}/{config.max_wait}), using defaults"
        )
        config = replace(
            config,
            poll_interval=POLL_INTERVAL,
            stale_after=STALE_AFTER,
            max_wait=MAX_WAIT,
        )

    return config
