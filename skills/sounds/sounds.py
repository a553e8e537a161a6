#!/usr/bin/env python3
"""
/sounds skill - Toggle EVA voice lines for IDE agent events.

Usage:
    python sounds.py on
    python sounds.py off
    python sounds.py status
    python sounds.py play <sound-key>     # e.g. sessionStart, stop:completed
"""

import sys
from pathlib import Path

# Repository root on sys.path when run as a plain script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from eva_hooks.catalog import SOUND_MAPPINGS, get_sound_path  # noqa: E402
from eva_hooks.config import HookConfig, LockBackend, load_config  # noqa: E402
from eva_hooks.faction import current_hour, get_faction  # noqa: E402
from eva_hooks.locking import AdvisoryFileLock, MarkerFileLock  # noqa: E402
from eva_hooks.log import setup_logging  # noqa: E402
from eva_hooks.player import PlaybackCoordinator  # noqa: E402


def enable_sounds(config: HookConfig) -> None:
    """Enable EVA voice lines."""
    if config.mute_marker.exists():
        config.mute_marker.unlink()
    print("EVA voice lines enabled")
    if config.muted:
        print("Note: EVA_HOOKS_MUTE or the config file still mutes playback")


def disable_sounds(config: HookConfig) -> None:
    """Disable EVA voice lines."""
    config.mute_marker.parent.mkdir(parents=True, exist_ok=True)
    config.mute_marker.touch()
    print("EVA voice lines disabled")


def show_status(config: HookConfig) -> None:
    """Show current EVA state."""
    hour = current_hour()
    print(f"EVA voice lines: {'MUTED' if config.is_muted else 'ENABLED'}")
    print(f"Faction: {get_faction(hour).value.title()} (hour {hour})")
    print(f"Assets: {config.assets_root}")
    print(f"Playback: {config.policy.value}, lock backend: {config.lock_backend.value}")

    if config.lock_backend == LockBackend.ADVISORY:
        state = "held" if AdvisoryFileLock(config.lock_path).is_held else "free"
        print(f"Audio lock: {state} ({config.lock_path})")
        return

    age = MarkerFileLock(config.lock_path).age()
    if age is None:
        print(f"Audio lock: free ({config.lock_path})")
    else:
        stale = " (stale)" if age > config.stale_after else ""
        print(f"Audio lock: held for {age:.1f}s{stale} ({config.lock_path})")


def play_key(config: HookConfig, key: str) -> int:
    """Play one catalog key through the normal lock and player."""
    if key not in SOUND_MAPPINGS:
        print(f"Unknown sound key: {key}")
        print("Known keys: " + ", ".join(sorted(SOUND_MAPPINGS)))
        return 1

    path = get_sound_path(key, get_faction(), config.assets_root)
    if path is None:
        print(f"No sound for {key} in this faction")
        return 1

    coordinator = PlaybackCoordinator.from_config(config)
    return 0 if coordinator.play(path) else 1


def main():
    if len(sys.argv) < 2:
        print("Usage: /sounds [on|off|status|play <key>]")
        sys.exit(1)

    setup_logging()
    config = load_config()
    command = sys.argv[1].lower()

    if command == "on":
        enable_sounds(config)
    elif command == "off":
        disable_sounds(config)
    elif command == "status":
        show_status(config)
    elif command == "play" and len(sys.argv) > 2:
        sys.exit(play_key(config, sys.argv[2]))
    else:
        print(f"Unknown command: {command}")
        print("Usage: /sounds [on|off|status|play <key>]")
        sys.exit(1)


if __name__ == "__main__":
    main()
