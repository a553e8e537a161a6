#!/usr/bin/env python3
"""
Register or remove the EVA hooks in the host's hooks.json.

Usage:
    eva-hooks-install                       # register all events
    eva-hooks-install --assets ./audio      # also copy eva_allied/ + eva_soviet/
    eva-hooks-install --status
    eva-hooks-install --uninstall           # also deletes ~/.cursor/hooks/ra2-eva
    eva-hooks-install --uninstall --keep-assets

hooks.json shape:
    {"version": 1, "hooks": {"sessionStart": [{"command": "..."}], ...}}

Hooks registered by other tools are left alone; only entries whose command
runs eva_hooks (or the older ra2-eva install) are replaced or removed.
"""

import argparse
import shlex
import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from eva_hooks.config import default_install_dir, load_config
from eva_hooks.events import ALL_EVENT_KINDS
from eva_hooks.faction import Faction, current_hour, get_faction
from eva_hooks.log import get_logger, setup_logging
from eva_hooks.transaction import TransactionError, read_hooks_file, update_hooks_file

logger = get_logger("install")

EVA_MARKERS = ("eva_hooks", "eva-hook", "ra2-eva")


def hooks_file_path() -> Path:
    return Path.home() / ".cursor" / "hooks.json"


def hook_command() -> str:
    """Command line the host runs for every event."""
    argv = [sys.executable, "-m", "eva_hooks.sounds"]
    if sys.platform == "win32":
        return subprocess.list2cmdline(argv)
    return shlex.join(argv)


def empty_hooks_config() -> dict[str, Any]:
    return {"version": 1, "hooks": {}}


def is_eva_entry(entry: Any) -> bool:
    if not isinstance(entry, dict):
        return False
    command = entry.get("command")
    return isinstance(command, str) and any(m in command for m in EVA_MARKERS)


# =============================================================================
# hooks.json transforms (pure)
# =============================================================================

def register_hooks(
    config: dict[str, Any],
    command: str,
    events: tuple[str, ...] = ALL_EVENT_KINDS,
) -> dict[str, Any]:
    """Return a copy of config with one EVA entry per event.

    Earlier EVA entries are replaced so repeated installs stay idempotent.
    """
    result = dict(config)
    result.setdefault("version", 1)
    hooks = {key: list(value) for key, value in result.get("hooks", {}).items()}
    for event in events:
        others = [entry for entry in hooks.get(event, []) if not is_eva_entry(entry)]
        hooks[event] = others + [{"command": command}]
    result["hooks"] = hooks
    return result


def unregister_hooks(config: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of config without EVA entries; empty event lists are dropped."""
    result = dict(config)
    hooks = {}
    for event, entries in result.get("hooks", {}).items():
        remaining = [entry for entry in entries if not is_eva_entry(entry)]
        if remaining:
            hooks[event] = remaining
    result["hooks"] = hooks
    return result


def registered_events(config: dict[str, Any]) -> list[str]:
    """Events that currently have an EVA entry."""
    return [
        event
        for event, entries in config.get("hooks", {}).items()
        if any(is_eva_entry(entry) for entry in entries)
    ]


# =============================================================================
# File operations
# =============================================================================

def sanitize_hooks_config(data: Any) -> dict[str, Any]:
    """Coerce whatever hooks.json holds into the expected shape.

    Only the malformed parts are dropped: an event whose value is not a list
    goes, as do non-object entries inside a list. Everything else, including
    other tools' hooks and unknown top-level keys, is kept.
    """
    if not isinstance(data, dict):
        if data is not None:
            logger.warning("hooks.json top level is not an object, starting fresh")
        return empty_hooks_config()

    result = dict(data)
    hooks = result.get("hooks")
    if not isinstance(hooks, dict):
        if hooks is not None:
            logger.warning("hooks.json 'hooks' is not an object, replacing it")
        hooks = {}

    cleaned = {}
    for event, entries in hooks.items():
        if not isinstance(entries, list):
            logger.warning(f"Dropping malformed hooks.json entry for {event}")
            continue
        kept = [entry for entry in entries if isinstance(entry, dict)]
        if len(kept) != len(entries):
            logger.warning(f"Dropping {len(entries) - len(kept)} malformed hook(s) for {event}")
        cleaned[event] = kept
    result["hooks"] = cleaned
    result.setdefault("version", 1)
    return result


def load_hooks_config(path: Path) -> dict[str, Any]:
    """Read hooks.json; a missing or unparseable file yields a fresh config."""
    try:
        data = read_hooks_file(path, default=None)
    except TransactionError as e:
        logger.warning(f"Starting fresh, cannot read {path}: {e}")
        return empty_hooks_config()
    return sanitize_hooks_config(data)


def count_sounds(assets_root: Path) -> dict[Faction, int]:
    """Number of WAV files present per faction."""
    counts = {}
    for faction in Faction:
        directory = assets_root / faction.directory
        counts[faction] = len(list(directory.glob("*.wav"))) if directory.is_dir() else 0
    return counts


def copy_assets(source: Path, assets_root: Path) -> dict[Faction, int]:
    """Copy eva_allied/ and eva_soviet/ from source into the assets root."""
    for faction in Faction:
        src_dir = source / faction.directory
        if not src_dir.is_dir():
            logger.warning(f"Missing {faction.directory}/ in {source}")
            continue
        shutil.copytree(src_dir, assets_root / faction.directory, dirs_exist_ok=True)
    return count_sounds(assets_root)


def remove_install_dir(install_dir: Path) -> bool:
    """Delete the installed assets directory; True if something was removed."""
    if not install_dir.exists():
        return False
    shutil.rmtree(install_dir)
    return True


@dataclass
class InstallReport:
    hooks_file: Path
    events: list[str] = field(default_factory=list)
    sounds: dict[Faction, int] = field(default_factory=dict)


def install(
    hooks_file: Path,
    command: str,
    assets_root: Path,
    assets_source: Path | None = None,
) -> InstallReport:
    if assets_source is not None:
        sounds = copy_assets(assets_source, assets_root)
    else:
        sounds = count_sounds(assets_root)

    config = update_hooks_file(
        hooks_file,
        lambda current: register_hooks(sanitize_hooks_config(current), command),
    )
    return InstallReport(hooks_file, registered_events(config), sounds)


def uninstall(hooks_file: Path) -> list[str]:
    """Remove EVA entries; returns the events that had one."""
    if not hooks_file.exists():
        return []

    removed: list[str] = []

    def strip_eva(current: Any) -> dict[str, Any]:
        config = sanitize_hooks_config(current)
        removed.extend(registered_events(config))
        return unregister_hooks(config)

    update_hooks_file(hooks_file, strip_eva)
    return removed



# =============================================================================
# CLI
# =============================================================================

def _print_faction() -> None:
    hour = current_hour()
    faction = get_faction(hour)
    print("Faction selection:")
    print("  Odd hours (1,3,5...):  Allied EVA")
    print("  Even hours (0,2,4...): Soviet EVA")
    print(f"Current hour: {hour} -> {faction.value.title()} faction active")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="eva-hooks-install",
        description="Register Red Alert 2 EVA voice lines as IDE agent hooks",
    )
    parser.add_argument("--uninstall", action="store_true", help="Remove the EVA hooks")
    parser.add_argument("--keep-assets", action="store_true",
                        help="With --uninstall, leave the installed sound files in place")
    parser.add_argument("--status", action="store_true", help="Show what is registered")
    parser.add_argument("--hooks-file", type=Path, default=None, help="hooks.json to edit")
    parser.add_argument("--assets", type=Path, default=None,
                        help="Directory holding eva_allied/ and eva_soviet/ to copy in")
    parser.add_argument("--command", default=None, help="Override the hook command")
    args = parser.parse_args(argv)

    setup_logging()
    hooks_file = args.hooks_file or hooks_file_path()
    assets_root = load_config().assets_root

    try:
        if args.uninstall:
            removed = uninstall(hooks_file)
            if removed:
                print(f"Removed EVA hooks for {len(removed)} events from {hooks_file}")
            else:
                print(f"No EVA hooks registered in {hooks_file}")
            install_dir = default_install_dir()
            if args.keep_assets:
                print(f"Kept: {install_dir}")
            elif remove_install_dir(install_dir):
                print(f"Removed: {install_dir}")
            print("Battle control terminated.")
            return 0

        if args.status:
            events = registered_events(load_hooks_config(hooks_file))
            print(f"Hooks config: {hooks_file}")
            print(f"Registered events: {len(events)}/{len(ALL_EVENT_KINDS)}")
            for event in ALL_EVENT_KINDS:
                print(f"  [{'x' if event in events else ' '}] {event}")
            for faction, count in count_sounds(assets_root).items():
                print(f"{faction.value.title()} EVA sounds: {count}")
            _print_faction()
            return 0

        report = install(hooks_file, args.command or hook_command(), assets_root, args.assets)
    except (TransactionError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Hooks config: {report.hooks_file} ({len(report.events)} events)")
    print(f"Assets: {assets_root}")
    for faction, count in report.sounds.items():
        print(f"  {faction.value.title()} EVA sounds: {count}")
    if not any(report.sounds.values()):
        print("  No WAV files found; hooks will run silently until assets are added")
    _print_faction()
    print("Restart the IDE or reload the window to activate.")
    print("Establishing battlefield control. Stand by.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
