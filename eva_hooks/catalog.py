"""EVA voice line catalog.

Maps sound keys to candidate WAV files per faction. Allied files are
``ceva###.wav``, Soviet files ``csof###.wav`` with the same numbers. When a
key has several candidates one is picked uniformly at random on every lookup.

Assets live outside this package at::

    <assets_root>/eva_allied/ceva016.wav
    <assets_root>/eva_soviet/csof016.wav
"""

import random
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Protocol, Sequence

from eva_hooks.faction import Faction


class Chooser(Protocol):
    def choice(self, seq: Sequence[str]) -> str: ...


def _pair(*numbers: str) -> dict[Faction, tuple[str, ...]]:
    return {
        Faction.ALLIED: tuple(f"ceva{n}.wav" for n in numbers),
        Faction.SOVIET: tuple(f"csof{n}.wav" for n in numbers),
    }


SOUND_MAPPINGS: Mapping[str, Mapping[Faction, tuple[str, ...]]] = MappingProxyType({
    # -- Session lifecycle --
    "sessionStart": _pair("016"),          # "Establishing battlefield control. Stand by."
    "sessionEnd": _pair("015"),            # "Battle control terminated."

    # -- Tool operations --
    "preToolUse": _pair("052"),            # "Building."
    "postToolUse": _pair("062"),           # "Unit ready."
    "postToolUseFailure": _pair("064"),    # "Unit lost."

    # -- Shell --
    "beforeShellExecution": _pair("052"),  # "Building."
    "afterShellExecution": _pair("062"),   # "Unit ready."

    # -- Files --
    "beforeReadFile": _pair("066"),        # "Training."
    "afterFileEdit": _pair("079"),         # "Unit promoted."

    # -- MCP --
    "beforeMCPExecution": _pair("084"),    # "Upgrade in progress."
    "afterMCPExecution": _pair("074"),     # "New technology acquired."

    # -- Prompts --
    "beforeSubmitPrompt": _pair("083", "049"),  # "New mission objective received." / "New construction options."

    # -- Subagents --
    "subagentStart": _pair("038", "121"),  # "Reinforcements have arrived." / "Reinforcements ready."
    "subagentStop": _pair("017", "018", "019"),  # Primary / Secondary / Tertiary objective achieved

    # -- Agent stop, by status --
    "stop:completed": _pair("048", "017"),  # "Construction complete." / "Primary objective achieved."
    "stop:aborted": _pair("051"),          # "Cancelled."
    "stop:error": _pair("063"),            # "Cannot deploy here."

    # -- Thoughts and context --
    "afterAgentThought": _pair("040"),     # "Incoming transmission."
    "preCompact": _pair("053"),            # "Low power."
})


def lookup(
    key: str | None,
    faction: Faction,
    mappings: Mapping[str, Mapping[Faction, Sequence[str]]] = SOUND_MAPPINGS,
    rng: Chooser = random,
) -> str | None:
    """Pick an audio identifier for a key and faction.

    Args:
        key: Sound key, or None for "no sound"
        faction: Voice set to pick from
        mappings: Catalog table (tests pass their own)
        rng: Anything with ``choice``; defaults to the ``random`` module

    Returns:
        A WAV file name, or None when the key is absent, unknown, or has no
        candidates for this faction
    """
    if key is None:
        return None
    entry = mappings.get(key)
    if not entry:
        return None
    candidates = entry.get(faction) or ()
    if not candidates:
        return None
    return rng.choice(list(candidates))


def sound_path(identifier: str, faction: Faction, assets_root: Path) -> Path:
    """Join assets root, faction directory and file name."""
    return Path(assets_root) / faction.directory / identifier


def get_sound_path(
    key: str | None,
    faction: Faction,
    assets_root: Path,
    mappings: Mapping[str, Mapping[Faction, Sequence[str]]] = SOUND_MAPPINGS,
    rng: Chooser = random,
) -> Path | None:
    """Resolve a sound key straight to a file path (existence not checked)."""
    identifier = lookup(key, faction, mappings=mappings, rng=rng)
    if identifier is None:
        return None
    return sound_path(identifier, faction, assets_root)
