"""Faction selection by hour of day.

Odd hours play the Allied EVA, even hours the Soviet EVA. The hour is read
fresh on every call so a long-lived caller never sticks to a stale faction.
"""

from datetime import datetime
from enum import Enum


class Faction(str, Enum):
    """The two EVA voice sets."""

    ALLIED = "allied"
    SOVIET = "soviet"

    @property
    def directory(self) -> str:
        """Asset subdirectory holding this faction's WAV files."""
        return f"eva_{self.value}"


def current_hour() -> int:
    """Return the current local hour (0-23)."""
    return datetime.now().hour


def get_faction(hour: int | None = None) -> Faction:
    """Pick the faction for an hour of day.

    Args:
        hour: Local hour 0-23; defaults to the current hour

    Returns:
        Faction.ALLIED for odd hours, Faction.SOVIET for even hours
    """
    if hour is None:
        hour = current_hour()
    if not 0 <= hour <= 23:
        raise ValueError(f"Hour out of range: {hour}")
    return Faction.ALLIED if hour % 2 == 1 else Faction.SOVIET
