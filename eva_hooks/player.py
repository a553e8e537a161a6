"""EVA audio playback.

Plays WAV files through whatever command-line player the platform has,
serialised across hook processes by a PlaybackLock.

Player preference:
    macOS:   afplay
    Linux:   paplay, pw-play, aplay, ffplay
    Windows: winsound (stdlib)
    other:   ffplay

Policies (see config.PlaybackPolicy):
    SYNC (default): the lock is held for the whole line, so two hooks firing
        back to back queue up instead of talking over each other. The hook's
        own latency includes the playback time.
    DETACHED: the player is started in its own session and the lock is
        released right away. Hooks return quickly but lines can overlap.
        On Windows winsound cannot outlive the hook process, so DETACHED
        plays synchronously there.
"""

import random
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from eva_hooks.catalog import Chooser, lookup, sound_path
from eva_hooks.config import MAX_WAIT, STALE_AFTER, HookConfig, PlaybackPolicy
from eva_hooks.events import HookEvent
from eva_hooks.faction import Faction, get_faction
from eva_hooks.locking import PlaybackLock, create_lock
from eva_hooks.log import get_logger
from eva_hooks.sound_keys import explain_sound_key

logger = get_logger("player")

IS_WIN = sys.platform == "win32"

# Ceiling for one synchronous line; EVA lines run 1-3 seconds
PLAY_TIMEOUT = 30.0

WINSOUND = "winsound"


@dataclass(frozen=True)
class PlayerCommand:
    """A resolved audio player: an executable plus its leading arguments."""

    name: str
    args: tuple[str, ...] = ()

    def argv(self, path: Path) -> list[str]:
        return [*self.args, str(path)]

    @property
    def is_winsound(self) -> bool:
        return self.name == WINSOUND


def find_player(
    volume: float = 1.0,
    platform: str = sys.platform,
    which: Callable[[str], str | None] = shutil.which,
) -> PlayerCommand | None:
    """Pick the best available player for this platform.

    Args:
        volume: 0.0-1.0, translated to each player's own scale
        platform: sys.platform value (tests pass their own)
        which: Executable lookup (tests pass their own)

    Returns:
        PlayerCommand, or None when nothing usable is installed
    """
    if platform == "win32":
        return PlayerCommand(WINSOUND)

    if platform == "darwin":
        exe = which("afplay")
        if exe:
            return PlayerCommand("afplay", (exe, "-v", f"{volume:g}"))

    if platform.startswith("linux"):
        exe = which("paplay")
        if exe:
            return PlayerCommand("paplay", (exe, f"--volume={int(volume * 65536)}"))
        exe = which("pw-play")
        if exe:
            return PlayerCommand("pw-play", (exe, f"--volume={volume:g}"))
        exe = which("aplay")
        if exe:
            return PlayerCommand("aplay", (exe, "-q"))

    exe = which("ffplay")
    if exe:
        return PlayerCommand(
            "ffplay",
            (exe, "-nodisp", "-autoexit", "-loglevel", "quiet", "-volume", str(int(volume * 100))),
        )
    return None


def _winsound_play(path: Path) -> None:
    import winsound
    winsound.PlaySound(str(path), winsound.SND_FILENAME)


class PlaybackCoordinator:
    """Plays one file at a time across all hook processes.

    Nothing here raises: a missing file, a lock timeout, a missing player or
    a failing player are logged and reported as ``False``.
    """

    def __init__(
        self,
        lock: PlaybackLock,
        policy: PlaybackPolicy = PlaybackPolicy.SYNC,
        timeout: float = MAX_WAIT,
        staleness: float = STALE_AFTER,
        player: PlayerCommand | None = None,
        volume: float = 1.0,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        spawner: Callable[..., subprocess.Popen] = subprocess.Popen,
    ):
        self.lock = lock
        self.policy = policy
        self.timeout = timeout
        self.staleness = staleness
        self.volume = volume
        self._player = player
        self._runner = runner
        self._spawner = spawner

    @classmethod
    def from_config(cls, config: HookConfig) -> "PlaybackCoordinator":
        return cls(
            create_lock(config),
            policy=config.policy,
            timeout=config.max_wait,
            staleness=config.stale_after,
            volume=config.volume,
        )

    @property
    def player(self) -> PlayerCommand | None:
        if self._player is None:
            self._player = find_player(self.volume)
        return self._player

    def play(self, path: Path | str) -> bool:
        """Play a file under the lock.

        Returns:
            True if the player ran (SYNC) or was started (DETACHED)
        """
        path = Path(path)
        if not path.is_file():
            logger.warning(f"Sound file not found: {path}")
            return False

        player = self.player
        if player is None:
            logger.warning("No audio player found (afplay/paplay/pw-play/aplay/ffplay)")
            return False

        if not self.lock.acquire(timeout=self.timeout, staleness=self.staleness):
            logger.warning(f"Could not acquire audio lock, skipping: {path}")
            return False

        logger.info(f"Playing ({self.policy.value}, {player.name}): {path}")
        try:
            if self.policy == PlaybackPolicy.DETACHED and not player.is_winsound:
                return self._start_detached(player, path)
            return self._play_sync(player, path)
        except (OSError, subprocess.SubprocessError, RuntimeError) as e:
            logger.warning(f"Error playing sound: {e}")
            return False
        finally:
            self.lock.release()

    def _play_sync(self, player: PlayerCommand, path: Path) -> bool:
        if player.is_winsound:
            _winsound_play(path)
            return True
        result = self._runner(
            player.argv(path),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=PLAY_TIMEOUT,
            check=False,
        )
        if result.returncode != 0:
            logger.warning(f"{player.name} exited with {result.returncode} for {path}")
            return False
        return True

    def _start_detached(self, player: PlayerCommand, path: Path) -> bool:
        self._spawner(
            player.argv(path),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
        return True


# =============================================================================
# Event → sound
# =============================================================================

@dataclass
class PlaybackOutcome:
    """What one hook invocation decided and whether it made a sound."""

    faction: Faction
    rule: str
    sound_key: str | None
    path: Path | None = None
    played: bool = False


def play_hook_sound(
    event: HookEvent,
    config: HookConfig,
    coordinator: PlaybackCoordinator | None = None,
    hour: int | None = None,
    rng: Chooser = random,
) -> PlaybackOutcome:
    """Resolve and play the EVA line for an event.

    Args:
        event: The incoming hook event
        config: Hook configuration
        coordinator: Playback coordinator; built from config if omitted
        hour: Hour of day for faction selection; defaults to now
        rng: Random source for picking among candidate lines

    Returns:
        PlaybackOutcome describing the decision
    """
    faction = get_faction(hour)
    rule, key = explain_sound_key(event)
    outcome = PlaybackOutcome(faction=faction, rule=rule, sound_key=key)
    logger.info(f"Faction: {faction.value}, Sound key: {key} (rule: {rule})")

    identifier = lookup(key, faction, rng=rng)
    if identifier is None:
        if key is not None:
            logger.debug(f"No sound mapping for key: {key}")
        return outcome

    outcome.path = sound_path(identifier, faction, config.assets_root)
    if config.is_muted:
        logger.info("Muted, not playing")
        return outcome

    if coordinator is None:
        coordinator = PlaybackCoordinator.from_config(config)
    outcome.played = coordinator.play(outcome.path)
    return outcome
