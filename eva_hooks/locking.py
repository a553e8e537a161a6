"""Cross-process playback lock.

Every hook invocation is its own short-lived process, so the only way to
keep EVA lines from talking over each other is a lock on disk. Two backends
share one small interface:

- MarkerFileLock: a marker file holding the acquisition time in epoch
  milliseconds. Waiters poll it; a marker older than the staleness threshold
  belongs to a holder that crashed or hung and is removed. Removal happens
  under a short OS lock on a sidecar guard file so only one waiter clears it.
- AdvisoryFileLock: an OS advisory lock through portalocker. The OS drops
  the lock when its holder dies, so staleness needs no handling.

Neither backend raises on contention: acquire() returns False once the wait
ceiling is hit and the caller skips the sound.
"""

import os
import time
from pathlib import Path
from typing import Callable, Protocol

import portalocker

from eva_hooks.config import MAX_WAIT, POLL_INTERVAL, STALE_AFTER, HookConfig, LockBackend
from eva_hooks.log import get_logger

logger = get_logger("lock")


class PlaybackLock(Protocol):
    """Capability the playback coordinator needs from a lock."""

    def acquire(self, timeout: float = MAX_WAIT, staleness: float = STALE_AFTER) -> bool: ...

    def release(self) -> None: ...


# =============================================================================
# Marker file
# =============================================================================

class MarkerFileLock:
    """Lock backed by an exclusively-created marker file.

    Example usage:
        lock = MarkerFileLock(Path("/tmp/ra2-eva-audio.lock"))
        if lock.acquire(timeout=10.0, staleness=5.0):
            try:
                play()
            finally:
                lock.release()
    """

    def __init__(
        self,
        path: Path | str,
        poll_interval: float = POLL_INTERVAL,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.path = Path(path)
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    def acquire(self, timeout: float = MAX_WAIT, staleness: float = STALE_AFTER) -> bool:
        """Create the marker, waiting for the current holder if needed.

        Args:
            timeout: Give up after waiting this many seconds
            staleness: Markers older than this many seconds are removed

        Returns:
            True if this process now holds the lock, False on timeout or
            when the marker cannot be written at all
        """
        start = self._clock()

        while True:
            try:
                if self._try_create():
                    return True
            except OSError as e:
                logger.warning(f"Cannot create audio lock {self.path}: {e}")
                return False

            age = self.age()
            if age is None:
                # Holder released between our create and our read
                continue
            if age > staleness and self._remove_if_stale(staleness):
                continue

            waited = self._clock() - start
            if waited > timeout:
                logger.warning(f"Timeout waiting for audio lock after {waited:.1f}s")
                return False

            self._sleep(self.poll_interval)

    def release(self) -> None:
        """Remove the marker. A missing marker is fine."""
        self._remove()

    def age(self) -> float | None:
        """Seconds since the marker was stamped, or None if there is no marker.

        A marker whose contents cannot be parsed (caught mid-write, or
        written by something else) is aged by its modification time.
        """
        try:
            text = self.path.read_text(encoding="ascii").strip()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError):
            text = ""

        try:
            stamped = int(text) / 1000.0
        except ValueError:
            try:
                stamped = self.path.stat().st_mtime
            except FileNotFoundError:
                return None
        return self._clock() - stamped

    @property
    def is_held(self) -> bool:
        """True if a marker exists (held by anyone)."""
        return self.path.exists()

    def _try_create(self) -> bool:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(str(self.path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        try:
            os.write(fd, str(int(self._clock() * 1000)).encode("ascii"))
        finally:
            os.close(fd)
        return True

    @property
    def guard_path(self) -> Path:
        """Sidecar file whose OS lock serialises stale-marker removal."""
        return self.path.with_name(self.path.name + ".guard")

    def _remove_if_stale(self, staleness: float) -> bool:
        """Clear a stale marker. Returns True when creation should be retried now.

        The age is read again under the guard lock, so a waiter that saw the
        old stamp cannot remove a marker another waiter has just created.
        """
        try:
            with portalocker.Lock(
                str(self.guard_path),
                mode="a",
                timeout=self.poll_interval,
                check_interval=self.poll_interval / 5,
                flags=portalocker.LOCK_EX | portalocker.LOCK_NB,
            ):
                age = self.age()
                if age is None:
                    return True
                if age <= staleness:
                    return False
                logger.warning(f"Removing stale audio lock ({age:.1f}s old)")
                return self._remove()
        except portalocker.exceptions.LockException:
            # Another waiter is clearing it; poll as usual
            return False
        except OSError as e:
            logger.warning(f"Cannot lock {self.guard_path}: {e}")
            return False

    def _remove(self) -> bool:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.warning(f"Cannot remove audio lock {self.path}: {e}")
            return False
        return True


# =============================================================================
# OS advisory lock
# =============================================================================

class AdvisoryFileLock:
    """Lock backed by portalocker's exclusive OS file lock."""

    def __init__(self, path: Path | str, poll_interval: float = POLL_INTERVAL):
        self.path = Path(path)
        self.poll_interval = poll_interval
        self._lock: portalocker.Lock | None = None

    def acquire(self, timeout: float = MAX_WAIT, staleness: float = STALE_AFTER) -> bool:
        """Take the OS lock; ``staleness`` is unused since dead holders release automatically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        lock = portalocker.Lock(
            str(self.path),
            mode="a",
            timeout=timeout,
            check_interval=self.poll_interval,
            flags=portalocker.LOCK_EX | portalocker.LOCK_NB,
        )
        try:
            lock.acquire()
        except portalocker.exceptions.LockException:
            logger.warning(f"Timeout waiting for audio lock after {timeout:.1f}s")
            return False
        except OSError as e:
            logger.warning(f"Cannot open audio lock {self.path}: {e}")
            return False
        self._lock = lock
        return True

    def release(self) -> None:
        if self._lock is None:
            return
        try:
            self._lock.release()
        except (portalocker.exceptions.LockException, OSError) as e:
            logger.debug(f"Audio lock release: {e}")
        finally:
            self._lock = None

    @property
    def is_held(self) -> bool:
        """True if some holder has the OS lock right now."""
        if self._lock is not None:
            return True
        if not self.path.exists():
            return False
        try:
            with portalocker.Lock(
                str(self.path),
                mode="a",
                timeout=0.01,
                flags=portalocker.LOCK_EX | portalocker.LOCK_NB,
            ):
                return False
        except portalocker.exceptions.LockException:
            return True
        except OSError:
            return False


def create_lock(config: HookConfig) -> PlaybackLock:
    """Build the lock backend selected in the config."""
    if config.lock_backend == LockBackend.ADVISORY:
        return AdvisoryFileLock(config.lock_path, poll_interval=config.poll_interval)
    return MarkerFileLock(config.lock_path, poll_interval=config.poll_interval)
