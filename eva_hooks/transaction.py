r"""Safe reads and updates of the host ``hooks.json``.

The host and any number of installer runs may touch ``hooks.json`` at the
same time. Writes replace the file by rename, so the OS lock cannot live on
``hooks.json`` itself (a waiter would end up locking the old inode). All
access goes through a sidecar ``hooks.json.lock`` instead:

- read_hooks_file: shared lock, then parse
- update_hooks_file: exclusive lock held across read, transform and write

**Error handling:**
- LockTimeoutError: Lock not acquired within the timeout (default 5s)
- ValidationError: Updated data is not a valid hooks.json
- TransactionError: Any other read/write failure
"""

import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator

import portalocker

from eva_hooks.log import get_logger

logger = get_logger("transaction")

DEFAULT_TIMEOUT = 5.0
CHECK_INTERVAL = 0.05


class TransactionError(Exception):
    """Base exception for hooks file read/write failures."""
    pass


class LockTimeoutError(TransactionError):
    """Raised when lock acquisition times out."""
    pass


class ValidationError(TransactionError):
    """Raised when updated data is not a valid hooks.json."""
    pass


def lock_path_for(path: Path | str) -> Path:
    path = Path(path)
    return path.with_name(path.name + ".lock")


@contextmanager
def hooks_file_lock(path: Path | str, exclusive: bool, timeout: float = DEFAULT_TIMEOUT) -> Iterator[None]:
    """Hold the sidecar lock for ``path``.

    Raises:
        LockTimeoutError: If the lock is not acquired within timeout
    """
    lock_file = lock_path_for(path)
    lock_file.parent.mkdir(parents=True, exist_ok=True)
    mode = portalocker.LOCK_EX if exclusive else portalocker.LOCK_SH
    lock = portalocker.Lock(
        str(lock_file),
        mode="a",
        timeout=timeout,
        check_interval=CHECK_INTERVAL,
        flags=mode | portalocker.LOCK_NB,
    )
    try:
        lock.acquire()
    except portalocker.exceptions.LockException as e:
        raise LockTimeoutError(f"Lock timeout on {lock_file} after {timeout}s") from e
    try:
        yield
    finally:
        lock.release()


def _read_json(path: Path, default: Any) -> Any:
    """Parse the file; missing or blank files give ``default``."""
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return default
    except OSError as e:
        raise TransactionError(f"Cannot read {path}: {e}") from e
    if not content.strip():
        return default
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise TransactionError(f"Invalid JSON in {path}: {e}") from e


def atomic_write_json(path: Path | str, data: Any, fsync: bool = True) -> None:
    """Replace ``path`` with ``data`` via temp file + rename.

    Readers see either the old file or the new one, never a partial write.
    Callers that read-modify-write should hold the exclusive lock.

    Raises:
        TransactionError: On serialization, write or rename failure
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_file = None
    tmp_path = None
    try:
        # Same directory as the target so the rename stays on one filesystem
        tmp_file = tempfile.NamedTemporaryFile(
            mode="w", encoding="utf-8", dir=path.parent, delete=False, suffix=".tmp",
        )
        tmp_path = Path(tmp_file.name)
        json.dump(data, tmp_file, indent=2)
        tmp_file.write("\n")
        tmp_file.flush()
        if fsync:
            os.fsync(tmp_file.fileno())
        tmp_file.close()
        os.replace(tmp_path, path)
    except (OSError, TypeError, ValueError) as e:
        if tmp_file is not None and not tmp_file.closed:
            tmp_file.close()
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise TransactionError(f"Atomic write failed for {path}: {e}") from e


def read_hooks_file(path: Path | str, timeout: float = DEFAULT_TIMEOUT, default: Any = None) -> Any:
    """Read hooks.json under the shared lock.

    Returns:
        Parsed JSON, or default when the file is missing or blank

    Raises:
        LockTimeoutError: If a writer holds the lock past timeout
        TransactionError: On unparseable content
    """
    path = Path(path)
    if not path.exists():
        return default
    with hooks_file_lock(path, exclusive=False, timeout=timeout):
        return _read_json(path, default)


def update_hooks_file(
    path: Path | str,
    update_fn: Callable[[Any], Any],
    timeout: float = DEFAULT_TIMEOUT,
    default: Any = None,
    fsync: bool = True,
) -> Any:
    """Read-modify-write hooks.json while holding the exclusive lock.

    ``update_fn`` receives the current content (``default`` when the file is
    missing, blank or corrupt) and returns the new content, which must pass
    validate_hooks_config. A second updater waits for the first to finish
    and then sees its result, so no update is lost.

    Returns:
        The content written

    Raises:
        LockTimeoutError: If the lock is not acquired within timeout
        ValidationError: If update_fn returns an invalid hooks.json
        TransactionError: On write failure
    """
    path = Path(path)
    with hooks_file_lock(path, exclusive=True, timeout=timeout):
        try:
            current = _read_json(path, default)
        except TransactionError as e:
            logger.warning(f"Replacing unreadable {path}: {e}")
            current = default

        updated = update_fn(current)
        if not validate_hooks_config(updated):
            raise ValidationError(f"Refusing to write invalid hooks config to {path}")
        atomic_write_json(path, updated, fsync=fsync)
        return updated


def validate_hooks_config(data: Any) -> bool:
    """Validate the host hooks.json shape.

    **Expected structure:**
    {
        "version": 1,
        "hooks": {
            "<event>": [{"command": "..."}, ...],
            ...
        }
    }
    """
    if not isinstance(data, dict):
        return False

    hooks = data.get("hooks")
    if not isinstance(hooks, dict):
        return False

    for entries in hooks.values():
        if not isinstance(entries, list):
            return False
        for entry in entries:
            if not isinstance(entry, dict):
                return False

    return True
