"""Unit tests for eva_hooks/transaction.py hooks.json primitives."""
import json
import threading
import time

import portalocker
import pytest

from eva_hooks.transaction import (
    LockTimeoutError,
    TransactionError,
    ValidationError,
    atomic_write_json,
    lock_path_for,
    read_hooks_file,
    update_hooks_file,
    validate_hooks_config,
)

FOREIGN = {"command": "other-tool"}
EVA = {"command": "python -m eva_hooks.sounds"}


def hold_lock(path, flags=portalocker.LOCK_EX):
    """Take the sidecar lock the way another process would."""
    lock = portalocker.Lock(str(lock_path_for(path)), mode="a", flags=flags | portalocker.LOCK_NB)
    lock.acquire()
    return lock


def add_entry(entry, event="stop"):
    def update(current):
        config = current or {"version": 1, "hooks": {}}
        config["hooks"].setdefault(event, []).append(entry)
        return config
    return update


# ==============================================================================
# atomic_write_json Tests
# ==============================================================================

def test_atomic_write_json_creates_file(tmp_path):
    """Verify atomic_write_json creates file with correct data."""
    target = tmp_path / "hooks.json"
    data = {"version": 1, "hooks": {"stop": [EVA]}}

    atomic_write_json(target, data)

    with open(target) as f:
        assert json.load(f) == data
    assert target.read_text(encoding="utf-8").endswith("}\n")


def test_atomic_write_json_creates_parent(tmp_path):
    target = tmp_path / ".cursor" / "hooks.json"
    atomic_write_json(target, {"version": 1, "hooks": {}}, fsync=False)
    assert target.exists()


def test_atomic_write_json_unserializable_cleans_up(tmp_path):
    """Verify no orphaned .tmp files after a serialization failure."""
    target = tmp_path / "hooks.json"

    with pytest.raises(TransactionError):
        atomic_write_json(target, {"bad": object()})

    assert not target.exists()
    assert list(tmp_path.glob("*.tmp")) == []


# ==============================================================================
# read_hooks_file Tests
# ==============================================================================

def test_read_hooks_file(tmp_path):
    target = tmp_path / "hooks.json"
    target.write_text(json.dumps({"key": "value"}), encoding="utf-8")

    assert read_hooks_file(target) == {"key": "value"}


def test_read_hooks_file_missing_default(tmp_path):
    assert read_hooks_file(tmp_path / "missing.json", default={"d": 1}) == {"d": 1}
    assert not lock_path_for(tmp_path / "missing.json").exists()


def test_read_hooks_file_blank_default(tmp_path):
    target = tmp_path / "hooks.json"
    target.write_text("  \n", encoding="utf-8")

    assert read_hooks_file(target, default=[]) == []


def test_read_hooks_file_corrupt(tmp_path):
    target = tmp_path / "hooks.json"
    target.write_text("{invalid json}", encoding="utf-8")

    with pytest.raises(TransactionError):
        read_hooks_file(target)


def test_read_hooks_file_times_out_while_writer_holds_lock(tmp_path):
    target = tmp_path / "hooks.json"
    target.write_text("{}", encoding="utf-8")
    lock = hold_lock(target)
    try:
        start = time.monotonic()
        with pytest.raises(LockTimeoutError):
            read_hooks_file(target, timeout=0.2)
        assert time.monotonic() - start < 3
    finally:
        lock.release()


def test_read_hooks_file_shares_with_readers(tmp_path):
    target = tmp_path / "hooks.json"
    target.write_text('{"a": 1}', encoding="utf-8")
    lock = hold_lock(target, flags=portalocker.LOCK_SH)
    try:
        assert read_hooks_file(target, timeout=0.2) == {"a": 1}
    finally:
        lock.release()


# ==============================================================================
# update_hooks_file Tests
# ==============================================================================

def test_update_creates_file(tmp_path):
    target = tmp_path / ".cursor" / "hooks.json"

    result = update_hooks_file(target, add_entry(EVA))

    assert result == {"version": 1, "hooks": {"stop": [EVA]}}
    assert json.loads(target.read_text()) == result


def test_update_corrupt_file_uses_default(tmp_path):
    target = tmp_path / "hooks.json"
    target.write_text("{corrupt", encoding="utf-8")

    update_hooks_file(target, add_entry(EVA))

    assert json.loads(target.read_text())["hooks"] == {"stop": [EVA]}


def test_update_rejects_invalid_result(tmp_path):
    target = tmp_path / "hooks.json"
    target.write_text('{"version": 1, "hooks": {}}', encoding="utf-8")

    with pytest.raises(ValidationError):
        update_hooks_file(target, lambda current: {"hooks": "broken"})

    assert json.loads(target.read_text()) == {"version": 1, "hooks": {}}
    assert list(tmp_path.glob("*.tmp")) == []


def test_update_times_out_while_lock_held(tmp_path):
    target = tmp_path / "hooks.json"
    lock = hold_lock(target, flags=portalocker.LOCK_SH)
    try:
        with pytest.raises(LockTimeoutError):
            update_hooks_file(target, add_entry(EVA), timeout=0.2)
    finally:
        lock.release()
    assert not target.exists()


def test_update_concurrent_writer_not_lost(tmp_path):
    """A writer arriving mid-update waits, then builds on the first result."""
    target = tmp_path / "hooks.json"
    second = []

    def slow_update(current):
        t = threading.Thread(target=update_hooks_file, args=(target, add_entry(FOREIGN)))
        t.start()
        second.append(t)
        time.sleep(0.3)
        return add_entry(EVA)(current)

    update_hooks_file(target, slow_update)
    second[0].join(timeout=10)

    assert json.loads(target.read_text())["hooks"]["stop"] == [EVA, FOREIGN]


# ==============================================================================
# validate_hooks_config Tests
# ==============================================================================

def test_validate_hooks_config_valid():
    assert validate_hooks_config({"version": 1, "hooks": {}})
    assert validate_hooks_config({"version": 1, "hooks": {"stop": [{"command": "x"}]}})


@pytest.mark.parametrize("data", [
    None,
    [],
    {"version": 1},
    {"hooks": []},
    {"hooks": {"stop": {"command": "x"}}},
    {"hooks": {"stop": ["x"]}},
])
def test_validate_hooks_config_invalid(data):
    assert not validate_hooks_config(data)
