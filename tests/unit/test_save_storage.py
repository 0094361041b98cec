from __future__ import annotations

from pathlib import Path

import orjson

from sugoroku.save.schema import default_state
from sugoroku.save.storage import FileSaveStore, MemorySaveStore, SaveManager


def _played_state():
    state = default_state(board_random_seed=9)
    state.credits = 4321
    state.level = 14
    state.position = 33
    state.auto_dice[0].level = 4
    return state


def test_save_then_load_round_trip() -> None:
    manager = SaveManager(store=MemorySaveStore())
    state = _played_state()

    assert manager.save(state) is True
    assert manager.load(default_state(board_random_seed=9)) == state


def test_missing_or_corrupt_save_yields_default() -> None:
    default = default_state(board_random_seed=9)

    assert SaveManager(store=MemorySaveStore()).load(default) == default
    assert SaveManager(store=MemorySaveStore(b"{not json")).load(default) == default
    assert SaveManager(store=MemorySaveStore(b'{"dice": []}')).load(default) == default


def test_wipe_disables_saving_until_reenabled() -> None:
    store = MemorySaveStore()
    manager = SaveManager(store=store)
    state = _played_state()
    manager.save(state)

    result = manager.wipe(create_backup=False)
    assert result.success is True
    assert result.backup is None
    assert store.payload is None
    assert manager.saving_enabled is False

    # a stale periodic save must not resurrect the data
    assert manager.save(state) is False
    assert store.payload is None

    manager.enable_saving()
    assert manager.save(state) is True
    assert store.payload is not None


def test_wipe_backup_restores() -> None:
    store = MemorySaveStore()
    manager = SaveManager(store=store)
    state = _played_state()
    manager.save(state)

    result = manager.wipe()
    assert result.backup is not None
    backup = orjson.loads(result.backup)
    assert set(backup) == {"timestamp", "data"}

    assert manager.restore_backup(result.backup) is True
    assert manager.saving_enabled is True
    assert manager.load(default_state(board_random_seed=9)) == state


def test_restore_rejects_garbage() -> None:
    manager = SaveManager(store=MemorySaveStore())
    assert manager.restore_backup("nope") is False
    assert manager.restore_backup('{"timestamp": 1}') is False


def test_backup_state_captures_live_state() -> None:
    manager = SaveManager(store=MemorySaveStore())
    state = _played_state()

    backup = orjson.loads(manager.backup_state(state))
    assert orjson.loads(backup["data"])["credits"] == 4321
    assert manager.create_backup() is None  # nothing stored yet


def test_file_store_writes_atomically(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "state.json"
    store = FileSaveStore(path=path)
    assert store.load() is None

    manager = SaveManager(store=store)
    state = _played_state()
    assert manager.save(state) is True

    assert path.exists()
    assert not path.with_suffix(".json.tmp").exists()
    assert orjson.loads(path.read_bytes())["schemaVersion"] == 3
    assert manager.load(default_state(board_random_seed=9)) == state

    assert store.clear() is True
    assert not path.exists()
    assert store.clear() is True


def test_credits_beyond_64_bits_round_trip(tmp_path: Path) -> None:
    state = _played_state()
    state.credits = 2**70

    memory = SaveManager(store=MemorySaveStore())
    assert memory.save(state) is True
    assert memory.load(default_state(board_random_seed=9)).credits == 2**70

    on_disk = SaveManager(store=FileSaveStore(path=tmp_path / "state.json"))
    assert on_disk.save(state) is True
    assert on_disk.load(default_state(board_random_seed=9)) == state

    restored = SaveManager(store=MemorySaveStore())
    assert restored.restore_backup(memory.backup_state(state)) is True
    assert restored.load(default_state(board_random_seed=9)).credits == 2**70
