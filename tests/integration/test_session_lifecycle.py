from __future__ import annotations

from pathlib import Path

import orjson
import pytest

from sugoroku.core.config.balance import DEFAULT_BALANCE
from sugoroku.core.session.artifacts import artifacts_for
from sugoroku.core.session.assembly import build_session
from sugoroku.core.session.manager import SessionManager
from sugoroku.core.session.registry import SessionRegistry


def test_create_session_writes_meta(tmp_path: Path) -> None:
    manager = SessionManager(tmp_path)
    info = manager.create_session(seed=5)

    assert info.artifacts.session_dir.is_dir()
    meta = manager.read_meta(info.session_id)
    assert meta is not None
    assert meta["session_id"] == info.session_id
    assert meta["seed"] == 5
    assert meta["balance_hash"] == DEFAULT_BALANCE.config_hash()

    assert manager.read_meta("missing_session") is None


def test_session_runs_autosaves_and_logs_events(tmp_path: Path) -> None:
    info = SessionManager(tmp_path).create_session(seed=17)
    handle = build_session(info=info, autosave_interval_ticks=10, event_log_enabled=True)
    assert handle.wiring.components() == ("EventLogComponent", "AutoSaveComponent")

    assert handle.scheduler.run(max_ticks=25) == 25
    handle.close()

    art = info.artifacts
    assert art.state_json.exists()
    saved = orjson.loads(art.state_json.read_bytes())
    assert saved["boardRandomSeed"] == 17

    lines = [orjson.loads(line) for line in art.events_jsonl.read_bytes().splitlines() if line.strip()]
    types = [line["event_type"] for line in lines]
    assert types.count("system.tick") == 25
    assert types.count("save.saved") == 2
    assert types[0] == "system.scheduler_started"
    assert types[-1] == "system.scheduler_stopped"

    seqs = [line["sequence"] for line in lines]
    assert len(set(seqs)) == len(seqs)


def test_closed_session_reloads_same_state(tmp_path: Path) -> None:
    info = SessionManager(tmp_path).create_session(seed=3)
    first = build_session(info=info)

    first.state.credits = 10_000
    assert first.simulation.unlock_auto_die(0) is True
    first.scheduler.run(max_ticks=400)
    first.close()

    second = build_session(info=info)
    assert second.state.to_snapshot() == first.state.to_snapshot()
    assert second.state.auto_dice[0].level == 1
    second.close()


def test_zero_autosave_interval_wires_nothing(tmp_path: Path) -> None:
    info = SessionManager(tmp_path).create_session(seed=1)
    handle = build_session(info=info, autosave_interval_ticks=0)
    assert handle.wiring.components() == ()


def test_session_ids_cannot_escape_saves_dir(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        artifacts_for(saves_dir=tmp_path, session_id="../x")
    with pytest.raises(ValueError):
        artifacts_for(saves_dir=tmp_path, session_id="")


def test_registry_rejects_duplicates_and_lists_newest_first(tmp_path: Path) -> None:
    manager = SessionManager(tmp_path)
    older = build_session(info=manager.create_session(seed=1))
    newer = build_session(info=manager.create_session(seed=2))

    registry = SessionRegistry()
    registry.add(older)
    registry.add(newer)
    with pytest.raises(ValueError):
        registry.add(older)

    assert len(registry) == 2
    listed = [h.session_id for h in registry.list()]
    assert set(listed) == {older.session_id, newer.session_id}
    assert registry.get(newer.session_id) is newer

    assert registry.remove(older.session_id) is older
    assert registry.get(older.session_id) is None
