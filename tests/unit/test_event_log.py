from __future__ import annotations

from pathlib import Path

from sugoroku.core.events.game import UpgradePurchased
from sugoroku.storage.jsonl import JsonlEventStore
from sugoroku.utils.numbers import wide_ints_as_str


def test_wide_ints_become_exact_strings() -> None:
    fields = {"cost": 2**70, "level": 3, "ok": True, "neg": -(2**64)}
    assert wide_ints_as_str(fields) == {
        "cost": str(2**70),
        "level": 3,
        "ok": True,
        "neg": str(-(2**64)),
    }


def test_event_log_keeps_huge_costs(tmp_path: Path) -> None:
    store = JsonlEventStore(path=tmp_path / "events.jsonl")
    store.append(UpgradePurchased.create(sequence=1, kind="bulk", die_index=0, cost=2**70, level=5, ascension=1))
    store.append(UpgradePurchased.create(sequence=2, kind="unlock", die_index=1, cost=100, level=1, ascension=0))
    store.close()

    rows = store.read_all()
    assert [r["sequence"] for r in rows] == [1, 2]
    assert rows[0]["cost"] == str(2**70)
    assert rows[1]["cost"] == 100
    assert rows[0]["event_type"] == "economy.upgrade_purchased"
