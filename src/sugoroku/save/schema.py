"""
Save-state schema versions and migration.

A persisted blob is a camelCase dict. Current blobs carry an explicit
`schemaVersion` tag. Untagged blobs are classified by their shape:

- V0: pre-release shape with top-level `dice` / `upgrades` keys. Discarded.
- V1: auto-dice slots with `unlocked` / `speedLevel` / `countLevel`.
- V2: level/ascension auto-dice, untagged.
- V3: tagged with `schemaVersion`.
"""

from __future__ import annotations

import copy
import secrets
from enum import IntEnum
from typing import Any, Mapping

import structlog
from pydantic import ValidationError

from sugoroku.core.config.balance import DEFAULT_BALANCE, GameBalance
from sugoroku.game.formulas import auto_die_max_level
from sugoroku.game.state import AutoDie, ManualDice, SimulationState
from sugoroku.random.xorshift import XorShiftRandom

log = structlog.get_logger()

_OBSOLETE_KEYS = ("dice", "upgrades")
_LEGACY_SLOT_KEYS = ("unlocked", "speedLevel", "countLevel")
# per-tier constants always come from the balance, never from the save
_IMMUTABLE_SLOT_KEYS = ("faces", "baseInterval")


class SchemaVersion(IntEnum):
    V0_OBSOLETE = 0
    V1_SPEED_COUNT = 1
    V2_LEVELS = 2
    V3_TAGGED = 3


CURRENT_SCHEMA_VERSION = SchemaVersion.V3_TAGGED


def default_state(
    *,
    board_random_seed: int | None = None,
    balance: GameBalance = DEFAULT_BALANCE,
) -> SimulationState:
    """
    Fresh state built from balance constants.

    The RNG is seeded from `board_random_seed`, so two defaults built with
    the same seed are identical. Without a seed one is drawn at random.
    """
    if board_random_seed is None:
        board_random_seed = secrets.randbelow(0x7FFFFFFF)

    rng = XorShiftRandom.from_seed(board_random_seed)
    return SimulationState(
        schema_version=int(CURRENT_SCHEMA_VERSION),
        board_random_seed=board_random_seed,
        manual_dice=ManualDice(count=balance.manual_dice.initial_count),
        auto_dice=[AutoDie(faces=t.faces, base_interval=t.base_interval) for t in balance.dice_tiers],
        rng_state=rng.save_state(),
    )


def detect_schema_version(blob: Mapping[str, Any]) -> SchemaVersion:
    tag = blob.get("schemaVersion")
    if isinstance(tag, int) and not isinstance(tag, bool):
        try:
            return SchemaVersion(tag)
        except ValueError:
            # newer than this build knows; treat as current and let validation decide
            return CURRENT_SCHEMA_VERSION

    if any(k in blob for k in _OBSOLETE_KEYS):
        return SchemaVersion.V0_OBSOLETE

    slots = blob.get("autoDice")
    if isinstance(slots, list):
        for slot in slots:
            if _is_legacy_slot(slot):
                return SchemaVersion.V1_SPEED_COUNT

    return SchemaVersion.V2_LEVELS


def _is_legacy_slot(slot: Any) -> bool:
    return isinstance(slot, Mapping) and "ascension" not in slot and any(k in slot for k in _LEGACY_SLOT_KEYS)


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for key, value in override.items():
        current = out.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            out[key] = _deep_merge(current, value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def _convert_legacy_slot(default_slot: dict[str, Any], saved: Mapping[str, Any], *, balance: GameBalance) -> dict[str, Any]:
    """
    Map a speed/count slot onto level/ascension.

    A locked slot becomes level 0. An unlocked slot gets one level per
    purchased speed and count upgrade on top of level 1, capped at the
    base max level. The legacy fields stay on the slot.
    """
    unlocked = bool(saved.get("unlocked", False))
    speed_level = _as_int(saved.get("speedLevel"))
    count_level = _as_int(saved.get("countLevel"))

    if unlocked:
        level = min(1 + speed_level + count_level, auto_die_max_level(0, balance=balance))
    else:
        level = 0

    out = dict(copy.deepcopy(dict(saved)))
    out.update(default_slot)
    out["level"] = level
    out["ascension"] = 0
    out["progress"] = 0.0
    return out


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return max(0, int(value))
    return 0


def _merge_auto_dice(
    default_slots: list[dict[str, Any]],
    saved_slots: Any,
    *,
    balance: GameBalance,
) -> list[dict[str, Any]]:
    if not isinstance(saved_slots, list):
        return copy.deepcopy(default_slots)

    merged: list[dict[str, Any]] = []
    for i, default_slot in enumerate(default_slots):
        saved = saved_slots[i] if i < len(saved_slots) else None
        if not isinstance(saved, Mapping):
            merged.append(copy.deepcopy(default_slot))
            continue

        if _is_legacy_slot(saved):
            merged.append(_convert_legacy_slot(default_slot, saved, balance=balance))
            continue

        slot = _deep_merge(default_slot, saved)
        for key in _IMMUTABLE_SLOT_KEYS:
            slot[key] = default_slot[key]
        merged.append(slot)
    return merged


class MigrationDiscarded(ValueError):
    """
    A persisted blob that cannot be carried forward. `reason` is one of
    "not_a_mapping", "obsolete_shape" or "invalid".
    """

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


def migrate_state(
    default: SimulationState,
    persisted: Any,
    *,
    balance: GameBalance = DEFAULT_BALANCE,
) -> SimulationState:
    """
    Merge a persisted blob over a default state.

    - top-level scalars overwrite
    - nested objects deep-merge field by field
    - auto-dice merge per slot; the slot count always follows the default
    - obsolete or invalid blobs raise MigrationDiscarded

    Idempotent: merging an already-merged snapshot changes nothing.
    """
    if not isinstance(persisted, Mapping):
        raise MigrationDiscarded("not_a_mapping", "save data is not an object")

    version = detect_schema_version(persisted)
    if version == SchemaVersion.V0_OBSOLETE:
        raise MigrationDiscarded("obsolete_shape", "save data uses an obsolete layout")

    base = default.to_snapshot()
    merged = dict(base)
    for key, value in persisted.items():
        if key == "autoDice":
            merged[key] = _merge_auto_dice(base["autoDice"], value, balance=balance)
        elif isinstance(base.get(key), dict) and isinstance(value, Mapping):
            merged[key] = _deep_merge(base[key], value)
        else:
            merged[key] = copy.deepcopy(value)

    merged["schemaVersion"] = int(CURRENT_SCHEMA_VERSION)

    # untagged saves never persisted the generator; derive it from the save's own seed
    if "rngState" not in persisted and isinstance(merged.get("boardRandomSeed"), int):
        merged["rngState"] = XorShiftRandom.from_seed(merged["boardRandomSeed"]).save_state()

    try:
        state = SimulationState.model_validate(merged)
    except ValidationError as exc:
        raise MigrationDiscarded("invalid", f"save data failed validation ({exc.error_count()} errors)") from exc

    total_cells = balance.board.total_cells
    if state.position >= total_cells:
        state.position = state.position % total_cells

    if version != CURRENT_SCHEMA_VERSION:
        log.info("save.migrated", from_version=int(version), to_version=int(CURRENT_SCHEMA_VERSION))
    return state


def merge_state(
    default: SimulationState,
    persisted: Any,
    *,
    balance: GameBalance = DEFAULT_BALANCE,
) -> SimulationState:
    """
    migrate_state, falling back to a copy of the default when the blob is
    discarded. Used on load, where a fresh game beats no game.
    """
    try:
        return migrate_state(default, persisted, balance=balance)
    except MigrationDiscarded as exc:
        log.warning("save.migration_discarded", reason=exc.reason, message=str(exc))
        return default.model_copy(deep=True)
