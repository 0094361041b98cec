from __future__ import annotations

import pytest

from sugoroku.random.xorshift import XorShiftRandom
from sugoroku.save.schema import (
    MigrationDiscarded,
    SchemaVersion,
    default_state,
    detect_schema_version,
    merge_state,
    migrate_state,
)


def test_default_state_is_seed_deterministic() -> None:
    a = default_state(board_random_seed=77)
    b = default_state(board_random_seed=77)
    assert a == b
    assert a.schema_version == 3
    assert [d.faces for d in a.auto_dice] == [4, 6, 8, 10, 12, 20]
    assert all(d.level == 0 for d in a.auto_dice)


def test_current_snapshot_round_trips() -> None:
    default = default_state(board_random_seed=1)
    state = default.model_copy(deep=True)
    state.credits = 1234
    state.level = 12
    state.auto_dice[2].level = 7
    state.prestige_upgrades.bonus_chance.level = 4

    assert merge_state(default, state.to_snapshot()) == state


def test_detect_schema_version() -> None:
    assert detect_schema_version({"schemaVersion": 3}) is SchemaVersion.V3_TAGGED
    assert detect_schema_version({"dice": []}) is SchemaVersion.V0_OBSOLETE
    assert detect_schema_version({"autoDice": [{"unlocked": True, "speedLevel": 1}]}) is SchemaVersion.V1_SPEED_COUNT
    assert detect_schema_version({"autoDice": [{"level": 2, "ascension": 0}]}) is SchemaVersion.V2_LEVELS
    assert detect_schema_version({"credits": 5}) is SchemaVersion.V2_LEVELS


def test_legacy_slots_are_converted() -> None:
    default = default_state(board_random_seed=1)
    blob = {
        "credits": 500,
        "autoDice": [
            {"unlocked": True, "speedLevel": 3, "countLevel": 2},
            {"unlocked": False, "speedLevel": 0, "countLevel": 0},
            {"unlocked": True, "speedLevel": 15, "countLevel": 10},
        ],
    }
    state = merge_state(default, blob)

    assert state.credits == 500
    assert [d.level for d in state.auto_dice[:3]] == [6, 0, 20]
    assert all(d.ascension == 0 for d in state.auto_dice)
    # legacy fields ride along
    assert state.auto_dice[0].model_extra["speedLevel"] == 3
    assert state.auto_dice[0].faces == 4
    # slots missing from the save come from the default
    assert state.auto_dice[5] == default.auto_dice[5]


def test_migration_is_idempotent() -> None:
    default = default_state(board_random_seed=1)
    blob = {
        "credits": 42,
        "position": 17,
        "stats": {"totalMoves": 9},
        "autoDice": [{"unlocked": True, "speedLevel": 1, "countLevel": 1}],
    }
    once = merge_state(default, blob)
    twice = merge_state(default, once.to_snapshot())

    assert twice == once
    assert twice.to_snapshot() == once.to_snapshot()


def test_nested_objects_merge_field_by_field() -> None:
    default = default_state(board_random_seed=1)
    state = merge_state(default, {"stats": {"totalMoves": 9}, "prestigeUpgrades": {"bonusChance": {"level": 2}}})

    assert state.stats.total_moves == 9
    assert state.stats.total_dice_rolls == 0
    assert state.prestige_upgrades.bonus_chance.level == 2
    assert state.prestige_upgrades.credit_multiplier.level == 0


def test_obsolete_and_invalid_blobs_are_discarded() -> None:
    default = default_state(board_random_seed=1)

    assert merge_state(default, {"dice": [1, 2], "credits": 999}) == default
    assert merge_state(default, [1, 2, 3]) == default
    assert merge_state(default, {"credits": -5}) == default
    assert merge_state(default, {"rngState": [1, 2]}) == default


@pytest.mark.parametrize(
    ("blob", "reason"),
    [
        ({"dice": [1, 2], "credits": 999}, "obsolete_shape"),
        ([1, 2, 3], "not_a_mapping"),
        ({"credits": -5}, "invalid"),
    ],
)
def test_migrate_state_reports_why_a_blob_is_discarded(blob: object, reason: str) -> None:
    with pytest.raises(MigrationDiscarded) as excinfo:
        migrate_state(default_state(board_random_seed=1), blob)
    assert excinfo.value.reason == reason


def test_tier_constants_come_from_balance() -> None:
    default = default_state(board_random_seed=1)
    state = merge_state(default, {"autoDice": [{"faces": 99, "baseInterval": 1, "level": 3, "ascension": 0}]})

    assert state.auto_dice[0].faces == 4
    assert state.auto_dice[0].base_interval == 80
    assert state.auto_dice[0].level == 3


def test_untagged_save_reseeds_generator_from_its_seed() -> None:
    default = default_state(board_random_seed=1)
    state = merge_state(default, {"boardRandomSeed": 4242, "credits": 3})

    assert state.board_random_seed == 4242
    assert state.rng_state == XorShiftRandom.from_seed(4242).save_state()


def test_position_past_board_end_wraps() -> None:
    default = default_state(board_random_seed=1)
    assert merge_state(default, {"position": 250}).position == 50
