from __future__ import annotations

from sugoroku.game.prestige import PrestigeSystem
from sugoroku.game.state import SimulationState
from sugoroku.random.xorshift import XorShiftRandom
from sugoroku.save.schema import default_state


def _prestige(state: SimulationState) -> PrestigeSystem:
    return PrestigeSystem(state=state, default_factory=lambda seed: default_state(board_random_seed=seed))


def test_prestige_without_points_is_rejected() -> None:
    state = default_state(board_random_seed=1)
    state.credits = 500
    result = _prestige(state).prestige()

    assert result.success is False
    assert result.reason == "no_points"
    assert state.credits == 500
    assert state.rebirth_count == 0


def test_prestige_resets_run_and_keeps_progression() -> None:
    state = default_state(board_random_seed=1)
    state.level = 60
    state.position = 42
    state.credits = 10_000
    state.auto_dice[0].level = 5
    state.manual_dice.count = 3
    state.prestige_points.earned = 3
    state.prestige_points.available = 2
    state.prestige_upgrades.credit_multiplier.level = 1
    state.stats.total_moves = 777
    state.settings.number_format = "japanese"
    state.run_stats.distance = 250
    state.run_stats.credits_earned = 12_345

    expected_seed = XorShiftRandom.from_state(state.rng_state).next_uint32() & 0x7FFFFFFF
    same_object = state

    result = _prestige(state).prestige()
    assert result.success is True
    assert result.points_gained == 3
    assert result.rebirth_count == 1

    assert state is same_object
    assert (state.level, state.position, state.credits) == (1, 0, 0)
    assert state.auto_dice[0].level == 0
    assert state.manual_dice.count == 1
    assert state.board_random_seed == expected_seed

    assert state.rebirth_count == 1
    assert state.prestige_points.earned == 0
    assert state.prestige_points.available == 5
    assert state.prestige_upgrades.credit_multiplier.level == 1
    assert state.stats.total_moves == 777
    assert state.stats.total_rebirths == 1
    assert state.settings.number_format == "japanese"

    assert state.run_stats.distance == 0
    ps = state.prestige_stats
    assert ps.total_runs == 1
    assert ps.total_distance_traveled == 250
    assert ps.total_laps_completed == 2
    assert ps.total_credits_earned == 12_345
    assert ps.best_single_run.level == 60


def test_buy_upgrade_spends_available_points() -> None:
    state = default_state(board_random_seed=1)
    state.prestige_points.available = 5
    prestige = _prestige(state)

    assert prestige.upgrade_cost("credit_multiplier") == 5
    assert prestige.buy_upgrade("credit_multiplier") is True
    assert state.prestige_upgrades.credit_multiplier.level == 1
    assert state.prestige_points.available == 0

    assert prestige.buy_upgrade("credit_multiplier") is False  # next costs 15


def test_maxed_upgrade_cannot_be_bought() -> None:
    state = default_state(board_random_seed=1)
    state.prestige_points.available = 10**6
    state.prestige_upgrades.bonus_chance.level = 100
    prestige = _prestige(state)

    info = prestige.upgrade_info("bonus_chance")
    assert info.is_maxed is True
    assert prestige.buy_upgrade("bonus_chance") is False
    assert state.prestige_points.available == 10**6


def test_prestige_info() -> None:
    state = default_state(board_random_seed=1)
    state.level = 49
    info = _prestige(state).prestige_info()

    assert info.can_prestige is False
    assert info.next_level_points == 1
