from __future__ import annotations

from sugoroku.core.config.balance import BurdenBalance, DiceTier, GameBalance
from sugoroku.game.dice import DiceSystem
from sugoroku.save.schema import default_state


def test_roll_without_burden_is_plain_sum() -> None:
    state = default_state(board_random_seed=5)
    state.manual_dice.count = 4
    dice = DiceSystem(state=state)

    roll = dice.roll_manual()
    assert roll.count == 4
    assert roll.results == roll.raw
    assert roll.total == sum(roll.raw)
    assert all(1 <= v <= 6 for v in roll.raw)
    assert 0.0 <= roll.quality <= 1.0

    assert state.stats.total_dice_rolls == 1
    assert state.stats.manual_dice_rolls == 1
    assert state.run_stats.dice_rolls == 1


def test_rolls_resume_from_persisted_generator() -> None:
    a = default_state(board_random_seed=11)
    b = default_state(board_random_seed=11)
    dice_a = DiceSystem(state=a)
    dice_b = DiceSystem(state=b)

    first = [dice_a.roll_manual().raw for _ in range(20)]
    # reload: a fresh system over a copy continues the same sequence
    b.rng_state = list(a.rng_state)
    a_next = [dice_a.roll_manual().raw for _ in range(20)]
    b_next = [dice_b.roll_manual().raw for _ in range(20)]

    assert a_next == b_next
    assert first != a_next


def test_heavy_burden_floors_total_at_zero() -> None:
    state = default_state(board_random_seed=3)
    state.level = 1101  # burden tier 21: -10 per die, -101 flat, two halvings
    dice = DiceSystem(state=state)

    info = dice.burden_info()
    assert info.level == 21
    assert info.die_reduction == 10
    assert info.total_reduction == 101
    assert info.halvings == 2

    for _ in range(50):
        roll = dice.roll_manual()
        assert all(r in (0, 1) for r in roll.results)
        assert roll.total == 0


def test_per_die_reduction_floor_rule() -> None:
    dice = DiceSystem(state=default_state(board_random_seed=1))
    # burden 4 -> 2 off each die
    assert dice._apply_die_burden(6, 6, 4) == 4
    assert dice._apply_die_burden(3, 6, 4) == 1
    # below 1: low faces drop to 0, high faces keep 1
    assert dice._apply_die_burden(2, 6, 4) == 0
    assert dice._apply_die_burden(2, 4, 4) == 1


def test_flat_penalty_clamps_before_halving() -> None:
    balance = GameBalance(burden=BurdenBalance(total_reduction_divisor=100, halving_interval=1))
    state = default_state(board_random_seed=1, balance=balance)
    state.level = 101  # burden 1, flat penalty 1, one halving
    dice = DiceSystem(state=state, balance=balance)

    # (11 - 1) // 2, not 11 // 2 - 1
    assert dice._apply_total_burden(11, 1) == 5
    assert dice._apply_total_burden(1, 1) == 0
    assert dice._apply_total_burden(0, 1) == 0


def test_burden_info_below_threshold() -> None:
    dice = DiceSystem(state=default_state(board_random_seed=1))
    info = dice.burden_info()
    assert info.level == 0
    assert info.total_reduction == 0
    assert info.next_tier_level == 101


def test_locked_die_rolls_nothing() -> None:
    state = default_state(board_random_seed=1)
    dice = DiceSystem(state=state)
    before = list(state.rng_state)

    roll = dice.roll_auto(0)
    assert roll.total == 0
    assert roll.raw == ()
    assert state.rng_state == before
    assert state.stats.auto_dice_rolls == 0


def test_auto_die_fires_on_interval() -> None:
    state = default_state(board_random_seed=1)
    state.auto_dice[0].level = 1  # d4, 80 ticks
    dice = DiceSystem(state=state)

    for tick in range(79):
        assert dice.check_auto_dice_timers(tick) == []

    rolls = dice.check_auto_dice_timers(79)
    assert len(rolls) == 1
    assert rolls[0].die_index == 0
    assert rolls[0].faces == 4
    assert state.auto_dice[0].last_roll == 79
    assert state.stats.auto_dice_rolls == 1


def test_ascended_die_rolls_more_dice() -> None:
    state = default_state(board_random_seed=1)
    state.auto_dice[1].level = 1
    state.auto_dice[1].ascension = 2
    dice = DiceSystem(state=state)

    assert dice.roll_auto(1).count == 4


def test_speed_boost_shortens_interval() -> None:
    state = default_state(board_random_seed=1)
    state.auto_dice[0].level = 1
    dice = DiceSystem(state=state)
    assert dice.auto_die_interval(0) == 80.0

    state.prestige_upgrades.dice_speed_boost.level = 10
    assert dice.speed_multiplier() == 2.0
    assert dice.auto_die_interval(0) == 40.0


def _fast_dice(base_interval: int, speed_level: int) -> DiceSystem:
    balance = GameBalance(dice_tiers=(DiceTier(faces=4, base_interval=base_interval),))
    state = default_state(board_random_seed=1, balance=balance)
    state.auto_dice[0].level = 1
    state.prestige_upgrades.dice_speed_boost.level = speed_level
    return DiceSystem(state=state, balance=balance)


def test_sub_tick_interval_fires_several_rolls_in_one_tick() -> None:
    dice = _fast_dice(base_interval=1, speed_level=10)  # 1 tick / x2 speed
    assert dice.auto_die_interval(0) == 0.5

    for tick in range(5):
        rolls = dice.check_auto_dice_timers(tick)
        assert len(rolls) == 2
        assert all(r.die_index == 0 for r in rolls)

    assert dice._state.stats.auto_dice_rolls == 10


def test_roll_count_over_window_is_floor_of_ticks_over_interval() -> None:
    # 1.5 ticks per roll
    dice = _fast_dice(base_interval=3, speed_level=10)
    assert dice.auto_die_interval(0) == 1.5
    per_tick = [len(dice.check_auto_dice_timers(t)) for t in range(9)]
    assert sum(per_tick) == 6  # floor(9 / 1.5)
    assert per_tick[:3] == [0, 1, 1]

    # d4 at level 20 with x2 speed: 8 ticks per roll
    state = default_state(board_random_seed=1)
    state.auto_dice[0].level = 20
    state.prestige_upgrades.dice_speed_boost.level = 10
    dice = DiceSystem(state=state)
    assert dice.auto_die_interval(0) == 8.0

    fired = [t for t in range(100) if dice.check_auto_dice_timers(t)]
    assert len(fired) == 12  # floor(100 / 8)
    assert fired[:2] == [7, 15]
