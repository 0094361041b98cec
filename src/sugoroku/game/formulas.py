"""
Pure economy formulas.

Every curve is integer-valued at the boundary (floor/round) so balances
and costs stay exact Python ints however large they grow. When a float
intermediate would overflow, the same formula is evaluated with Decimal.
"""

from __future__ import annotations

import math
from decimal import ROUND_FLOOR, ROUND_HALF_EVEN, Context, Decimal

from sugoroku.core.config.balance import DEFAULT_BALANCE, GameBalance

_WIDE = Context(prec=60, Emax=10**9, Emin=-(10**9))


def _decimal_power(base: float, multiplier: float, exponent: float) -> Decimal:
    return _WIDE.multiply(
        Decimal(str(base)),
        _WIDE.power(Decimal(str(multiplier)), Decimal(str(exponent))),
    )


def scaled_floor(base: float, multiplier: float, exponent: float) -> int:
    """
    floor(base * multiplier ** exponent)
    """
    try:
        return math.floor(base * math.pow(multiplier, exponent))
    except OverflowError:
        return int(_decimal_power(base, multiplier, exponent).to_integral_value(rounding=ROUND_FLOOR))


def scaled_round(base: float, multiplier: float, exponent: float) -> int:
    """
    round(base * multiplier ** exponent), banker's rounding like round().
    """
    try:
        return round(base * math.pow(multiplier, exponent))
    except OverflowError:
        return int(_decimal_power(base, multiplier, exponent).to_integral_value(rounding=ROUND_HALF_EVEN))


def multiply_floor(amount: int, multiplier: float) -> int:
    """
    floor(amount * multiplier) for ints too large for a float product.
    """
    try:
        return math.floor(amount * multiplier)
    except OverflowError:
        value = _WIDE.multiply(Decimal(amount), Decimal(str(multiplier)))
        return int(value.to_integral_value(rounding=ROUND_FLOOR))


# ---------------- Manual dice ----------------

def manual_dice_upgrade_cost(upgrade_level: int, *, balance: GameBalance = DEFAULT_BALANCE) -> int:
    b = balance.manual_dice
    return scaled_floor(b.base_cost, b.cost_multiplier, upgrade_level)


# ---------------- Auto dice ----------------

def auto_die_max_level(ascension: int, *, balance: GameBalance = DEFAULT_BALANCE) -> int:
    b = balance.auto_dice
    return b.max_level_base + ascension * b.ascension_level_increment


def auto_die_count(ascension: int, *, balance: GameBalance = DEFAULT_BALANCE) -> int:
    b = balance.auto_dice
    return b.dice_count_base * b.dice_count_multiplier**ascension


def auto_die_level_up_cost(
    die_index: int,
    level: int,
    ascension: int,
    *,
    balance: GameBalance = DEFAULT_BALANCE,
) -> int:
    """
    floor(50 * 6^ascension * 2^die_index * 1.3^level)

    The level-0 price is the unlock price.
    """
    b = balance.auto_dice
    try:
        prefix = b.level_cost_base * math.pow(b.ascension_cost_base_multiplier, ascension)
        prefix *= math.pow(b.tier_cost_multiplier, die_index)
        return math.floor(prefix * math.pow(b.level_cost_multiplier, level))
    except OverflowError:
        value = _WIDE.multiply(
            _decimal_power(b.level_cost_base, b.ascension_cost_base_multiplier, ascension),
            _WIDE.multiply(
                _WIDE.power(Decimal(str(b.tier_cost_multiplier)), Decimal(die_index)),
                _WIDE.power(Decimal(str(b.level_cost_multiplier)), Decimal(level)),
            ),
        )
        return int(value.to_integral_value(rounding=ROUND_FLOOR))


def auto_die_ascension_cost(
    die_index: int,
    level: int,
    ascension: int,
    *,
    balance: GameBalance = DEFAULT_BALANCE,
) -> int:
    """
    Ascension is priced off the level-up cost at the current (max) level.
    """
    level_cost = auto_die_level_up_cost(die_index, level, ascension, balance=balance)
    multiplier = balance.auto_dice.ascension_cost_multiplier
    if float(multiplier).is_integer():
        return level_cost * int(multiplier)
    value = _WIDE.multiply(Decimal(level_cost), Decimal(str(multiplier)))
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def auto_die_interval(
    base_interval: int,
    level: int,
    *,
    speed_multiplier: float = 1.0,
    balance: GameBalance = DEFAULT_BALANCE,
) -> float:
    """
    Ticks between rolls for an unlocked die.

    Level 1 rolls every `base_interval` ticks and the base max level rolls
    (1 + speed_multiplier_max) times faster. Levels past the base max keep
    the same linear slope. The prestige speed multiplier divides the result.
    """
    if level <= 0:
        return float(base_interval)
    b = balance.auto_dice
    level_speed = 1.0 + b.speed_multiplier_max * (level - 1) / (b.max_level_base - 1)
    ticks = max(1, math.floor(base_interval / level_speed))
    return ticks / max(speed_multiplier, 1e-9)


# ---------------- Board ----------------

def credit_amount(position: int, level: int, sample: float, *, balance: GameBalance = DEFAULT_BALANCE) -> int:
    """
    max(1, floor(4 * 600^(level/100) * (1 + (position+1)/100) * (0.7 + 0.6*sample)))
    """
    c = balance.credit
    position_bonus = 1.0 + (position + 1) / c.position_bonus_divisor
    spread = sample * c.random_range + c.random_min
    exponent = level / c.level_divisor
    try:
        amount = math.floor(c.base * math.pow(c.level_scaling_base, exponent) * position_bonus * spread)
    except OverflowError:
        value = _WIDE.multiply(
            _decimal_power(c.base, c.level_scaling_base, exponent),
            Decimal(str(position_bonus * spread)),
        )
        amount = int(value.to_integral_value(rounding=ROUND_FLOOR))
    return max(1, amount)


def forward_steps(sample: float, *, balance: GameBalance = DEFAULT_BALANCE) -> int:
    return math.floor(sample * balance.board.forward_steps_range) + 1


def backward_steps(level: int, sample: float, *, balance: GameBalance = DEFAULT_BALANCE) -> int:
    b = balance.board
    level_part = min(level / b.backward_level_divisor, b.max_backward_steps)
    return math.floor(sample * b.backward_steps_range + level_part) + 1


def backward_probability(position: int, *, balance: GameBalance = DEFAULT_BALANCE) -> float:
    p = balance.cells
    progress = position / balance.board.total_cells
    return min(p.backward_max, p.backward_base + progress * p.backward_position_scale)


def fixed_backward_count(level: int, *, balance: GameBalance = DEFAULT_BALANCE) -> int:
    """
    Size of the trailing forced-backward zone. Zero below the start level,
    then one more cell per `level_increment` levels, capped.
    """
    f = balance.fixed_backward
    if level < f.start_level:
        return 0
    return min((level - f.start_level) // f.level_increment + 1, f.max_count)


# ---------------- Prestige ----------------

def prestige_points_for_level(level: int, *, balance: GameBalance = DEFAULT_BALANCE) -> int:
    """
    round(1 * 2^((level - 50) / 50)), zero below the prestige start level.
    """
    p = balance.prestige
    if level < p.start_level:
        return 0
    return scaled_round(p.base_points, p.scaling_base, (level - p.start_level) / p.scaling_level_divisor)


def prestige_upgrade_cost(kind: str, level: int, *, balance: GameBalance = DEFAULT_BALANCE) -> int:
    u = balance.prestige_upgrades[kind]
    return u.base_cost + u.cost_step * level


def prestige_upgrade_effect(kind: str, level: int, *, balance: GameBalance = DEFAULT_BALANCE) -> float:
    u = balance.prestige_upgrades[kind]
    if u.max_level is not None:
        level = min(level, u.max_level)
    value = u.base_effect + u.effect_step * level
    if kind == "dice_speed_boost":
        value = min(value, balance.max_speed_multiplier)
    return value


# ---------------- Burden ----------------

def burden_level(level: int, *, balance: GameBalance = DEFAULT_BALANCE) -> int:
    """
    0 up to and including the burden start level, then one tier per
    `level_interval` levels starting at 1.
    """
    b = balance.burden
    if level <= b.start_level:
        return 0
    return 1 + (level - b.start_level - 1) // b.level_interval


def burden_die_reduction(burden: int, *, balance: GameBalance = DEFAULT_BALANCE) -> int:
    return min(burden // 2, balance.burden.max_individual_reduction)


def burden_total_reduction(level: int, *, balance: GameBalance = DEFAULT_BALANCE) -> int:
    b = balance.burden
    over = max(0, level - b.start_level)
    return -(-over // b.total_reduction_divisor)


def burden_halvings(burden: int, *, balance: GameBalance = DEFAULT_BALANCE) -> int:
    return burden // balance.burden.halving_interval
