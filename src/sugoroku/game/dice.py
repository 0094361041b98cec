from __future__ import annotations

from dataclasses import dataclass

import structlog

from sugoroku.core.config.balance import DEFAULT_BALANCE, GameBalance
from sugoroku.game import formulas
from sugoroku.game.state import SimulationState
from sugoroku.random.xorshift import XorShiftRandom

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class DiceRoll:
    """
    One resolved roll of a group of identical dice.

    raw: face values as rolled
    results: values after the per-die burden reduction
    total: sum after the flat penalty, the clamp at 0 and any halvings
    quality: where total sits between count and count*faces, in [0, 1]
    """

    faces: int
    raw: tuple[int, ...]
    results: tuple[int, ...]
    total: int
    quality: float
    die_index: int | None = None

    @property
    def count(self) -> int:
        return len(self.raw)


@dataclass(frozen=True, slots=True)
class BurdenInfo:
    level: int
    die_reduction: int
    total_reduction: int
    halvings: int
    next_tier_level: int


def _quality(total: int, count: int, faces: int) -> float:
    lo = count
    hi = count * faces
    if hi <= lo:
        return 1.0
    return min(1.0, max(0.0, (total - lo) / (hi - lo)))


class DiceSystem:
    """
    Manual and automated dice.

    The generator state lives on SimulationState.rng_state; each roll
    resumes from it and writes it back, so a reloaded save continues the
    exact same sequence.
    """

    def __init__(self, *, state: SimulationState, balance: GameBalance = DEFAULT_BALANCE) -> None:
        self._state = state
        self._balance = balance

    # ---------------- Burden ----------------

    def burden_level(self) -> int:
        return formulas.burden_level(self._state.level, balance=self._balance)

    def burden_info(self) -> BurdenInfo:
        b = self._balance
        level = self.burden_level()
        if level == 0:
            next_tier = b.burden.start_level + 1
        else:
            next_tier = b.burden.start_level + 1 + level * b.burden.level_interval
        return BurdenInfo(
            level=level,
            die_reduction=formulas.burden_die_reduction(level, balance=b),
            total_reduction=formulas.burden_total_reduction(self._state.level, balance=b),
            halvings=formulas.burden_halvings(level, balance=b),
            next_tier_level=next_tier,
        )

    def _apply_die_burden(self, value: int, faces: int, burden: int) -> int:
        reduction = formulas.burden_die_reduction(burden, balance=self._balance)
        adjusted = value - reduction
        if adjusted >= 1:
            return adjusted
        # below 1: low faces drop to 0, high faces hold at 1
        return 0 if value < faces / 2 else 1

    def _apply_total_burden(self, total: int, burden: int) -> int:
        total = max(0, total - formulas.burden_total_reduction(self._state.level, balance=self._balance))
        for _ in range(formulas.burden_halvings(burden, balance=self._balance)):
            total //= 2
        return total

    # ---------------- Rolling ----------------

    def _roll(self, *, count: int, faces: int, die_index: int | None) -> DiceRoll:
        rng = XorShiftRandom.from_state(self._state.rng_state)
        raw = tuple(rng.roll(faces) for _ in range(count))
        self._state.rng_state = rng.save_state()

        burden = self.burden_level()
        if burden > 0:
            results = tuple(self._apply_die_burden(v, faces, burden) for v in raw)
        else:
            results = raw
        total = self._apply_total_burden(sum(results), burden)

        return DiceRoll(
            faces=faces,
            raw=raw,
            results=results,
            total=total,
            quality=_quality(total, count, faces),
            die_index=die_index,
        )

    def roll_manual(self) -> DiceRoll:
        s = self._state
        roll = self._roll(count=s.manual_dice.count, faces=self._balance.manual_dice.faces, die_index=None)

        s.stats.total_dice_rolls += 1
        s.stats.manual_dice_rolls += 1
        s.run_stats.dice_rolls += 1

        log.debug("dice.manual_rolled", count=roll.count, total=roll.total, quality=round(roll.quality, 3))
        return roll

    def roll_auto(self, index: int) -> DiceRoll:
        """
        Roll one auto-die slot. A locked slot yields an empty roll and
        touches neither the generator nor the statistics.
        """
        s = self._state
        die = s.auto_die(index)
        if die.level <= 0:
            return DiceRoll(faces=die.faces, raw=(), results=(), total=0, quality=0.0, die_index=index)

        count = formulas.auto_die_count(die.ascension, balance=self._balance)
        roll = self._roll(count=count, faces=die.faces, die_index=index)

        s.stats.total_dice_rolls += 1
        s.stats.auto_dice_rolls += 1
        s.run_stats.dice_rolls += 1
        return roll

    # ---------------- Timers ----------------

    def speed_multiplier(self) -> float:
        level = self._state.prestige_upgrades.dice_speed_boost.level
        return formulas.prestige_upgrade_effect("dice_speed_boost", level, balance=self._balance)

    def auto_die_interval(self, index: int) -> float:
        die = self._state.auto_die(index)
        return formulas.auto_die_interval(
            die.base_interval,
            die.level,
            speed_multiplier=self.speed_multiplier(),
            balance=self._balance,
        )

    def check_auto_dice_timers(self, tick: int) -> list[DiceRoll]:
        """
        Advance every unlocked die's progress by one tick and roll each
        die once per full progress unit. Several rolls may fire in one tick.
        """
        scale = self._balance.timing.progress_scale
        rolls: list[DiceRoll] = []

        for index, die in enumerate(self._state.auto_dice):
            if die.level <= 0:
                continue

            die.progress += scale / self.auto_die_interval(index)
            while die.progress >= scale:
                die.progress -= scale
                rolls.append(self.roll_auto(index))
                die.last_roll = tick

        return rolls
