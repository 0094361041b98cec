from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

import structlog

from sugoroku.core.config.balance import DEFAULT_BALANCE, GameBalance
from sugoroku.game import formulas
from sugoroku.game.state import SimulationState

log = structlog.get_logger()

BulkAmount = Union[Literal[1, 5, 10], Literal["max", "max-no-ascension"]]
BULK_AMOUNTS: tuple[BulkAmount, ...] = (1, 5, 10, "max", "max-no-ascension")


@dataclass(frozen=True, slots=True)
class BulkPlan:
    """
    Result of walking the cost curve for a bulk purchase.

    actual_count counts every purchased step, ascensions included.
    """

    amount: BulkAmount
    actual_count: int
    total_cost: int
    ascensions_included: int
    final_level: int
    final_ascension: int
    can_afford: bool
    will_reach_max_level: bool


@dataclass(frozen=True, slots=True)
class AutoDieInfo:
    index: int
    faces: int
    level: int
    ascension: int
    unlocked: bool
    max_level: int
    dice_count: int
    interval_ticks: float
    rolls_per_minute: float
    level_up_cost: int
    ascension_cost: int
    can_level_up: bool
    can_ascend: bool


@dataclass(frozen=True, slots=True)
class ManualDiceInfo:
    count: int
    upgrade_level: int
    cost: int
    can_afford: bool


@dataclass(frozen=True, slots=True)
class UpgradeOverview:
    manual: ManualDiceInfo
    auto_dice: tuple[AutoDieInfo, ...]
    total_purchased: int


class UpgradeSystem:
    """
    Credit sinks: manual dice count, auto-die unlock/level/ascension.

    Every purchase is all-or-nothing and answers with a bool. A rejected
    purchase leaves the state untouched.
    """

    def __init__(self, *, state: SimulationState, balance: GameBalance = DEFAULT_BALANCE) -> None:
        self._state = state
        self._balance = balance

    # ---------------- Manual dice ----------------

    def manual_dice_cost(self) -> int:
        return formulas.manual_dice_upgrade_cost(self._state.manual_dice.upgrade_level, balance=self._balance)

    def upgrade_manual_dice(self) -> bool:
        s = self._state
        cost = self.manual_dice_cost()
        if s.credits < cost:
            return False

        s.credits -= cost
        s.manual_dice.count += 1
        s.manual_dice.upgrade_level += 1
        s.stats.manual_dice_upgrades += 1

        log.info("economy.manual_dice_upgraded", count=s.manual_dice.count, cost=cost)
        return True

    def manual_dice_info(self) -> ManualDiceInfo:
        cost = self.manual_dice_cost()
        return ManualDiceInfo(
            count=self._state.manual_dice.count,
            upgrade_level=self._state.manual_dice.upgrade_level,
            cost=cost,
            can_afford=self._state.credits >= cost,
        )

    # ---------------- Auto dice: single steps ----------------

    def max_level(self, index: int) -> int:
        return formulas.auto_die_max_level(self._state.auto_die(index).ascension, balance=self._balance)

    def level_up_cost(self, index: int) -> int:
        die = self._state.auto_die(index)
        return formulas.auto_die_level_up_cost(index, die.level, die.ascension, balance=self._balance)

    def ascension_cost(self, index: int) -> int:
        die = self._state.auto_die(index)
        return formulas.auto_die_ascension_cost(index, die.level, die.ascension, balance=self._balance)

    def can_ascend(self, index: int) -> bool:
        """
        Structural eligibility only: the die sits at its max level.
        Affordability is checked by ascend_auto_die.
        """
        die = self._state.auto_die(index)
        return die.level > 0 and die.level >= self.max_level(index)

    def unlock_auto_die(self, index: int) -> bool:
        s = self._state
        die = s.auto_die(index)
        if die.level > 0:
            return False

        cost = self.level_up_cost(index)
        if s.credits < cost:
            return False

        s.credits -= cost
        die.level = 1
        die.progress = 0.0
        s.stats.auto_dice_upgrades += 1

        log.info("economy.auto_die_unlocked", index=index, faces=die.faces, cost=cost)
        return True

    def level_up_auto_die(self, index: int) -> bool:
        s = self._state
        die = s.auto_die(index)
        if die.level <= 0 or die.level >= self.max_level(index):
            return False

        cost = self.level_up_cost(index)
        if s.credits < cost:
            return False

        s.credits -= cost
        die.level += 1
        s.stats.auto_dice_upgrades += 1
        return True

    def ascend_auto_die(self, index: int) -> bool:
        s = self._state
        if not self.can_ascend(index):
            return False

        cost = self.ascension_cost(index)
        if s.credits < cost:
            return False

        die = s.auto_die(index)
        s.credits -= cost
        die.level = 1
        die.ascension += 1
        s.stats.auto_dice_ascensions += 1

        log.info("economy.auto_die_ascended", index=index, ascension=die.ascension, cost=cost)
        return True

    # ---------------- Auto dice: bulk ----------------

    def plan_bulk_level_up(
        self,
        index: int,
        amount: BulkAmount,
        *,
        budget: int | None = None,
    ) -> BulkPlan:
        """
        Walk the cost curve step by step from the die's current level.

        - a step at max level is an ascension, priced with the ascension cost
        - "max" buys while affordable
        - "max-no-ascension" buys up to and including max level, then stops
          short of the ascension (a die at 19/20 buys exactly one level)
        - numeric amounts stop at the target or when the budget runs out
        - budget=None prices the full numeric target (preview)
        - hard cap of `bulk_iteration_cap` steps
        """
        if amount not in BULK_AMOUNTS:
            raise ValueError(f"invalid bulk amount: {amount!r}")

        die = self._state.auto_die(index)
        b = self._balance
        if budget is None and isinstance(amount, str):
            budget = self._state.credits

        level = die.level
        ascension = die.ascension
        count = 0
        total = 0
        ascensions = 0

        if level > 0:
            target = amount if isinstance(amount, int) else b.auto_dice.bulk_iteration_cap
            target = min(target, b.auto_dice.bulk_iteration_cap)

            while count < target:
                max_level = formulas.auto_die_max_level(ascension, balance=b)
                at_max = level >= max_level
                if at_max and amount == "max-no-ascension":
                    break

                if at_max:
                    cost = formulas.auto_die_ascension_cost(index, level, ascension, balance=b)
                else:
                    cost = formulas.auto_die_level_up_cost(index, level, ascension, balance=b)

                if budget is not None and total + cost > budget:
                    break

                total += cost
                count += 1
                if at_max:
                    level = 1
                    ascension += 1
                    ascensions += 1
                else:
                    level += 1

        will_reach_max = level >= formulas.auto_die_max_level(ascension, balance=b)
        return BulkPlan(
            amount=amount,
            actual_count=count,
            total_cost=total,
            ascensions_included=ascensions,
            final_level=level,
            final_ascension=ascension,
            can_afford=count > 0 and self._state.credits >= total,
            will_reach_max_level=will_reach_max,
        )

    def max_purchasable_levels(self, index: int, *, include_ascension: bool = True) -> int:
        amount: BulkAmount = "max" if include_ascension else "max-no-ascension"
        return self.plan_bulk_level_up(index, amount, budget=self._state.credits).actual_count

    def bulk_level_up(self, index: int, amount: BulkAmount) -> bool:
        """
        Buy up to `amount` steps that the current balance affords, one step
        at a time through the single-step operations.
        """
        plan = self.plan_bulk_level_up(index, amount, budget=self._state.credits)
        if plan.actual_count == 0:
            return False

        bought = 0
        for _ in range(plan.actual_count):
            if self.can_ascend(index):
                ok = self.ascend_auto_die(index)
            else:
                ok = self.level_up_auto_die(index)
            if not ok:
                break
            bought += 1

        log.info(
            "economy.auto_die_bulk",
            index=index,
            amount=amount,
            bought=bought,
            ascensions=plan.ascensions_included,
            cost=plan.total_cost,
        )
        return bought > 0

    # ---------------- Queries ----------------

    def auto_die_info(self, index: int, *, speed_multiplier: float = 1.0) -> AutoDieInfo:
        die = self._state.auto_die(index)
        max_level = self.max_level(index)
        level_cost = self.level_up_cost(index)
        ascension_cost = self.ascension_cost(index)
        interval = formulas.auto_die_interval(
            die.base_interval, die.level, speed_multiplier=speed_multiplier, balance=self._balance
        )
        per_minute = 0.0
        if die.level > 0:
            per_minute = self._balance.timing.ticks_per_second * 60 / interval

        credits = self._state.credits
        at_max = die.level >= max_level
        return AutoDieInfo(
            index=index,
            faces=die.faces,
            level=die.level,
            ascension=die.ascension,
            unlocked=die.level > 0,
            max_level=max_level,
            dice_count=formulas.auto_die_count(die.ascension, balance=self._balance),
            interval_ticks=interval,
            rolls_per_minute=per_minute,
            level_up_cost=level_cost,
            ascension_cost=ascension_cost,
            can_level_up=0 < die.level < max_level and credits >= level_cost,
            can_ascend=die.level > 0 and at_max,
        )

    def total_upgrades_purchased(self) -> int:
        st = self._state.stats
        return st.manual_dice_upgrades + st.auto_dice_upgrades + st.auto_dice_ascensions

    def upgrade_overview(self, *, speed_multiplier: float = 1.0) -> UpgradeOverview:
        return UpgradeOverview(
            manual=self.manual_dice_info(),
            auto_dice=tuple(
                self.auto_die_info(i, speed_multiplier=speed_multiplier)
                for i in range(len(self._state.auto_dice))
            ),
            total_purchased=self.total_upgrades_purchased(),
        )
