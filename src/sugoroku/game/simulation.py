from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import structlog

from sugoroku.core.config.balance import DEFAULT_BALANCE, GameBalance, PrestigeUpgradeKind
from sugoroku.core.engine.state import EngineState
from sugoroku.core.events.bus import EventBus
from sugoroku.core.events.game import (
    AutoDiceRolled,
    CellEffectApplied,
    ManualDiceRolled,
    PlayerMoved,
    PrestigeCompleted,
    PrestigeUpgradePurchased,
    StateImported,
    UpgradePurchased,
)
from sugoroku.game.board import BoardSystem, CellEffect, MoveResult
from sugoroku.game.dice import DiceRoll, DiceSystem
from sugoroku.game.prestige import PrestigeResult, PrestigeSystem
from sugoroku.game.state import SimulationState
from sugoroku.game.upgrades import BulkAmount, UpgradeSystem
from sugoroku.save.schema import default_state

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class StepOutcome:
    move: MoveResult
    effect: CellEffect


@dataclass(frozen=True, slots=True)
class ManualRollOutcome:
    roll: DiceRoll
    step: StepOutcome | None


@dataclass(frozen=True, slots=True)
class TickOutcome:
    tick: int
    rolls: tuple[DiceRoll, ...]
    steps: int
    step: StepOutcome | None


class Simulation:
    """
    The game core for one session: one SimulationState, the systems that
    mutate it, and the bus that reports what happened.

    Every public mutation goes through here so each change is published
    exactly once. Events carry sequences from the session's EngineState.
    """

    def __init__(
        self,
        *,
        state: SimulationState,
        bus: EventBus,
        engine_state: EngineState,
        balance: GameBalance = DEFAULT_BALANCE,
    ) -> None:
        self._state = state
        self._bus = bus
        self._engine_state = engine_state
        self._balance = balance

        self.board = BoardSystem(state=state, balance=balance)
        self.dice = DiceSystem(state=state, balance=balance)
        self.upgrades = UpgradeSystem(state=state, balance=balance)
        self.prestige_system = PrestigeSystem(
            state=state,
            default_factory=self._fresh_state,
            balance=balance,
        )

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def balance(self) -> GameBalance:
        return self._balance

    @property
    def bus(self) -> EventBus:
        return self._bus

    def _fresh_state(self, board_random_seed: int) -> SimulationState:
        return default_state(board_random_seed=board_random_seed, balance=self._balance)

    def _seq(self) -> int:
        return self._engine_state.next_sequence()

    # ---------------- Movement ----------------

    def advance(self, steps: int) -> StepOutcome:
        """
        Move, then resolve the landing cell (one level deep).
        """
        move = self.board.move_player(steps)
        self._publish_move(move)

        effect = self.board.apply_cell_effect(move.new_position)
        if effect.follow_up is not None:
            self._publish_move(effect.follow_up)

        self._bus.publish(
            CellEffectApplied.create(
                sequence=self._seq(),
                position=effect.position,
                cell_type=effect.cell.type.value,
                magnitude=effect.cell.magnitude,
                credits_gained=effect.credits_gained,
                follow_up_position=effect.follow_up.new_position if effect.follow_up else None,
            )
        )
        return StepOutcome(move=move, effect=effect)

    def _publish_move(self, move: MoveResult) -> None:
        self._bus.publish(
            PlayerMoved.create(
                sequence=self._seq(),
                old_position=move.old_position,
                new_position=move.new_position,
                steps=move.steps,
                level=move.new_level,
                levels_completed=move.levels_completed,
                prestige_earned=move.prestige_earned,
            )
        )

    # ---------------- Dice ----------------

    def roll_manual(self) -> ManualRollOutcome:
        roll = self.dice.roll_manual()
        self._bus.publish(
            ManualDiceRolled.create(
                sequence=self._seq(),
                count=roll.count,
                results=roll.results,
                total=roll.total,
                quality=roll.quality,
            )
        )
        step = self.advance(roll.total) if roll.total > 0 else None
        return ManualRollOutcome(roll=roll, step=step)

    def run_tick(self, tick: int) -> TickOutcome:
        """
        One scheduler tick: fire due auto-dice, move by their sum, resolve
        the landing cell.
        """
        rolls = self.dice.check_auto_dice_timers(tick)
        for roll in rolls:
            self._bus.publish(
                AutoDiceRolled.create(
                    sequence=self._seq(),
                    die_index=roll.die_index,
                    faces=roll.faces,
                    result=roll.total,
                    tick=tick,
                )
            )

        steps = sum(r.total for r in rolls)
        step = self.advance(steps) if steps > 0 else None
        return TickOutcome(tick=tick, rolls=tuple(rolls), steps=steps, step=step)

    # ---------------- Upgrades ----------------

    def _publish_upgrade(self, kind: str, die_index: int | None, cost: int) -> None:
        if die_index is None:
            level, ascension = self._state.manual_dice.upgrade_level, 0
        else:
            die = self._state.auto_die(die_index)
            level, ascension = die.level, die.ascension
        self._bus.publish(
            UpgradePurchased.create(
                sequence=self._seq(),
                kind=kind,
                die_index=die_index,
                cost=cost,
                level=level,
                ascension=ascension,
            )
        )

    def _purchase(self, kind: str, die_index: int | None, action: Callable[[], bool]) -> bool:
        before = self._state.credits
        ok = action()
        if ok:
            self._publish_upgrade(kind, die_index, before - self._state.credits)
        return ok

    def upgrade_manual_dice(self) -> bool:
        return self._purchase("manual_dice", None, self.upgrades.upgrade_manual_dice)

    def unlock_auto_die(self, index: int) -> bool:
        return self._purchase("unlock", index, lambda: self.upgrades.unlock_auto_die(index))

    def level_up_auto_die(self, index: int) -> bool:
        return self._purchase("level_up", index, lambda: self.upgrades.level_up_auto_die(index))

    def ascend_auto_die(self, index: int) -> bool:
        return self._purchase("ascend", index, lambda: self.upgrades.ascend_auto_die(index))

    def bulk_level_up(self, index: int, amount: BulkAmount) -> bool:
        return self._purchase("bulk", index, lambda: self.upgrades.bulk_level_up(index, amount))

    # ---------------- Prestige ----------------

    def prestige(self) -> PrestigeResult:
        result = self.prestige_system.prestige()
        if result.success:
            self._bus.publish(
                PrestigeCompleted.create(
                    sequence=self._seq(),
                    points_gained=result.points_gained,
                    rebirth_count=result.rebirth_count,
                )
            )
        return result

    def buy_prestige_upgrade(self, kind: PrestigeUpgradeKind) -> bool:
        cost = self.prestige_system.upgrade_cost(kind)
        ok = self.prestige_system.buy_upgrade(kind)
        if ok:
            self._bus.publish(
                PrestigeUpgradePurchased.create(
                    sequence=self._seq(),
                    kind=kind,
                    level=self._state.prestige_upgrades.level_of(kind),
                    cost=cost,
                )
            )
        return ok

    # ---------------- State replacement ----------------

    def replace_state(self, new_state: SimulationState) -> None:
        """
        Swap in a loaded/imported state without breaking held references.
        """
        self._state.replace_with(new_state)
        self._bus.publish(
            StateImported.create(
                sequence=self._seq(),
                level=self._state.level,
                rebirth_count=self._state.rebirth_count,
            )
        )
        log.info("save.state_replaced", level=self._state.level, rebirth_count=self._state.rebirth_count)

    # ---------------- Queries ----------------

    def detailed_stats(self) -> dict[str, int | float]:
        s = self._state
        return {
            **s.stats.model_dump(),
            "level": s.level,
            "position": s.position,
            "credits": s.credits,
            "rebirth_count": s.rebirth_count,
            "total_upgrades": self.upgrades.total_upgrades_purchased(),
            "burden_level": self.dice.burden_level(),
            "dice_speed_multiplier": self.dice.speed_multiplier(),
            "credit_multiplier": self.board.credit_multiplier(),
        }
