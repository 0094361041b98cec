from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog

from sugoroku.core.config.balance import DEFAULT_BALANCE, GameBalance
from sugoroku.game import formulas
from sugoroku.game.state import SimulationState
from sugoroku.random.hashing import board_seed, cell_sample

log = structlog.get_logger()

# seed offsets keep each magnitude independent of the cell-type sample
_CREDIT_OFFSET = 1000
_FORWARD_OFFSET = 2000
_BACKWARD_OFFSET = 3000
_BONUS_OFFSET = 4000
_FIXED_BACKWARD_OFFSET = 5000


class CellType(str, Enum):
    EMPTY = "empty"
    CREDIT = "credit"
    CREDIT_BONUS = "credit_bonus"
    FORWARD = "forward"
    BACKWARD = "backward"


@dataclass(frozen=True, slots=True)
class Cell:
    """
    Derived board cell. Never persisted; regenerate with BoardSystem.cell_at.

    magnitude: credits for credit cells, steps for forward/backward, 0 for empty.
    """

    type: CellType
    magnitude: int
    fixed: bool = False


@dataclass(frozen=True, slots=True)
class MoveResult:
    old_position: int
    new_position: int
    steps: int
    old_level: int
    new_level: int
    levels_completed: int
    prestige_earned: int

    @property
    def level_changed(self) -> bool:
        return self.levels_completed > 0


@dataclass(frozen=True, slots=True)
class CellEffect:
    """
    Outcome of resolving one cell.

    follow_up is the single direct move a forward/backward cell triggers.
    The cell at its destination is never resolved.
    """

    position: int
    cell: Cell
    credits_gained: int = 0
    follow_up: MoveResult | None = None


class BoardSystem:
    """
    Procedural board and movement resolver.

    Cells are a pure function of (rebirth_count, level, position) plus the
    current bonus chance, which only changes through an explicit prestige
    purchase.
    """

    def __init__(self, *, state: SimulationState, balance: GameBalance = DEFAULT_BALANCE) -> None:
        self._state = state
        self._balance = balance
        self._resolving = False

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def total_cells(self) -> int:
        return self._balance.board.total_cells

    # ---------------- Multipliers ----------------

    def credit_multiplier(self) -> float:
        level = self._state.prestige_upgrades.credit_multiplier.level
        return formulas.prestige_upgrade_effect("credit_multiplier", level, balance=self._balance)

    def bonus_chance(self) -> float:
        level = self._state.prestige_upgrades.bonus_chance.level
        return formulas.prestige_upgrade_effect("bonus_chance", level, balance=self._balance)

    def bonus_multiplier(self) -> float:
        level = self._state.prestige_upgrades.bonus_multiplier.level
        return formulas.prestige_upgrade_effect("bonus_multiplier", level, balance=self._balance)

    # ---------------- Generation ----------------

    def cell_at(self, position: int, level: int | None = None) -> Cell:
        if not 0 <= position < self.total_cells:
            raise ValueError(f"position out of range: {position}")
        if level is None:
            level = self._state.level

        b = self._balance
        seed = board_seed(self._state.rebirth_count, level) + position

        fixed = b.fixed_backward
        fixed_count = formulas.fixed_backward_count(level, balance=b)
        if fixed_count and fixed.area_start <= position <= fixed.area_end:
            if position >= fixed.area_end - fixed_count + 1:
                steps = formulas.backward_steps(level, cell_sample(seed + _FIXED_BACKWARD_OFFSET), balance=b)
                return Cell(type=CellType.BACKWARD, magnitude=steps + 1, fixed=True)

        rand = cell_sample(seed)
        backward = formulas.backward_probability(position, balance=b)
        empty = 1.0 - b.cells.credit - b.cells.forward - backward

        if rand < empty:
            return Cell(type=CellType.EMPTY, magnitude=0)

        if rand < empty + b.cells.credit:
            amount = formulas.credit_amount(position, level, cell_sample(seed + _CREDIT_OFFSET), balance=b)
            if cell_sample(seed + _BONUS_OFFSET) < self.bonus_chance():
                return Cell(type=CellType.CREDIT_BONUS, magnitude=amount)
            return Cell(type=CellType.CREDIT, magnitude=amount)

        if rand < empty + b.cells.credit + b.cells.forward:
            steps = formulas.forward_steps(cell_sample(seed + _FORWARD_OFFSET), balance=b)
            return Cell(type=CellType.FORWARD, magnitude=steps)

        steps = formulas.backward_steps(level, cell_sample(seed + _BACKWARD_OFFSET), balance=b)
        return Cell(type=CellType.BACKWARD, magnitude=steps)

    def board_layout(self, level: int | None = None) -> list[Cell]:
        return [self.cell_at(p, level) for p in range(self.total_cells)]

    # ---------------- Movement ----------------

    def move_player(self, steps: int) -> MoveResult:
        """
        Move by `steps`, wrapping into new levels. Does not resolve the
        destination cell.
        """
        return self._move(steps)

    def move_player_direct(self, steps: int) -> MoveResult:
        """
        Effect-driven move. Same wrap/clamp rules, never resolves a cell.
        """
        return self._move(steps)

    def _move(self, steps: int) -> MoveResult:
        s = self._state
        old_position = s.position
        old_level = s.level
        target = old_position + steps

        s.stats.total_moves += abs(steps)
        s.run_stats.distance += abs(steps)

        if target < 0:
            target = 0

        levels_completed = 0
        earned = 0
        if target >= self.total_cells:
            levels_completed = target // self.total_cells
            s.level += levels_completed
            target %= self.total_cells

            earned = formulas.prestige_points_for_level(s.level, balance=self._balance) - formulas.prestige_points_for_level(
                old_level, balance=self._balance
            )
            if earned > 0:
                s.prestige_points.earned += earned
                s.stats.total_prestige_points += earned

            log.info(
                "board.level_completed",
                level=s.level,
                levels_completed=levels_completed,
                prestige_earned=earned,
            )

        s.position = target
        return MoveResult(
            old_position=old_position,
            new_position=target,
            steps=steps,
            old_level=old_level,
            new_level=s.level,
            levels_completed=levels_completed,
            prestige_earned=earned,
        )

    # ---------------- Effects ----------------

    def apply_cell_effect(self, position: int | None = None) -> CellEffect:
        """
        Resolve the cell at `position` (default: current position).

        Credit cells pay out through the prestige credit multiplier. Forward
        and backward cells make exactly one direct move; backward steps are
        clamped to the current position.
        """
        if self._resolving:
            raise RuntimeError("cell effect already resolving for this state")

        if position is None:
            position = self._state.position

        self._resolving = True
        try:
            return self._resolve(position)
        finally:
            self._resolving = False

    def _resolve(self, position: int) -> CellEffect:
        s = self._state
        cell = self.cell_at(position)

        if cell.type in (CellType.CREDIT, CellType.CREDIT_BONUS):
            multiplier = self.credit_multiplier()
            if cell.type is CellType.CREDIT_BONUS:
                multiplier *= self.bonus_multiplier()
            gained = formulas.multiply_floor(cell.magnitude, multiplier)
            s.credits += gained
            s.stats.total_credits_earned += gained
            s.run_stats.credits_earned += gained
            return CellEffect(position=position, cell=cell, credits_gained=gained)

        if cell.type is CellType.FORWARD:
            return CellEffect(position=position, cell=cell, follow_up=self.move_player_direct(cell.magnitude))

        if cell.type is CellType.BACKWARD:
            steps = min(cell.magnitude, s.position)
            return CellEffect(position=position, cell=cell, follow_up=self.move_player_direct(-steps))

        return CellEffect(position=position, cell=cell)
