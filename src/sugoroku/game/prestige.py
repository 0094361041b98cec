from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import structlog

from sugoroku.core.config.balance import DEFAULT_BALANCE, GameBalance, PrestigeUpgradeKind
from sugoroku.game import formulas
from sugoroku.game.state import SimulationState
from sugoroku.random.xorshift import XorShiftRandom

log = structlog.get_logger()

PRESTIGE_UPGRADE_KINDS: tuple[PrestigeUpgradeKind, ...] = (
    "credit_multiplier",
    "dice_speed_boost",
    "bonus_chance",
    "bonus_multiplier",
)

DefaultStateFactory = Callable[[int], SimulationState]


@dataclass(frozen=True, slots=True)
class PrestigeResult:
    success: bool
    reason: str  # machine-friendly code
    points_gained: int = 0
    rebirth_count: int = 0


@dataclass(frozen=True, slots=True)
class PrestigeInfo:
    level: int
    earned: int
    available: int
    can_prestige: bool
    next_level_points: int
    rebirth_count: int


@dataclass(frozen=True, slots=True)
class PrestigeUpgradeInfo:
    kind: PrestigeUpgradeKind
    level: int
    max_level: int | None
    cost: int
    effect: float
    can_afford: bool
    is_maxed: bool


class PrestigeSystem:
    """
    Rebirth and the permanent multipliers bought with prestige points.

    Points accrue during movement (BoardSystem awards the per-move delta);
    this system pays them out, resets the run and sells upgrades.
    """

    def __init__(
        self,
        *,
        state: SimulationState,
        default_factory: DefaultStateFactory,
        balance: GameBalance = DEFAULT_BALANCE,
    ) -> None:
        self._state = state
        self._default_factory = default_factory
        self._balance = balance

    def points_for_level(self, level: int) -> int:
        return formulas.prestige_points_for_level(level, balance=self._balance)

    def can_prestige(self) -> bool:
        return self._state.prestige_points.earned > 0

    def prestige_info(self) -> PrestigeInfo:
        s = self._state
        next_points = self.points_for_level(s.level + 1) - self.points_for_level(s.level)
        return PrestigeInfo(
            level=s.level,
            earned=s.prestige_points.earned,
            available=s.prestige_points.available,
            can_prestige=self.can_prestige(),
            next_level_points=next_points,
            rebirth_count=s.rebirth_count,
        )

    # ---------------- Reset ----------------

    def _fold_run_stats(self) -> None:
        s = self._state
        ps = s.prestige_stats
        total_cells = self._balance.board.total_cells

        run_credits = s.run_stats.credits_earned
        run_distance = s.run_stats.distance
        run_laps = run_distance // total_cells

        ps.total_runs += 1
        ps.total_credits_earned += run_credits
        ps.total_distance_traveled += run_distance
        ps.total_laps_completed += run_laps

        best = ps.best_single_run
        best.credits = max(best.credits, run_credits)
        best.distance = max(best.distance, run_distance)
        best.laps = max(best.laps, run_laps)
        best.level = max(best.level, s.level)

    def prestige(self) -> PrestigeResult:
        """
        Bank earned points, count the rebirth and start a fresh run.

        Carried into the new run: rebirth count, available points,
        prestige upgrades, lifetime stats, prestige stats, settings and
        the generator state. Everything else is reset to defaults.
        """
        s = self._state
        earned = s.prestige_points.earned
        if earned <= 0:
            return PrestigeResult(success=False, reason="no_points", rebirth_count=s.rebirth_count)

        s.prestige_points.available += earned
        s.prestige_points.earned = 0
        s.rebirth_count += 1
        s.stats.total_rebirths += 1
        self._fold_run_stats()

        # the next board seed comes from the session generator, so replays stay exact
        rng = XorShiftRandom.from_state(s.rng_state)
        next_seed = rng.next_uint32() & 0x7FFFFFFF

        fresh = self._default_factory(next_seed)
        fresh.rebirth_count = s.rebirth_count
        fresh.prestige_points.available = s.prestige_points.available
        fresh.prestige_upgrades = s.prestige_upgrades.model_copy(deep=True)
        fresh.stats = s.stats.model_copy(deep=True)
        fresh.prestige_stats = s.prestige_stats.model_copy(deep=True)
        fresh.settings = s.settings.model_copy(deep=True)
        fresh.rng_state = rng.save_state()

        s.replace_with(fresh)

        log.info("prestige.completed", points=earned, rebirth_count=s.rebirth_count)
        return PrestigeResult(success=True, reason="ok", points_gained=earned, rebirth_count=s.rebirth_count)

    # ---------------- Upgrades ----------------

    def _check_kind(self, kind: str) -> None:
        if kind not in PRESTIGE_UPGRADE_KINDS:
            raise ValueError(f"unknown prestige upgrade: {kind!r}")

    def upgrade_cost(self, kind: PrestigeUpgradeKind) -> int:
        self._check_kind(kind)
        return formulas.prestige_upgrade_cost(kind, self._state.prestige_upgrades.level_of(kind), balance=self._balance)

    def upgrade_info(self, kind: PrestigeUpgradeKind) -> PrestigeUpgradeInfo:
        self._check_kind(kind)
        level = self._state.prestige_upgrades.level_of(kind)
        max_level = self._balance.prestige_upgrades[kind].max_level
        cost = self.upgrade_cost(kind)
        is_maxed = max_level is not None and level >= max_level
        return PrestigeUpgradeInfo(
            kind=kind,
            level=level,
            max_level=max_level,
            cost=cost,
            effect=formulas.prestige_upgrade_effect(kind, level, balance=self._balance),
            can_afford=not is_maxed and self._state.prestige_points.available >= cost,
            is_maxed=is_maxed,
        )

    def buy_upgrade(self, kind: PrestigeUpgradeKind) -> bool:
        info = self.upgrade_info(kind)
        if info.is_maxed or not info.can_afford:
            return False

        s = self._state
        s.prestige_points.available -= info.cost
        getattr(s.prestige_upgrades, kind).level += 1

        log.info("prestige.upgrade_purchased", kind=kind, level=info.level + 1, cost=info.cost)
        return True
