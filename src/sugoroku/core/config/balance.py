from __future__ import annotations

import hashlib
import json
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# -----------------------
# Balance building blocks
# -----------------------

PrestigeUpgradeKind = Literal[
    "credit_multiplier",
    "dice_speed_boost",
    "bonus_chance",
    "bonus_multiplier",
]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class DiceTier(_Frozen):
    faces: int = Field(..., ge=2, description="Faces per die (immutable per tier)")
    base_interval: int = Field(..., gt=0, description="Ticks between rolls at level 1")


class TimingBalance(_Frozen):
    ticks_per_second: int = Field(60, gt=0)
    # progress is accumulated in "frames": one roll every `progress_scale` units
    progress_scale: float = Field(60.0, gt=0)

    @property
    def tick_ms(self) -> float:
        return 1000.0 / self.ticks_per_second


class BoardBalance(_Frozen):
    total_cells: int = Field(100, ge=2)
    forward_steps_range: int = Field(3, ge=1)
    backward_steps_range: int = Field(3, ge=1)
    backward_level_divisor: int = Field(5, ge=1)
    max_backward_steps: int = Field(20, ge=0, description="Cap for the level-scaled part of backward steps")


class CellProbabilities(_Frozen):
    credit: float = Field(0.55, ge=0, le=1)
    forward: float = Field(0.18, ge=0, le=1)
    backward_base: float = Field(0.08, ge=0, le=1)
    backward_max: float = Field(0.20, ge=0, le=1)
    backward_position_scale: float = Field(0.12, ge=0, le=1)

    @model_validator(mode="after")
    def _validate_bands(self) -> "CellProbabilities":
        if self.credit + self.forward + self.backward_max > 1.0:
            raise ValueError("cell probability bands must leave room for empty cells")
        if self.backward_base > self.backward_max:
            raise ValueError("backward_base must be <= backward_max")
        return self


class CreditBalance(_Frozen):
    base: float = Field(4.0, gt=0)
    level_scaling_base: float = Field(600.0, gt=1)
    level_divisor: float = Field(100.0, gt=0)
    position_bonus_divisor: float = Field(100.0, gt=0)
    random_range: float = Field(0.6, ge=0)
    random_min: float = Field(0.7, gt=0)


class FixedBackwardBalance(_Frozen):
    start_level: int = Field(10, ge=1)
    area_start: int = Field(90, ge=0)
    area_end: int = Field(99, ge=0)
    max_count: int = Field(10, ge=1)
    level_increment: int = Field(10, ge=1)

    @model_validator(mode="after")
    def _validate_area(self) -> "FixedBackwardBalance":
        if self.area_end < self.area_start:
            raise ValueError("fixed backward area_end must be >= area_start")
        if self.max_count > self.area_end - self.area_start + 1:
            raise ValueError("fixed backward max_count exceeds the area")
        return self


class PrestigeBalance(_Frozen):
    start_level: int = Field(50, ge=1)
    base_points: float = Field(1.0, gt=0)
    scaling_base: float = Field(2.0, gt=1)
    scaling_level_divisor: float = Field(50.0, gt=0)


class PrestigeUpgradeBalance(_Frozen):
    base_cost: int = Field(..., gt=0)
    cost_step: int = Field(..., ge=0)
    max_level: Optional[int] = Field(default=None, ge=1, description="None means unbounded")
    base_effect: float
    effect_step: float


class BurdenBalance(_Frozen):
    start_level: int = Field(100, ge=1)
    level_interval: int = Field(50, ge=1)
    max_individual_reduction: int = Field(10, ge=0)
    halving_interval: int = Field(10, ge=1)
    total_reduction_divisor: int = Field(10, ge=1)


class AutoDiceBalance(_Frozen):
    max_level_base: int = Field(20, ge=2)
    ascension_level_increment: int = Field(2, ge=0)
    ascension_cost_multiplier: float = Field(10.0, gt=0)
    speed_multiplier_max: float = Field(4.0, ge=0)
    dice_count_base: int = Field(1, ge=1)
    dice_count_multiplier: int = Field(2, ge=1)
    level_cost_base: float = Field(50.0, gt=0)
    level_cost_multiplier: float = Field(1.3, gt=1)
    ascension_cost_base_multiplier: float = Field(6.0, gt=1)
    tier_cost_multiplier: float = Field(2.0, ge=1)
    bulk_iteration_cap: int = Field(1000, ge=1)


class ManualDiceBalance(_Frozen):
    faces: int = Field(6, ge=2)
    initial_count: int = Field(1, ge=1)
    base_cost: float = Field(60.0, gt=0)
    cost_multiplier: float = Field(36.0, gt=1)


def _default_tiers() -> tuple[DiceTier, ...]:
    return (
        DiceTier(faces=4, base_interval=80),
        DiceTier(faces=6, base_interval=100),
        DiceTier(faces=8, base_interval=120),
        DiceTier(faces=10, base_interval=140),
        DiceTier(faces=12, base_interval=160),
        DiceTier(faces=20, base_interval=240),
    )


def _default_prestige_upgrades() -> dict[PrestigeUpgradeKind, PrestigeUpgradeBalance]:
    return {
        "credit_multiplier": PrestigeUpgradeBalance(base_cost=5, cost_step=10, base_effect=1.0, effect_step=0.5),
        "dice_speed_boost": PrestigeUpgradeBalance(
            base_cost=10, cost_step=15, max_level=40, base_effect=1.0, effect_step=0.1
        ),
        "bonus_chance": PrestigeUpgradeBalance(
            base_cost=8, cost_step=12, max_level=100, base_effect=0.02, effect_step=0.005
        ),
        "bonus_multiplier": PrestigeUpgradeBalance(
            base_cost=15, cost_step=20, max_level=50, base_effect=20.0, effect_step=5.0
        ),
    }


# -----------------------
# GameBalance (top-level)
# -----------------------

class GameBalance(_Frozen):
    """
    Every tunable constant of the economy, in one frozen tree.

    Systems read from this instead of module constants so tests can
    build a tweaked balance without monkeypatching.
    """

    schema_version: int = Field(default=1, description="GameBalance schema version")

    timing: TimingBalance = Field(default_factory=TimingBalance)
    board: BoardBalance = Field(default_factory=BoardBalance)
    cells: CellProbabilities = Field(default_factory=CellProbabilities)
    credit: CreditBalance = Field(default_factory=CreditBalance)
    fixed_backward: FixedBackwardBalance = Field(default_factory=FixedBackwardBalance)
    prestige: PrestigeBalance = Field(default_factory=PrestigeBalance)
    prestige_upgrades: dict[PrestigeUpgradeKind, PrestigeUpgradeBalance] = Field(
        default_factory=_default_prestige_upgrades
    )
    max_speed_multiplier: float = Field(10.0, ge=1, description="Cap on the prestige dice speed multiplier")
    burden: BurdenBalance = Field(default_factory=BurdenBalance)
    auto_dice: AutoDiceBalance = Field(default_factory=AutoDiceBalance)
    manual_dice: ManualDiceBalance = Field(default_factory=ManualDiceBalance)
    dice_tiers: tuple[DiceTier, ...] = Field(default_factory=_default_tiers)

    @model_validator(mode="after")
    def _validate_tiers(self) -> "GameBalance":
        if not self.dice_tiers:
            raise ValueError("at least one dice tier is required")
        missing = {"credit_multiplier", "dice_speed_boost", "bonus_chance", "bonus_multiplier"} - set(
            self.prestige_upgrades
        )
        if missing:
            raise ValueError(f"prestige_upgrades missing kinds: {sorted(missing)}")
        if self.fixed_backward.area_end >= self.board.total_cells:
            raise ValueError("fixed backward area must lie on the board")
        return self

    def config_hash(self) -> str:
        """
        Deterministic fingerprint of the balance. Stored in session metadata
        so a save can be traced back to the numbers that produced it.
        """
        payload = self.model_dump(mode="json")
        blob = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        return hashlib.sha256(blob.encode("utf-8")).hexdigest()


DEFAULT_BALANCE = GameBalance()
