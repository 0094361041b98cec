from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sugoroku.utils.numbers import NumberFormat


class _StateModel(BaseModel):
    """
    Persisted state models serialize with camelCase keys so snapshots stay
    compatible with saves written by earlier clients.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_snapshot(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class PrestigePoints(_StateModel):
    earned: int = Field(0, ge=0, description="Points banked by this run, paid out on prestige")
    available: int = Field(0, ge=0, description="Spendable points")


class PrestigeUpgrade(_StateModel):
    level: int = Field(0, ge=0)


class PrestigeUpgrades(_StateModel):
    credit_multiplier: PrestigeUpgrade = Field(default_factory=PrestigeUpgrade)
    dice_speed_boost: PrestigeUpgrade = Field(default_factory=PrestigeUpgrade)
    bonus_chance: PrestigeUpgrade = Field(default_factory=PrestigeUpgrade)
    bonus_multiplier: PrestigeUpgrade = Field(default_factory=PrestigeUpgrade)

    def level_of(self, kind: str) -> int:
        return getattr(self, kind).level


class GameStats(_StateModel):
    """
    Lifetime counters. Survive prestige resets.
    """

    total_dice_rolls: int = 0
    manual_dice_rolls: int = 0
    auto_dice_rolls: int = 0
    total_moves: int = 0
    total_credits_earned: int = 0
    total_rebirths: int = 0
    total_prestige_points: int = 0
    manual_dice_upgrades: int = 0
    auto_dice_upgrades: int = 0
    auto_dice_ascensions: int = 0


class RunStats(_StateModel):
    """
    Counters for the current run only. Reset on prestige.
    """

    credits_earned: int = 0
    distance: int = 0
    dice_rolls: int = 0


class BestRun(_StateModel):
    credits: int = 0
    distance: int = 0
    laps: int = 0
    level: int = 0


class PrestigeStats(_StateModel):
    total_runs: int = 0
    total_credits_earned: int = 0
    total_distance_traveled: int = 0
    total_laps_completed: int = 0
    best_single_run: BestRun = Field(default_factory=BestRun)


class ManualDice(_StateModel):
    count: int = Field(1, ge=1)
    upgrade_level: int = Field(0, ge=0)


class AutoDie(_StateModel):
    """
    One auto-die slot. Legacy fields from older saves are kept as extras.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    faces: int = Field(..., ge=2)
    level: int = Field(0, ge=0, description="0 means locked")
    ascension: int = Field(0, ge=0)
    base_interval: int = Field(..., gt=0)
    progress: float = Field(0.0, ge=0)
    last_roll: int = Field(0, ge=0, description="Tick index of the most recent roll")

    @property
    def unlocked(self) -> bool:
        return self.level > 0


class GameSettings(_StateModel):
    tick_rate: float = 1000.0 / 60
    number_format: NumberFormat = "english"


class SimulationState(_StateModel):
    """
    The single mutable aggregate for one game session.

    Components receive it by reference and mutate it in place; nothing
    keeps a private copy. A prestige reset overwrites every field through
    `replace_with`, so existing references stay valid.
    """

    schema_version: int = Field(default=3, description="SimulationState schema version")

    credits: int = Field(0, ge=0)
    position: int = Field(0, ge=0)
    level: int = Field(1, ge=1)
    rebirth_count: int = Field(0, ge=0)
    board_random_seed: int = Field(0, ge=0)

    prestige_points: PrestigePoints = Field(default_factory=PrestigePoints)
    prestige_upgrades: PrestigeUpgrades = Field(default_factory=PrestigeUpgrades)
    stats: GameStats = Field(default_factory=GameStats)
    run_stats: RunStats = Field(default_factory=RunStats)
    prestige_stats: PrestigeStats = Field(default_factory=PrestigeStats)

    manual_dice: ManualDice = Field(default_factory=ManualDice)
    auto_dice: list[AutoDie] = Field(default_factory=list)
    settings: GameSettings = Field(default_factory=GameSettings)

    rng_state: list[int] = Field(default_factory=lambda: [1, 2, 3, 4], min_length=4, max_length=4)

    def auto_die(self, index: int) -> AutoDie:
        if not 0 <= index < len(self.auto_dice):
            raise ValueError(f"invalid auto die index: {index}")
        return self.auto_dice[index]

    def replace_with(self, other: "SimulationState") -> None:
        """
        Overwrite every field with `other`'s values (deep-copied).
        """
        fresh = other.model_copy(deep=True)
        for name in type(self).model_fields:
            setattr(self, name, getattr(fresh, name))
