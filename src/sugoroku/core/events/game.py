from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Literal

from sugoroku.core.events.base import Event

UpgradeKind = Literal["manual_dice", "unlock", "level_up", "ascend", "bulk"]


@dataclass(frozen=True, slots=True)
class ManualDiceRolled(Event):
    event_type: ClassVar[str] = "dice.manual_rolled"

    count: int
    results: tuple[int, ...]
    total: int
    quality: float


@dataclass(frozen=True, slots=True)
class AutoDiceRolled(Event):
    """
    One automated roll. Published once per fired die, in slot order.
    """

    event_type: ClassVar[str] = "dice.auto_rolled"

    die_index: int
    faces: int
    result: int
    tick: int


@dataclass(frozen=True, slots=True)
class PlayerMoved(Event):
    event_type: ClassVar[str] = "board.player_moved"

    old_position: int
    new_position: int
    steps: int
    level: int
    levels_completed: int
    prestige_earned: int


@dataclass(frozen=True, slots=True)
class CellEffectApplied(Event):
    """
    A cell resolved. follow_up_position is set when a forward/backward
    cell moved the player; that destination cell is not resolved.
    """

    event_type: ClassVar[str] = "board.cell_effect"

    position: int
    cell_type: str
    magnitude: int
    credits_gained: int
    follow_up_position: int | None


@dataclass(frozen=True, slots=True)
class UpgradePurchased(Event):
    event_type: ClassVar[str] = "economy.upgrade_purchased"

    kind: UpgradeKind
    die_index: int | None
    cost: int
    level: int
    ascension: int


@dataclass(frozen=True, slots=True)
class PrestigeCompleted(Event):
    event_type: ClassVar[str] = "prestige.completed"

    points_gained: int
    rebirth_count: int


@dataclass(frozen=True, slots=True)
class PrestigeUpgradePurchased(Event):
    event_type: ClassVar[str] = "prestige.upgrade_purchased"

    kind: str
    level: int
    cost: int


@dataclass(frozen=True, slots=True)
class StateImported(Event):
    event_type: ClassVar[str] = "save.imported"

    level: int
    rebirth_count: int
