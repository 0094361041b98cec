from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import structlog

from sugoroku.core.engine.state import EngineState
from sugoroku.core.events.base import Event
from sugoroku.core.events.bus import ALL_EVENTS, EventBus, EventHandler
from sugoroku.core.events.system import StateSaved, TickCompleted
from sugoroku.game.state import SimulationState
from sugoroku.save.storage import SaveManager
from sugoroku.storage.jsonl import JsonlEventStore

log = structlog.get_logger()


@dataclass(slots=True)
class EventLogComponent:
    """
    Appends every published event to events.jsonl.
    """

    store: JsonlEventStore

    def subscriptions(self) -> Sequence[tuple[str, EventHandler]]:
        return [(ALL_EVENTS, self._on_event)]

    def _on_event(self, e: Event) -> None:
        self.store.append(e)


@dataclass(slots=True)
class AutoSaveComponent:
    """
    Saves the session state every `interval_ticks` completed ticks.
    """

    save_manager: SaveManager
    state: SimulationState
    bus: EventBus
    engine_state: EngineState
    interval_ticks: int

    saves: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        if self.interval_ticks <= 0:
            raise ValueError("interval_ticks must be > 0")

    def subscriptions(self) -> Sequence[tuple[str, EventHandler]]:
        return [(TickCompleted.event_type, self._on_tick)]

    def _on_tick(self, e: Event) -> None:
        if not isinstance(e, TickCompleted):
            raise TypeError(f"expected TickCompleted, got {type(e).__name__}")
        # e.tick is 0-based
        if (e.tick + 1) % self.interval_ticks != 0:
            return

        ok = self.save_manager.save(self.state)
        if ok:
            self.saves += 1
        self.bus.publish(
            StateSaved.create(
                sequence=self.engine_state.next_sequence(),
                session_id=e.session_id,
                tick=e.tick,
                ok=ok,
            )
        )
        log.debug("save.autosaved", session_id=e.session_id, tick=e.tick, ok=ok)
