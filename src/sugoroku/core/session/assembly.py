from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Iterable

import structlog

from sugoroku.core.config.balance import DEFAULT_BALANCE, GameBalance
from sugoroku.core.engine.router import EventComponent, RouterWiring
from sugoroku.core.engine.scheduler import FrameClock, Scheduler
from sugoroku.core.engine.state import EngineState
from sugoroku.core.events.bus import EventBus
from sugoroku.core.session.artifacts import SessionArtifacts
from sugoroku.core.session.components import AutoSaveComponent, EventLogComponent
from sugoroku.core.session.manager import SessionInfo
from sugoroku.game.simulation import Simulation
from sugoroku.game.state import SimulationState
from sugoroku.save.schema import default_state
from sugoroku.save.storage import FileSaveStore, SaveManager
from sugoroku.storage.jsonl import JsonlEventStore

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class SessionHandle:
    """
    Everything wired for one live session.

    `lock` serialises every call that touches the simulation; the HTTP
    layer holds it around each request.
    """

    session_id: str
    created_at_utc: datetime
    seed: int
    artifacts: SessionArtifacts
    bus: EventBus
    engine_state: EngineState
    simulation: Simulation
    scheduler: Scheduler
    save_manager: SaveManager
    wiring: RouterWiring
    event_store: JsonlEventStore | None = None
    lock: Lock = field(default_factory=Lock)

    @property
    def state(self) -> SimulationState:
        return self.simulation.state

    def close(self) -> None:
        """
        Stop ticking, write a final save and release the event log.
        """
        self.scheduler.stop()
        self.save_manager.save(self.simulation.state)
        if self.event_store is not None:
            self.event_store.close()
        log.info("session.closed", session_id=self.session_id, tick=self.engine_state.tick)


def build_session(
    *,
    info: SessionInfo,
    balance: GameBalance = DEFAULT_BALANCE,
    autosave_interval_ticks: int = 0,
    event_log_enabled: bool = False,
    clock: FrameClock | None = None,
    extra_components: Iterable[EventComponent] = (),
) -> SessionHandle:
    """
    Assemble a session: load (or default) the state, build the systems and
    wire autosave and the event log onto the bus.
    """
    art = info.artifacts
    art.ensure_dirs()

    save_manager = SaveManager(store=FileSaveStore(path=art.state_json), balance=balance)
    state = save_manager.load(default_state(board_random_seed=info.seed, balance=balance))

    bus = EventBus()
    engine_state = EngineState(session_id=info.session_id)
    simulation = Simulation(state=state, bus=bus, engine_state=engine_state, balance=balance)

    components: list[EventComponent] = []

    event_store: JsonlEventStore | None = None
    if event_log_enabled:
        event_store = JsonlEventStore(path=art.events_jsonl)
        components.append(EventLogComponent(store=event_store))

    if autosave_interval_ticks > 0:
        components.append(
            AutoSaveComponent(
                save_manager=save_manager,
                state=state,
                bus=bus,
                engine_state=engine_state,
                interval_ticks=autosave_interval_ticks,
            )
        )

    components.extend(extra_components)

    scheduler = Scheduler(
        session_id=info.session_id,
        simulation=simulation,
        bus=bus,
        state=engine_state,
        clock=clock,
        components=components,
    )
    wiring = scheduler.wiring
    if wiring is None:
        raise RuntimeError("scheduler was built without components")

    log.info(
        "session.assembled",
        session_id=info.session_id,
        components=list(wiring.components()),
        level=state.level,
        rebirth_count=state.rebirth_count,
    )

    return SessionHandle(
        session_id=info.session_id,
        created_at_utc=info.created_at_utc,
        seed=info.seed,
        artifacts=art,
        bus=bus,
        engine_state=engine_state,
        simulation=simulation,
        scheduler=scheduler,
        save_manager=save_manager,
        wiring=wiring,
        event_store=event_store,
    )
