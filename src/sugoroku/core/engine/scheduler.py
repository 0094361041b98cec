from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

import structlog

from sugoroku.core.engine.router import EngineRouter, EventComponent, RouterWiring
from sugoroku.core.engine.state import EngineState
from sugoroku.core.events.bus import EventBus
from sugoroku.core.events.system import SchedulerError, SchedulerStarted, SchedulerStopped, TickCompleted
from sugoroku.core.logging.setup import bind_context
from sugoroku.game.simulation import Simulation, TickOutcome

log = structlog.get_logger()


class FrameClock(Protocol):
    """
    Host-supplied time source, in milliseconds.
    """

    def now(self) -> float:
        ...


class MonotonicClock:
    def now(self) -> float:
        return time.monotonic() * 1000.0


@dataclass(frozen=True, slots=True)
class SchedulerStatus:
    running: bool
    paused: bool
    current_tick: int
    last_update_time: float


class Scheduler:
    """
    Fixed-rate tick scheduler.

    The host calls on_frame(now) from its frame loop; a tick fires when at
    least one tick interval has elapsed since the last one. Ticks always run
    to completion. Pausing only gates whether the next tick may start.
    """

    def __init__(
        self,
        *,
        session_id: str,
        simulation: Simulation,
        bus: EventBus,
        state: EngineState | None = None,
        clock: FrameClock | None = None,
        components: Optional[Iterable[EventComponent]] = None,
    ) -> None:
        self._sim = simulation
        self._bus = bus
        self._state = state if state is not None else EngineState(session_id=session_id)
        self._clock = clock if clock is not None else MonotonicClock()
        self._tick_ms = simulation.balance.timing.tick_ms

        self._wiring: RouterWiring | None = None
        if components is not None:
            self._wiring = EngineRouter(bus=bus).register(components)

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def simulation(self) -> Simulation:
        return self._sim

    @property
    def wiring(self) -> RouterWiring | None:
        return self._wiring

    def status(self) -> SchedulerStatus:
        return SchedulerStatus(
            running=self._state.is_running,
            paused=self._state.is_paused,
            current_tick=self._state.tick,
            last_update_time=self._state.last_update_time,
        )

    # ---------------- Lifecycle ----------------

    def start(self) -> bool:
        if self._state.is_running:
            return False

        bind_context(session_id=self._state.session_id, component="scheduler")
        self._state.is_running = True
        self._state.is_paused = False
        self._state.last_update_time = self._clock.now()

        self._bus.publish(
            SchedulerStarted.create(
                session_id=self._state.session_id,
                tick=self._state.tick,
                sequence=self._state.next_sequence(),
            )
        )
        log.info("scheduler.started", session_id=self._state.session_id, tick=self._state.tick)
        return True

    def stop(self) -> bool:
        if not self._state.is_running and not self._state.is_paused:
            return False

        self._state.is_running = False
        self._state.is_paused = False
        self._bus.publish(
            SchedulerStopped.create(
                session_id=self._state.session_id,
                tick=self._state.tick,
                sequence=self._state.next_sequence(),
            )
        )
        log.info("scheduler.stopped", session_id=self._state.session_id, tick=self._state.tick)
        return True

    def pause(self) -> bool:
        if not self._state.is_running:
            return False
        self._state.is_running = False
        self._state.is_paused = True
        log.info("scheduler.paused", session_id=self._state.session_id, tick=self._state.tick)
        return True

    def resume(self) -> bool:
        if not self._state.is_paused:
            return False
        self._state.is_paused = False
        self._state.is_running = True
        # do not replay the time spent paused
        self._state.last_update_time = self._clock.now()
        log.info("scheduler.resumed", session_id=self._state.session_id, tick=self._state.tick)
        return True

    def reset(self) -> None:
        if self._state.is_running or self._state.is_paused:
            self.stop()
        self._state.tick = 0
        self._state.last_update_time = 0.0
        log.info("scheduler.reset", session_id=self._state.session_id)

    # ---------------- Ticking ----------------

    def on_frame(self, now: float | None = None) -> bool:
        """
        Frame callback. Returns True when a tick fired.
        """
        if not self._state.is_running:
            return False

        if now is None:
            now = self._clock.now()
        if now - self._state.last_update_time < self._tick_ms:
            return False

        self._state.last_update_time = now
        self._tick()
        return True

    def step(self) -> TickOutcome | None:
        """
        Run exactly one tick by hand. Rejected (None) while running.
        """
        if self._state.is_running:
            return None
        return self._tick()

    def run(self, *, max_ticks: int) -> int:
        """
        Headless batch driver: run ticks back to back, ignoring the clock.
        Returns the number of ticks run.
        """
        if max_ticks <= 0:
            raise ValueError("max_ticks must be > 0")
        if self._state.is_running:
            raise RuntimeError("scheduler already running")

        ran = 0
        self.start()
        try:
            while self._state.is_running and ran < max_ticks:
                self._tick()
                ran += 1
        finally:
            if self._state.is_running:
                self.stop()
        return ran

    def _tick(self) -> TickOutcome:
        tick = self._state.tick
        try:
            outcome = self._sim.run_tick(tick)
        except Exception as exc:
            self._bus.publish(
                SchedulerError.create(
                    session_id=self._state.session_id,
                    error_type=type(exc).__name__,
                    error_message=str(exc),
                    sequence=self._state.next_sequence(),
                )
            )
            log.exception("scheduler.tick_failed", session_id=self._state.session_id, tick=tick)
            raise

        self._state.advance_tick()
        self._bus.publish(
            TickCompleted.create(
                session_id=self._state.session_id,
                tick=tick,
                rolls=len(outcome.rolls),
                steps=outcome.steps,
                sequence=self._state.next_sequence(),
            )
        )
        return outcome
