from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class EngineState:
    """
    Scheduler bookkeeping for one session. Separate from SimulationState:
    nothing here is persisted in a save.

    - tick: number of completed ticks
    - sequence: monotonic event ordering, shared by every publisher in the session
    - last_update_time: host clock reading (ms) of the last tick that fired

    Sequences are allocated while paused too; manual actions publish
    events without the scheduler running.
    """

    session_id: str
    tick: int = 0
    sequence: int = 0
    is_running: bool = False
    is_paused: bool = False
    last_update_time: float = 0.0

    def next_sequence(self) -> int:
        self.sequence += 1
        return self.sequence

    def advance_tick(self) -> int:
        """
        Mark the current tick complete and return its index.
        """
        current = self.tick
        self.tick += 1
        return current
