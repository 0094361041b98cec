from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from sugoroku.core.events.base import Event


@dataclass(frozen=True, slots=True)
class SchedulerStarted(Event):
    """
    Emitted when the tick scheduler starts or resumes.
    """

    event_type: ClassVar[str] = "system.scheduler_started"

    session_id: str
    tick: int


@dataclass(frozen=True, slots=True)
class SchedulerStopped(Event):
    """
    Emitted when the tick scheduler stops or pauses.
    """

    event_type: ClassVar[str] = "system.scheduler_stopped"

    session_id: str
    tick: int


@dataclass(frozen=True, slots=True)
class TickCompleted(Event):
    """
    Emitted after every scheduler tick has fully resolved.
    """

    event_type: ClassVar[str] = "system.tick"

    session_id: str
    tick: int
    rolls: int
    steps: int


@dataclass(frozen=True, slots=True)
class SchedulerError(Event):
    """
    Emitted when a tick raises.
    """

    event_type: ClassVar[str] = "system.scheduler_error"

    session_id: str

    error_type: str
    error_message: str


@dataclass(frozen=True, slots=True)
class StateSaved(Event):
    event_type: ClassVar[str] = "save.saved"

    session_id: str
    tick: int
    ok: bool
