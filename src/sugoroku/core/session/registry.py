from __future__ import annotations

from threading import Lock
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sugoroku.core.session.assembly import SessionHandle


class SessionRegistry:
    """
    Thread-safe index of the sessions live in this process.

    Durable truth is the session directory; this only maps ids to handles.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._sessions: dict[str, SessionHandle] = {}

    def add(self, handle: SessionHandle) -> None:
        with self._lock:
            if handle.session_id in self._sessions:
                raise ValueError(f"session already registered: {handle.session_id}")
            self._sessions[handle.session_id] = handle

    def get(self, session_id: str) -> SessionHandle | None:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> SessionHandle | None:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def list(self) -> list[SessionHandle]:
        with self._lock:
            items = list(self._sessions.values())
        items.sort(key=lambda h: h.created_at_utc, reverse=True)
        return items

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
