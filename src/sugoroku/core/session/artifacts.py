from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_\-]+$")


def validate_session_id(session_id: str) -> None:
    if not session_id or not _SESSION_ID_RE.match(session_id):
        raise ValueError(f"invalid session_id: {session_id!r}")


@dataclass(frozen=True, slots=True)
class SessionArtifacts:
    """
    File layout of one session directory.
    """

    session_dir: Path

    @property
    def state_json(self) -> Path:
        return self.session_dir / "state.json"

    @property
    def meta_json(self) -> Path:
        return self.session_dir / "meta.json"

    @property
    def events_jsonl(self) -> Path:
        return self.session_dir / "events.jsonl"

    def ensure_dirs(self) -> None:
        self.session_dir.mkdir(parents=True, exist_ok=True)


def artifacts_for(*, saves_dir: Path, session_id: str) -> SessionArtifacts:
    validate_session_id(session_id)
    session_dir = (saves_dir / session_id).resolve()

    base = saves_dir.resolve()
    if base not in session_dir.parents:
        raise ValueError("invalid session_dir resolution")

    return SessionArtifacts(session_dir=session_dir)
