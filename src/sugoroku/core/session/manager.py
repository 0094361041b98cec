from __future__ import annotations

import platform
import secrets
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import orjson
import structlog

from sugoroku.core.config.balance import DEFAULT_BALANCE, GameBalance
from sugoroku.core.logging.setup import bind_context
from sugoroku.core.session.artifacts import SessionArtifacts, artifacts_for

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class SessionInfo:
    session_id: str
    artifacts: SessionArtifacts
    created_at_utc: datetime
    seed: int


class SessionManager:
    """
    Creates session ids and directories and records provenance in meta.json.
    """

    _META_SCHEMA_VERSION = 1

    def __init__(self, saves_dir: Path, *, balance: GameBalance = DEFAULT_BALANCE) -> None:
        self._saves_dir = saves_dir
        self._balance = balance

    @property
    def saves_dir(self) -> Path:
        return self._saves_dir

    def create_session(self, *, seed: int | None = None) -> SessionInfo:
        self._saves_dir.mkdir(parents=True, exist_ok=True)

        created_at = datetime.now(timezone.utc)
        # entropy suffix keeps ids unique within the same second
        session_id = f"{created_at:%Y%m%dT%H%M%SZ}_{secrets.token_hex(4)}"
        if seed is None:
            seed = secrets.randbelow(0x7FFFFFFF)

        art = artifacts_for(saves_dir=self._saves_dir, session_id=session_id)
        art.session_dir.mkdir(parents=True, exist_ok=False)

        meta: dict[str, Any] = {
            "schema_version": self._META_SCHEMA_VERSION,
            "session_id": session_id,
            "created_at_utc": created_at.isoformat(),
            "seed": seed,
            "balance_hash": self._balance.config_hash(),
            "python": sys.version.split()[0],
            "platform": platform.system(),
        }
        write_json_atomic(art.meta_json, meta)

        bind_context(session_id=session_id)
        log.info("session.created", session_id=session_id, session_dir=str(art.session_dir), seed=seed)

        return SessionInfo(session_id=session_id, artifacts=art, created_at_utc=created_at, seed=seed)

    def read_meta(self, session_id: str) -> dict[str, Any] | None:
        art = artifacts_for(saves_dir=self._saves_dir, session_id=session_id)
        try:
            return orjson.loads(art.meta_json.read_bytes())
        except FileNotFoundError:
            return None


def write_json_atomic(path: Path, payload: Any) -> None:
    """
    Write to a tmp file then replace, so readers never see partial JSON.
    """
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS) + b"\n")
    tmp.replace(path)
