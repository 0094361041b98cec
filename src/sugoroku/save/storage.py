from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog

from sugoroku.core.config.balance import DEFAULT_BALANCE, GameBalance
from sugoroku.game.state import SimulationState
from sugoroku.save.schema import merge_state

log = structlog.get_logger()


class SaveStore(Protocol):
    """
    Persistence boundary: one opaque snapshot, read and written whole.
    """

    def load(self) -> bytes | None:
        ...

    def save(self, payload: bytes) -> bool:
        ...

    def clear(self) -> bool:
        ...


class FileSaveStore:
    """
    Single-file store. Writes go to a sibling tmp file then replace the
    target, so a crash mid-write never leaves a truncated save.
    """

    def __init__(self, *, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> bytes | None:
        try:
            return self._path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            log.warning("save.read_failed", path=str(self._path), error=str(exc))
            return None

    def save(self, payload: bytes) -> bool:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(payload)
            tmp.replace(self._path)
        except OSError as exc:
            log.warning("save.write_failed", path=str(self._path), error=str(exc))
            return False
        return True

    def clear(self) -> bool:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            log.warning("save.clear_failed", path=str(self._path), error=str(exc))
            return False
        return True


class MemorySaveStore:
    def __init__(self, payload: bytes | None = None) -> None:
        self.payload = payload

    def load(self) -> bytes | None:
        return self.payload

    def save(self, payload: bytes) -> bool:
        self.payload = payload
        return True

    def clear(self) -> bool:
        self.payload = None
        return True


@dataclass(frozen=True, slots=True)
class WipeResult:
    success: bool
    backup: str | None


def _now_ms() -> int:
    return int(time.time() * 1000)


# credits are unbounded ints; orjson stops at 64 bits
def _encode_snapshot(state: SimulationState) -> bytes:
    return json.dumps(state.to_snapshot(), separators=(",", ":")).encode("utf-8")


def _encode_backup(data: str) -> str:
    return json.dumps({"timestamp": _now_ms(), "data": data}, separators=(",", ":"))


class SaveManager:
    """
    Save/load on top of a SaveStore.

    After wipe() saving is disabled, so a pending periodic save cannot bring
    deleted data back. Only enable_saving() (or a restore) turns it on again.

    Backups are plain strings `{"timestamp": ms, "data": "<snapshot json>"}`
    that the host can hand to the player and later pass to restore_backup().
    """

    def __init__(self, *, store: SaveStore, balance: GameBalance = DEFAULT_BALANCE) -> None:
        self._store = store
        self._balance = balance
        self._saving_enabled = True

    @property
    def store(self) -> SaveStore:
        return self._store

    @property
    def saving_enabled(self) -> bool:
        return self._saving_enabled

    def enable_saving(self) -> None:
        self._saving_enabled = True
        log.info("save.enabled")

    # ---------------- Save / Load ----------------

    def save(self, state: SimulationState) -> bool:
        if not self._saving_enabled:
            log.info("save.suppressed", reason="saving_disabled")
            return False

        ok = self._store.save(_encode_snapshot(state))
        if ok:
            log.debug("save.written", level=state.level, credits=state.credits)
        return ok

    def load(self, default: SimulationState) -> SimulationState:
        """
        Load and migrate the stored snapshot. Anything missing or unreadable
        yields a copy of `default`; loading never raises.
        """
        if not self._saving_enabled:
            log.info("save.load_skipped", reason="saving_disabled")
            return default.model_copy(deep=True)

        payload = self._store.load()
        if payload is None:
            log.info("save.not_found")
            return default.model_copy(deep=True)

        try:
            blob = json.loads(payload)
        except ValueError as exc:
            log.warning("save.load_failed", reason="corrupt", error=str(exc))
            return default.model_copy(deep=True)

        state = merge_state(default, blob, balance=self._balance)
        log.info("save.loaded", level=state.level, rebirth_count=state.rebirth_count)
        return state

    def wipe(self, *, create_backup: bool = True) -> WipeResult:
        backup = self.create_backup() if create_backup else None
        ok = self._store.clear()
        self._saving_enabled = False
        log.info("save.wiped", success=ok, backup_created=backup is not None)
        return WipeResult(success=ok, backup=backup)

    # ---------------- Backups ----------------

    def create_backup(self) -> str | None:
        """
        Backup of whatever is currently stored; None when nothing is.
        """
        payload = self._store.load()
        if payload is None:
            return None
        try:
            data = payload.decode("utf-8")
        except UnicodeDecodeError:
            log.warning("save.backup_failed", reason="not_utf8")
            return None
        return _encode_backup(data)

    def backup_state(self, state: SimulationState) -> str:
        """
        Backup of a live state, taken before replacing it (e.g. on import).
        """
        data = _encode_snapshot(state).decode("utf-8")
        log.info("save.backup_created", level=state.level)
        return _encode_backup(data)

    def restore_backup(self, backup: str) -> bool:
        """
        Write a backup's snapshot back to the store and re-enable saving.
        The caller reloads to apply it.
        """
        try:
            parsed = json.loads(backup)
        except ValueError:
            log.warning("save.restore_failed", reason="not_json")
            return False

        data = parsed.get("data") if isinstance(parsed, dict) else None
        if not isinstance(data, str):
            log.warning("save.restore_failed", reason="missing_data")
            return False

        ok = self._store.save(data.encode("utf-8"))
        if ok:
            self._saving_enabled = True
            log.info("save.restored")
        return ok
