"""
Export/import envelope for sharing saves as a single line of text.

    SGKT_v1_ + base64(JSON{format, version, timestamp, gameData, checksum, keyData})

gameData is the state JSON XOR-ed with a key derived from keyData. This is
obfuscation plus a checksum, enough to detect corruption and casual edits;
it is not security.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from sugoroku.core.config.balance import DEFAULT_BALANCE, GameBalance
from sugoroku.game.state import SimulationState
from sugoroku.save.schema import MigrationDiscarded, migrate_state

log = structlog.get_logger()

SAVE_FORMAT_PREFIX = "SGKT_v1_"
SAVE_FORMAT = "SGKT_v1"
SAVE_FORMAT_VERSION = "1.0.0"
_KEY_PREFIX = "SUGOROKU_"

ImportReason = Literal[
    "ok",
    "bad_prefix",
    "bad_encoding",
    "malformed",
    "unsupported_format",
    "bad_checksum",
    "incompatible_data",
]


class KeyData(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    level: int
    rebirth_count: int
    board_random_seed: int


class ExportEnvelope(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    format: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    timestamp: int = Field(..., description="Export time, ms since epoch")
    game_data: str = Field(..., min_length=1)
    checksum: str = Field(..., min_length=1)
    key_data: KeyData


@dataclass(frozen=True, slots=True)
class ImportResult:
    ok: bool
    reason: ImportReason  # machine-friendly code
    message: str
    state: SimulationState | None = None
    format: str | None = None
    version: str | None = None


# ---------------- Primitives ----------------

def _rolling_hash(text: str) -> int:
    """
    h = h*31 + ord(c), wrapped to a signed 32-bit int.
    """
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    return h - 0x100000000 if h >= 0x80000000 else h


def encryption_key(*, level: int, rebirth_count: int, board_random_seed: int) -> str:
    digest = abs(_rolling_hash(f"{level}_{rebirth_count}_{board_random_seed}"))
    return f"{_KEY_PREFIX}{digest:08x}"


def checksum(data: str) -> str:
    return f"{abs(_rolling_hash(data)):x}"


def _xor(data: str, key: str) -> str:
    k = len(key)
    return "".join(chr(ord(ch) ^ ord(key[i % k])) for i, ch in enumerate(data))


def export_filename(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"sugoroku-save-{now:%Y-%m-%d-%H%M%S}.txt"


# ---------------- Export ----------------

def export_state(state: SimulationState, *, now: datetime | None = None) -> str:
    # ASCII-only JSON keeps every XOR-ed character in the 7-bit range
    game_json = json.dumps(state.to_snapshot(), separators=(",", ":"), ensure_ascii=True)
    key_data = KeyData(
        level=state.level,
        rebirth_count=state.rebirth_count,
        board_random_seed=state.board_random_seed,
    )
    encrypted = _xor(
        game_json,
        encryption_key(
            level=key_data.level,
            rebirth_count=key_data.rebirth_count,
            board_random_seed=key_data.board_random_seed,
        ),
    )

    moment = now or datetime.now(timezone.utc)
    envelope = ExportEnvelope(
        format=SAVE_FORMAT,
        version=SAVE_FORMAT_VERSION,
        timestamp=int(moment.timestamp() * 1000),
        game_data=encrypted,
        checksum=checksum(encrypted),
        key_data=key_data,
    )
    payload = json.dumps(envelope.model_dump(by_alias=True), separators=(",", ":"), ensure_ascii=True)

    log.info("save.exported", level=state.level, rebirth_count=state.rebirth_count, size=len(payload))
    return SAVE_FORMAT_PREFIX + base64.b64encode(payload.encode("utf-8")).decode("ascii")


# ---------------- Import ----------------

def _fail(reason: ImportReason, message: str) -> ImportResult:
    log.warning("save.import_rejected", reason=reason, message=message)
    return ImportResult(ok=False, reason=reason, message=message)


def _open_envelope(text: str) -> ExportEnvelope | ImportResult:
    """
    Parse and check the outer envelope. A failed check comes back as the
    rejecting ImportResult.
    """
    text = text.strip()
    if not text.startswith(SAVE_FORMAT_PREFIX):
        return _fail("bad_prefix", "not an exported save")

    try:
        raw = base64.b64decode(text[len(SAVE_FORMAT_PREFIX):], validate=True)
        parsed = json.loads(raw)
    except (binascii.Error, ValueError):
        # ValueError covers JSONDecodeError and non-UTF-8 bytes
        return _fail("bad_encoding", "save text is not valid base64 JSON")

    if not isinstance(parsed, dict):
        return _fail("malformed", "envelope is not an object")

    try:
        envelope = ExportEnvelope.model_validate(parsed)
    except ValidationError as exc:
        return _fail("malformed", f"envelope missing or invalid fields ({exc.error_count()})")

    if envelope.format != SAVE_FORMAT:
        return _fail("unsupported_format", f"unsupported format: {envelope.format}")

    return envelope


def validate_import(text: str) -> ImportResult:
    """
    Check prefix, encoding, structure and format without decrypting.
    """
    opened = _open_envelope(text)
    if isinstance(opened, ImportResult):
        return opened
    return ImportResult(
        ok=True,
        reason="ok",
        message="envelope is valid",
        format=opened.format,
        version=opened.version,
    )


def import_state(
    text: str,
    *,
    default: SimulationState,
    balance: GameBalance = DEFAULT_BALANCE,
) -> ImportResult:
    """
    Decode an exported save into a migrated SimulationState.

    Never raises and never touches live state: the caller decides whether
    to apply result.state. Data that migration would discard is rejected
    as "incompatible_data" instead of coming back as a blank game.
    """
    opened = _open_envelope(text)
    if isinstance(opened, ImportResult):
        return opened
    envelope = opened

    # verify integrity before decrypting anything
    if checksum(envelope.game_data) != envelope.checksum:
        return _fail("bad_checksum", "checksum mismatch; save is corrupted or edited")

    kd = envelope.key_data
    key = encryption_key(level=kd.level, rebirth_count=kd.rebirth_count, board_random_seed=kd.board_random_seed)
    try:
        blob = json.loads(_xor(envelope.game_data, key))
    except ValueError:
        return _fail("malformed", "decrypted payload is not JSON")

    if not isinstance(blob, dict):
        return _fail("malformed", "decrypted payload is not an object")

    try:
        state = migrate_state(default, blob, balance=balance)
    except MigrationDiscarded as exc:
        return _fail("incompatible_data", f"{exc} ({exc.reason})")

    log.info("save.imported", level=state.level, rebirth_count=state.rebirth_count, version=envelope.version)
    return ImportResult(
        ok=True,
        reason="ok",
        message="import succeeded",
        state=state,
        format=envelope.format,
        version=envelope.version,
    )
