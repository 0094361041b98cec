from __future__ import annotations

from datetime import datetime
from typing import Any, Iterator

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from sugoroku.core.config.balance import PrestigeUpgradeKind
from sugoroku.core.config.settings import settings
from sugoroku.core.session.assembly import SessionHandle, build_session
from sugoroku.core.session.manager import SessionManager
from sugoroku.core.session.registry import SessionRegistry
from sugoroku.game.simulation import StepOutcome
from sugoroku.game.upgrades import BulkAmount
from sugoroku.save.codec import export_filename, export_state, import_state, validate_import
from sugoroku.save.schema import default_state

router = APIRouter(tags=["sessions"])

# one registry per process
_registry = SessionRegistry()


def get_registry() -> SessionRegistry:
    return _registry


# =========================
# Schemas
# =========================

class CreateSessionRequest(BaseModel):
    seed: int | None = Field(default=None, ge=0, description="Board/RNG seed; settings default or random when unset")


class SessionSummary(BaseModel):
    session_id: str
    created_at_utc: datetime
    seed: int
    level: int
    position: int
    credits: int
    rebirth_count: int
    running: bool
    current_tick: int


class SessionsListResponse(BaseModel):
    sessions: list[SessionSummary]


class SessionDetailsResponse(SessionSummary):
    state: dict[str, Any]
    stats: dict[str, int | float]
    session_dir: str


class StepResponse(BaseModel):
    old_position: int
    new_position: int
    level: int
    levels_completed: int
    prestige_earned: int
    cell_type: str
    credits_gained: int
    follow_up_position: int | None = None


class RollResponse(BaseModel):
    results: list[int]
    total: int
    step: StepResponse | None = None
    credits: int


class TicksRequest(BaseModel):
    count: int = Field(default=1, ge=1, le=100_000)


class TicksResponse(BaseModel):
    ticks_run: int
    rolls: int
    steps: int
    current_tick: int
    position: int
    level: int
    credits: int


class BulkRequest(BaseModel):
    amount: BulkAmount = 1


class PurchaseResponse(BaseModel):
    ok: bool
    credits: int
    level: int
    ascension: int = 0


class PrestigeResponse(BaseModel):
    points_gained: int
    rebirth_count: int
    available_points: int


class PrestigeUpgradeResponse(BaseModel):
    kind: PrestigeUpgradeKind
    level: int
    available_points: int


class SaveResponse(BaseModel):
    ok: bool


class ExportResponse(BaseModel):
    filename: str
    data: str


class ImportRequest(BaseModel):
    data: str = Field(..., min_length=1)
    dry_run: bool = Field(default=False, description="Validate the envelope only; nothing is applied")


class ImportResponse(BaseModel):
    ok: bool
    reason: str
    message: str
    backup: str | None = None
    level: int | None = None
    rebirth_count: int | None = None


# =========================
# Helpers
# =========================

def _locked_handle(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> Iterator[SessionHandle]:
    handle = registry.get(session_id)
    if handle is None:
        raise HTTPException(status_code=404, detail="session not found")
    with handle.lock:
        yield handle


def _summary(h: SessionHandle) -> SessionSummary:
    s = h.state
    status = h.scheduler.status()
    return SessionSummary(
        session_id=h.session_id,
        created_at_utc=h.created_at_utc,
        seed=h.seed,
        level=s.level,
        position=s.position,
        credits=s.credits,
        rebirth_count=s.rebirth_count,
        running=status.running,
        current_tick=status.current_tick,
    )


def _step_response(step: StepOutcome | None) -> StepResponse | None:
    if step is None:
        return None
    move, effect = step.move, step.effect
    return StepResponse(
        old_position=move.old_position,
        new_position=move.new_position,
        level=move.new_level,
        levels_completed=move.levels_completed,
        prestige_earned=move.prestige_earned,
        cell_type=effect.cell.type.value,
        credits_gained=effect.credits_gained,
        follow_up_position=effect.follow_up.new_position if effect.follow_up else None,
    )


def _check_die(h: SessionHandle, index: int) -> None:
    if not 0 <= index < len(h.state.auto_dice):
        raise HTTPException(status_code=404, detail=f"auto die {index} not found")


def _auto_die_purchase(h: SessionHandle, index: int, ok: bool, reason: str) -> PurchaseResponse:
    if not ok:
        raise HTTPException(status_code=409, detail=reason)
    die = h.state.auto_die(index)
    return PurchaseResponse(ok=True, credits=h.state.credits, level=die.level, ascension=die.ascension)


# =========================
# Routes
# =========================

@router.post("/sessions", response_model=SessionSummary, status_code=201)
def create_session(
    payload: CreateSessionRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionSummary:
    seed = payload.seed if payload.seed is not None else settings.default_seed

    info = SessionManager(settings.saves_dir).create_session(seed=seed)
    handle = build_session(
        info=info,
        autosave_interval_ticks=settings.autosave_interval_ticks,
        event_log_enabled=settings.event_log_enabled,
    )
    registry.add(handle)
    return _summary(handle)


@router.get("/sessions", response_model=SessionsListResponse)
def list_sessions(registry: SessionRegistry = Depends(get_registry)) -> SessionsListResponse:
    return SessionsListResponse(sessions=[_summary(h) for h in registry.list()])


@router.get("/sessions/{session_id}", response_model=SessionDetailsResponse)
def get_session(h: SessionHandle = Depends(_locked_handle)) -> SessionDetailsResponse:
    return SessionDetailsResponse(
        **_summary(h).model_dump(),
        state=h.state.to_snapshot(),
        stats=h.simulation.detailed_stats(),
        session_dir=str(h.artifacts.session_dir),
    )


@router.post("/sessions/{session_id}/roll", response_model=RollResponse)
def roll(h: SessionHandle = Depends(_locked_handle)) -> RollResponse:
    outcome = h.simulation.roll_manual()
    return RollResponse(
        results=list(outcome.roll.results),
        total=outcome.roll.total,
        step=_step_response(outcome.step),
        credits=h.state.credits,
    )


@router.post("/sessions/{session_id}/ticks", response_model=TicksResponse)
def run_ticks(payload: TicksRequest, h: SessionHandle = Depends(_locked_handle)) -> TicksResponse:
    if h.scheduler.status().running:
        raise HTTPException(status_code=409, detail="scheduler is running; manual ticks are rejected")

    rolls = steps = 0
    for _ in range(payload.count):
        outcome = h.scheduler.step()
        if outcome is None:
            raise HTTPException(status_code=409, detail="scheduler started while ticking")
        rolls += len(outcome.rolls)
        steps += outcome.steps

    s = h.state
    return TicksResponse(
        ticks_run=payload.count,
        rolls=rolls,
        steps=steps,
        current_tick=h.engine_state.tick,
        position=s.position,
        level=s.level,
        credits=s.credits,
    )


@router.post("/sessions/{session_id}/manual-dice/upgrade", response_model=PurchaseResponse)
def upgrade_manual_dice(h: SessionHandle = Depends(_locked_handle)) -> PurchaseResponse:
    if not h.simulation.upgrade_manual_dice():
        raise HTTPException(status_code=409, detail="insufficient credits")
    md = h.state.manual_dice
    return PurchaseResponse(ok=True, credits=h.state.credits, level=md.upgrade_level)


@router.post("/sessions/{session_id}/auto-dice/{index}/unlock", response_model=PurchaseResponse)
def unlock_auto_die(index: int, h: SessionHandle = Depends(_locked_handle)) -> PurchaseResponse:
    _check_die(h, index)
    ok = h.simulation.unlock_auto_die(index)
    return _auto_die_purchase(h, index, ok, "already unlocked or insufficient credits")


@router.post("/sessions/{session_id}/auto-dice/{index}/level-up", response_model=PurchaseResponse)
def level_up_auto_die(index: int, h: SessionHandle = Depends(_locked_handle)) -> PurchaseResponse:
    _check_die(h, index)
    ok = h.simulation.level_up_auto_die(index)
    return _auto_die_purchase(h, index, ok, "locked, at max level or insufficient credits")


@router.post("/sessions/{session_id}/auto-dice/{index}/ascend", response_model=PurchaseResponse)
def ascend_auto_die(index: int, h: SessionHandle = Depends(_locked_handle)) -> PurchaseResponse:
    _check_die(h, index)
    ok = h.simulation.ascend_auto_die(index)
    return _auto_die_purchase(h, index, ok, "not at max level or insufficient credits")


@router.post("/sessions/{session_id}/auto-dice/{index}/bulk", response_model=PurchaseResponse)
def bulk_level_up(index: int, payload: BulkRequest, h: SessionHandle = Depends(_locked_handle)) -> PurchaseResponse:
    _check_die(h, index)
    ok = h.simulation.bulk_level_up(index, payload.amount)
    return _auto_die_purchase(h, index, ok, "nothing affordable")


@router.post("/sessions/{session_id}/prestige", response_model=PrestigeResponse)
def prestige(h: SessionHandle = Depends(_locked_handle)) -> PrestigeResponse:
    result = h.simulation.prestige()
    if not result.success:
        raise HTTPException(status_code=409, detail=result.reason)
    return PrestigeResponse(
        points_gained=result.points_gained,
        rebirth_count=result.rebirth_count,
        available_points=h.state.prestige_points.available,
    )


@router.post("/sessions/{session_id}/prestige-upgrades/{kind}", response_model=PrestigeUpgradeResponse)
def buy_prestige_upgrade(kind: PrestigeUpgradeKind, h: SessionHandle = Depends(_locked_handle)) -> PrestigeUpgradeResponse:
    if not h.simulation.buy_prestige_upgrade(kind):
        raise HTTPException(status_code=409, detail="maxed or insufficient prestige points")
    return PrestigeUpgradeResponse(
        kind=kind,
        level=h.state.prestige_upgrades.level_of(kind),
        available_points=h.state.prestige_points.available,
    )


@router.post("/sessions/{session_id}/save", response_model=SaveResponse)
def save(h: SessionHandle = Depends(_locked_handle)) -> SaveResponse:
    return SaveResponse(ok=h.save_manager.save(h.state))


@router.get("/sessions/{session_id}/export", response_model=ExportResponse)
def export(h: SessionHandle = Depends(_locked_handle)) -> ExportResponse:
    return ExportResponse(filename=export_filename(), data=export_state(h.state))


@router.post("/sessions/{session_id}/import", response_model=ImportResponse)
def import_save(payload: ImportRequest, h: SessionHandle = Depends(_locked_handle)) -> ImportResponse:
    if payload.dry_run:
        result = validate_import(payload.data)
    else:
        fresh = default_state(board_random_seed=h.state.board_random_seed, balance=h.simulation.balance)
        result = import_state(payload.data, default=fresh, balance=h.simulation.balance)

    if not result.ok:
        raise HTTPException(status_code=422, detail={"reason": result.reason, "message": result.message})

    if result.state is None:
        return ImportResponse(ok=True, reason=result.reason, message=result.message)

    backup = h.save_manager.backup_state(h.state)
    h.simulation.replace_state(result.state)
    h.save_manager.save(h.state)
    return ImportResponse(
        ok=True,
        reason=result.reason,
        message=result.message,
        backup=backup,
        level=h.state.level,
        rebirth_count=h.state.rebirth_count,
    )
