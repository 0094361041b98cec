from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from sugoroku.core.config.balance import DEFAULT_BALANCE
from sugoroku.core.config.settings import settings

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    environment: str
    balance_hash: str


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        environment=settings.env,
        balance_hash=DEFAULT_BALANCE.config_hash(),
    )
