"""Health check — no auth required."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from src.api.metrics_registry import registry

router = APIRouter(prefix="/api/v1", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_sec: int
    chain_state_age_sec: float | None
    pending_confirmations: int


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Pipeline liveness and chain state freshness."""
    pipeline = registry.pipeline
    if pipeline is None:
        return HealthResponse(
            status="starting",
            version="0.1.0",
            uptime_sec=0,
            chain_state_age_sec=None,
            pending_confirmations=0,
        )

    age = pipeline.cache.age_sec
    snapshot = pipeline.cache.snapshot
    fresh = snapshot is not None and age is not None and age < snapshot.ttl_sec
    return HealthResponse(
        status="ok" if fresh else "degraded",
        version="0.1.0",
        uptime_sec=round(pipeline.uptime_sec),
        chain_state_age_sec=round(age, 1) if age is not None else None,
        pending_confirmations=pipeline.monitor.pending,
    )
