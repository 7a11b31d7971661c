"""Metrics endpoint — launch stats, cache and confirmation state."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from src.api.dependencies import get_pipeline, require_api_key
from src.launcher.pipeline import LaunchPipeline

router = APIRouter(prefix="/api/v1", tags=["metrics"], dependencies=[Depends(require_api_key)])


@router.get("/metrics")
async def metrics_overview(pipeline: LaunchPipeline = Depends(get_pipeline)) -> dict[str, Any]:
    summary = pipeline.metrics.get_summary()
    cache = pipeline.cache
    monitor = pipeline.monitor
    summary["chain_state"] = {
        "age_sec": round(cache.age_sec, 1) if cache.age_sec is not None else None,
        "refreshes": cache.refresh_count,
        "failures": cache.failure_count,
    }
    summary["confirmations"] = {
        "pending": monitor.pending,
        "queued": monitor.queued,
        "dropped": monitor.dropped,
    }
    return summary
