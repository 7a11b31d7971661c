"""FastAPI dependency injection — API key auth, pipeline access."""

from __future__ import annotations

from fastapi import Header, HTTPException, Request, status

from src.api.auth import API_KEY_HEADER, verify_api_key
from src.api.metrics_registry import registry
from src.launcher.pipeline import LaunchPipeline


async def require_api_key(
    request: Request,
    x_api_key: str | None = Header(default=None, alias=API_KEY_HEADER),
) -> None:
    expected = getattr(request.app.state, "api_key", "")
    if not verify_api_key(x_api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )


def get_pipeline() -> LaunchPipeline:
    """Running pipeline, or 503 while the service is starting/stopping."""
    if registry.pipeline is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Launch pipeline not running",
        )
    return registry.pipeline
