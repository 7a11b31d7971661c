"""FastAPI application factory for the launcher API."""

from __future__ import annotations

import os

from fastapi import FastAPI
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from src.api.middleware import SecurityHeadersMiddleware

# Rate limiter (shared instance)
limiter = Limiter(key_func=get_remote_address)


def create_app(*, api_key: str = "") -> FastAPI:
    """Build and configure the FastAPI application."""
    app = FastAPI(
        title="Pump Launcher API",
        version="0.1.0",
        docs_url="/api/docs" if os.getenv("API_DEBUG") else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if os.getenv("API_DEBUG") else None,
    )
    app.state.api_key = api_key

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Security headers
    app.add_middleware(SecurityHeadersMiddleware)

    # Import and include routers
    from src.api.routers.health import router as health_router
    from src.api.routers.launch import router as launch_router
    from src.api.routers.metrics import router as metrics_router

    app.include_router(health_router)
    app.include_router(launch_router)
    app.include_router(metrics_router)

    return app
