"""API server — runs uvicorn inside the existing asyncio event loop."""

from __future__ import annotations

import uvicorn
from loguru import logger

from config.settings import settings


async def run_api_server() -> None:
    """Start uvicorn serving the launcher API.

    Designed to run as an asyncio task alongside the pipeline.
    Binds to localhost only: the API signs and spends from the wallet.
    """
    from src.api.app import create_app

    app = create_app(api_key=settings.api_key)
    config = uvicorn.Config(
        app=app,
        host="127.0.0.1",
        port=settings.api_port,
        log_level="warning",
        loop="none",  # use the existing event loop
    )
    server = uvicorn.Server(config)
    if not settings.api_key:
        logger.warning("API_KEY is empty, authenticated endpoints will reject all requests")
    logger.info(f"Launcher API starting on http://127.0.0.1:{settings.api_port}")
    await server.serve()
