"""Singleton registry for runtime objects shared between the service and the API.

Populated once in ``main()`` after the pipeline starts. FastAPI endpoints
read these references directly — safe because everything runs in a
single asyncio event loop.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.launcher.pipeline import LaunchPipeline


class MetricsRegistry:
    """Holds references to runtime objects for API access."""

    pipeline: LaunchPipeline | None = None


registry = MetricsRegistry()
