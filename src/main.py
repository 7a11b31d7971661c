"""Entry point for the pump.fun launcher service."""

import asyncio
import signal
import sys

from loguru import logger

from config.settings import settings
from src.api.metrics_registry import registry
from src.launcher.bootstrap import create_pipeline
from src.launcher.exceptions import ConfigError
from src.launcher.pipeline import LaunchPipeline
from src.utils.logger import setup_logger


async def run_stats_reporter(pipeline: LaunchPipeline, interval_sec: int) -> None:
    """Log a one-line metrics summary every `interval_sec`."""
    while True:
        await asyncio.sleep(interval_sec)
        age = pipeline.cache.age_sec
        age_str = f"{age:.0f}s" if age is not None else "n/a"
        logger.info(
            f"[STATS] {pipeline.metrics.format_stats_line()} "
            f"state_age={age_str} confirming={pipeline.monitor.pending}"
        )


async def main() -> None:
    setup_logger(json_logs=settings.log_json, level=settings.log_level, log_dir=settings.log_dir)
    logger.info("Starting pump.fun launcher...")

    try:
        pipeline = create_pipeline(settings)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    await pipeline.start()
    registry.pipeline = pipeline

    # Graceful shutdown on SIGINT/SIGTERM
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    tasks = [asyncio.create_task(shutdown_event.wait(), name="shutdown")]
    tasks.append(
        asyncio.create_task(
            run_stats_reporter(pipeline, settings.stats_interval_sec), name="stats_reporter"
        )
    )
    if settings.api_enabled:
        from src.api.server import run_api_server

        tasks.append(asyncio.create_task(run_api_server(), name="api_server"))

    # Wait for shutdown signal or any service task to exit
    done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    for task in done:
        if task.get_name() != "shutdown" and task.exception() is not None:
            logger.error(f"Task {task.get_name()} crashed: {task.exception()}")

    # Cancel remaining tasks
    for task in pending:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    registry.pipeline = None
    await pipeline.stop()
    logger.info("Shutdown complete")


if __name__ == "__main__":
    asyncio.run(main())
