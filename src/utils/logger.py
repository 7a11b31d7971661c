"""Loguru sinks for the launch service and the one-shot CLI.

Console: human-readable and colorized, or one JSON object per line when
``json_logs`` is set (for log shippers). File: daily launcher log that
always records DEBUG, in the same encoding as the console.
"""

import os
import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
LOG_FILE_NAME = "launcher_{time:YYYY-MM-DD}.log"


def setup_logger(
    *,
    json_logs: bool = False,
    level: str = "INFO",
    log_dir: str | Path | None = "logs",
) -> None:
    """Replace loguru's default sink with the launcher's console + file sinks.

    LOG_LEVEL in the environment overrides ``level`` for the console only.
    ``log_dir=None`` disables the file sink.
    """
    console_level = os.getenv("LOG_LEVEL", level).upper()
    logger.remove()

    if json_logs:
        logger.add(sys.stdout, level=console_level, serialize=True)
    else:
        logger.add(sys.stdout, level=console_level, format=CONSOLE_FORMAT, colorize=True)

    if log_dir is None:
        return
    logger.add(
        Path(log_dir) / LOG_FILE_NAME,
        level="DEBUG",
        serialize=json_logs,
        rotation="50 MB",
        retention="3 days",
        compression="gz",
    )
