"""Two-stage fallback: attempt(primary) orElse attempt(secondary).

Each stage runs at most once under its own fixed timeout and produces a
tagged Attempt instead of raising, so callers compose stages without
nested try/except.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

Call = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class Attempt:
    """Outcome of one stage, tagged with the source that produced it."""

    source: str
    value: Any = None
    error: Exception | None = None
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    def describe_error(self) -> str:
        if self.error is None:
            return ""
        if isinstance(self.error, TimeoutError):
            return f"{self.source}: timed out"
        return f"{self.source}: {type(self.error).__name__}: {self.error}"


async def attempt(source: str, call: Call, *, timeout_sec: float) -> Attempt:
    """Run `call` once, bounded by `timeout_sec`."""
    start = time.perf_counter()
    try:
        value = await asyncio.wait_for(call(), timeout=timeout_sec)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        result = Attempt(source=source, error=e, latency_ms=_since_ms(start))
        logger.debug(f"[FALLBACK] {result.describe_error()} ({result.latency_ms:.0f}ms)")
        return result
    return Attempt(source=source, value=value, latency_ms=_since_ms(start))


async def first_success(
    primary: tuple[str, Call, float],
    secondary: tuple[str, Call, float],
) -> tuple[Attempt, Attempt | None]:
    """Try primary, then secondary only if primary failed.

    Returns (primary_attempt, secondary_attempt_or_None). The winning
    attempt is the last one that is ok; both failed when neither is.
    """
    name, call, timeout = primary
    first = await attempt(name, call, timeout_sec=timeout)
    if first.ok:
        return first, None

    name, call, timeout = secondary
    second = await attempt(name, call, timeout_sec=timeout)
    return first, second


def _since_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
