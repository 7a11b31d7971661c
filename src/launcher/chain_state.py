"""Chain state cache — latest pump.fun Global snapshot with TTL.

Common case never pays refresh latency: a background task refreshes at
the TTL interval and a keep-alive ping keeps the RPC connection warm.
Refreshes are single-flight: callers arriving while a refresh is in
flight await the same task instead of issuing another fetch.

On refresh failure the previous snapshot stays in place. `get()` serves
it stale rather than failing; only a cache that never held a snapshot
raises StateUnavailable.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from src.launcher.exceptions import StateUnavailable
from src.launcher.models import ChainStateSnapshot
from src.launcher.pump_program import GlobalState, global_address
from src.launcher.rpc import SolanaRpcClient

DEFAULT_TTL_SEC = 30.0
DEFAULT_KEEPALIVE_INTERVAL_SEC = 10.0
# Background refresh lands this far ahead of expiry (capped at 10% of the TTL)
REFRESH_LEAD_SEC = 2.0


class ChainStateCache:
    """Stateful holder of the current ChainStateSnapshot."""

    def __init__(
        self,
        fetch_state: Callable[[], Awaitable[GlobalState]],
        *,
        ttl_sec: float = DEFAULT_TTL_SEC,
        keepalive: Callable[[], Awaitable[Any]] | None = None,
        keepalive_interval_sec: float = DEFAULT_KEEPALIVE_INTERVAL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_sec <= 0:
            raise ValueError(f"ttl_sec must be > 0, got {ttl_sec}")
        self._fetch_state = fetch_state
        self._ttl_sec = ttl_sec
        self._keepalive = keepalive
        self._keepalive_interval_sec = keepalive_interval_sec
        self._clock = clock

        self._snapshot: ChainStateSnapshot | None = None
        self._inflight: asyncio.Task[ChainStateSnapshot] | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._refresh_count = 0
        self._failure_count = 0

    @property
    def snapshot(self) -> ChainStateSnapshot | None:
        return self._snapshot

    @property
    def refresh_count(self) -> int:
        """Number of fetches actually issued (successful or not)."""
        return self._refresh_count

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def age_sec(self) -> float | None:
        if self._snapshot is None:
            return None
        return self._snapshot.age_sec(self._clock())

    @property
    def is_running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def get(self) -> ChainStateSnapshot:
        """Current snapshot if fresh, otherwise refresh (stale on failure)."""
        snapshot = self._snapshot
        if snapshot is not None and snapshot.is_fresh(self._clock()):
            return snapshot

        try:
            return await self.refresh()
        except Exception as e:
            stale = self._snapshot
            if stale is None:
                raise StateUnavailable(f"No chain state available: {e}") from e
            logger.warning(
                f"[CACHE] Refresh failed ({e}), serving stale snapshot "
                f"aged {stale.age_sec(self._clock()):.1f}s"
            )
            return stale

    async def refresh(self) -> ChainStateSnapshot:
        """Fetch a new snapshot; concurrent callers share one in-flight fetch."""
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._do_refresh(), name="chain_state_refresh")
        # shield: a cancelled waiter must not cancel the refresh others await
        return await asyncio.shield(self._inflight)

    async def _do_refresh(self) -> ChainStateSnapshot:
        self._refresh_count += 1
        start = self._clock()
        try:
            state = await self._fetch_state()
        except Exception:
            self._failure_count += 1
            raise
        snapshot = ChainStateSnapshot(state=state, fetched_at=self._clock(), ttl_sec=self._ttl_sec)
        self._snapshot = snapshot
        logger.debug(f"[CACHE] Global state refreshed in {(self._clock() - start) * 1000:.0f}ms")
        return snapshot

    # ─── Background lifecycle ─────────────────────────────────────────

    def start(self) -> None:
        """Schedule periodic refresh (and keep-alive ping if configured)."""
        if self.is_running:
            return
        self._tasks = [asyncio.create_task(self._refresh_loop(), name="chain_state_refresh_loop")]
        if self._keepalive is not None:
            self._tasks.append(asyncio.create_task(self._keepalive_loop(), name="rpc_keepalive"))
        logger.info(f"[CACHE] Background refresh every {self._ttl_sec:.0f}s")

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        if self._inflight is not None and not self._inflight.done():
            tasks.append(self._inflight)  # type: ignore[arg-type]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug(f"[CACHE] Task {task.get_name()} ended with {e}")
        self._inflight = None

    async def _refresh_loop(self) -> None:
        while True:
            try:
                await self.refresh()
            except Exception as e:
                logger.warning(f"[CACHE] Background refresh failed: {e}")
            await asyncio.sleep(self._next_refresh_delay())

    def _next_refresh_delay(self) -> float:
        """Seconds until the current snapshot is due for a background refresh.

        Measured from the snapshot's fetched_at so the fetch latency does not
        push the next refresh past expiry. With no snapshot, or one already
        due, retries after the lead interval.
        """
        lead = min(REFRESH_LEAD_SEC, self._ttl_sec * 0.1)
        snapshot = self._snapshot
        if snapshot is None:
            return lead
        due_at = snapshot.fetched_at + self._ttl_sec - lead
        return max(due_at - self._clock(), lead)

    async def _keepalive_loop(self) -> None:
        assert self._keepalive is not None
        while True:
            await asyncio.sleep(self._keepalive_interval_sec)
            try:
                await self._keepalive()
            except Exception as e:
                logger.debug(f"[CACHE] Keep-alive ping failed: {e}")


def global_state_fetcher(
    rpc: SolanaRpcClient, *, commitment: str = "processed"
) -> Callable[[], Awaitable[GlobalState]]:
    """Fetch + decode the pump.fun Global account via RPC."""
    address = str(global_address())

    async def fetch() -> GlobalState:
        data = await rpc.get_account_data(address, commitment=commitment)
        if data is None:
            raise StateUnavailable(f"Global account {address} not found")
        return GlobalState.from_account_data(data)

    return fetch
