"""Confirmation monitor — detached settlement tracking after broadcast.

`watch()` never blocks and never reports back to the launch caller: it
enqueues the signature for a fixed pool of workers. The queue is bounded;
when full, the watch is dropped with a warning (the launch result is
already returned and is unaffected either way).

A worker polls getSignatureStatuses until the transaction is confirmed,
fails on-chain, outlives its blockhash (block height beyond
last_valid_block_height), or hits the timeout. Outcomes are logged and
kept in a bounded in-memory history for status lookups.
"""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict

from loguru import logger

from src.launcher.exceptions import ConfirmationError, RpcError
from src.launcher.models import ConfirmationRecord, ConfirmationStatus, ExpiryAnchor
from src.launcher.rpc import SolanaRpcClient

DEFAULT_WORKERS = 4
DEFAULT_QUEUE_SIZE = 256
CONFIRM_POLL_INTERVAL = 2.0  # seconds
CONFIRM_TIMEOUT = 60.0  # seconds
MAX_CONSECUTIVE_RPC_ERRORS = 5
HISTORY_SIZE = 1000

_COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


class ConfirmationMonitor:
    """Bounded fire-and-log settlement watcher."""

    def __init__(
        self,
        rpc: SolanaRpcClient,
        *,
        workers: int = DEFAULT_WORKERS,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        poll_interval_sec: float = CONFIRM_POLL_INTERVAL,
        timeout_sec: float = CONFIRM_TIMEOUT,
        commitment: str = "confirmed",
        history_size: int = HISTORY_SIZE,
    ) -> None:
        if commitment not in _COMMITMENT_RANK:
            raise ValueError(f"Unknown commitment level: {commitment}")
        self._rpc = rpc
        self._worker_count = max(1, workers)
        self._queue: asyncio.Queue[tuple[str, ExpiryAnchor]] = asyncio.Queue(maxsize=queue_size)
        self._poll_interval = poll_interval_sec
        self._timeout = timeout_sec
        self._commitment = commitment
        self._history_size = history_size
        self._records: OrderedDict[str, ConfirmationRecord] = OrderedDict()
        self._workers: list[asyncio.Task[None]] = []
        self._dropped = 0

    @property
    def pending(self) -> int:
        return sum(1 for r in self._records.values() if r.status is ConfirmationStatus.PENDING)

    @property
    def queued(self) -> int:
        return self._queue.qsize()

    @property
    def dropped(self) -> int:
        return self._dropped

    def status(self, signature: str) -> ConfirmationRecord | None:
        return self._records.get(signature)

    def watch(self, signature: str, expiry: ExpiryAnchor) -> bool:
        """Schedule settlement tracking. Returns False if the watch was dropped."""
        try:
            self._queue.put_nowait((signature, expiry))
        except asyncio.QueueFull:
            self._dropped += 1
            logger.warning(f"[CONFIRM] Queue full, not tracking {signature[:16]}")
            return False
        self._remember(ConfirmationRecord(signature=signature))
        if not self._workers:
            logger.debug("[CONFIRM] Watch queued but monitor not started")
        return True

    def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"confirm_worker_{i}")
            for i in range(self._worker_count)
        ]
        logger.info(f"[CONFIRM] Started {self._worker_count} confirmation workers")

    async def stop(self) -> None:
        workers, self._workers = self._workers, []
        for task in workers:
            task.cancel()
        for task in workers:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _worker(self, worker_id: int) -> None:
        while True:
            signature, expiry = await self._queue.get()
            try:
                status, error = await self._track(signature, expiry)
            except ConfirmationError as e:
                logger.error(f"[CONFIRM] Watch failed for {signature[:16]}: {e}")
                status, error = ConfirmationStatus.FAILED, str(e)
            except Exception as e:
                logger.exception(f"[CONFIRM] Worker {worker_id} error on {signature[:16]}: {e}")
                status, error = ConfirmationStatus.FAILED, str(e)
            finally:
                self._queue.task_done()

            self._remember(ConfirmationRecord(signature=signature, status=status, error=error))
            if status is ConfirmationStatus.CONFIRMED:
                logger.info(f"[CONFIRM] Confirmed: {signature}")
            else:
                logger.warning(f"[CONFIRM] Transaction failed: {signature} ({error})")

    async def _track(
        self, signature: str, expiry: ExpiryAnchor
    ) -> tuple[ConfirmationStatus, str | None]:
        """Poll until a terminal outcome. Raises ConfirmationError if RPC keeps failing."""
        target_rank = _COMMITMENT_RANK[self._commitment]
        deadline = time.monotonic() + self._timeout
        rpc_errors = 0

        while time.monotonic() < deadline:
            try:
                status = await self._rpc.get_signature_status(signature)
                if status is not None:
                    if status.get("err"):
                        return ConfirmationStatus.FAILED, f"on-chain error: {status['err']}"
                    level = status.get("confirmationStatus") or "processed"
                    if _COMMITMENT_RANK.get(level, 0) >= target_rank:
                        return ConfirmationStatus.CONFIRMED, None
                else:
                    height = await self._rpc.get_block_height(self._commitment)
                    if height > expiry.last_valid_block_height:
                        return ConfirmationStatus.FAILED, "blockhash expired"
                rpc_errors = 0
            except RpcError as e:
                rpc_errors += 1
                logger.debug(f"[CONFIRM] Poll error #{rpc_errors} for {signature[:16]}: {e}")
                if rpc_errors >= MAX_CONSECUTIVE_RPC_ERRORS:
                    raise ConfirmationError(f"{rpc_errors} consecutive RPC errors: {e}") from e

            await asyncio.sleep(self._poll_interval)

        return ConfirmationStatus.FAILED, f"not confirmed within {self._timeout:.0f}s"

    def _remember(self, record: ConfirmationRecord) -> None:
        self._records[record.signature] = record
        self._records.move_to_end(record.signature)
        while len(self._records) > self._history_size:
            self._records.popitem(last=False)
