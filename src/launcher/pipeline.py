"""Launch pipeline orchestrator.

Per request:
  1. Generate the mint identity
  2. Start metadata publishing, then look up chain state (concurrent, joined)
  3. Split the fee budget
  4. Assemble + sign (fresh blockhash)
  5. Submit (relay, RPC fallback)
  6. Hand the signature to the confirmation monitor and return

Every failure is normalized into a LaunchResult; launch() never raises.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Sequence
from typing import TypeVar

from loguru import logger

from src.launcher.assembler import TransactionAssembler
from src.launcher.chain_state import ChainStateCache
from src.launcher.confirmation import ConfirmationMonitor
from src.launcher.exceptions import LaunchError
from src.launcher.fees import DEFAULT_COMPUTE_UNIT_LIMIT, DEFAULT_SPLIT_RATIO, allocate, sol_to_lamports
from src.launcher.metadata import MetadataPublisher
from src.launcher.metrics import LaunchMetrics, metrics as default_metrics
from src.launcher.models import LaunchRequest, LaunchResult, MintIdentity
from src.launcher.rpc import SolanaRpcClient
from src.launcher.submission import SubmissionRouter
from src.launcher.wallet import LauncherWallet

T = TypeVar("T")

DEFAULT_BATCH_DELAY_SEC = 1.0


class LaunchPipeline:
    """Composes the launch stages for single and batch requests."""

    def __init__(
        self,
        *,
        wallet: LauncherWallet,
        rpc: SolanaRpcClient,
        cache: ChainStateCache,
        publisher: MetadataPublisher,
        assembler: TransactionAssembler,
        router: SubmissionRouter,
        monitor: ConfirmationMonitor,
        fee_split_ratio: float = DEFAULT_SPLIT_RATIO,
        compute_unit_limit: int = DEFAULT_COMPUTE_UNIT_LIMIT,
        batch_delay_sec: float = DEFAULT_BATCH_DELAY_SEC,
        launch_metrics: LaunchMetrics | None = None,
    ) -> None:
        self._wallet = wallet
        self._rpc = rpc
        self._cache = cache
        self._publisher = publisher
        self._assembler = assembler
        self._router = router
        self._monitor = monitor
        self._fee_split_ratio = fee_split_ratio
        self._compute_unit_limit = compute_unit_limit
        self._batch_delay_sec = batch_delay_sec
        self._metrics = launch_metrics or default_metrics
        self._started_at: float | None = None

    @property
    def wallet(self) -> LauncherWallet:
        return self._wallet

    @property
    def cache(self) -> ChainStateCache:
        return self._cache

    @property
    def monitor(self) -> ConfirmationMonitor:
        return self._monitor

    @property
    def metrics(self) -> LaunchMetrics:
        return self._metrics

    @property
    def uptime_sec(self) -> float:
        if self._started_at is None:
            return 0.0
        return time.monotonic() - self._started_at

    # ─── Lifecycle ───────────────────────────────────────────────────

    async def start(self) -> None:
        self._cache.start()
        self._monitor.start()
        self._started_at = time.monotonic()
        balance = await self._wallet.get_sol_balance(self._rpc)
        logger.info(f"[LAUNCH] Pipeline ready, wallet {self._wallet.pubkey_str} balance={balance:.4f} SOL")

    async def stop(self) -> None:
        await self._cache.stop()
        await self._monitor.stop()
        await self._publisher.close()
        await self._router.close()
        await self._rpc.close()
        self._started_at = None
        logger.info("[LAUNCH] Pipeline stopped")

    # ─── Launch ──────────────────────────────────────────────────────

    async def launch(self, request: LaunchRequest) -> LaunchResult:
        """Run one launch end to end. Never raises."""
        start = time.perf_counter()
        timings: dict[str, float] = {}
        mint = MintIdentity.generate()
        logger.info(f"[LAUNCH] {request.symbol}: starting, mint {mint.address}")

        try:
            # metadata first: it is the slow stage, chain state is usually cached
            meta_out, state_out = await asyncio.gather(
                self._timed(timings, "metadata", self._publisher.publish(request)),
                self._timed(timings, "chain_state", self._cache.get()),
                return_exceptions=True,
            )
            if isinstance(meta_out, BaseException):
                raise meta_out
            if isinstance(state_out, BaseException):
                raise state_out
            self._metrics.record_source("metadata", meta_out.backend)

            fees = allocate(
                sol_to_lamports(request.total_fee_sol),
                self._fee_split_ratio,
                compute_unit_limit=self._compute_unit_limit,
            )
            assembled = await self._timed(
                timings,
                "assemble",
                self._assembler.assemble(state_out, request, meta_out, fees, mint),
            )
            submission = await self._timed(timings, "submit", self._router.submit(assembled))
            self._metrics.record_source("submission", submission.path)

            self._monitor.watch(submission.signature, assembled.expiry)
        except LaunchError as e:
            return self._failed(request, start, timings, str(e))
        except Exception as e:
            logger.exception(f"[LAUNCH] {request.symbol}: unexpected error")
            return self._failed(request, start, timings, f"{type(e).__name__}: {e}")
        finally:
            mint.discard()

        elapsed_ms = _since_ms(start)
        self._metrics.record_launch(True, elapsed_ms)
        logger.info(
            f"[LAUNCH] {request.symbol}: sent in {elapsed_ms:.0f}ms "
            f"via {submission.path} (metadata {meta_out.backend}) {submission.signature}"
        )
        return LaunchResult(
            success=True,
            elapsed_ms=elapsed_ms,
            signature=submission.signature,
            token_address=assembled.mint_address,
            stage_timings=timings,
            submission_path=submission.path,
            metadata_backend=meta_out.backend,
        )

    async def batch_launch(self, requests: Sequence[LaunchRequest]) -> list[LaunchResult]:
        """Launch sequentially with a fixed pause between requests."""
        results: list[LaunchResult] = []
        for i, request in enumerate(requests):
            if i > 0 and self._batch_delay_sec > 0:
                await asyncio.sleep(self._batch_delay_sec)
            results.append(await self.launch(request))

        ok = sum(1 for r in results if r.success)
        logger.info(f"[LAUNCH] Batch done: {ok}/{len(results)} succeeded")
        return results

    # ─── Helpers ─────────────────────────────────────────────────────

    async def _timed(self, timings: dict[str, float], stage: str, aw: Awaitable[T]) -> T:
        start = time.perf_counter()
        try:
            return await aw
        finally:
            ms = _since_ms(start)
            timings[stage] = round(ms, 1)
            self._metrics.record_stage(stage, ms)

    def _failed(
        self, request: LaunchRequest, start: float, timings: dict[str, float], error: str
    ) -> LaunchResult:
        elapsed_ms = _since_ms(start)
        self._metrics.record_launch(False, elapsed_ms)
        logger.error(f"[LAUNCH] {request.symbol}: failed after {elapsed_ms:.0f}ms: {error}")
        return LaunchResult(
            success=False, elapsed_ms=elapsed_ms, error=error, stage_timings=timings
        )


def _since_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
