"""Submission router — Jito block engine first, public RPC as fallback.

Relay path: JSON-RPC sendTransaction with the base64 transaction, short
timeout. Any relay failure (timeout, non-2xx, RPC error, malformed result)
falls back once to the RPC node with skipPreflight. Exactly one path's
result is returned; a successful relay never touches the node.
"""

from __future__ import annotations

import httpx
from loguru import logger

from src.launcher.exceptions import SubmissionFailure
from src.launcher.fallback import attempt, first_success
from src.launcher.models import AssembledTransaction, SubmissionResult
from src.launcher.rpc import SolanaRpcClient

JITO_BLOCK_ENGINE_URL = "https://mainnet.block-engine.jito.wtf/api/v1/transactions"

RELAY = "relay"
RPC = "rpc"

DEFAULT_RELAY_TIMEOUT_SEC = 5.0
DEFAULT_RPC_TIMEOUT_SEC = 10.0


class RelayError(Exception):
    pass


class SubmissionRouter:
    """Broadcasts a signed transaction via relay, falling back to RPC."""

    def __init__(
        self,
        rpc: SolanaRpcClient,
        *,
        relay_url: str = JITO_BLOCK_ENGINE_URL,
        relay_timeout_sec: float = DEFAULT_RELAY_TIMEOUT_SEC,
        rpc_timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC,
        commitment: str = "processed",
    ) -> None:
        self._rpc = rpc
        self._relay_url = relay_url
        self._relay_timeout = relay_timeout_sec
        self._rpc_timeout = rpc_timeout_sec
        self._commitment = commitment
        self._http = httpx.AsyncClient(
            timeout=relay_timeout_sec, headers={"Content-Type": "application/json"}
        )

    async def submit(self, tx: AssembledTransaction) -> SubmissionResult:
        tx_b64 = tx.base64
        rpc_stage = (RPC, lambda: self._send_rpc(tx_b64), self._rpc_timeout)

        if self._relay_url:
            first, second = await first_success(
                (RELAY, lambda: self._send_relay(tx_b64), self._relay_timeout),
                rpc_stage,
            )
        else:
            name, call, timeout = rpc_stage
            first, second = await attempt(name, call, timeout_sec=timeout), None

        winner = first if first.ok else second
        if winner is None or not winner.ok:
            causes = "; ".join(a.describe_error() for a in (first, second) if a is not None)
            logger.error(f"[SUBMIT] All paths failed for {tx.signature[:16]}: {causes}")
            raise SubmissionFailure(f"Broadcast failed ({causes})")

        if winner is second:
            logger.warning(f"[SUBMIT] Relay failed ({first.describe_error()}), sent via RPC")

        signature = str(winner.value)
        if signature != tx.signature:
            logger.warning(
                f"[SUBMIT] {winner.source} returned signature {signature[:16]} "
                f"!= local {tx.signature[:16]}"
            )
        logger.info(f"[SUBMIT] Sent via {winner.source} in {winner.latency_ms:.0f}ms: {signature}")
        return SubmissionResult(signature=signature, path=winner.source, latency_ms=winner.latency_ms)

    async def _send_relay(self, tx_b64: str) -> str:
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "sendTransaction",
            "params": [tx_b64, {"encoding": "base64"}],
        }
        resp = await self._http.post(self._relay_url, json=payload, timeout=self._relay_timeout)
        if not 200 <= resp.status_code < 300:
            raise RelayError(f"HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as e:
            raise RelayError("invalid JSON response") from e
        if not isinstance(data, dict):
            raise RelayError(f"unexpected response body: {data!r:.200}")
        if "error" in data:
            error = data["error"]
            if isinstance(error, dict):
                raise RelayError(f"RPC error {error.get('code', '?')}: {error.get('message', error)}")
            raise RelayError(f"RPC error: {error}")
        result = data.get("result")
        if not isinstance(result, str) or not result:
            raise RelayError(f"malformed result: {result!r}")
        return result

    async def _send_rpc(self, tx_b64: str) -> str:
        return await self._rpc.send_transaction(
            tx_b64,
            skip_preflight=True,
            preflight_commitment=self._commitment,
            timeout=self._rpc_timeout,
        )

    async def close(self) -> None:
        await self._http.aclose()
