"""Solana JSON-RPC client — the few calls a launch needs.

Raw JSON-RPC over httpx (no SDK): blockhash, account data, send,
signature status, block height, and a cheap getSlot keep-alive ping.
Every failure raises RpcError; callers decide whether it is fatal.
"""

from __future__ import annotations

import base64
from typing import Any

import httpx
from loguru import logger

from src.launcher.exceptions import RpcError
from src.launcher.models import ExpiryAnchor


class SolanaRpcClient:
    """Async JSON-RPC client for a single Solana RPC endpoint."""

    def __init__(self, rpc_url: str, *, timeout: float = 10.0) -> None:
        if not rpc_url:
            raise ValueError("RPC URL is empty")
        self._rpc_url = rpc_url
        self._http = httpx.AsyncClient(timeout=timeout)
        self._request_id = 0

    @property
    def url(self) -> str:
        return self._rpc_url

    async def _call(
        self, method: str, params: list[Any] | None = None, *, timeout: float | None = None
    ) -> Any:
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }
        try:
            if timeout is None:
                resp = await self._http.post(self._rpc_url, json=payload)
            else:
                resp = await self._http.post(self._rpc_url, json=payload, timeout=timeout)
        except httpx.HTTPError as e:
            raise RpcError(method, f"{type(e).__name__}: {e}") from e

        if resp.status_code != 200:
            raise RpcError(method, f"HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise RpcError(method, "invalid JSON response") from e

        if not isinstance(data, dict):
            raise RpcError(method, f"unexpected response body: {data!r:.200}")
        if "error" in data:
            error = data["error"]
            if isinstance(error, dict):
                raise RpcError(method, str(error.get("message", error)), code=error.get("code"))
            raise RpcError(method, str(error))
        if "result" not in data:
            raise RpcError(method, "response has no result")
        return data["result"]

    async def get_latest_blockhash(self, commitment: str = "processed") -> ExpiryAnchor:
        result = await self._call("getLatestBlockhash", [{"commitment": commitment}])
        try:
            value = result["value"]
            return ExpiryAnchor(
                blockhash=value["blockhash"],
                last_valid_block_height=int(value["lastValidBlockHeight"]),
            )
        except (KeyError, TypeError) as e:
            raise RpcError("getLatestBlockhash", f"malformed result: {result!r}") from e

    async def get_account_data(self, address: str, commitment: str = "confirmed") -> bytes | None:
        """Raw account data, or None if the account does not exist."""
        result = await self._call(
            "getAccountInfo",
            [address, {"encoding": "base64", "commitment": commitment}],
        )
        value = _context_value("getAccountInfo", result)
        if not value:
            return None
        try:
            return base64.b64decode(value["data"][0])
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise RpcError("getAccountInfo", f"malformed account data: {e}") from e

    async def send_transaction(
        self,
        tx_base64: str,
        *,
        skip_preflight: bool = True,
        preflight_commitment: str = "processed",
        timeout: float | None = None,
    ) -> str:
        result = await self._call(
            "sendTransaction",
            [
                tx_base64,
                {
                    "encoding": "base64",
                    "skipPreflight": skip_preflight,
                    "preflightCommitment": preflight_commitment,
                    "maxRetries": 0,
                },
            ],
            timeout=timeout,
        )
        if not isinstance(result, str) or not result:
            raise RpcError("sendTransaction", f"malformed result: {result!r}")
        return result

    async def get_signature_status(self, signature: str) -> dict[str, Any] | None:
        """Status dict ({"err", "confirmationStatus", ...}) or None if unknown yet."""
        result = await self._call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": False}],
        )
        statuses = _context_value("getSignatureStatuses", result) or []
        if not isinstance(statuses, list):
            raise RpcError("getSignatureStatuses", f"malformed result: {result!r:.200}")
        status = statuses[0] if statuses else None
        if status is not None and not isinstance(status, dict):
            raise RpcError("getSignatureStatuses", f"malformed status: {status!r:.200}")
        return status

    async def get_balance(self, address: str) -> int:
        """Balance in lamports."""
        result = await self._call("getBalance", [address])
        return _as_int("getBalance", _context_value("getBalance", result))

    async def get_block_height(self, commitment: str = "confirmed") -> int:
        result = await self._call("getBlockHeight", [{"commitment": commitment}])
        return _as_int("getBlockHeight", result)

    async def get_slot(self) -> int:
        """Lightweight keep-alive ping."""
        result = await self._call("getSlot", [{"commitment": "processed"}])
        logger.trace(f"[RPC] keep-alive slot={result}")
        return _as_int("getSlot", result)

    async def close(self) -> None:
        await self._http.aclose()


def _context_value(method: str, result: Any) -> Any:
    """`value` of an RpcResponse-with-context result ({"context", "value"})."""
    if result is None:
        return None
    if not isinstance(result, dict):
        raise RpcError(method, f"malformed result: {result!r:.200}")
    return result.get("value")


def _as_int(method: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise RpcError(method, f"expected integer, got {value!r:.200}")
    return value
