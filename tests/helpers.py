"""Builders and fakes shared across test modules."""

from __future__ import annotations

import base64
import struct
from unittest.mock import MagicMock, NonCallableMagicMock

import httpx
from solders.keypair import Keypair  # type: ignore[import-untyped]

from src.launcher.models import LaunchRequest
from src.launcher.pump_program import GLOBAL_DISCRIMINATOR, GlobalState

FEE_RECIPIENT = Keypair().pubkey()


def make_global_state(**overrides) -> GlobalState:
    """Mainnet-like Global account values."""
    values = dict(
        fee_recipient=FEE_RECIPIENT,
        initial_virtual_token_reserves=1_073_000_000_000_000,
        initial_virtual_sol_reserves=30_000_000_000,
        initial_real_token_reserves=793_100_000_000_000,
        token_total_supply=1_000_000_000_000_000,
        fee_basis_points=95,
        creator_fee_basis_points=5,
    )
    values.update(overrides)
    return GlobalState(**values)


def encode_global_account(state: GlobalState, *, extended: bool = True) -> bytes:
    """Serialize a Global account the way the program lays it out."""
    data = GLOBAL_DISCRIMINATOR + b"\x01" + bytes(Keypair().pubkey()) + bytes(state.fee_recipient)
    data += struct.pack(
        "<5Q",
        state.initial_virtual_token_reserves,
        state.initial_virtual_sol_reserves,
        state.initial_real_token_reserves,
        state.token_total_supply,
        state.fee_basis_points,
    )
    if extended:
        data += bytes(32) + b"\x00" + struct.pack("<QQ", 0, state.creator_fee_basis_points)
    return data


def make_response(status_code: int = 200, json_data=None, text: str = "") -> MagicMock:
    """Mocked httpx.Response."""
    resp = NonCallableMagicMock(spec=httpx.Response)
    resp.status_code = status_code
    resp.text = text
    if json_data is None:
        resp.json.side_effect = ValueError("no JSON")
    else:
        resp.json.return_value = json_data
    return resp


def make_request(**overrides) -> LaunchRequest:
    values = dict(
        name="Test Token",
        symbol="TEST",
        initial_buy_sol=0.5,
        total_fee_sol=0.01,
        image_data=b"\x89PNG\r\n\x1a\n" + bytes(16),
    )
    values.update(overrides)
    return LaunchRequest(**values)


def rpc_result(result) -> dict:
    return {"jsonrpc": "2.0", "id": 1, "result": result}


def blockhash_result(blockhash: str | None = None, last_valid: int = 300_000_100) -> dict:
    return rpc_result(
        {
            "context": {"slot": 1},
            "value": {
                "blockhash": blockhash or str(Keypair().pubkey()),
                "lastValidBlockHeight": last_valid,
            },
        }
    )


def account_result(data: bytes) -> dict:
    return rpc_result(
        {"context": {"slot": 1}, "value": {"data": [base64.b64encode(data).decode(), "base64"]}}
    )


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


