"""Tests for LauncherWallet — key loading, secrecy, balance."""

from unittest.mock import AsyncMock

import base58
import pytest
from solders.keypair import Keypair  # type: ignore[import-untyped]

from src.launcher.exceptions import ConfigError, RpcError
from src.launcher.rpc import SolanaRpcClient
from src.launcher.wallet import LauncherWallet
from tests.helpers import make_response


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def private_key_b58(keypair: Keypair) -> str:
    return base58.b58encode(bytes(keypair)).decode()


class TestLoading:
    def test_loads_base58_keypair(self, keypair, private_key_b58):
        wallet = LauncherWallet(private_key_b58)
        assert wallet.pubkey == keypair.pubkey()
        assert wallet.pubkey_str == str(keypair.pubkey())

    def test_whitespace_tolerated(self, keypair, private_key_b58):
        wallet = LauncherWallet(f"  {private_key_b58}\n")
        assert wallet.pubkey == keypair.pubkey()

    def test_empty_key(self):
        with pytest.raises(ConfigError, match="empty"):
            LauncherWallet("")

    def test_invalid_base58(self):
        with pytest.raises(ConfigError):
            LauncherWallet("0OIl-not-base58")

    def test_wrong_length(self):
        with pytest.raises(ConfigError):
            LauncherWallet(base58.b58encode(b"\x01" * 10).decode())

    def test_repr_hides_private_key(self, private_key_b58):
        wallet = LauncherWallet(private_key_b58)
        assert private_key_b58 not in repr(wallet)
        assert wallet.pubkey_str in repr(wallet)


class TestBalance:
    async def test_balance_in_sol(self, private_key_b58, mock_rpc):
        mock_rpc.get_balance.return_value = 1_500_000_000
        wallet = LauncherWallet(private_key_b58)
        assert await wallet.get_sol_balance(mock_rpc) == 1.5
        mock_rpc.get_balance.assert_awaited_once_with(wallet.pubkey_str)

    async def test_balance_error_returns_zero(self, private_key_b58, mock_rpc):
        mock_rpc.get_balance = AsyncMock(side_effect=RpcError("getBalance", "down"))
        wallet = LauncherWallet(private_key_b58)
        assert await wallet.get_sol_balance(mock_rpc) == 0.0

    @pytest.mark.parametrize(
        "body",
        [{"jsonrpc": "2.0", "id": 1, "error": "rate limited"}, None, 5],
    )
    async def test_malformed_rpc_body_returns_zero(self, private_key_b58, body):
        rpc = SolanaRpcClient("https://rpc.example")
        resp = make_response(200)
        resp.json.side_effect = None
        resp.json.return_value = body
        rpc._http.post = AsyncMock(return_value=resp)

        wallet = LauncherWallet(private_key_b58)
        assert await wallet.get_sol_balance(rpc) == 0.0
        await rpc.close()
