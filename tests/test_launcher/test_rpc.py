"""Tests for SolanaRpcClient — payloads, result parsing, error mapping.

All HTTP calls are mocked. No real RPC requests are made.
"""

import base64
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.launcher.exceptions import RpcError
from src.launcher.rpc import SolanaRpcClient
from tests.helpers import blockhash_result, make_response, rpc_result

RPC_URL = "https://rpc.example"


@pytest.fixture
def client() -> SolanaRpcClient:
    return SolanaRpcClient(RPC_URL)


def _mock_post(client: SolanaRpcClient, response) -> AsyncMock:
    mock = AsyncMock(return_value=response)
    client._http.post = mock
    return mock


def _json_body(body) -> MagicMock:
    """Response whose JSON decodes to an arbitrary value, null included."""
    resp = make_response(200)
    resp.json.side_effect = None
    resp.json.return_value = body
    return resp


# ── Happy paths ────────────────────────────────────────────────────────


class TestCalls:
    async def test_latest_blockhash(self, client):
        post = _mock_post(client, make_response(200, blockhash_result("Hash111", last_valid=77)))
        anchor = await client.get_latest_blockhash("processed")

        assert anchor.blockhash == "Hash111"
        assert anchor.last_valid_block_height == 77
        payload = post.call_args.kwargs["json"]
        assert payload["method"] == "getLatestBlockhash"
        assert payload["params"] == [{"commitment": "processed"}]

    async def test_account_data_decoded(self, client):
        raw = b"\x01\x02\x03"
        _mock_post(
            client,
            make_response(
                200, rpc_result({"value": {"data": [base64.b64encode(raw).decode(), "base64"]}})
            ),
        )
        assert await client.get_account_data("Addr") == raw

    async def test_missing_account_is_none(self, client):
        _mock_post(client, make_response(200, rpc_result({"value": None})))
        assert await client.get_account_data("Addr") is None

    async def test_send_transaction_params(self, client):
        post = _mock_post(client, make_response(200, rpc_result("sig123")))
        sig = await client.send_transaction("AAAA", skip_preflight=True, timeout=2.0)

        assert sig == "sig123"
        params = post.call_args.kwargs["json"]["params"]
        assert params[0] == "AAAA"
        assert params[1]["encoding"] == "base64"
        assert params[1]["skipPreflight"] is True
        assert params[1]["maxRetries"] == 0
        assert post.call_args.kwargs["timeout"] == 2.0

    async def test_signature_status(self, client):
        status = {"err": None, "confirmationStatus": "confirmed"}
        _mock_post(client, make_response(200, rpc_result({"value": [status]})))
        assert await client.get_signature_status("sig") == status

    async def test_signature_status_unknown(self, client):
        _mock_post(client, make_response(200, rpc_result({"value": [None]})))
        assert await client.get_signature_status("sig") is None

    async def test_balance_and_heights(self, client):
        _mock_post(client, make_response(200, rpc_result({"value": 42})))
        assert await client.get_balance("Addr") == 42
        _mock_post(client, make_response(200, rpc_result(1234)))
        assert await client.get_block_height() == 1234
        assert await client.get_slot() == 1234


# ── Errors ─────────────────────────────────────────────────────────────


class TestErrors:
    async def test_http_status(self, client):
        _mock_post(client, make_response(503))
        with pytest.raises(RpcError, match="HTTP 503"):
            await client.get_slot()

    async def test_rpc_error_object(self, client):
        _mock_post(
            client,
            make_response(200, {"jsonrpc": "2.0", "id": 1, "error": {"code": -32002, "message": "bad"}}),
        )
        with pytest.raises(RpcError) as exc_info:
            await client.send_transaction("AAAA")
        assert exc_info.value.code == -32002
        assert exc_info.value.method == "sendTransaction"

    async def test_transport_error(self, client):
        client._http.post = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        with pytest.raises(RpcError, match="ReadTimeout"):
            await client.get_slot()

    async def test_invalid_json(self, client):
        _mock_post(client, make_response(200, text="oops"))
        with pytest.raises(RpcError, match="invalid JSON"):
            await client.get_slot()

    async def test_malformed_blockhash(self, client):
        _mock_post(client, make_response(200, rpc_result({"value": {}})))
        with pytest.raises(RpcError, match="malformed"):
            await client.get_latest_blockhash()

    async def test_string_error_field(self, client):
        _mock_post(client, make_response(200, {"jsonrpc": "2.0", "id": 1, "error": "rate limited"}))
        with pytest.raises(RpcError, match="rate limited") as exc_info:
            await client.get_balance("Addr")
        assert exc_info.value.code is None

    async def test_null_error_field(self, client):
        _mock_post(client, make_response(200, {"jsonrpc": "2.0", "id": 1, "error": None}))
        with pytest.raises(RpcError):
            await client.get_slot()

    @pytest.mark.parametrize("body", [None, 5, "ok", [1, 2]])
    async def test_non_object_body(self, client, body):
        _mock_post(client, _json_body(body))
        with pytest.raises(RpcError, match="unexpected response body"):
            await client.get_balance("Addr")

    @pytest.mark.parametrize(
        "call",
        [
            lambda c: c.get_account_data("Addr"),
            lambda c: c.get_signature_status("sig"),
            lambda c: c.get_balance("Addr"),
        ],
    )
    async def test_non_object_result(self, client, call):
        _mock_post(client, make_response(200, rpc_result("surprise")))
        with pytest.raises(RpcError, match="malformed"):
            await call(client)

    async def test_non_integer_balance(self, client):
        _mock_post(client, make_response(200, rpc_result({"value": "lots"})))
        with pytest.raises(RpcError, match="expected integer"):
            await client.get_balance("Addr")

    async def test_non_integer_block_height(self, client):
        _mock_post(client, make_response(200, rpc_result(None)))
        with pytest.raises(RpcError, match="expected integer"):
            await client.get_block_height()

    async def test_malformed_account_data(self, client):
        _mock_post(client, make_response(200, rpc_result({"value": {"data": []}})))
        with pytest.raises(RpcError, match="malformed account data"):
            await client.get_account_data("Addr")

    async def test_non_object_signature_status(self, client):
        _mock_post(client, make_response(200, rpc_result({"value": ["finalized"]})))
        with pytest.raises(RpcError, match="malformed status"):
            await client.get_signature_status("sig")

    def test_empty_url_rejected(self):
        with pytest.raises(ValueError):
            SolanaRpcClient("")
