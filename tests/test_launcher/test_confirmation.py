"""Tests for ConfirmationMonitor — bounded queue, worker outcomes, history."""

import asyncio

import pytest

from src.launcher.confirmation import MAX_CONSECUTIVE_RPC_ERRORS, ConfirmationMonitor
from src.launcher.exceptions import RpcError
from src.launcher.models import ConfirmationStatus, ExpiryAnchor

EXPIRY = ExpiryAnchor(blockhash="hash", last_valid_block_height=1_000)


async def _settle(monitor: ConfirmationMonitor, signature: str, timeout: float = 1.0):
    """Wait until the signature leaves PENDING."""
    deadline = asyncio.get_running_loop().time() + timeout
    while asyncio.get_running_loop().time() < deadline:
        record = monitor.status(signature)
        if record is not None and record.status is not ConfirmationStatus.PENDING:
            return record
        await asyncio.sleep(0.005)
    raise AssertionError(f"{signature} still pending")


@pytest.fixture
async def monitor(mock_rpc):
    m = ConfirmationMonitor(mock_rpc, workers=2, poll_interval_sec=0.005, timeout_sec=0.5)
    m.start()
    yield m
    await m.stop()


# ── Outcomes ───────────────────────────────────────────────────────────


class TestOutcomes:
    async def test_confirmed(self, monitor, mock_rpc):
        mock_rpc.get_signature_status.return_value = {"err": None, "confirmationStatus": "confirmed"}
        assert monitor.watch("sigA", EXPIRY)
        record = await _settle(monitor, "sigA")
        assert record.status is ConfirmationStatus.CONFIRMED
        assert record.error is None

    async def test_processed_keeps_polling_until_confirmed(self, monitor, mock_rpc):
        mock_rpc.get_signature_status.side_effect = [
            {"err": None, "confirmationStatus": "processed"},
            {"err": None, "confirmationStatus": "processed"},
            {"err": None, "confirmationStatus": "finalized"},
        ]
        monitor.watch("sigB", EXPIRY)
        record = await _settle(monitor, "sigB")
        assert record.status is ConfirmationStatus.CONFIRMED
        assert mock_rpc.get_signature_status.await_count == 3

    async def test_onchain_error_fails(self, monitor, mock_rpc):
        mock_rpc.get_signature_status.return_value = {
            "err": {"InstructionError": [2, {"Custom": 6002}]},
            "confirmationStatus": "confirmed",
        }
        monitor.watch("sigC", EXPIRY)
        record = await _settle(monitor, "sigC")
        assert record.status is ConfirmationStatus.FAILED
        assert "on-chain error" in record.error

    async def test_blockhash_expiry_fails(self, monitor, mock_rpc):
        mock_rpc.get_signature_status.return_value = None
        mock_rpc.get_block_height.return_value = EXPIRY.last_valid_block_height + 1
        monitor.watch("sigD", EXPIRY)
        record = await _settle(monitor, "sigD")
        assert record.status is ConfirmationStatus.FAILED
        assert record.error == "blockhash expired"

    async def test_timeout_fails(self, mock_rpc):
        mock_rpc.get_signature_status.return_value = None
        mock_rpc.get_block_height.return_value = 0
        m = ConfirmationMonitor(mock_rpc, workers=1, poll_interval_sec=0.005, timeout_sec=0.03)
        m.start()
        try:
            m.watch("sigE", EXPIRY)
            record = await _settle(m, "sigE")
        finally:
            await m.stop()
        assert record.status is ConfirmationStatus.FAILED
        assert "not confirmed" in record.error

    async def test_repeated_rpc_errors_recorded_as_failed(self, monitor, mock_rpc):
        mock_rpc.get_signature_status.side_effect = RpcError("getSignatureStatuses", "down")
        monitor.watch("sigF", EXPIRY)
        record = await _settle(monitor, "sigF")
        assert record.status is ConfirmationStatus.FAILED
        assert "consecutive RPC errors" in record.error
        assert mock_rpc.get_signature_status.await_count == MAX_CONSECUTIVE_RPC_ERRORS

    async def test_transient_rpc_error_tolerated(self, monitor, mock_rpc):
        mock_rpc.get_signature_status.side_effect = [
            RpcError("getSignatureStatuses", "blip"),
            {"err": None, "confirmationStatus": "confirmed"},
        ]
        monitor.watch("sigG", EXPIRY)
        record = await _settle(monitor, "sigG")
        assert record.status is ConfirmationStatus.CONFIRMED


# ── Queue and history ──────────────────────────────────────────────────


class TestQueue:
    def test_watch_is_pending_immediately(self, mock_rpc):
        m = ConfirmationMonitor(mock_rpc)
        assert m.watch("sig1", EXPIRY)
        assert m.status("sig1").status is ConfirmationStatus.PENDING
        assert m.pending == 1
        assert m.queued == 1

    def test_full_queue_drops(self, mock_rpc):
        m = ConfirmationMonitor(mock_rpc, queue_size=2)
        assert m.watch("sig1", EXPIRY)
        assert m.watch("sig2", EXPIRY)
        assert not m.watch("sig3", EXPIRY)
        assert m.dropped == 1
        assert m.status("sig3") is None

    def test_history_bounded(self, mock_rpc):
        m = ConfirmationMonitor(mock_rpc, queue_size=10, history_size=3)
        for i in range(5):
            m.watch(f"sig{i}", EXPIRY)
        assert m.status("sig0") is None
        assert m.status("sig1") is None
        assert m.status("sig4") is not None

    def test_unknown_commitment_rejected(self, mock_rpc):
        with pytest.raises(ValueError):
            ConfirmationMonitor(mock_rpc, commitment="instant")

    def test_unknown_signature(self, mock_rpc):
        assert ConfirmationMonitor(mock_rpc).status("nope") is None

    async def test_stop_cancels_workers(self, mock_rpc):
        m = ConfirmationMonitor(mock_rpc, workers=3)
        m.start()
        assert len(m._workers) == 3
        await m.stop()
        assert m._workers == []
