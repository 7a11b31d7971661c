"""Shared test fixtures."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.keypair import Keypair  # type: ignore[import-untyped]

from src.launcher.metrics import LaunchMetrics
from src.launcher.pump_program import GlobalState
from tests.helpers import make_global_state


@pytest.fixture
def payer() -> Keypair:
    return Keypair()


@pytest.fixture
def global_state() -> GlobalState:
    return make_global_state()


@pytest.fixture
def launch_metrics() -> LaunchMetrics:
    """Isolated metrics so tests don't touch the global singleton."""
    return LaunchMetrics()


@pytest.fixture
def mock_rpc() -> MagicMock:
    """SolanaRpcClient double with async methods."""
    rpc = MagicMock()
    rpc.get_latest_blockhash = AsyncMock()
    rpc.get_account_data = AsyncMock()
    rpc.send_transaction = AsyncMock()
    rpc.get_signature_status = AsyncMock(return_value=None)
    rpc.get_balance = AsyncMock(return_value=2_000_000_000)
    rpc.get_block_height = AsyncMock(return_value=0)
    rpc.get_slot = AsyncMock(return_value=1)
    rpc.close = AsyncMock()
    return rpc
