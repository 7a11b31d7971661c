"""Tests for pump.fun account decoding, buy quote and instruction layout."""

import struct

import pytest
from solders.keypair import Keypair  # type: ignore[import-untyped]

from src.launcher import pump_program
from src.launcher.pump_program import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    BUY_DISCRIMINATOR,
    CREATE_DISCRIMINATOR,
    PUMP_PROGRAM_ID,
    GlobalState,
    buy_token_amount_from_sol,
    max_sol_cost,
)
from tests.helpers import encode_global_account, make_global_state


# ── Global account ─────────────────────────────────────────────────────


class TestGlobalState:
    def test_decode_extended_layout(self, global_state):
        decoded = GlobalState.from_account_data(encode_global_account(global_state))
        assert decoded == global_state

    def test_decode_base_layout_has_no_creator_fee(self, global_state):
        decoded = GlobalState.from_account_data(
            encode_global_account(global_state, extended=False)
        )
        assert decoded.creator_fee_basis_points == 0
        assert decoded.fee_basis_points == global_state.fee_basis_points
        assert decoded.fee_recipient == global_state.fee_recipient

    def test_bad_discriminator(self, global_state):
        data = bytearray(encode_global_account(global_state))
        data[0] ^= 0xFF
        with pytest.raises(ValueError, match="discriminator"):
            GlobalState.from_account_data(bytes(data))

    def test_too_short(self):
        with pytest.raises(ValueError, match="too small"):
            GlobalState.from_account_data(b"\x00" * 20)


# ── Buy quote ──────────────────────────────────────────────────────────


class TestBuyQuote:
    def test_fee_deducted_before_curve(self):
        state = make_global_state(fee_basis_points=100, creator_fee_basis_points=0)
        tokens = buy_token_amount_from_sol(state, 1_010_000_000)
        # 1.01 SOL with 1% fee -> 1 SOL into the curve
        expected = (
            1_000_000_000
            * state.initial_virtual_token_reserves
            // (state.initial_virtual_sol_reserves + 1_000_000_000)
        )
        assert tokens == expected

    def test_capped_at_real_reserves(self):
        state = make_global_state()
        tokens = buy_token_amount_from_sol(state, 10_000 * 10**9)
        assert tokens == state.initial_real_token_reserves

    def test_zero_spend(self, global_state):
        assert buy_token_amount_from_sol(global_state, 0) == 0

    def test_max_sol_cost_slippage(self):
        assert max_sol_cost(1_000_000_000, 100) == 1_010_000_000
        assert max_sol_cost(1_000_000_000, 0) == 1_000_000_000


# ── Instructions ───────────────────────────────────────────────────────


class TestInstructions:
    def test_create_instruction_layout(self):
        mint = Keypair().pubkey()
        user = Keypair().pubkey()
        ix = pump_program.create_instruction(
            mint=mint, user=user, name="Test", symbol="TST", uri="https://x/y.json"
        )
        assert ix.program_id == PUMP_PROGRAM_ID
        data = bytes(ix.data)
        assert data[:8] == CREATE_DISCRIMINATOR
        assert data[8:12] == struct.pack("<I", 4)
        assert data[12:16] == b"Test"
        assert data[-32:] == bytes(user)
        assert len(ix.accounts) == 14
        assert ix.accounts[0].pubkey == mint and ix.accounts[0].is_signer
        assert ix.accounts[7].pubkey == user and ix.accounts[7].is_signer

    def test_buy_instruction_data(self, global_state):
        mint = Keypair().pubkey()
        user = Keypair().pubkey()
        ix = pump_program.buy_instruction(
            state=global_state,
            mint=mint,
            user=user,
            creator=user,
            token_amount=123,
            max_sol_cost_lamports=456,
        )
        data = bytes(ix.data)
        assert data[:8] == BUY_DISCRIMINATOR
        assert struct.unpack("<QQ", data[8:]) == (123, 456)
        assert ix.accounts[1].pubkey == global_state.fee_recipient
        assert ix.accounts[5].pubkey == pump_program.associated_token_address(user, mint)

    def test_ata_idempotent(self):
        user = Keypair().pubkey()
        mint = Keypair().pubkey()
        ix = pump_program.create_ata_idempotent_instruction(payer=user, owner=user, mint=mint)
        assert ix.program_id == ASSOCIATED_TOKEN_PROGRAM_ID
        assert bytes(ix.data) == b"\x01"

    def test_pdas_are_deterministic(self):
        mint = Keypair().pubkey()
        assert pump_program.bonding_curve_address(mint) == pump_program.bonding_curve_address(mint)
        assert pump_program.global_address() != pump_program.mint_authority_address()
