"""Pump.fun bonding-curve program — account layout, PDAs, instructions.

Covers only what a launch needs:
  - parse the Global account (initial curve reserves + fee settings)
  - quote tokens out for a SOL spend on a brand-new curve
  - build create, create-ATA and buy instructions

Anchor instruction data = 8-byte discriminator + borsh-encoded args.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from solders.instruction import AccountMeta, Instruction  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

PUMP_PROGRAM_ID = Pubkey.from_string("6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P")
TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string(
    "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
)
MPL_TOKEN_METADATA_PROGRAM_ID = Pubkey.from_string(
    "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"
)
SYSTEM_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")
RENT_SYSVAR_ID = Pubkey.from_string("SysvarRent111111111111111111111111111111111")

GLOBAL_DISCRIMINATOR = bytes([167, 232, 232, 177, 200, 108, 114, 127])
CREATE_DISCRIMINATOR = bytes([24, 30, 200, 40, 5, 28, 7, 119])
BUY_DISCRIMINATOR = bytes([102, 6, 61, 18, 1, 218, 235, 234])

# disc(8) + initialized(1) + authority(32) + fee_recipient(32) + 5 x u64
_GLOBAL_BASE_LEN = 8 + 1 + 32 + 32 + 5 * 8
# + withdraw_authority(32) + enable_migrate(1) + pool_migration_fee(8) + creator_fee_bps(8)
_GLOBAL_EXTENDED_LEN = _GLOBAL_BASE_LEN + 32 + 1 + 8 + 8


@dataclass(frozen=True)
class GlobalState:
    """Decoded pump.fun Global account."""

    fee_recipient: Pubkey
    initial_virtual_token_reserves: int
    initial_virtual_sol_reserves: int
    initial_real_token_reserves: int
    token_total_supply: int
    fee_basis_points: int
    creator_fee_basis_points: int = 0

    @classmethod
    def from_account_data(cls, data: bytes) -> GlobalState:
        if len(data) < _GLOBAL_BASE_LEN:
            raise ValueError(f"Global account too small: {len(data)} bytes")
        if data[:8] != GLOBAL_DISCRIMINATOR:
            raise ValueError("Not a pump.fun Global account (bad discriminator)")

        offset = 8 + 1 + 32
        fee_recipient = Pubkey.from_bytes(data[offset : offset + 32])
        offset += 32
        (
            virtual_token,
            virtual_sol,
            real_token,
            total_supply,
            fee_bps,
        ) = struct.unpack_from("<5Q", data, offset)

        creator_fee_bps = 0
        if len(data) >= _GLOBAL_EXTENDED_LEN:
            (creator_fee_bps,) = struct.unpack_from("<Q", data, _GLOBAL_EXTENDED_LEN - 8)

        return cls(
            fee_recipient=fee_recipient,
            initial_virtual_token_reserves=virtual_token,
            initial_virtual_sol_reserves=virtual_sol,
            initial_real_token_reserves=real_token,
            token_total_supply=total_supply,
            fee_basis_points=fee_bps,
            creator_fee_basis_points=creator_fee_bps,
        )


def buy_token_amount_from_sol(state: GlobalState, sol_lamports: int) -> int:
    """Tokens received for `sol_lamports` on a fresh curve (fees deducted first)."""
    if sol_lamports <= 0 or state.initial_virtual_token_reserves == 0:
        return 0
    total_fee_bps = state.fee_basis_points + state.creator_fee_basis_points
    input_amount = sol_lamports * 10_000 // (total_fee_bps + 10_000)
    tokens = (
        input_amount
        * state.initial_virtual_token_reserves
        // (state.initial_virtual_sol_reserves + input_amount)
    )
    return min(tokens, state.initial_real_token_reserves)


def max_sol_cost(sol_lamports: int, slippage_bps: int) -> int:
    return sol_lamports + sol_lamports * slippage_bps // 10_000


# ─── PDAs ──────────────────────────────────────────────────────────────


def _pda(seeds: list[bytes], program_id: Pubkey = PUMP_PROGRAM_ID) -> Pubkey:
    address, _bump = Pubkey.find_program_address(seeds, program_id)
    return address


def global_address() -> Pubkey:
    return _pda([b"global"])


def mint_authority_address() -> Pubkey:
    return _pda([b"mint-authority"])


def event_authority_address() -> Pubkey:
    return _pda([b"__event_authority"])


def bonding_curve_address(mint: Pubkey) -> Pubkey:
    return _pda([b"bonding-curve", bytes(mint)])


def creator_vault_address(creator: Pubkey) -> Pubkey:
    return _pda([b"creator-vault", bytes(creator)])


def associated_token_address(owner: Pubkey, mint: Pubkey) -> Pubkey:
    return _pda(
        [bytes(owner), bytes(TOKEN_PROGRAM_ID), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )


def metadata_address(mint: Pubkey) -> Pubkey:
    return _pda(
        [b"metadata", bytes(MPL_TOKEN_METADATA_PROGRAM_ID), bytes(mint)],
        MPL_TOKEN_METADATA_PROGRAM_ID,
    )


# ─── Instructions ──────────────────────────────────────────────────────


def _borsh_string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


def create_instruction(
    *,
    mint: Pubkey,
    user: Pubkey,
    name: str,
    symbol: str,
    uri: str,
) -> Instruction:
    """Create the mint, bonding curve and metadata. `user` is also the creator."""
    bonding_curve = bonding_curve_address(mint)
    data = (
        CREATE_DISCRIMINATOR
        + _borsh_string(name)
        + _borsh_string(symbol)
        + _borsh_string(uri)
        + bytes(user)
    )
    accounts = [
        AccountMeta(mint, is_signer=True, is_writable=True),
        AccountMeta(mint_authority_address(), is_signer=False, is_writable=False),
        AccountMeta(bonding_curve, is_signer=False, is_writable=True),
        AccountMeta(
            associated_token_address(bonding_curve, mint), is_signer=False, is_writable=True
        ),
        AccountMeta(global_address(), is_signer=False, is_writable=False),
        AccountMeta(MPL_TOKEN_METADATA_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(metadata_address(mint), is_signer=False, is_writable=True),
        AccountMeta(user, is_signer=True, is_writable=True),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(ASSOCIATED_TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(RENT_SYSVAR_ID, is_signer=False, is_writable=False),
        AccountMeta(event_authority_address(), is_signer=False, is_writable=False),
        AccountMeta(PUMP_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(PUMP_PROGRAM_ID, data, accounts)


def create_ata_idempotent_instruction(
    *, payer: Pubkey, owner: Pubkey, mint: Pubkey
) -> Instruction:
    accounts = [
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(associated_token_address(owner, mint), is_signer=False, is_writable=True),
        AccountMeta(owner, is_signer=False, is_writable=False),
        AccountMeta(mint, is_signer=False, is_writable=False),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(ASSOCIATED_TOKEN_PROGRAM_ID, bytes([1]), accounts)


def buy_instruction(
    *,
    state: GlobalState,
    mint: Pubkey,
    user: Pubkey,
    creator: Pubkey,
    token_amount: int,
    max_sol_cost_lamports: int,
) -> Instruction:
    bonding_curve = bonding_curve_address(mint)
    data = BUY_DISCRIMINATOR + struct.pack("<QQ", token_amount, max_sol_cost_lamports)
    accounts = [
        AccountMeta(global_address(), is_signer=False, is_writable=False),
        AccountMeta(state.fee_recipient, is_signer=False, is_writable=True),
        AccountMeta(mint, is_signer=False, is_writable=False),
        AccountMeta(bonding_curve, is_signer=False, is_writable=True),
        AccountMeta(
            associated_token_address(bonding_curve, mint), is_signer=False, is_writable=True
        ),
        AccountMeta(associated_token_address(user, mint), is_signer=False, is_writable=True),
        AccountMeta(user, is_signer=True, is_writable=True),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(creator_vault_address(creator), is_signer=False, is_writable=True),
        AccountMeta(event_authority_address(), is_signer=False, is_writable=False),
        AccountMeta(PUMP_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(PUMP_PROGRAM_ID, data, accounts)
