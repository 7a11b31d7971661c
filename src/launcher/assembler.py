"""Transaction assembler — ordered instructions, fresh blockhash, signing.

Instruction order is fixed:
  1. SetComputeUnitLimit
  2. SetComputeUnitPrice (priority share of the fee budget)
  3. pump.fun create + user ATA + buy
  4. SOL transfer to a random Jito tip account (tip share; omitted if 0)

The blockhash is fetched right before signing, never reused from earlier
in the pipeline: a stale blockhash gets the transaction rejected.
"""

from __future__ import annotations

import random
from collections.abc import Sequence

from loguru import logger
from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price  # type: ignore[import-untyped]
from solders.hash import Hash  # type: ignore[import-untyped]
from solders.instruction import Instruction  # type: ignore[import-untyped]
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.message import MessageV0  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]
from solders.system_program import TransferParams, transfer  # type: ignore[import-untyped]
from solders.transaction import VersionedTransaction  # type: ignore[import-untyped]

from src.launcher import pump_program
from src.launcher.exceptions import AssemblyError, RpcError
from src.launcher.fees import sol_to_lamports
from src.launcher.models import (
    AssembledTransaction,
    ChainStateSnapshot,
    FeeAllocation,
    LaunchRequest,
    MetadataRecord,
    MintIdentity,
)
from src.launcher.rpc import SolanaRpcClient

# 8 static Jito tip accounts
JITO_TIP_ACCOUNTS: tuple[str, ...] = (
    "96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5",
    "HFqU5x63VTqvQss8hp11i4wVV8bD44PvwucfZ2bU7gRe",
    "Cw8CFyM9FkoMi7K7Crf6HNQqf4uEMzpKw6QNghXLvLkY",
    "ADaUMid9yfUytqMBgopwjb2DTLSokTSzL1zt6iGPaS49",
    "DfXygSm4jCyNCybVYYK6DwvWqjKee8pbDmJGcLWNDXjh",
    "ADuUkR4vqLUMWXxW9gh6D6L8pMSawimctcNZ5pGwDcEt",
    "DttWaMuVvTiduZRnguLF7jNxTgiMBZ1hyAumKUiL2KRL",
    "3AVi9Tg9Uo68tJfuvoKvqKNWKkC5wPdSSdeBnizKZ6jT",
)

MAX_TX_SIZE = 1232  # bytes, Solana packet limit
DEFAULT_SLIPPAGE_BPS = 100


class TransactionAssembler:
    """Builds and signs the create-and-buy transaction for one launch."""

    def __init__(
        self,
        rpc: SolanaRpcClient,
        payer: Keypair,
        *,
        commitment: str = "processed",
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
        tip_accounts: Sequence[str] = JITO_TIP_ACCOUNTS,
        rng: random.Random | None = None,
    ) -> None:
        if not tip_accounts:
            raise ValueError("tip_accounts must not be empty")
        self._rpc = rpc
        self._payer = payer
        self._commitment = commitment
        self._slippage_bps = slippage_bps
        self._tip_accounts = [Pubkey.from_string(a) for a in tip_accounts]
        self._rng = rng or random.Random()

    async def assemble(
        self,
        snapshot: ChainStateSnapshot | None,
        request: LaunchRequest,
        metadata: MetadataRecord | None,
        fees: FeeAllocation,
        mint: MintIdentity,
    ) -> AssembledTransaction:
        if snapshot is None:
            raise AssemblyError("Chain state snapshot missing")
        if metadata is None or not metadata.uri:
            raise AssemblyError("Metadata URI missing")
        mint_keypair = mint.keypair  # AssemblyError if already used

        sol_lamports = sol_to_lamports(request.initial_buy_sol)
        token_amount = pump_program.buy_token_amount_from_sol(snapshot.state, sol_lamports)
        if token_amount <= 0:
            raise AssemblyError(
                f"Buy of {sol_lamports} lamports yields no tokens on current curve"
            )

        instructions = self.build_instructions(
            snapshot=snapshot,
            request=request,
            metadata_uri=metadata.uri,
            fees=fees,
            mint=mint.pubkey,
            token_amount=token_amount,
            sol_lamports=sol_lamports,
        )

        # Fresh expiry anchor, immediately before signing
        try:
            expiry = await self._rpc.get_latest_blockhash(self._commitment)
        except RpcError as e:
            raise AssemblyError(f"Blockhash fetch failed: {e}") from e

        try:
            msg = MessageV0.try_compile(
                payer=self._payer.pubkey(),
                instructions=instructions,
                address_lookup_table_accounts=[],
                recent_blockhash=Hash.from_string(expiry.blockhash),
            )
            tx = VersionedTransaction(msg, [self._payer, mint_keypair])
        except Exception as e:
            raise AssemblyError(f"TX compile/sign failed: {e}") from e
        finally:
            mint.discard()

        raw = bytes(tx)
        if len(raw) > MAX_TX_SIZE:
            raise AssemblyError(f"Transaction too large: {len(raw)} > {MAX_TX_SIZE} bytes")

        signature = str(tx.signatures[0])
        logger.debug(
            f"[ASSEMBLE] {request.symbol}: {len(instructions)} instructions, "
            f"{len(raw)} bytes, tokens={token_amount}, "
            f"blockhash={expiry.blockhash[:16]}..."
        )
        return AssembledTransaction(
            raw=raw,
            signature=signature,
            mint_address=mint.address,
            expiry=expiry,
            instruction_count=len(instructions),
            token_amount=token_amount,
            sol_lamports=sol_lamports,
            fees=fees,
        )

    def build_instructions(
        self,
        *,
        snapshot: ChainStateSnapshot,
        request: LaunchRequest,
        metadata_uri: str,
        fees: FeeAllocation,
        mint: Pubkey,
        token_amount: int,
        sol_lamports: int,
    ) -> list[Instruction]:
        user = self._payer.pubkey()
        instructions = [
            set_compute_unit_limit(fees.compute_unit_limit),
            set_compute_unit_price(fees.micro_lamports_per_cu),
            pump_program.create_instruction(
                mint=mint,
                user=user,
                name=request.name,
                symbol=request.symbol,
                uri=metadata_uri,
            ),
            pump_program.create_ata_idempotent_instruction(payer=user, owner=user, mint=mint),
            pump_program.buy_instruction(
                state=snapshot.state,
                mint=mint,
                user=user,
                creator=user,
                token_amount=token_amount,
                max_sol_cost_lamports=pump_program.max_sol_cost(
                    sol_lamports, self._slippage_bps
                ),
            ),
        ]

        if fees.tip_lamports > 0:
            tip_account = self._rng.choice(self._tip_accounts)
            instructions.append(
                transfer(
                    TransferParams(
                        from_pubkey=user,
                        to_pubkey=tip_account,
                        lamports=fees.tip_lamports,
                    )
                )
            )
        return instructions
