"""Fee-payer wallet — keypair loading and balance check.

Private key is loaded ONCE at startup and never logged or exposed.
Only the public key is shown in logs and __repr__.
"""

from __future__ import annotations

import base58
from loguru import logger
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from src.launcher.exceptions import ConfigError, RpcError
from src.launcher.fees import LAMPORTS_PER_SOL
from src.launcher.rpc import SolanaRpcClient


class LauncherWallet:
    """Signing identity that pays fees and creates tokens.

    Security: private key is only accessible via .keypair property.
    """

    def __init__(self, private_key_base58: str) -> None:
        if not private_key_base58:
            raise ConfigError("Wallet private key is empty")
        try:
            self._keypair = Keypair.from_bytes(base58.b58decode(private_key_base58.strip()))
        except ValueError as e:
            # error text can echo key material, keep it out of the message
            raise ConfigError("Wallet private key is not a valid base58 keypair") from e
        logger.info(f"[WALLET] Loaded wallet: {self.pubkey_str}")

    def __repr__(self) -> str:
        return f"LauncherWallet(pubkey={self.pubkey_str})"

    @property
    def pubkey(self) -> Pubkey:
        return self._keypair.pubkey()

    @property
    def pubkey_str(self) -> str:
        return str(self._keypair.pubkey())

    @property
    def keypair(self) -> Keypair:
        return self._keypair

    async def get_sol_balance(self, rpc: SolanaRpcClient) -> float:
        """Fetch SOL balance in SOL (not lamports). Returns 0.0 on error."""
        try:
            lamports = await rpc.get_balance(self.pubkey_str)
        except RpcError as e:
            logger.warning(f"[WALLET] getBalance failed: {e}")
            return 0.0
        return lamports / LAMPORTS_PER_SOL
