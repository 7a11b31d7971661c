"""Pipeline wiring from settings.

The only place the launcher reads configuration. Missing or invalid
credentials fail here with ConfigError, before any pipeline exists.
"""

from __future__ import annotations

from loguru import logger

from config.settings import Settings
from src.launcher.assembler import TransactionAssembler
from src.launcher.chain_state import ChainStateCache, global_state_fetcher
from src.launcher.confirmation import ConfirmationMonitor
from src.launcher.exceptions import ConfigError
from src.launcher.metadata import MetadataPublisher
from src.launcher.pipeline import LaunchPipeline
from src.launcher.rpc import SolanaRpcClient
from src.launcher.submission import SubmissionRouter
from src.launcher.wallet import LauncherWallet


def create_pipeline(settings: Settings) -> LaunchPipeline:
    if not settings.rpc_url:
        raise ConfigError("RPC_URL is not set")
    if not 0.0 <= settings.fee_split_ratio <= 1.0:
        raise ConfigError(f"FEE_SPLIT_RATIO must be within [0, 1], got {settings.fee_split_ratio}")
    if settings.compute_unit_limit <= 0:
        raise ConfigError(f"COMPUTE_UNIT_LIMIT must be > 0, got {settings.compute_unit_limit}")

    wallet = LauncherWallet(settings.wallet_private_key)
    rpc = SolanaRpcClient(settings.rpc_url, timeout=settings.rpc_timeout_sec)

    cache = ChainStateCache(
        global_state_fetcher(rpc, commitment=settings.commitment),
        ttl_sec=settings.chain_state_ttl_sec,
        keepalive=rpc.get_slot if settings.rpc_keepalive_interval_sec > 0 else None,
        keepalive_interval_sec=settings.rpc_keepalive_interval_sec,
    )
    publisher = MetadataPublisher(
        primary_url=settings.metadata_primary_url,
        secondary_url=settings.metadata_secondary_url,
        image_host_url=settings.image_host_url,
        primary_timeout_sec=settings.metadata_primary_timeout_sec,
        secondary_timeout_sec=settings.metadata_secondary_timeout_sec,
    )
    assembler = TransactionAssembler(
        rpc,
        wallet.keypair,
        commitment=settings.commitment,
        slippage_bps=settings.buy_slippage_bps,
    )
    router = SubmissionRouter(
        rpc,
        relay_url=settings.jito_url,
        relay_timeout_sec=settings.jito_timeout_sec,
        rpc_timeout_sec=settings.rpc_timeout_sec,
        commitment=settings.commitment,
    )
    monitor = ConfirmationMonitor(
        rpc,
        workers=settings.confirm_workers,
        queue_size=settings.confirm_queue_size,
        poll_interval_sec=settings.confirm_poll_interval_sec,
        timeout_sec=settings.confirm_timeout_sec,
        commitment=settings.confirm_commitment,
    )

    if not settings.metadata_primary_url:
        logger.info("[LAUNCH] No primary metadata backend, using IPFS only")
    if not settings.jito_url:
        logger.info("[LAUNCH] Jito relay disabled, submitting via RPC only")

    return LaunchPipeline(
        wallet=wallet,
        rpc=rpc,
        cache=cache,
        publisher=publisher,
        assembler=assembler,
        router=router,
        monitor=monitor,
        fee_split_ratio=settings.fee_split_ratio,
        compute_unit_limit=settings.compute_unit_limit,
        batch_delay_sec=settings.batch_delay_sec,
    )
