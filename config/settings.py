from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Wallet (base58 64-byte keypair, never logged)
    wallet_private_key: str = ""

    # Solana RPC
    rpc_url: str = ""
    rpc_timeout_sec: float = 10.0
    commitment: str = "processed"  # blockhash + global state reads
    confirm_commitment: str = "confirmed"

    # Chain state cache
    chain_state_ttl_sec: float = 30.0
    rpc_keepalive_interval_sec: float = 10.0  # 0 disables the keep-alive ping

    # Fees
    fee_split_ratio: float = 0.7  # priority share; remainder is the Jito tip
    compute_unit_limit: int = 250_000
    buy_slippage_bps: int = 100

    # Jito relay (empty = RPC only)
    jito_url: str = "https://mainnet.block-engine.jito.wtf/api/v1/transactions"
    jito_timeout_sec: float = 5.0

    # Metadata backends
    metadata_primary_url: str = ""  # low-latency JSON endpoint, optional
    metadata_secondary_url: str = "https://pump.fun/api/ipfs"
    image_host_url: str = ""  # raw image upload for the primary path
    metadata_primary_timeout_sec: float = 3.0
    metadata_secondary_timeout_sec: float = 15.0

    # Confirmation monitor
    confirm_workers: int = 4
    confirm_queue_size: int = 256
    confirm_poll_interval_sec: float = 2.0
    confirm_timeout_sec: float = 60.0

    # Batch launches
    batch_delay_sec: float = 1.0

    # HTTP API
    api_enabled: bool = True
    api_port: int = 8080
    api_key: str = ""  # empty = launch endpoints refuse all requests
    api_launch_rate_limit: str = "10/minute"

    # Runtime
    stats_interval_sec: int = 60
    log_level: str = "INFO"
    log_json: bool = False  # one JSON object per line on stdout and in the file
    log_dir: str = "logs"


settings = Settings()
