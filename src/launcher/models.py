"""Data models for the launch pipeline.

Request input is a frozen pydantic model (validated once, consumed once).
Intermediate and result objects are plain dataclasses, frozen where the
value must not change after it is produced.
"""

from __future__ import annotations

import base64
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from src.launcher.exceptions import AssemblyError
from src.launcher.pump_program import GlobalState


class LaunchRequest(BaseModel):
    """One user launch intent."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=32)
    symbol: str = Field(min_length=1, max_length=10)
    description: str = ""
    twitter: str = ""
    telegram: str = ""
    website: str = ""
    initial_buy_sol: float = Field(gt=0)
    total_fee_sol: float = Field(ge=0)
    image_data: bytes | None = None  # raw image bytes, used when no hosted URL
    image_url: str | None = None  # pre-hosted image

    @field_validator("name", "symbol")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @property
    def resolved_description(self) -> str:
        return self.description or f"{self.name} - Launched on pump.fun"


@dataclass(frozen=True)
class ChainStateSnapshot:
    """Cached global launch parameters. Usable only while fresh."""

    state: GlobalState
    fetched_at: float  # monotonic seconds
    ttl_sec: float

    def is_fresh(self, now: float) -> bool:
        return now - self.fetched_at < self.ttl_sec

    def age_sec(self, now: float) -> float:
        return now - self.fetched_at


@dataclass(frozen=True)
class MetadataRecord:
    """Published off-chain metadata. `backend` is "primary" or "secondary"."""

    uri: str
    backend: str
    latency_ms: float
    image_url: str | None = None


@dataclass(frozen=True)
class FeeAllocation:
    """Total fee budget split into priority fee and relay tip (lamports)."""

    priority_lamports: int
    tip_lamports: int
    split_ratio: float
    compute_unit_limit: int

    @property
    def total_lamports(self) -> int:
        return self.priority_lamports + self.tip_lamports

    @property
    def micro_lamports_per_cu(self) -> int:
        return self.priority_lamports * 1_000_000 // self.compute_unit_limit


@dataclass(frozen=True)
class ExpiryAnchor:
    """Recent blockhash + last block height at which a tx stays valid."""

    blockhash: str
    last_valid_block_height: int


@dataclass(frozen=True)
class AssembledTransaction:
    """Signed, broadcast-ready transaction."""

    raw: bytes
    signature: str
    mint_address: str
    expiry: ExpiryAnchor
    instruction_count: int
    token_amount: int
    sol_lamports: int
    fees: FeeAllocation

    @property
    def base64(self) -> str:
        return base64.b64encode(self.raw).decode("ascii")


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of the broadcast. `path` is "relay" or "rpc"."""

    signature: str
    path: str
    latency_ms: float


class ConfirmationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class ConfirmationRecord:
    """Settlement outcome. Mutated only by the confirmation monitor."""

    signature: str
    status: ConfirmationStatus = ConfirmationStatus.PENDING
    error: str | None = None
    updated_at: float = field(default_factory=time.time)


@dataclass
class LaunchResult:
    """Structured result of one launch. Never raised, always returned."""

    success: bool
    elapsed_ms: float
    signature: str | None = None
    token_address: str | None = None
    error: str | None = None
    stage_timings: dict[str, float] = field(default_factory=dict)
    submission_path: str | None = None
    metadata_backend: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            return {
                "success": False,
                "error": self.error,
                "elapsedMs": round(self.elapsed_ms),
                "perStageTimings": self.stage_timings,
            }
        return {
            "success": True,
            "signature": self.signature,
            "tokenAddress": self.token_address,
            "elapsedMs": round(self.elapsed_ms),
            "perStageTimings": self.stage_timings,
            "submissionPath": self.submission_path,
            "metadataBackend": self.metadata_backend,
        }


class MintIdentity:
    """Freshly generated on-chain identity of the new token.

    Generated once per request. The keypair is released after signing;
    any later use raises AssemblyError.
    """

    def __init__(self, keypair: Keypair) -> None:
        self._keypair: Keypair | None = keypair
        self._pubkey = keypair.pubkey()

    @classmethod
    def generate(cls) -> MintIdentity:
        return cls(Keypair())

    def __repr__(self) -> str:
        return f"MintIdentity(address={self.address})"

    @property
    def pubkey(self) -> Pubkey:
        return self._pubkey

    @property
    def address(self) -> str:
        return str(self._pubkey)

    @property
    def is_discarded(self) -> bool:
        return self._keypair is None

    @property
    def keypair(self) -> Keypair:
        if self._keypair is None:
            raise AssemblyError(f"Mint keypair for {self.address} already used")
        return self._keypair

    def discard(self) -> None:
        self._keypair = None
