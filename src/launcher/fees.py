"""Fee allocation — split one fee budget into priority fee + relay tip.

Pure logic, no I/O. Integer lamports throughout; the tip share is floored
and the remainder goes to the priority share, so the two always sum to
the requested total.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal

from src.launcher.models import FeeAllocation

LAMPORTS_PER_SOL = 1_000_000_000
DEFAULT_COMPUTE_UNIT_LIMIT = 250_000
DEFAULT_SPLIT_RATIO = 0.7  # 70% priority fee / 30% relay tip


def sol_to_lamports(sol: float | Decimal) -> int:
    """Convert SOL to lamports, flooring sub-lamport dust."""
    lamports = Decimal(str(sol)) * LAMPORTS_PER_SOL
    return int(lamports.to_integral_value(rounding=ROUND_FLOOR))


def allocate(
    total_fee_lamports: int,
    ratio: float = DEFAULT_SPLIT_RATIO,
    *,
    compute_unit_limit: int = DEFAULT_COMPUTE_UNIT_LIMIT,
) -> FeeAllocation:
    """Split `total_fee_lamports`; `ratio` is the priority share in [0, 1]."""
    if total_fee_lamports < 0:
        raise ValueError(f"Fee budget must be >= 0, got {total_fee_lamports}")
    if not 0.0 <= ratio <= 1.0:
        raise ValueError(f"Split ratio must be within [0, 1], got {ratio}")
    if compute_unit_limit <= 0:
        raise ValueError(f"Compute unit limit must be > 0, got {compute_unit_limit}")

    tip_share = Decimal(1) - Decimal(str(ratio))
    tip = int((Decimal(total_fee_lamports) * tip_share).to_integral_value(rounding=ROUND_FLOOR))
    priority = total_fee_lamports - tip

    return FeeAllocation(
        priority_lamports=priority,
        tip_lamports=tip,
        split_ratio=ratio,
        compute_unit_limit=compute_unit_limit,
    )
