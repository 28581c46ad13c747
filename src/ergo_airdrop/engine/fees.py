"""Fee estimation from transaction shape.

Pure and I/O free: runs once on the first build of an airdrop and may run
again after the single fee rebuild.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ergo_airdrop.ergo.transaction import estimate_size

if TYPE_CHECKING:
    from ergo_airdrop.config.settings import FeeConfig
    from ergo_airdrop.ergo.transaction import UnsignedTransaction

# Fee rate: 1_000_000 nanoERG per 1024 bytes (0.001 ERG / KiB)
DEFAULT_FEE_PER_KB = 1_000_000
DEFAULT_FEE_RATE_BYTES = 1024
DEFAULT_MIN_FEE = 1_000_000


@dataclass(frozen=True)
class TransactionShape:
    """What the estimator needs to know about a transaction."""

    input_count: int
    output_count: int
    size: int

    @classmethod
    def of(cls, tx: UnsignedTransaction) -> TransactionShape:
        return cls(
            input_count=len(tx.inputs),
            output_count=len(tx.outputs),
            size=tx.estimated_size,
        )


class FeeEstimator:
    """Recommend a miner fee for a transaction.

    The recommendation is ``ceil(size * fee_per_kb / 1024)`` floored at the
    minimum fee, so it never decreases as inputs or outputs are added.
    """

    def __init__(
        self,
        *,
        fee_per_kb: int = DEFAULT_FEE_PER_KB,
        min_fee: int = DEFAULT_MIN_FEE,
    ) -> None:
        self._fee_per_kb = fee_per_kb
        self._min_fee = min_fee

    @classmethod
    def from_config(cls, config: FeeConfig) -> FeeEstimator:
        return cls(fee_per_kb=config.fee_per_kb, min_fee=config.default_fee)

    def recommend(self, shape: TransactionShape) -> int:
        """Recommended minimum fee (nanoERG) for a transaction shape."""
        return max(self._min_fee, _calculate_fee(shape.size, self._fee_per_kb))

    def recommend_for(self, tx: UnsignedTransaction) -> int:
        return self.recommend(TransactionShape.of(tx))

    def estimate_from_shape(self, input_count: int, output_count: int, token_count: int = 0) -> int:
        """Recommend a fee before any transaction exists (previews)."""
        size = estimate_size(input_count, output_count, token_count)
        return self.recommend(
            TransactionShape(input_count=input_count, output_count=output_count, size=size)
        )


def _calculate_fee(size_bytes: int, rate: int, rate_bytes: int = DEFAULT_FEE_RATE_BYTES) -> int:
    """Calculate mining fee: ceil(size * rate / rate_bytes)."""
    return (size_bytes * rate + rate_bytes - 1) // rate_bytes
