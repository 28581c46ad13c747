"""Airdrop preview: what each recipient would receive, without any I/O."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ergo_airdrop.engine.fees import FeeEstimator
from ergo_airdrop.engine.models import EntityType
from ergo_airdrop.engine.planner import plan_transfers

if TYPE_CHECKING:
    from ergo_airdrop.engine.models import AirdropConfig

INDIVIDUAL_NFTS = "individual-nfts"
NANOERG_DECIMALS = 9


def format_amount(raw: int, decimals: int) -> str:
    """Render a raw integer amount in human units, without trailing zeros."""
    if decimals <= 0:
        return str(raw)
    whole, frac = divmod(raw, 10**decimals)
    digits = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{digits}" if digits else str(whole)


@dataclass(frozen=True)
class PreviewRow:
    recipient_id: str
    address: str
    name: str
    entity_id: str
    entity_type: EntityType
    token_id: str
    amount: int
    display_amount: str


@dataclass
class AirdropPreview:
    """Per-recipient transfers plus aggregate counts and the estimated fee."""

    rows: list[PreviewRow] = field(default_factory=list)
    total_recipients: int = 0
    token_counts: dict[str, int] = field(default_factory=dict)
    nft_counts: dict[str, int] = field(default_factory=dict)
    estimated_fee: int = 0

    @property
    def estimated_fee_erg(self) -> str:
        return format_amount(self.estimated_fee, NANOERG_DECIMALS)

    def rows_for(self, recipient_id: str) -> list[PreviewRow]:
        return [r for r in self.rows if r.recipient_id == recipient_id]


def generate_preview(
    config: AirdropConfig,
    *,
    estimator: FeeEstimator | None = None,
    input_count: int = 1,
    rng: random.Random | None = None,
) -> AirdropPreview:
    """Build a preview of *config*.

    ``token_counts`` sums raw amounts per token id. ``nft_counts`` counts
    NFTs per collection id; single-NFT distributions are counted under
    ``"individual-nfts"``. The fee assumes *input_count* inputs plus one
    change and one fee output. A ``random`` distribution is shuffled with
    *rng*, so the assignment shown is only one possible outcome.
    """
    estimator = estimator or FeeEstimator()
    decimals = {d.token.token_id: d.token.decimals for d in config.token_distributions}
    preview = AirdropPreview(total_recipients=len(config.recipients))

    for transfer in plan_transfers(config, rng):
        preview.rows.append(
            PreviewRow(
                recipient_id=transfer.recipient.id,
                address=transfer.recipient.address,
                name=transfer.recipient.name,
                entity_id=transfer.entity_id,
                entity_type=transfer.entity_type,
                token_id=transfer.token_id,
                amount=transfer.amount,
                display_amount=format_amount(transfer.amount, decimals.get(transfer.token_id, 0)),
            )
        )
        if transfer.entity_type is EntityType.TOKEN:
            counts, key = preview.token_counts, transfer.token_id
        elif transfer.entity_type is EntityType.COLLECTION:
            counts, key = preview.nft_counts, transfer.entity_id
        else:
            counts, key = preview.nft_counts, INDIVIDUAL_NFTS
        counts[key] = counts.get(key, 0) + (
            transfer.amount if transfer.entity_type is EntityType.TOKEN else 1
        )

    preview.estimated_fee = estimator.estimate_from_shape(
        input_count,
        len(preview.rows) + 2,
        len(preview.rows),
    )
    return preview
