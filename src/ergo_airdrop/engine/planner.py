"""Transfer planning: who receives how much of which token.

Turns an ``AirdropConfig`` into a flat list of planned transfers, one per
future transaction output. Shared by transaction assembly and previews.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from fractions import Fraction
from typing import TYPE_CHECKING

from ergo_airdrop.engine.models import (
    EntityType,
    NFTDistributionType,
    TokenDistributionType,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ergo_airdrop.engine.models import (
        AirdropConfig,
        NFTDistribution,
        Recipient,
        TokenDistribution,
    )

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannedTransfer:
    """One output: *amount* raw units of *token_id* to *recipient*."""

    entity_id: str
    entity_type: EntityType
    recipient: Recipient
    token_id: str
    amount: int


def token_amount_per_recipient(dist: TokenDistribution, recipient_count: int) -> int:
    """Raw token amount each recipient receives.

    ``total`` divides the human amount by the recipient count before scaling
    by ``10**decimals``; ``per-user`` scales the amount as is. Both floor, so
    a ``total`` distribution never pays out more than requested.
    """
    scale = 10**dist.token.decimals
    amount = Fraction(dist.amount)
    if dist.type is TokenDistributionType.TOTAL:
        amount /= recipient_count
    return math.floor(amount * scale)


def _deliverable(recipient: Recipient, entity_id: str) -> bool:
    if recipient.address:
        return True
    logger.warning("Recipient %s has no address, skipping output for %s", recipient.id, entity_id)
    return False


def plan_token_transfers(
    dist: TokenDistribution,
    recipients: Sequence[Recipient],
) -> list[PlannedTransfer]:
    if not recipients:
        return []
    entity_id = dist.entity_id or dist.token.token_id
    amount = token_amount_per_recipient(dist, len(recipients))
    if amount <= 0:
        logger.warning("Token %s amount rounds to zero per recipient, skipping", entity_id)
        return []
    return [
        PlannedTransfer(
            entity_id=entity_id,
            entity_type=EntityType.TOKEN,
            recipient=recipient,
            token_id=dist.token.token_id,
            amount=amount,
        )
        for recipient in recipients
        if _deliverable(recipient, entity_id)
    ]


def plan_nft_transfers(
    dist: NFTDistribution,
    recipients: Sequence[Recipient],
    rng: random.Random,
) -> list[PlannedTransfer]:
    """Plan the outputs of one NFT distribution.

    - ``1-to-1``: one output per mapping entry; unknown recipients are skipped
    - ``set``: every recipient receives every selected NFT
    - ``random``: selected NFTs are shuffled and paired with recipients;
      only ``min(nfts, recipients)`` NFTs are handed out
    """
    entity_id = dist.entity_id or (
        dist.nft.token_id if dist.nft else dist.collection.id if dist.collection else ""
    )
    if not recipients:
        return []

    def transfer(recipient: Recipient, token_id: str, amount: int) -> PlannedTransfer:
        return PlannedTransfer(
            entity_id=entity_id,
            entity_type=dist.entity_type,
            recipient=recipient,
            token_id=token_id,
            amount=amount,
        )

    if dist.type is NFTDistributionType.ONE_TO_ONE:
        by_id: dict[str, Recipient] = {}
        for recipient in recipients:
            by_id.setdefault(recipient.id, recipient)
        planned = []
        for nft_id, recipient_id in dist.mapping.items():
            target = by_id.get(recipient_id)
            if target is None:
                logger.warning(
                    "NFT %s mapped to unknown recipient %s, skipping", nft_id, recipient_id
                )
                continue
            if _deliverable(target, entity_id):
                planned.append(transfer(target, nft_id, 1))
        return planned

    nfts = dist.nfts_to_distribute
    amount = dist.amount or 1
    if dist.type is NFTDistributionType.SET:
        return [
            transfer(recipient, nft.token_id, amount)
            for recipient in recipients
            if _deliverable(recipient, entity_id)
            for nft in nfts
        ]

    shuffled = list(nfts)
    rng.shuffle(shuffled)
    pairs = min(len(shuffled), len(recipients))
    if len(shuffled) > pairs:
        logger.info(
            "Random distribution %s: %d NFTs left undistributed",
            entity_id,
            len(shuffled) - pairs,
        )
    planned = []
    for n in range(pairs):
        recipient = recipients[n % len(recipients)]
        if _deliverable(recipient, entity_id):
            planned.append(transfer(recipient, shuffled[n].token_id, amount))
    return planned


def plan_transfers(
    config: AirdropConfig,
    rng: random.Random | None = None,
) -> list[PlannedTransfer]:
    """Plan every output of an airdrop, token distributions first."""
    rng = rng or random.Random()  # noqa: S311
    planned: list[PlannedTransfer] = []
    for token_dist in config.token_distributions:
        planned.extend(plan_token_transfers(token_dist, config.recipients))
    for nft_dist in config.nft_distributions:
        planned.extend(plan_nft_transfers(nft_dist, config.recipients, rng))
    return planned
