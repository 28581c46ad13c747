"""Airdrop domain models.

Wallet holdings (Token, NFT, Collection), recipients, and the entity-tagged
distribution records that make up an ``AirdropConfig``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal


class TokenDistributionType(enum.StrEnum):
    """How a token amount is spread over recipients."""

    TOTAL = "total"
    PER_USER = "per-user"


class NFTDistributionType(enum.StrEnum):
    """How NFTs are assigned to recipients."""

    ONE_TO_ONE = "1-to-1"
    SET = "set"
    RANDOM = "random"


class EntityType(enum.StrEnum):
    """Kind of entity a distribution record refers to."""

    TOKEN = "token"
    NFT = "nft"
    COLLECTION = "collection"


# ---------------------------------------------------------------------------
# Holdings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Token:
    """A token held by the wallet; ``amount`` is raw (integer) units."""

    token_id: str
    name: str
    decimals: int
    amount: int


@dataclass
class NFT:
    """A single non-fungible token."""

    token_id: str
    name: str
    description: str = ""
    image_url: str = ""
    collection_id: str | None = None  # back-reference, not ownership
    selected: bool = False


@dataclass
class Collection:
    """A group of NFTs sharing a collection identity; owns its members."""

    id: str
    name: str
    description: str = ""
    nfts: list[NFT] = field(default_factory=list)
    selected: bool = False

    @property
    def selected_nfts(self) -> list[NFT]:
        return [n for n in self.nfts if n.selected]


@dataclass(frozen=True)
class Recipient:
    """An airdrop recipient. Duplicate addresses are allowed."""

    id: str
    address: str
    name: str = ""


# ---------------------------------------------------------------------------
# Distribution records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenDistribution:
    """Distribution of one token; ``amount`` is in human units."""

    token: Token
    type: TokenDistributionType
    amount: Decimal
    entity_id: str = ""
    entity_type: EntityType = EntityType.TOKEN


@dataclass(frozen=True)
class NFTDistribution:
    """Distribution of a single NFT or of a whole collection.

    ``mapping`` (NFT token id -> recipient id) is only used by ``1-to-1``.
    """

    type: NFTDistributionType
    nft: NFT | None = None
    collection: Collection | None = None
    amount: int | None = None
    mapping: dict[str, str] = field(default_factory=dict)
    entity_id: str = ""
    entity_type: EntityType = EntityType.NFT

    @property
    def nfts_to_distribute(self) -> list[NFT]:
        """Selected NFTs of the referenced collection, or the single NFT."""
        if self.nft is not None:
            return [self.nft]
        if self.collection is not None:
            return self.collection.selected_nfts
        return []


@dataclass(frozen=True)
class AirdropConfig:
    """Aggregate root of an airdrop plan."""

    token_distributions: list[TokenDistribution] = field(default_factory=list)
    nft_distributions: list[NFTDistribution] = field(default_factory=list)
    recipients: list[Recipient] = field(default_factory=list)


def validate_config(config: AirdropConfig) -> list[str]:
    """Return human-readable problems with an airdrop configuration."""
    errors: list[str] = []
    if not config.token_distributions and not config.nft_distributions:
        errors.append("No distributions configured")
    if not config.recipients:
        errors.append("No recipients specified")

    for n, dist in enumerate(config.token_distributions, start=1):
        if not dist.token.token_id:
            errors.append(f"Token distribution #{n}: No token ID specified")
        if dist.amount <= 0:
            errors.append(f"Token distribution #{n}: Invalid amount")

    for n, nft_dist in enumerate(config.nft_distributions, start=1):
        if nft_dist.nft is None and nft_dist.collection is None:
            errors.append(f"NFT distribution #{n}: No NFT or collection specified")
    return errors
