"""Distribution records: creation, entity-keyed updates, display labels.

Every distribution record carries an ``entity_id`` (token id, NFT token id or
collection id) and an ``entity_type``. Edits locate records by that id, never
by position, so that changing one entity's amount cannot leak onto another.
"""

from __future__ import annotations

import dataclasses
import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any, TypeVar

from ergo_airdrop.engine.models import (
    AirdropConfig,
    Collection,
    EntityType,
    NFTDistribution,
    NFTDistributionType,
    TokenDistribution,
    TokenDistributionType,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ergo_airdrop.engine.models import NFT, Recipient, Token

logger = logging.getLogger(__name__)

R = TypeVar("R", TokenDistribution, NFTDistribution)

_LABELS = {
    TokenDistributionType.TOTAL: "Total Distribution",
    TokenDistributionType.PER_USER: "Per User Distribution",
    NFTDistributionType.ONE_TO_ONE: "1-to-1 Mapping",
    NFTDistributionType.SET: "Set Distribution",
    NFTDistributionType.RANDOM: "Random Distribution",
}


def create_record(
    entity_id: str,
    entity: Any,
    type: str,  # noqa: A002
    amount: Decimal | int | str,
    field_name: str,
) -> TokenDistribution | NFTDistribution:
    """Build a distribution record tagged with its entity id and type.

    Args:
        entity_id: Stable identifier of the entity (token/NFT id or collection id).
        entity: The Token, NFT or Collection being distributed.
        type: Distribution type tag.
        amount: Requested amount (human units for tokens, count for NFTs).
        field_name: ``"token"``, ``"nft"`` or ``"collection"``.

    Raises:
        ValueError: For an unknown field name or distribution type.
    """
    entity_type = EntityType(field_name)
    if entity_type is EntityType.TOKEN:
        return TokenDistribution(
            token=entity,
            type=TokenDistributionType(type),
            amount=Decimal(str(amount)),
            entity_id=entity_id,
        )
    return NFTDistribution(
        type=NFTDistributionType(type),
        nft=entity if entity_type is EntityType.NFT else None,
        collection=entity if entity_type is EntityType.COLLECTION else None,
        amount=int(amount),
        entity_id=entity_id,
        entity_type=entity_type,
    )


def _nested_id(record: TokenDistribution | NFTDistribution) -> str | None:
    if isinstance(record, TokenDistribution):
        return record.token.token_id
    if record.nft is not None:
        return record.nft.token_id
    if record.collection is not None:
        return record.collection.id
    return None


def find_record_index(records: Sequence[R], entity_id: str) -> int | None:
    """Locate the record for *entity_id*.

    An exact ``entity_id`` match wins. Records created without an entity id
    are then matched on their nested token/NFT/collection id.
    """
    for n, record in enumerate(records):
        if record.entity_id == entity_id:
            return n
    for n, record in enumerate(records):
        if not record.entity_id and _nested_id(record) == entity_id:
            return n
    return None


def _with_amount(record: R, amount: Decimal | int | str) -> R:
    if isinstance(record, TokenDistribution):
        return dataclasses.replace(record, amount=Decimal(str(amount)))
    return dataclasses.replace(record, amount=int(amount))


def update_amount(
    records: Sequence[R],
    entity_id: str,
    new_amount: Decimal | int | str,
) -> list[R]:
    """Return a copy of *records* with one entity's amount replaced.

    At most one record changes. When no record matches, the input sequence
    is returned unchanged (the same object) and a warning is logged.
    """
    index = find_record_index(records, entity_id)
    if index is None:
        logger.warning("No distribution record found for entity %s", entity_id)
        return records  # type: ignore[return-value]

    updated = list(records)
    logger.debug(
        "Updating amount for entity %s from %s to %s",
        entity_id,
        updated[index].amount,
        new_amount,
    )
    updated[index] = _with_amount(updated[index], new_amount)
    return updated


def label_for(type: str) -> str:  # noqa: A002
    """Display label for a distribution type; unknown tags are returned as-is."""
    return _LABELS.get(str(type), str(type))


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


class DistributionPlan:
    """Editable set of distribution records keyed by entity id.

    Token and NFT records keep insertion order. All edits address a record by
    its entity id. The recipients last passed to ``remap`` are remembered so
    that ``1-to-1`` records added later are mapped straight away.
    """

    def __init__(self) -> None:
        self._tokens: dict[str, TokenDistribution] = {}
        self._nfts: dict[str, NFTDistribution] = {}
        self._recipients: list[Recipient] = []

    @property
    def token_distributions(self) -> list[TokenDistribution]:
        return list(self._tokens.values())

    @property
    def nft_distributions(self) -> list[NFTDistribution]:
        return list(self._nfts.values())

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._tokens or entity_id in self._nfts

    def __len__(self) -> int:
        return len(self._tokens) + len(self._nfts)

    def add_token(self, token: Token) -> TokenDistribution:
        """Add a token with a ``total`` distribution of 1; re-adding is a no-op."""
        existing = self._tokens.get(token.token_id)
        if existing is not None:
            logger.debug("Token %s already in distributions", token.token_id)
            return existing
        record = create_record(token.token_id, token, TokenDistributionType.TOTAL, 1, "token")
        assert isinstance(record, TokenDistribution)
        self._tokens[token.token_id] = record
        return record

    def add_collection(self, collection: Collection) -> NFTDistribution:
        """Add a whole collection as one ``1-to-1`` record.

        Member NFTs are copied and marked selected; the collection's own token
        is never distributable. Existing records for the collection or any of
        its members are replaced.
        """
        members = [
            dataclasses.replace(nft, selected=True)
            for nft in collection.nfts
            if nft.token_id != collection.id
        ]
        for entity_id in [collection.id, *(nft.token_id for nft in members)]:
            self._nfts.pop(entity_id, None)

        distributable = dataclasses.replace(collection, nfts=members, selected=True)
        record = create_record(
            collection.id,
            distributable,
            NFTDistributionType.ONE_TO_ONE,
            1,
            "collection",
        )
        assert isinstance(record, NFTDistribution)
        record = dataclasses.replace(record, mapping=self._one_to_one_mapping(members))
        self._nfts[collection.id] = record
        logger.debug("Collection %s added with %d NFTs", collection.id, len(members))
        return record

    def add_nft(self, nft: NFT) -> NFTDistribution:
        """Add a single NFT as a ``1-to-1`` record; re-adding is a no-op."""
        existing = self._nfts.get(nft.token_id)
        if existing is not None:
            return existing
        record = create_record(
            nft.token_id,
            dataclasses.replace(nft, selected=True),
            NFTDistributionType.ONE_TO_ONE,
            1,
            "nft",
        )
        assert isinstance(record, NFTDistribution)
        if self._recipients:
            record = dataclasses.replace(record, mapping=self._one_to_one_mapping([nft]))
        self._nfts[nft.token_id] = record
        return record

    def remove(self, entity_id: str) -> bool:
        """Drop the record for *entity_id*; returns whether one existed."""
        removed = self._tokens.pop(entity_id, None) or self._nfts.pop(entity_id, None)
        return removed is not None

    def set_amount(self, entity_id: str, amount: Decimal | int | str) -> bool:
        """Replace the amount of exactly one record; returns whether it was found."""
        for records in (self._tokens, self._nfts):
            if entity_id in records:
                updated = _with_amount(records[entity_id], amount)
                records[entity_id] = updated  # type: ignore[assignment]
                return True
        logger.warning("No distribution record found for entity %s", entity_id)
        return False

    def set_type(self, entity_id: str, type: str) -> bool:  # noqa: A002
        """Change the distribution type of one record."""
        if entity_id in self._tokens:
            self._tokens[entity_id] = dataclasses.replace(
                self._tokens[entity_id], type=TokenDistributionType(type)
            )
            return True
        if entity_id in self._nfts:
            self._nfts[entity_id] = dataclasses.replace(
                self._nfts[entity_id], type=NFTDistributionType(type)
            )
            return True
        return False

    def set_mapping(self, entity_id: str, mapping: dict[str, str]) -> bool:
        """Replace the explicit NFT -> recipient mapping of one NFT record."""
        if entity_id not in self._nfts:
            return False
        self._nfts[entity_id] = dataclasses.replace(self._nfts[entity_id], mapping=dict(mapping))
        return True

    def _one_to_one_mapping(self, nfts: Sequence[NFT]) -> dict[str, str]:
        # placeholders until recipients are known
        if not self._recipients:
            return {nft.token_id: f"temp_{n}" for n, nft in enumerate(nfts)}
        return {
            nft.token_id: self._recipients[n].id
            for n, nft in enumerate(nfts)
            if n < len(self._recipients)
        }

    def remap(self, recipients: Sequence[Recipient]) -> None:
        """Map the i-th NFT of every ``1-to-1`` record to the i-th recipient.

        NFTs beyond the recipient count stay unmapped.
        """
        self._recipients = list(recipients)
        for entity_id, record in self._nfts.items():
            if record.type is not NFTDistributionType.ONE_TO_ONE:
                continue
            nfts = [record.nft] if record.nft is not None else []
            if record.collection is not None:
                nfts = record.collection.nfts
            mapping = {
                nft.token_id: recipients[n].id
                for n, nft in enumerate(nfts)
                if n < len(recipients)
            }
            self._nfts[entity_id] = dataclasses.replace(record, mapping=mapping)
        logger.debug("Remapped 1-to-1 distributions onto %d recipients", len(recipients))

    def clear(self) -> None:
        self._tokens.clear()
        self._nfts.clear()
        self._recipients = []

    def to_config(self, recipients: Sequence[Recipient]) -> AirdropConfig:
        """Snapshot the plan into an ``AirdropConfig``."""
        return AirdropConfig(
            token_distributions=self.token_distributions,
            nft_distributions=self.nft_distributions,
            recipients=list(recipients),
        )
