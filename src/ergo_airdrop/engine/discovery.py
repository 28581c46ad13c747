"""Collection discovery: group NFT holdings by the collection named in their metadata.

Discovery steps:
1. Keep holdings with amount == 1 (NFT candidates)
2. Fetch each candidate's issuing box concurrently (bounded fan-out)
3. Decode the registers. An R7 token id naming a token found in the box assets
   or the holdings marks membership of that collection token; otherwise a
   ``Collection:<name>`` text in R4/R5 does
4. Group members by collection id in input order; the rest are standalone

A failed fetch or undecodable register only demotes that one candidate to a
standalone NFT. Discovery itself never fails because of a single token.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ergo_airdrop.engine.models import NFT, Collection
from ergo_airdrop.ergo.registers import DecodeError, decode_register

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ergo_airdrop.config.settings import DiscoveryConfig
    from ergo_airdrop.engine.models import Token
    from ergo_airdrop.wallet.connector import MetadataFetcher

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION_REGISTERS = ("R4", "R5")
DEFAULT_COLLECTION_PREFIX = "Collection:"
_DESCRIPTION_REGISTER = "R5"
_COLLECTION_TOKEN_REGISTER = "R7"
_TOKEN_ID_LENGTH = 32
_MEDIA_REGISTERS = ("R9", "R6")
_MEDIA_SCHEMES = ("http://", "https://", "ipfs://")


@dataclass
class DiscoveryResult:
    """Collections and standalone NFTs found among wallet holdings."""

    collections: list[Collection] = field(default_factory=list)
    standalone_nfts: list[NFT] = field(default_factory=list)


@dataclass(frozen=True)
class _CandidateMetadata:
    token: Token
    collection_id: str | None = None
    collection_name: str | None = None
    description: str = ""
    image_url: str = ""


def collection_id_for(name: str) -> str:
    """Stable collection id derived from its name."""
    return f"collection_{name.encode('utf-8').hex()}"


def is_nft_candidate(token: Token) -> bool:
    return token.amount == 1


class CollectionDiscovery:
    """Classify wallet holdings into NFT collections and standalone NFTs.

    Usage::

        discovery = CollectionDiscovery(explorer)
        result = await discovery.discover(tokens)
    """

    def __init__(
        self,
        fetcher: MetadataFetcher,
        *,
        max_concurrency: int = 8,
        collection_registers: Sequence[str] = DEFAULT_COLLECTION_REGISTERS,
        collection_prefix: str = DEFAULT_COLLECTION_PREFIX,
    ) -> None:
        self._fetcher = fetcher
        self._max_concurrency = max(1, max_concurrency)
        self._collection_registers = tuple(collection_registers)
        self._prefix = collection_prefix

    @classmethod
    def from_config(cls, fetcher: MetadataFetcher, config: DiscoveryConfig) -> CollectionDiscovery:
        return cls(
            fetcher,
            max_concurrency=config.max_concurrency,
            collection_registers=config.collection_registers,
            collection_prefix=config.collection_prefix,
        )

    async def discover(self, holdings: Sequence[Token]) -> DiscoveryResult:
        """Group NFT candidates among *holdings* by collection.

        Output order follows input order regardless of which fetch finishes
        first.
        """
        candidates = [t for t in holdings if is_nft_candidate(t)]
        held_names = {t.token_id: t.name for t in holdings}
        logger.info("Processing %d potential NFTs for collection discovery", len(candidates))

        semaphore = asyncio.Semaphore(self._max_concurrency)
        # gather() returns results in argument order
        metadata = await asyncio.gather(
            *(self._inspect(t, held_names, semaphore) for t in candidates)
        )

        collections: dict[str, Collection] = {}
        result = DiscoveryResult()
        for meta in metadata:
            nft = NFT(
                token_id=meta.token.token_id,
                name=meta.token.name,
                description=meta.description,
                image_url=meta.image_url,
            )
            if meta.collection_id is None or meta.collection_name is None:
                result.standalone_nfts.append(nft)
                continue
            collection_id = meta.collection_id
            nft.collection_id = collection_id
            if collection_id not in collections:
                collections[collection_id] = Collection(id=collection_id, name=meta.collection_name)
            collections[collection_id].nfts.append(nft)

        result.collections = list(collections.values())
        logger.info(
            "Discovered %d collections containing %d NFTs, %d standalone NFTs",
            len(result.collections),
            sum(len(c.nfts) for c in result.collections),
            len(result.standalone_nfts),
        )
        return result

    async def _inspect(
        self,
        token: Token,
        held_names: dict[str, str],
        semaphore: asyncio.Semaphore,
    ) -> _CandidateMetadata:
        try:
            async with semaphore:
                box = await self._fetcher.get_box_by_token_id(token.token_id)
            box = box or {}
            registers: dict[str, Any] = box.get("registers") or {}
            known = dict(held_names)
            for asset in box.get("assets") or []:
                asset_id = asset["token_id"]
                known[asset_id] = asset.get("name") or known.get(asset_id, "")
            return self._read_metadata(token, registers, known)
        except Exception:
            logger.warning(
                "Metadata lookup failed for token %s, treating as standalone NFT",
                token.token_id,
                exc_info=True,
            )
            return _CandidateMetadata(token=token)

    def _read_metadata(
        self,
        token: Token,
        registers: dict[str, Any],
        known: dict[str, str] | None = None,
    ) -> _CandidateMetadata:
        """Extract collection membership, description and media from *registers*.

        *known* maps token ids the caller can resolve (box assets, holdings)
        to their names. An R7 collection token is only trusted when listed
        there.
        """
        known = known or {}
        texts: dict[str, str] = {}
        collection_token: str | None = None
        for name, value in registers.items():
            if not isinstance(value, str):
                continue
            decoded = decode_register(value)
            if isinstance(decoded, DecodeError):
                logger.debug("Register %s of token %s: %s", name, token.token_id, decoded.reason)
                continue
            if (
                name == _COLLECTION_TOKEN_REGISTER
                and isinstance(decoded.value, bytes)
                and len(decoded.value) == _TOKEN_ID_LENGTH
            ):
                collection_token = decoded.value.hex()
            elif decoded.text is not None:
                texts[name] = decoded.text

        collection_id: str | None = None
        collection_name: str | None = None
        collection_register = None
        if collection_token is not None and collection_token in known:
            collection_id = collection_token
            collection_name = known[collection_token] or f"Collection {collection_token[:8]}"
        else:
            for name in self._collection_registers:
                text = texts.get(name, "")
                if self._prefix in text:
                    candidate = text.split(self._prefix, 1)[1].strip()
                    if candidate:
                        collection_id = collection_id_for(candidate)
                        collection_name = candidate
                        collection_register = name
                        break

        description = ""
        if _DESCRIPTION_REGISTER != collection_register:
            description = texts.get(_DESCRIPTION_REGISTER, "")
        image_url = next(
            (texts[r] for r in _MEDIA_REGISTERS if texts.get(r, "").startswith(_MEDIA_SCHEMES)),
            "",
        )
        return _CandidateMetadata(
            token=token,
            collection_id=collection_id,
            collection_name=collection_name,
            description=description,
            image_url=image_url,
        )
