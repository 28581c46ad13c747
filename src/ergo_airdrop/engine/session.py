"""Wallet session: holdings cache, airdrop plan and recipients.

Holdings are replaced wholesale on refresh and reset on disconnect. Every
refresh takes a generation number; a discovery result that arrives after
the session moved on (new refresh, disconnect) is discarded. Airdrops only
lose their result to a disconnect, tracked by a separate epoch counter.

Any change to the recipient list re-maps the plan's ``1-to-1`` records.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from ergo_airdrop.engine.discovery import is_nft_candidate
from ergo_airdrop.engine.models import Recipient
from ergo_airdrop.engine.recipients import fetch_recipients, parse_recipients
from ergo_airdrop.engine.records import DistributionPlan

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    import httpx

    from ergo_airdrop.engine.discovery import CollectionDiscovery
    from ergo_airdrop.engine.models import NFT, Collection, Token
    from ergo_airdrop.engine.recipients import RecipientEntry
    from ergo_airdrop.engine.service import AirdropService

logger = logging.getLogger(__name__)


class TokenSource(Protocol):
    """Lists the token holdings of an address."""

    async def get_address_tokens(self, address: str) -> list[Token]: ...


@dataclass(frozen=True)
class WalletHoldings:
    """Snapshot of what the wallet holds, as classified by discovery."""

    tokens: list[Token] = field(default_factory=list)
    collections: list[Collection] = field(default_factory=list)
    standalone_nfts: list[NFT] = field(default_factory=list)

    @property
    def fungible_tokens(self) -> list[Token]:
        return [t for t in self.tokens if not is_nft_candidate(t)]


class WalletSession:
    """State of one connected wallet."""

    def __init__(self, discovery: CollectionDiscovery, token_source: TokenSource) -> None:
        self._discovery = discovery
        self._token_source = token_source
        self._generation = 0
        self._epoch = 0
        self._holdings = WalletHoldings()
        self.plan = DistributionPlan()
        self._recipients: list[Recipient] = []
        self.last_transaction_id: str | None = None

    @property
    def holdings(self) -> WalletHoldings:
        return self._holdings

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def recipients(self) -> list[Recipient]:
        return self._recipients

    @recipients.setter
    def recipients(self, recipients: Sequence[Recipient]) -> None:
        self._recipients = list(recipients)
        self.plan.remap(self._recipients)

    def _begin(self) -> int:
        self._generation += 1
        return self._generation

    def is_active(self, generation: int) -> bool:
        """Whether a request started at *generation* is still the latest one."""
        return generation == self._generation

    async def refresh(self, address: str) -> WalletHoldings | None:
        """Reload holdings for *address*.

        Returns the new holdings, or ``None`` when a newer refresh or a
        disconnect superseded this one while it was in flight.
        """
        generation = self._begin()
        tokens = await self._token_source.get_address_tokens(address)
        return await self._apply(generation, tokens)

    async def load(self, tokens: Sequence[Token]) -> WalletHoldings | None:
        """Classify an already known token list into holdings."""
        return await self._apply(self._begin(), list(tokens))

    async def _apply(self, generation: int, tokens: list[Token]) -> WalletHoldings | None:
        result = await self._discovery.discover(tokens)
        if not self.is_active(generation):
            logger.info("Discarding stale discovery result (generation %d)", generation)
            return None
        self._holdings = WalletHoldings(
            tokens=tokens,
            collections=result.collections,
            standalone_nfts=result.standalone_nfts,
        )
        return self._holdings

    def disconnect(self) -> None:
        """Reset all state; in-flight requests and airdrops will be discarded."""
        self._begin()
        self._epoch += 1
        self._holdings = WalletHoldings()
        self.plan.clear()
        self.recipients = []
        self.last_transaction_id = None

    # ------------------------------------------------------------------
    # Recipients
    # ------------------------------------------------------------------

    def add_recipient(self, address: str, name: str = "") -> Recipient:
        recipient = Recipient(id=uuid.uuid4().hex, address=address.strip(), name=name)
        self.recipients = [*self.recipients, recipient]
        return recipient

    def remove_recipient(self, recipient_id: str) -> bool:
        remaining = [r for r in self.recipients if r.id != recipient_id]
        removed = len(remaining) != len(self.recipients)
        self.recipients = remaining
        return removed

    def import_recipients(self, entries: Iterable[RecipientEntry]) -> list[Recipient]:
        """Append parsed recipients in one step; returns the new recipients."""
        added = [
            Recipient(id=uuid.uuid4().hex, address=e.address.strip(), name=e.name)
            for e in entries
        ]
        self.recipients = [*self.recipients, *added]
        logger.info("Imported %d recipients", len(added))
        return added

    def import_recipients_text(
        self,
        text: str,
        *,
        address_field: str = "address",
    ) -> list[Recipient]:
        """Import recipients from CSV or JSON text."""
        return self.import_recipients(parse_recipients(text, address_field=address_field))

    async def import_recipients_from_url(
        self,
        url: str,
        *,
        address_field: str = "address",
        client: httpx.AsyncClient | None = None,
    ) -> list[Recipient]:
        """Import a JSON address list served at *url*."""
        entries = await fetch_recipients(url, address_field=address_field, client=client)
        return self.import_recipients(entries)

    # ------------------------------------------------------------------
    # Airdrop
    # ------------------------------------------------------------------

    async def execute(self, service: AirdropService) -> str | None:
        """Run the planned airdrop.

        Returns the transaction id, or ``None`` if the session was
        disconnected while the airdrop was in flight (the id is then not
        recorded). Holdings refreshes do not affect the result.
        """
        epoch = self._epoch
        tx_id = await service.execute(self.plan.to_config(self.recipients))
        if epoch != self._epoch:
            logger.warning("Session disconnected during airdrop %s, result discarded", tx_id)
            return None
        self.last_transaction_id = tx_id
        return tx_id
