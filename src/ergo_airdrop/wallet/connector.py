"""Wallet and metadata collaborator contracts, plus the signing gateway.

The wallet extension (connect, UTXOs, change address, sign, submit) and the
explorer are external. The engine only talks to them through the protocols
defined here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from ergo_airdrop.errors.wallet_errors import SigningFailed, SubmissionFailed, WalletError

if TYPE_CHECKING:
    from ergo_airdrop.ergo.transaction import UnsignedTransaction, Utxo

logger = logging.getLogger(__name__)


class WalletConnector(Protocol):
    """Capability set of a connected wallet."""

    async def is_connected(self) -> bool: ...
    async def get_utxos(self) -> list[Utxo]: ...
    async def get_change_address(self) -> str: ...
    async def get_current_height(self) -> int: ...
    async def sign(self, unsigned_tx: dict[str, Any]) -> dict[str, Any]: ...
    async def submit(self, signed_tx: dict[str, Any]) -> str: ...


class MetadataFetcher(Protocol):
    """Per-token box lookup. May raise ``NotFound`` or ``NetworkError``.

    Returns ``{"box_id", "registers"}`` and optionally ``"assets"``, a list
    of ``{"token_id", "name"}`` entries held by the box.
    """

    async def get_box_by_token_id(self, token_id: str) -> dict[str, Any]: ...


class SigningGateway:
    """Sign and submit an unsigned transaction through the wallet.

    Wallet errors (``SigningRejected``, ``SigningFailed``,
    ``SubmissionFailed``) propagate unchanged; any other failure is wrapped
    so callers only ever see ``WalletError`` subclasses.
    """

    def __init__(self, wallet: WalletConnector) -> None:
        self._wallet = wallet

    async def sign_and_submit(self, unsigned_tx: UnsignedTransaction) -> str:
        """Sign *unsigned_tx* and submit it, returning the transaction id."""
        try:
            signed = await self._wallet.sign(unsigned_tx.to_eip12())
        except WalletError:
            raise
        except Exception as exc:
            raise SigningFailed(f"failed to sign transaction: {exc}") from exc
        if not signed:
            raise SigningFailed

        try:
            tx_id = await self._wallet.submit(signed)
        except WalletError:
            raise
        except Exception as exc:
            raise SubmissionFailed(f"failed to submit transaction: {exc}") from exc
        if not tx_id:
            raise SubmissionFailed

        logger.info("Transaction %s submitted", tx_id)
        return tx_id
