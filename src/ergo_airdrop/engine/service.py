"""Airdrop service: from configuration to submitted transaction.

1. Check the wallet is connected and recipients exist
2. Load UTXOs, change address and height from the wallet
3. Assemble the unsigned transaction (with at most one fee rebuild)
4. Sign and submit through the wallet
5. Push the transaction id and a summary to the notification channel
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ergo_airdrop.engine.assembly import AirdropAssembler, AssemblyResult
from ergo_airdrop.errors.definitions import ErrNoFunds, ErrNoRecipients, ErrWalletNotConnected
from ergo_airdrop.notifications.events import AIRDROP_FAILED, AirdropEvent, AirdropSummary
from ergo_airdrop.wallet.connector import SigningGateway

if TYPE_CHECKING:
    import random

    from ergo_airdrop.config.settings import AppConfig
    from ergo_airdrop.engine.models import AirdropConfig
    from ergo_airdrop.notifications.service import NotificationService
    from ergo_airdrop.wallet.connector import WalletConnector

logger = logging.getLogger(__name__)


class AirdropService:
    """Run airdrops against a connected wallet.

    Usage::

        service = AirdropService(wallet, notifications=notifications)
        tx_id = await service.execute(plan.to_config(recipients))
    """

    def __init__(
        self,
        wallet: WalletConnector,
        *,
        assembler: AirdropAssembler | None = None,
        notifications: NotificationService | None = None,
    ) -> None:
        self._wallet = wallet
        self._assembler = assembler or AirdropAssembler()
        self._gateway = SigningGateway(wallet)
        self._notifications = notifications

    @classmethod
    def from_config(
        cls,
        wallet: WalletConnector,
        config: AppConfig,
        *,
        notifications: NotificationService | None = None,
        rng: random.Random | None = None,
    ) -> AirdropService:
        return cls(
            wallet,
            assembler=AirdropAssembler.from_config(config.fee, rng=rng),
            notifications=notifications,
        )

    async def prepare(self, config: AirdropConfig) -> AssemblyResult:
        """Validate preconditions and assemble the unsigned transaction.

        Raises:
            AirdropError: ``ErrWalletNotConnected``, ``ErrNoRecipients`` or
                ``ErrNoFunds`` before anything is built; assembly errors after.
        """
        if not await self._wallet.is_connected():
            raise ErrWalletNotConnected
        if not config.recipients:
            raise ErrNoRecipients

        utxos = await self._wallet.get_utxos()
        if not utxos:
            raise ErrNoFunds
        change_address = await self._wallet.get_change_address()
        height = await self._wallet.get_current_height()
        return self._assembler.assemble(utxos, config, change_address, height)

    async def execute(self, config: AirdropConfig) -> str:
        """Assemble, sign and submit an airdrop; returns the transaction id.

        Any failure is reported as a whole-operation failure: nothing is
        considered to have happened on-chain.
        """
        try:
            result = await self.prepare(config)
            tx_id = await self._gateway.sign_and_submit(result.unsigned_tx)
        except Exception as exc:
            message = getattr(exc, "message", None) or str(exc)
            logger.exception("Airdrop failed: %s", message)
            await self._publish(AirdropEvent(type=AIRDROP_FAILED, error=message))
            raise

        summary = AirdropSummary.from_assembly(config, result)
        logger.info(
            "Airdrop %s submitted: %d transfers to %d recipients, fee %d",
            tx_id,
            summary.transfers,
            summary.recipients,
            summary.fee,
        )
        await self._publish(AirdropEvent(transaction_id=tx_id, summary=summary))
        return tx_id

    async def _publish(self, event: AirdropEvent) -> None:
        if self._notifications is not None:
            await self._notifications.notify(event)
