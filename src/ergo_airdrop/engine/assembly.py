"""Airdrop transaction assembly.

Outline flow specialised for airdrops:
1. Validate preconditions (recipients, UTXOs, change address)
2. Plan one output per (distribution, recipient) or per NFT assignment
3. Spend every offered UTXO, send the remainder to the change address
4. Build with the default fee, estimate, and rebuild once if the
   recommended fee is higher
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ergo_airdrop.engine.fees import FeeEstimator
from ergo_airdrop.engine.planner import PlannedTransfer, plan_transfers
from ergo_airdrop.ergo.address import address_to_ergo_tree
from ergo_airdrop.ergo.transaction import (
    MAX_TOKENS_PER_BOX,
    MIN_BOX_VALUE,
    OutputCandidate,
    TokenAmount,
    TransactionBuilder,
    UnsignedTransaction,
    Utxo,
)
from ergo_airdrop.errors.definitions import (
    ErrInvalidChangeAddress,
    ErrNoDistributions,
    ErrNoFunds,
    ErrNoOutputs,
    ErrNoRecipients,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ergo_airdrop.config.settings import FeeConfig
    from ergo_airdrop.engine.models import AirdropConfig

logger = logging.getLogger(__name__)

DEFAULT_TX_FEE = 1_000_000  # nanoERG


@dataclass
class AssemblyResult:
    """An assembled airdrop transaction and how it was produced."""

    unsigned_tx: UnsignedTransaction
    transfers: list[PlannedTransfer]
    recommended_fee: int
    rebuilt: bool = False
    skipped: list[PlannedTransfer] = field(default_factory=list)

    @property
    def fee(self) -> int:
        return self.unsigned_tx.fee


class AirdropAssembler:
    """Turn an airdrop configuration and wallet UTXOs into an unsigned transaction."""

    def __init__(
        self,
        *,
        min_box_value: int = MIN_BOX_VALUE,
        default_fee: int = DEFAULT_TX_FEE,
        max_tokens_per_box: int = MAX_TOKENS_PER_BOX,
        estimator: FeeEstimator | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._min_box_value = min_box_value
        self._default_fee = default_fee
        self._max_tokens_per_box = max_tokens_per_box
        self._estimator = estimator or FeeEstimator(min_fee=default_fee)
        self._rng = rng or random.Random()  # noqa: S311

    @classmethod
    def from_config(
        cls,
        config: FeeConfig,
        *,
        rng: random.Random | None = None,
    ) -> AirdropAssembler:
        return cls(
            min_box_value=config.min_box_value,
            default_fee=config.default_fee,
            max_tokens_per_box=config.max_tokens_per_box,
            estimator=FeeEstimator.from_config(config),
            rng=rng,
        )

    def assemble(
        self,
        utxos: Sequence[Utxo],
        config: AirdropConfig,
        change_address: str,
        height: int,
    ) -> AssemblyResult:
        """Assemble the airdrop transaction.

        Args:
            utxos: Every box the wallet offers; all of them are spent.
            config: Recipients and distributions.
            change_address: Where unassigned value and tokens go.
            height: Creation height for new boxes.

        Raises:
            AirdropError: ``ErrNoRecipients``, ``ErrNoFunds``, ``ErrNoDistributions``,
                ``ErrInvalidChangeAddress``, ``ErrNoOutputs``, or a build
                error (insufficient ERG or tokens).
        """
        if not config.recipients:
            raise ErrNoRecipients
        if not utxos:
            raise ErrNoFunds
        if not config.token_distributions and not config.nft_distributions:
            raise ErrNoDistributions
        try:
            change_tree = address_to_ergo_tree(change_address)
        except ValueError:
            raise ErrInvalidChangeAddress from None

        transfers = plan_transfers(config, self._rng)
        outputs, delivered, skipped = self._outputs(transfers, height)
        if not outputs:
            raise ErrNoOutputs

        tx = self._build(utxos, outputs, change_tree, height, self._default_fee)
        recommended = self._estimator.recommend_for(tx)
        rebuilt = False
        if recommended > self._default_fee:
            logger.info(
                "Recommended fee %d exceeds default %d, rebuilding transaction",
                recommended,
                self._default_fee,
            )
            tx = self._build(utxos, outputs, change_tree, height, recommended)
            rebuilt = True

        logger.info(
            "Assembled airdrop: %d inputs, %d outputs, fee %d",
            len(tx.inputs),
            len(tx.outputs),
            tx.fee,
        )
        return AssemblyResult(
            unsigned_tx=tx,
            transfers=delivered,
            recommended_fee=recommended,
            rebuilt=rebuilt,
            skipped=skipped,
        )

    def _outputs(
        self,
        transfers: list[PlannedTransfer],
        height: int,
    ) -> tuple[list[OutputCandidate], list[PlannedTransfer], list[PlannedTransfer]]:
        trees: dict[str, str | None] = {}
        outputs: list[OutputCandidate] = []
        delivered: list[PlannedTransfer] = []
        skipped: list[PlannedTransfer] = []
        for transfer in transfers:
            address = transfer.recipient.address
            if address not in trees:
                try:
                    trees[address] = address_to_ergo_tree(address)
                except ValueError as exc:
                    logger.warning(
                        "Invalid address for recipient %s: %s", transfer.recipient.id, exc
                    )
                    trees[address] = None
            tree = trees[address]
            if tree is None:
                skipped.append(transfer)
                continue
            outputs.append(
                OutputCandidate(
                    ergo_tree=tree,
                    value=self._min_box_value,
                    creation_height=height,
                    assets=(TokenAmount(transfer.token_id, transfer.amount),),
                    address=address,
                ),
            )
            delivered.append(transfer)
        return outputs, delivered, skipped

    def _build(
        self,
        utxos: Sequence[Utxo],
        outputs: list[OutputCandidate],
        change_tree: str,
        height: int,
        fee: int,
    ) -> UnsignedTransaction:
        return (
            TransactionBuilder(
                height,
                min_box_value=self._min_box_value,
                max_tokens_per_box=self._max_tokens_per_box,
            )
            .from_inputs(list(utxos))
            .to(outputs)
            .send_change_to(change_tree)
            .pay_fee(fee)
            .build()
        )
