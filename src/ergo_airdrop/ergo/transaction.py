"""Unsigned transaction model and builder.

Provides the pieces of an Ergo transaction the airdrop engine assembles:
- TokenAmount / Utxo / OutputCandidate data classes
- UnsignedTransaction with EIP-12 serialization and size estimation
- TransactionBuilder: spend all inputs, add outputs, route change, pay fee
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Self

from ergo_airdrop.errors.definitions import (
    ErrInsufficientInputs,
    ErrInsufficientTokens,
    ErrNoFunds,
)

# Mainnet miner fee contract: anyone can claim this box in the block it is mined in.
FEE_ERGO_TREE = (
    "1005040004000e36100204a00b08cd0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b"
    "16f81798ea02d192a39a8cc7a701730073011001020402d19683030193a38cc7b2a57300000193c2b2a5730100"
    "7473027303830108cdeeac93b1a57304"
)

MIN_BOX_VALUE = 1_000_000  # nanoERG
MAX_TOKENS_PER_BOX = 100

# Estimated sizes (bytes)
_TX_OVERHEAD = 10  # input/data-input/output counts + token table count
_INPUT_SIZE = 100  # box id + spending proof + empty context extension
_OUTPUT_BASE = 14  # value + creation height + token count + register count
_TOKEN_SIZE = 40  # token id + amount


# ---------------------------------------------------------------------------
# Boxes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenAmount:
    """An amount of one token carried by a box."""

    token_id: str
    amount: int

    def to_eip12(self) -> dict[str, str]:
        return {"tokenId": self.token_id, "amount": str(self.amount)}


@dataclass(frozen=True)
class Utxo:
    """An unspent box offered by the wallet.

    Attributes:
        box_id: Box identifier (hex).
        transaction_id: Id of the transaction that created the box.
        index: Output index within that transaction.
        ergo_tree: Locking script (hex).
        creation_height: Height the box was created at.
        value: nanoERG held by the box.
        assets: Tokens held by the box.
        additional_registers: Raw register map (R4..R9 -> hex).
    """

    box_id: str
    transaction_id: str
    index: int
    ergo_tree: str
    creation_height: int
    value: int
    assets: tuple[TokenAmount, ...] = ()
    additional_registers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_eip12(cls, data: dict[str, Any]) -> Self:
        """Parse a wallet (EIP-12) box dict."""
        return cls(
            box_id=data["boxId"],
            transaction_id=data.get("transactionId") or data.get("txId", ""),
            index=int(data.get("index", 0)),
            ergo_tree=data.get("ergoTree", ""),
            creation_height=int(data.get("creationHeight", 0)),
            value=int(data["value"]),
            assets=tuple(
                TokenAmount(token_id=a["tokenId"], amount=int(a["amount"]))
                for a in data.get("assets") or []
            ),
            additional_registers=dict(data.get("additionalRegisters") or {}),
        )

    def to_eip12(self) -> dict[str, Any]:
        return {
            "boxId": self.box_id,
            "transactionId": self.transaction_id,
            "index": self.index,
            "ergoTree": self.ergo_tree,
            "creationHeight": self.creation_height,
            "value": str(self.value),
            "assets": [a.to_eip12() for a in self.assets],
            "additionalRegisters": dict(self.additional_registers),
            "extension": {},
        }


@dataclass(frozen=True)
class OutputCandidate:
    """A box to be created by the transaction."""

    ergo_tree: str
    value: int
    creation_height: int
    assets: tuple[TokenAmount, ...] = ()
    additional_registers: dict[str, str] = field(default_factory=dict)
    address: str = ""  # display only; ergo_tree is authoritative

    @property
    def estimated_size(self) -> int:
        registers = sum(len(v) // 2 for v in self.additional_registers.values())
        return (
            _OUTPUT_BASE + len(self.ergo_tree) // 2 + len(self.assets) * _TOKEN_SIZE + registers
        )

    def to_eip12(self) -> dict[str, Any]:
        return {
            "value": str(self.value),
            "ergoTree": self.ergo_tree,
            "creationHeight": self.creation_height,
            "assets": [a.to_eip12() for a in self.assets],
            "additionalRegisters": dict(self.additional_registers),
        }


# ---------------------------------------------------------------------------
# Transaction
# ---------------------------------------------------------------------------


@dataclass
class UnsignedTransaction:
    """Unsigned transaction handed to the wallet for signing."""

    inputs: list[Utxo]
    outputs: list[OutputCandidate]
    data_inputs: list[Utxo] = field(default_factory=list)

    @property
    def fee(self) -> int:
        """Total value paid to the miner fee contract."""
        return sum(o.value for o in self.outputs if o.ergo_tree == FEE_ERGO_TREE)

    @property
    def estimated_size(self) -> int:
        """Approximate serialized size in bytes."""
        return (
            _TX_OVERHEAD
            + len(self.inputs) * _INPUT_SIZE
            + len(self.data_inputs) * 32
            + sum(o.estimated_size for o in self.outputs)
        )

    def to_eip12(self) -> dict[str, Any]:
        """Serialize to the EIP-12 unsigned transaction dict."""
        return {
            "inputs": [i.to_eip12() for i in self.inputs],
            "dataInputs": [{"boxId": d.box_id} for d in self.data_inputs],
            "outputs": [o.to_eip12() for o in self.outputs],
        }


def estimate_size(input_count: int, output_count: int, token_count: int = 0) -> int:
    """Estimate transaction size from its shape alone.

    Outputs are assumed to be P2PK boxes (36-byte trees) without registers.
    """
    return (
        _TX_OVERHEAD
        + input_count * _INPUT_SIZE
        + output_count * (_OUTPUT_BASE + 36)
        + token_count * _TOKEN_SIZE
    )


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class TransactionBuilder:
    """Assemble an unsigned transaction that spends every input offered.

    Usage::

        tx = (
            TransactionBuilder(height)
            .from_inputs(utxos)
            .to(outputs)
            .send_change_to(change_tree)
            .pay_fee(1_000_000)
            .build()
        )
    """

    def __init__(
        self,
        creation_height: int,
        *,
        min_box_value: int = MIN_BOX_VALUE,
        max_tokens_per_box: int = MAX_TOKENS_PER_BOX,
    ) -> None:
        self._height = creation_height
        self._min_box_value = min_box_value
        self._max_tokens_per_box = max_tokens_per_box
        self._inputs: list[Utxo] = []
        self._outputs: list[OutputCandidate] = []
        self._change_tree = ""
        self._fee = 0

    def from_inputs(self, utxos: list[Utxo]) -> Self:
        self._inputs.extend(utxos)
        return self

    def to(self, outputs: OutputCandidate | list[OutputCandidate]) -> Self:
        if isinstance(outputs, OutputCandidate):
            self._outputs.append(outputs)
        else:
            self._outputs.extend(outputs)
        return self

    def send_change_to(self, ergo_tree: str) -> Self:
        self._change_tree = ergo_tree
        return self

    def pay_fee(self, fee: int) -> Self:
        self._fee = fee
        return self

    def build(self) -> UnsignedTransaction:
        """Build the transaction.

        Raises:
            AirdropError: ``ErrNoFunds`` without inputs, ``ErrInsufficientTokens``
                when outputs carry more of a token than the inputs hold, and
                ``ErrInsufficientInputs`` when ERG cannot cover outputs, change
                boxes and fee.
        """
        if not self._inputs:
            raise ErrNoFunds

        available: dict[str, int] = {}
        for utxo in self._inputs:
            for asset in utxo.assets:
                available[asset.token_id] = available.get(asset.token_id, 0) + asset.amount

        for output in self._outputs:
            for asset in output.assets:
                remaining = available.get(asset.token_id, 0) - asset.amount
                if remaining < 0:
                    raise ErrInsufficientTokens
                available[asset.token_id] = remaining

        change_value = (
            sum(u.value for u in self._inputs)
            - sum(o.value for o in self._outputs)
            - self._fee
        )
        if change_value < 0:
            raise ErrInsufficientInputs

        change_tokens = [TokenAmount(tid, amt) for tid, amt in available.items() if amt > 0]
        outputs = list(self._outputs)
        outputs.extend(self._change_boxes(change_value, change_tokens))
        if self._fee > 0:
            outputs.append(
                OutputCandidate(
                    ergo_tree=FEE_ERGO_TREE,
                    value=self._fee,
                    creation_height=self._height,
                ),
            )
        return UnsignedTransaction(inputs=list(self._inputs), outputs=outputs)

    def _change_boxes(
        self,
        change_value: int,
        change_tokens: list[TokenAmount],
    ) -> list[OutputCandidate]:
        if change_value == 0 and not change_tokens:
            return []
        if not self._change_tree:
            msg = "Change address not set"
            raise ValueError(msg)

        step = self._max_tokens_per_box
        chunks = [change_tokens[i : i + step] for i in range(0, len(change_tokens), step)] or [[]]
        if change_value < len(chunks) * self._min_box_value:
            raise ErrInsufficientInputs

        boxes: list[OutputCandidate] = []
        for n, chunk in enumerate(chunks):
            last = n == len(chunks) - 1
            value = change_value - (len(chunks) - 1) * self._min_box_value
            boxes.append(
                OutputCandidate(
                    ergo_tree=self._change_tree,
                    value=value if last else self._min_box_value,
                    creation_height=self._height,
                    assets=tuple(chunk),
                ),
            )
        return boxes
