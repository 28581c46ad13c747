"""Shared test fixtures for the ergo-airdrop test suite."""

from __future__ import annotations

from typing import Any

import pytest

from ergo_airdrop.engine.models import Recipient, Token
from ergo_airdrop.ergo.address import (
    AddressType,
    NetworkPrefix,
    address_to_ergo_tree,
    encode_address,
)
from ergo_airdrop.ergo.transaction import TokenAmount, Utxo

TOKEN_ID = "aa" * 32
WALLET_TX_ID = "bb" * 32


def p2pk_address(n: int, network: NetworkPrefix = NetworkPrefix.MAINNET) -> str:
    """Deterministic, checksum-valid P2PK address for seed *n*."""
    return encode_address(network, AddressType.P2PK, bytes([0x02]) + bytes([n % 256]) * 32)


def nft_id(n: int) -> str:
    return f"{n:064x}"


class FakeWallet:
    """In-memory wallet capability set."""

    def __init__(
        self,
        utxos: list[Utxo],
        change_address: str,
        *,
        height: int = 1_000_000,
        tx_id: str = "cc" * 32,
    ) -> None:
        self.connected = True
        self.utxos = utxos
        self.change_address = change_address
        self.height = height
        self.tx_id = tx_id
        self.signed: list[dict[str, Any]] = []
        self.submitted: list[dict[str, Any]] = []
        self.sign_error: Exception | None = None
        self.submit_error: Exception | None = None

    async def is_connected(self) -> bool:
        return self.connected

    async def get_utxos(self) -> list[Utxo]:
        return list(self.utxos)

    async def get_change_address(self) -> str:
        return self.change_address

    async def get_current_height(self) -> int:
        return self.height

    async def sign(self, unsigned_tx: dict[str, Any]) -> dict[str, Any]:
        if self.sign_error is not None:
            raise self.sign_error
        self.signed.append(unsigned_tx)
        return {**unsigned_tx, "signed": True}

    async def submit(self, signed_tx: dict[str, Any]) -> str:
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(signed_tx)
        return self.tx_id


@pytest.fixture
def token() -> Token:
    return Token(token_id=TOKEN_ID, name="Test Token", decimals=2, amount=1_000_000)


@pytest.fixture
def make_recipients():
    """Factory for ``count`` recipients with valid, distinct addresses."""

    def _make(count: int) -> list[Recipient]:
        return [
            Recipient(id=f"recipient{n + 1}", address=p2pk_address(n + 1), name=f"User {n + 1}")
            for n in range(count)
        ]

    return _make


@pytest.fixture
def change_address() -> str:
    return p2pk_address(250)


@pytest.fixture
def make_utxo():
    """Factory for wallet boxes owned by the change address."""

    def _make(
        value: int = 100_000_000_000,
        assets: list[TokenAmount] | None = None,
        index: int = 0,
    ) -> Utxo:
        return Utxo(
            box_id=f"{index + 1:064x}",
            transaction_id=WALLET_TX_ID,
            index=index,
            ergo_tree=address_to_ergo_tree(p2pk_address(250)),
            creation_height=999_000,
            value=value,
            assets=tuple(assets or ()),
        )

    return _make


@pytest.fixture
def funded_utxos(make_utxo) -> list[Utxo]:
    """100 ERG plus 10_000 raw units of the test token and 5 NFTs."""
    assets = [TokenAmount(TOKEN_ID, 10_000)]
    assets.extend(TokenAmount(nft_id(n), 1) for n in range(1, 6))
    return [make_utxo(assets=assets)]


@pytest.fixture
def wallet(funded_utxos, change_address) -> FakeWallet:
    return FakeWallet(funded_utxos, change_address)
