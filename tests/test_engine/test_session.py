"""Tests for the wallet session and its stale-result guard."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest
from conftest import nft_id, p2pk_address

from ergo_airdrop.engine.discovery import CollectionDiscovery
from ergo_airdrop.engine.models import NFT, Token
from ergo_airdrop.engine.planner import plan_transfers
from ergo_airdrop.engine.service import AirdropService
from ergo_airdrop.engine.session import WalletSession
from ergo_airdrop.ergo.address import address_to_ergo_tree
from ergo_airdrop.ergo.registers import encode_string
from ergo_airdrop.errors.explorer_errors import NetworkError

_ADDRESS = "9fWalletAddress"


class FakeExplorer:
    """Token source and metadata fetcher with controllable latency."""

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.release = asyncio.Event()
        self.release.set()

    async def get_address_tokens(self, address: str) -> list[Token]:
        await self.release.wait()
        return list(self.tokens)

    async def get_box_by_token_id(self, token_id: str) -> dict[str, Any]:
        return {"box_id": "00" * 32, "registers": {"R4": encode_string("Collection:Apes")}}


def _holdings() -> list[Token]:
    return [
        Token(token_id="ab" * 32, name="Coin", decimals=2, amount=5000),
        Token(token_id=nft_id(1), name="Ape 1", decimals=0, amount=1),
        Token(token_id=nft_id(2), name="Ape 2", decimals=0, amount=1),
    ]


@pytest.fixture
def explorer() -> FakeExplorer:
    return FakeExplorer(_holdings())


@pytest.fixture
def session(explorer) -> WalletSession:
    return WalletSession(CollectionDiscovery(explorer), explorer)


class TestRefresh:
    @pytest.mark.asyncio
    async def test_refresh_classifies_holdings(self, session) -> None:
        holdings = await session.refresh(_ADDRESS)
        assert holdings is session.holdings
        assert len(holdings.tokens) == 3
        assert [t.name for t in holdings.fungible_tokens] == ["Coin"]
        assert [c.name for c in holdings.collections] == ["Apes"]
        assert holdings.standalone_nfts == []

    @pytest.mark.asyncio
    async def test_newer_refresh_wins(self, session, explorer) -> None:
        explorer.release.clear()
        stale = asyncio.create_task(session.refresh(_ADDRESS))
        await asyncio.sleep(0)

        explorer.release.set()
        explorer_tokens = _holdings()[:1]
        explorer.tokens = explorer_tokens
        fresh = await session.refresh(_ADDRESS)

        assert await stale is None
        assert fresh is not None
        assert session.holdings.tokens == explorer_tokens

    @pytest.mark.asyncio
    async def test_disconnect_discards_in_flight(self, session, explorer) -> None:
        explorer.release.clear()
        pending = asyncio.create_task(session.refresh(_ADDRESS))
        await asyncio.sleep(0)

        session.disconnect()
        explorer.release.set()

        assert await pending is None
        assert session.holdings.tokens == []
        assert session.holdings.collections == []

    @pytest.mark.asyncio
    async def test_load(self, session) -> None:
        holdings = await session.load(_holdings()[1:])
        assert holdings is not None
        assert len(holdings.collections[0].nfts) == 2


class TestRecipients:
    def test_add_and_remove(self, session) -> None:
        alice = session.add_recipient("  9fAlice  ", "Alice")
        bob = session.add_recipient("9fBob")
        assert alice.address == "9fAlice"
        assert alice.id != bob.id
        assert session.remove_recipient(alice.id)
        assert not session.remove_recipient(alice.id)
        assert session.recipients == [bob]

    def test_duplicate_addresses_allowed(self, session) -> None:
        session.add_recipient("9fSame")
        session.add_recipient("9fSame")
        assert len(session.recipients) == 2


class TestOneToOneMapping:
    @pytest.mark.asyncio
    async def test_collection_then_recipients(self, session) -> None:
        await session.refresh(_ADDRESS)
        session.plan.add_collection(session.holdings.collections[0])
        alice = session.add_recipient(p2pk_address(1), "Alice")
        bob = session.add_recipient(p2pk_address(2), "Bob")

        record = session.plan.nft_distributions[0]
        assert record.mapping == {nft_id(1): alice.id, nft_id(2): bob.id}
        transfers = plan_transfers(session.plan.to_config(session.recipients))
        assert [(t.token_id, t.recipient.id) for t in transfers] == [
            (nft_id(1), alice.id),
            (nft_id(2), bob.id),
        ]

    @pytest.mark.asyncio
    async def test_recipients_then_collection(self, session) -> None:
        alice = session.add_recipient(p2pk_address(1))
        await session.refresh(_ADDRESS)
        session.plan.add_collection(session.holdings.collections[0])

        assert session.plan.nft_distributions[0].mapping == {nft_id(1): alice.id}

    def test_removing_recipient_remaps(self, session) -> None:
        session.plan.add_nft(NFT(token_id=nft_id(3), name="Loner"))
        alice = session.add_recipient(p2pk_address(1))
        bob = session.add_recipient(p2pk_address(2))
        assert session.plan.nft_distributions[0].mapping == {nft_id(3): alice.id}

        session.remove_recipient(alice.id)
        assert session.plan.nft_distributions[0].mapping == {nft_id(3): bob.id}

        session.remove_recipient(bob.id)
        assert session.plan.nft_distributions[0].mapping == {}

    def test_assigning_recipients_remaps(self, session, make_recipients) -> None:
        session.plan.add_nft(NFT(token_id=nft_id(3), name="Loner"))
        session.recipients = make_recipients(2)
        assert session.plan.nft_distributions[0].mapping == {nft_id(3): "recipient1"}


class TestImportRecipients:
    def test_import_text_appends_and_remaps(self, session) -> None:
        session.plan.add_nft(NFT(token_id=nft_id(3), name="Loner"))
        existing = session.add_recipient(p2pk_address(9))

        added = session.import_recipients_text(
            f"{p2pk_address(1)},Alice\nnot-an-address\n{p2pk_address(2)}\n"
        )

        assert [r.name for r in added] == ["Alice", ""]
        assert session.recipients == [existing, *added]
        assert len({r.id for r in session.recipients}) == 3
        assert session.plan.nft_distributions[0].mapping == {nft_id(3): existing.id}

    @pytest.mark.asyncio
    async def test_import_from_url(self, session) -> None:
        payload = {"miners": [{"miner": p2pk_address(1)}, {"address": p2pk_address(2)}]}

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=json.dumps(payload))

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            added = await session.import_recipients_from_url(
                "https://pool.example/api/miners", client=client
            )

        assert [r.address for r in added] == [p2pk_address(1), p2pk_address(2)]
        assert session.recipients == added

    @pytest.mark.asyncio
    async def test_import_from_url_failure_keeps_recipients(self, session) -> None:
        existing = session.add_recipient(p2pk_address(1))

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(NetworkError, match="500"):
                await session.import_recipients_from_url("https://pool.example/x", client=client)

        assert session.recipients == [existing]


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_resets_everything(self, session) -> None:
        await session.refresh(_ADDRESS)
        session.plan.add_token(session.holdings.tokens[0])
        session.add_recipient("9fAlice")
        generation = session.generation

        session.disconnect()

        assert session.generation == generation + 1
        assert session.holdings.tokens == []
        assert len(session.plan) == 0
        assert session.recipients == []
        assert session.last_transaction_id is None


class TestExecute:
    @pytest.mark.asyncio
    async def test_records_transaction_id(self, session, wallet, token, make_recipients) -> None:
        session.plan.add_token(token)
        session.recipients = make_recipients(2)

        tx_id = await session.execute(AirdropService(wallet))
        assert tx_id == wallet.tx_id
        assert session.last_transaction_id == tx_id

    @pytest.mark.asyncio
    async def test_disconnect_during_airdrop(self, session, wallet, token, make_recipients):
        session.plan.add_token(token)
        session.recipients = make_recipients(2)

        original_submit = wallet.submit

        async def submit_then_disconnect(signed_tx):
            tx_id = await original_submit(signed_tx)
            session.disconnect()
            return tx_id

        wallet.submit = submit_then_disconnect
        assert await session.execute(AirdropService(wallet)) is None
        assert session.last_transaction_id is None
        assert len(wallet.submitted) == 1

    @pytest.mark.asyncio
    async def test_collection_airdrop_after_adding_recipients(self, session, wallet) -> None:
        await session.refresh(_ADDRESS)
        session.plan.add_collection(session.holdings.collections[0])
        alice = session.add_recipient(p2pk_address(1))
        bob = session.add_recipient(p2pk_address(2))

        tx_id = await session.execute(AirdropService(wallet))

        assert tx_id == wallet.tx_id
        outputs = wallet.signed[0]["outputs"]
        delivered = {
            asset["tokenId"]: output["ergoTree"]
            for output in outputs
            for asset in output["assets"]
            if asset["tokenId"] in (nft_id(1), nft_id(2))
            and output["ergoTree"] != address_to_ergo_tree(wallet.change_address)
        }
        assert delivered == {
            nft_id(1): address_to_ergo_tree(alice.address),
            nft_id(2): address_to_ergo_tree(bob.address),
        }

    @pytest.mark.asyncio
    async def test_refresh_during_airdrop_keeps_result(
        self, session, wallet, token, make_recipients
    ) -> None:
        session.plan.add_token(token)
        session.recipients = make_recipients(2)

        original_submit = wallet.submit

        async def submit_then_refresh(signed_tx):
            tx_id = await original_submit(signed_tx)
            await session.refresh(_ADDRESS)
            return tx_id

        wallet.submit = submit_then_refresh
        tx_id = await session.execute(AirdropService(wallet))
        assert tx_id == wallet.tx_id
        assert session.last_transaction_id == tx_id
        assert len(session.holdings.tokens) == 3
