"""Tests for distribution records and the entity-keyed plan."""

from __future__ import annotations

import logging
from decimal import Decimal

import pytest
from conftest import TOKEN_ID, nft_id

from ergo_airdrop.engine.models import (
    NFT,
    Collection,
    EntityType,
    NFTDistribution,
    NFTDistributionType,
    Token,
    TokenDistribution,
    TokenDistributionType,
)
from ergo_airdrop.engine.records import (
    DistributionPlan,
    create_record,
    find_record_index,
    label_for,
    update_amount,
)


def _token(n: int) -> Token:
    return Token(token_id=f"{n:02x}" * 32, name=f"Token {n}", decimals=0, amount=1000)


def _collection(size: int = 3) -> Collection:
    return Collection(
        id="collection_apes",
        name="Apes",
        nfts=[NFT(token_id=nft_id(n), name=f"Ape {n}") for n in range(1, size + 1)],
    )


# ---------------------------------------------------------------------------
# create_record
# ---------------------------------------------------------------------------


class TestCreateRecord:
    def test_token(self, token: Token) -> None:
        record = create_record(TOKEN_ID, token, "per-user", "2.5", "token")
        assert isinstance(record, TokenDistribution)
        assert record.entity_id == TOKEN_ID
        assert record.entity_type is EntityType.TOKEN
        assert record.type is TokenDistributionType.PER_USER
        assert record.amount == Decimal("2.5")
        assert record.token is token

    def test_nft(self) -> None:
        nft = NFT(token_id=nft_id(1), name="Ape 1")
        record = create_record(nft.token_id, nft, "1-to-1", 1, "nft")
        assert isinstance(record, NFTDistribution)
        assert record.entity_type is EntityType.NFT
        assert record.nft is nft
        assert record.collection is None

    def test_collection(self) -> None:
        collection = _collection()
        record = create_record(collection.id, collection, "set", 2, "collection")
        assert isinstance(record, NFTDistribution)
        assert record.entity_type is EntityType.COLLECTION
        assert record.collection is collection
        assert record.amount == 2

    def test_unknown_field(self, token: Token) -> None:
        with pytest.raises(ValueError):
            create_record(TOKEN_ID, token, "total", 1, "wallet")

    def test_unknown_type(self, token: Token) -> None:
        with pytest.raises(ValueError):
            create_record(TOKEN_ID, token, "everyone", 1, "token")


# ---------------------------------------------------------------------------
# update_amount
# ---------------------------------------------------------------------------


class TestUpdateAmount:
    def test_changes_exactly_one_record(self) -> None:
        records = [
            create_record(_token(n).token_id, _token(n), "total", n, "token") for n in range(1, 5)
        ]
        updated = update_amount(records, _token(3).token_id, "99")

        assert updated is not records
        assert updated[2].amount == Decimal(99)
        for n in (0, 1, 3):
            assert updated[n] is records[n]

    def test_not_found_returns_input(self, caplog: pytest.LogCaptureFixture) -> None:
        records = [create_record(_token(1).token_id, _token(1), "total", 1, "token")]
        with caplog.at_level(logging.WARNING):
            result = update_amount(records, "missing", 5)
        assert result is records
        assert "No distribution record found" in caplog.text

    def test_entity_id_beats_nested_id(self) -> None:
        # An untagged record whose nested id coincides with another record's entity id
        legacy = TokenDistribution(
            token=_token(1),
            type=TokenDistributionType.TOTAL,
            amount=Decimal(1),
        )
        tagged = create_record(_token(1).token_id, _token(1), "total", 2, "token")
        records = [legacy, tagged]

        updated = update_amount(records, _token(1).token_id, 7)
        assert updated[0] is legacy
        assert updated[1].amount == Decimal(7)

    def test_nested_fallback_for_untagged(self) -> None:
        legacy = NFTDistribution(type=NFTDistributionType.SET, collection=_collection(), amount=1)
        updated = update_amount([legacy], "collection_apes", 4)
        assert updated[0].amount == 4

    def test_fallback_ignores_tagged_records(self) -> None:
        record = create_record("other-id", _token(1), "total", 1, "token")
        assert find_record_index([record], _token(1).token_id) is None


class TestLabelFor:
    @pytest.mark.parametrize(
        ("type_", "label"),
        [
            ("total", "Total Distribution"),
            ("per-user", "Per User Distribution"),
            ("1-to-1", "1-to-1 Mapping"),
            ("set", "Set Distribution"),
            ("random", "Random Distribution"),
        ],
    )
    def test_known(self, type_: str, label: str) -> None:
        assert label_for(type_) == label

    def test_enum_member(self) -> None:
        assert label_for(NFTDistributionType.RANDOM) == "Random Distribution"

    def test_unknown_falls_back(self) -> None:
        assert label_for("weighted") == "weighted"


# ---------------------------------------------------------------------------
# DistributionPlan
# ---------------------------------------------------------------------------


class TestDistributionPlan:
    def test_add_token_idempotent(self, token: Token) -> None:
        plan = DistributionPlan()
        first = plan.add_token(token)
        second = plan.add_token(token)
        assert first is second
        assert len(plan) == 1
        assert first.type is TokenDistributionType.TOTAL
        assert first.amount == Decimal(1)

    def test_set_amount_touches_one_entity(self) -> None:
        plan = DistributionPlan()
        for n in range(1, 4):
            plan.add_token(_token(n))
        assert plan.set_amount(_token(2).token_id, "12.5")

        amounts = [d.amount for d in plan.token_distributions]
        assert amounts == [Decimal(1), Decimal("12.5"), Decimal(1)]

    def test_set_amount_missing(self) -> None:
        assert not DistributionPlan().set_amount("missing", 1)

    def test_add_collection_marks_members(self) -> None:
        plan = DistributionPlan()
        collection = _collection()
        record = plan.add_collection(collection)

        assert record.entity_id == collection.id
        assert record.collection is not None
        assert all(n.selected for n in record.collection.nfts)
        assert not any(n.selected for n in collection.nfts)
        assert record.mapping == {
            nft_id(1): "temp_0",
            nft_id(2): "temp_1",
            nft_id(3): "temp_2",
        }

    def test_add_collection_excludes_own_token(self) -> None:
        collection = _collection()
        collection.nfts.append(NFT(token_id=collection.id, name="Collection token"))
        record = DistributionPlan().add_collection(collection)
        assert record.collection is not None
        assert len(record.collection.nfts) == 3

    def test_add_collection_replaces_member_records(self) -> None:
        plan = DistributionPlan()
        collection = _collection()
        plan.add_nft(collection.nfts[0])
        plan.add_collection(collection)
        assert nft_id(1) not in plan
        assert collection.id in plan
        assert len(plan) == 1

    def test_remove(self, token: Token) -> None:
        plan = DistributionPlan()
        plan.add_token(token)
        assert plan.remove(TOKEN_ID)
        assert not plan.remove(TOKEN_ID)
        assert len(plan) == 0

    def test_set_type(self, token: Token) -> None:
        plan = DistributionPlan()
        plan.add_token(token)
        plan.add_nft(NFT(token_id=nft_id(1), name="Ape 1"))
        assert plan.set_type(TOKEN_ID, "per-user")
        assert plan.set_type(nft_id(1), "random")
        assert plan.token_distributions[0].type is TokenDistributionType.PER_USER
        assert plan.nft_distributions[0].type is NFTDistributionType.RANDOM
        assert not plan.set_type("missing", "set")

    def test_remap(self, make_recipients) -> None:
        recipients = make_recipients(2)
        plan = DistributionPlan()
        plan.add_collection(_collection(3))
        plan.add_nft(NFT(token_id=nft_id(9), name="Loner"))
        plan.remap(recipients)

        collection_record, nft_record = plan.nft_distributions
        assert collection_record.mapping == {
            nft_id(1): recipients[0].id,
            nft_id(2): recipients[1].id,
        }
        assert nft_record.mapping == {nft_id(9): recipients[0].id}

    def test_records_added_after_remap_use_known_recipients(self, make_recipients) -> None:
        recipients = make_recipients(2)
        plan = DistributionPlan()
        plan.remap(recipients)

        collection_record = plan.add_collection(_collection(3))
        nft_record = plan.add_nft(NFT(token_id=nft_id(9), name="Loner"))

        assert collection_record.mapping == {
            nft_id(1): recipients[0].id,
            nft_id(2): recipients[1].id,
        }
        assert nft_record.mapping == {nft_id(9): recipients[0].id}

    def test_clear_forgets_recipients(self, make_recipients) -> None:
        plan = DistributionPlan()
        plan.remap(make_recipients(2))
        plan.clear()
        record = plan.add_collection(_collection(2))
        assert record.mapping == {nft_id(1): "temp_0", nft_id(2): "temp_1"}

    def test_set_mapping(self) -> None:
        plan = DistributionPlan()
        plan.add_nft(NFT(token_id=nft_id(1), name="Ape 1"))
        assert plan.set_mapping(nft_id(1), {nft_id(1): "recipient2"})
        assert plan.nft_distributions[0].mapping == {nft_id(1): "recipient2"}
        assert not plan.set_mapping("missing", {})

    def test_to_config_and_clear(self, token: Token, make_recipients) -> None:
        plan = DistributionPlan()
        plan.add_token(token)
        recipients = make_recipients(2)
        config = plan.to_config(recipients)
        assert config.token_distributions == plan.token_distributions
        assert config.recipients == recipients

        plan.clear()
        assert len(plan) == 0
        assert len(config.token_distributions) == 1
