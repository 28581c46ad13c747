"""Tests for bulk recipient import: CSV/JSON parsing and URL fetching."""

from __future__ import annotations

import json
import logging

import httpx
import pytest
from conftest import p2pk_address

from ergo_airdrop.engine.recipients import (
    RecipientEntry,
    default_name,
    fetch_recipients,
    parse_recipients,
)
from ergo_airdrop.errors.explorer_errors import NetworkError, NotFound

_ALICE = p2pk_address(1)
_BOB = p2pk_address(2)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


class TestParseCsv:
    def test_address_and_optional_name(self) -> None:
        text = f"{_ALICE}, Alice\n\n  {_BOB}  \n"
        assert parse_recipients(text) == [
            RecipientEntry(address=_ALICE, name="Alice"),
            RecipientEntry(address=_BOB, name=""),
        ]

    def test_header_skipped(self) -> None:
        text = f"address,name\n{_ALICE},Alice\n"
        assert [e.address for e in parse_recipients(text)] == [_ALICE]

    def test_duplicates_kept(self) -> None:
        text = f"{_ALICE}\n{_ALICE}\n"
        assert len(parse_recipients(text)) == 2

    def test_invalid_address_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        text = f"{_ALICE}\n9fNotAnAddress\n"
        with caplog.at_level(logging.WARNING):
            entries = parse_recipients(text)
        assert [e.address for e in entries] == [_ALICE]
        assert "9fNotAnAddress" in caplog.text

    def test_empty(self) -> None:
        assert parse_recipients("   \n") == []


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


class TestParseJson:
    def test_list_of_strings(self) -> None:
        entries = parse_recipients(json.dumps([_ALICE, _BOB, _ALICE, ""]))
        assert [e.address for e in entries] == [_ALICE, _BOB]
        assert entries[0].name == default_name(_ALICE)

    def test_list_of_objects(self) -> None:
        data = [{"miner": _ALICE}, {"address": _BOB, "name": "Bob"}]
        assert parse_recipients(json.dumps(data)) == [
            RecipientEntry(address=_ALICE, name=default_name(_ALICE)),
            RecipientEntry(address=_BOB, name="Bob"),
        ]

    def test_custom_address_field(self) -> None:
        data = [{"wallet": _ALICE}, {"address": _BOB}]
        entries = parse_recipients(json.dumps(data), address_field="wallet")
        assert [e.address for e in entries] == [_ALICE, _BOB]

    def test_miners_object(self) -> None:
        data = {"miners": [{"address": _ALICE}, {"miner": _BOB}, {"hashrate": 5}]}
        assert [e.address for e in parse_recipients(json.dumps(data))] == [_ALICE, _BOB]

    def test_address_field_object(self) -> None:
        assert len(parse_recipients(json.dumps({"address": [_ALICE, _BOB]}))) == 2
        assert len(parse_recipients(json.dumps({"address": _ALICE}))) == 1

    def test_invalid_address_skipped(self) -> None:
        entries = parse_recipients(json.dumps([_ALICE, "nope"]))
        assert [e.address for e in entries] == [_ALICE]

    def test_unrecognized_shape(self) -> None:
        with pytest.raises(ValueError, match="unrecognized"):
            parse_recipients(json.dumps({"wallets": [_ALICE]}))

    def test_broken_json(self) -> None:
        with pytest.raises(ValueError, match="invalid JSON"):
            parse_recipients("[not json")


# ---------------------------------------------------------------------------
# URL
# ---------------------------------------------------------------------------


class TestFetchRecipients:
    @pytest.mark.asyncio
    async def test_fetch(self) -> None:
        urls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            urls.append(str(request.url))
            return httpx.Response(200, json=[{"payout": _ALICE}, {"payout": _BOB}])

        async with _client(handler) as client:
            entries = await fetch_recipients(
                "https://pool.example/api/payouts", address_field="payout", client=client
            )

        assert urls == ["https://pool.example/api/payouts"]
        assert [e.address for e in entries] == [_ALICE, _BOB]

    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        async with _client(handler) as client:
            with pytest.raises(NotFound):
                await fetch_recipients("https://pool.example/missing", client=client)

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        async with _client(handler) as client:
            with pytest.raises(NetworkError, match="503"):
                await fetch_recipients("https://pool.example/api", client=client)

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        async with _client(handler) as client:
            with pytest.raises(NetworkError, match="connection refused"):
                await fetch_recipients("https://pool.example/api", client=client)

    @pytest.mark.asyncio
    async def test_body_not_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>busy</html>")

        async with _client(handler) as client:
            with pytest.raises(NetworkError, match="invalid JSON"):
                await fetch_recipients("https://pool.example/api", client=client)
