"""Bulk recipient import: CSV or JSON text, and JSON address lists over HTTP.

Accepted shapes:
- CSV / plain text, one ``address[,name]`` per line; blank lines skipped
- JSON array of address strings or of objects carrying ``miner`` or the
  address field (``address`` by default)
- JSON object with a ``miners`` list (mining pool payouts), with the address
  field holding one address or a list, or with a plain ``address``

Addresses that do not validate are skipped with a warning. JSON address
lists are de-duplicated; CSV rows are kept as written.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from ergo_airdrop.chain.explorer.client import send_checked
from ergo_airdrop.ergo.address import validate_address
from ergo_airdrop.errors.explorer_errors import NetworkError

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

_CSV_HEADER = "address"


@dataclass(frozen=True)
class RecipientEntry:
    """An address to airdrop to, before it is given a recipient id."""

    address: str
    name: str = ""


def default_name(address: str) -> str:
    return f"Recipient {address[:8]}..."


def parse_recipients(text: str, *, address_field: str = "address") -> list[RecipientEntry]:
    """Parse recipients from CSV or JSON *text*.

    Raises:
        ValueError: If the text looks like JSON but does not parse, or the
            JSON has none of the accepted shapes.
    """
    stripped = text.strip()
    if not stripped:
        return []
    if stripped[0] in "[{":
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError as exc:
            msg = f"invalid JSON recipient list: {exc}"
            raise ValueError(msg) from exc
        return _keep_valid(_entries_from_json(data, address_field))
    return _keep_valid(_entries_from_csv(stripped))


async def fetch_recipients(
    url: str,
    *,
    address_field: str = "address",
    client: httpx.AsyncClient | None = None,
    timeout: float = 10.0,
) -> list[RecipientEntry]:
    """GET a JSON address list from *url*.

    Raises:
        NotFound: On a 404 response.
        NetworkError: On transport failures, error statuses or a body that
            is not JSON.
        ValueError: If the JSON has none of the accepted shapes.
    """
    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=timeout, headers={"Accept": "application/json"})
    try:
        resp = await send_checked(http, "GET", url, source="recipient API")
        try:
            data = resp.json()
        except ValueError as exc:
            msg = f"recipient API returned invalid JSON from {url}"
            raise NetworkError(msg) from exc
    finally:
        if owns_client:
            await http.aclose()

    entries = _keep_valid(_entries_from_json(data, address_field))
    logger.info("Fetched %d recipients from %s", len(entries), url)
    return entries


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------


def _entries_from_csv(text: str) -> list[RecipientEntry]:
    entries = []
    for row in csv.reader(io.StringIO(text)):
        if not row or not row[0].strip():
            continue
        address = row[0].strip()
        if address.lower() == _CSV_HEADER:
            continue
        name = row[1].strip() if len(row) > 1 else ""
        entries.append(RecipientEntry(address=address, name=name))
    return entries


def _item_address(item: Any, address_field: str) -> Any:
    if isinstance(item, dict):
        return item.get("miner") or item.get(address_field) or item.get("address")
    return item


def _entries_from_json(data: Any, address_field: str) -> list[RecipientEntry]:
    items: list[Any]
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict) and isinstance(data.get("miners"), list):
        items = [
            (m.get("address") or m.get("miner")) if isinstance(m, dict) else m
            for m in data["miners"]
        ]
    elif isinstance(data, dict) and data.get(address_field):
        value = data[address_field]
        items = value if isinstance(value, list) else [value]
    elif isinstance(data, dict) and data.get("address"):
        items = [data["address"]]
    else:
        msg = "unrecognized recipient list format"
        raise ValueError(msg)

    entries = []
    seen: set[str] = set()
    for item in items:
        address = _item_address(item, address_field)
        if not isinstance(address, str) or not address.strip():
            continue
        address = address.strip()
        if address in seen:
            continue
        seen.add(address)
        name = item.get("name") if isinstance(item, dict) else None
        entries.append(RecipientEntry(address=address, name=name or default_name(address)))
    return entries


def _keep_valid(entries: Iterable[RecipientEntry]) -> list[RecipientEntry]:
    valid = []
    for entry in entries:
        if validate_address(entry.address):
            valid.append(entry)
        else:
            logger.warning("Skipping invalid recipient address %r", entry.address)
    return valid
