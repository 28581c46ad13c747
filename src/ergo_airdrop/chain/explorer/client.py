"""Ergo explorer REST client: token boxes, address tokens, height, submit.

Async HTTP client for the public Ergo explorer API (v1):
- GET  /tokens/<tokenId>                   (issuing box id)
- GET  /boxes/<boxId>                      (box registers and assets)
- GET  /addresses/<addr>/balance/confirmed (token holdings)
- GET  /networkState                       (current height)
- POST /mempool/transactions/submit

Satisfies the ``MetadataFetcher`` contract used by collection discovery.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ergo_airdrop.engine.models import Token
from ergo_airdrop.errors.explorer_errors import NetworkError, NotFound

logger = logging.getLogger(__name__)

_BASE_URL = "https://api.ergoplatform.com/api/v1"


def normalize_registers(raw: dict[str, Any] | None) -> dict[str, str]:
    """Flatten explorer register entries to ``{name: serialized hex}``.

    The explorer returns either plain hex strings or objects carrying a
    ``serializedValue``; entries without a usable value are dropped.
    """
    registers: dict[str, str] = {}
    for name, value in (raw or {}).items():
        if isinstance(value, dict):
            value = value.get("serializedValue")
        if isinstance(value, str) and value:
            registers[name] = value
    return registers


def normalize_assets(raw: list[dict[str, Any]] | None) -> list[dict[str, str]]:
    """Reduce explorer box assets to ``[{"token_id": ..., "name": ...}]``."""
    return [
        {"token_id": asset["tokenId"], "name": asset.get("name") or ""}
        for asset in raw or []
        if asset.get("tokenId")
    ]


async def send_checked(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    source: str = "explorer",
    **kwargs: Any,
) -> httpx.Response:
    """Send a request, mapping failures onto ``NetworkError`` and ``NotFound``.

    *source* names the remote side in error messages.
    """
    try:
        resp = await client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        msg = f"{source} request {method} {url} failed: {exc}"
        raise NetworkError(msg) from exc
    if resp.status_code == 404:
        msg = f"{source} resource not found: {url}"
        raise NotFound(msg)
    if resp.status_code >= 400:
        logger.warning("%s %s %s returned %d", source, method, url, resp.status_code)
        msg = f"{source} returned {resp.status_code} for {method} {url}"
        raise NetworkError(msg)
    return resp


class ExplorerClient:
    """Async HTTP client for the Ergo explorer API.

    Usage::

        explorer = ExplorerClient()
        await explorer.connect()
        try:
            box = await explorer.get_box_by_token_id("03faf2cb...")
        finally:
            await explorer.close()
    """

    def __init__(self, *, base_url: str = _BASE_URL, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Accept": "application/json"},
            timeout=self._timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_box_by_token_id(self, token_id: str) -> dict[str, Any]:
        """Get the issuing box of a token.

        Returns:
            ``{"box_id": ..., "registers": {name: hex}, "assets": [...]}`` where
            each asset is ``{"token_id": ..., "name": ...}``.

        Raises:
            NotFound: If the token or its box is unknown.
            NetworkError: On transport failures or error responses.
        """
        token = await self._get_json(f"/tokens/{token_id}")
        box_id = token.get("boxId")
        if not box_id:
            msg = f"token {token_id} has no issuing box"
            raise NotFound(msg)
        box = await self._get_json(f"/boxes/{box_id}")
        return {
            "box_id": box_id,
            "registers": normalize_registers(box.get("additionalRegisters")),
            "assets": normalize_assets(box.get("assets")),
        }

    async def get_address_tokens(self, address: str) -> list[Token]:
        """Get confirmed token holdings of an address."""
        data = await self._get_json(f"/addresses/{address}/balance/confirmed")
        return [
            Token(
                token_id=item["tokenId"],
                name=item.get("name") or "",
                decimals=int(item.get("decimals") or 0),
                amount=int(item["amount"]),
            )
            for item in data.get("tokens", [])
        ]

    async def get_current_height(self) -> int:
        data = await self._get_json("/networkState")
        return int(data["height"])

    async def submit_transaction(self, signed_tx: dict[str, Any]) -> str:
        """Submit a signed transaction to the mempool; returns its id."""
        resp = await self._request("POST", "/mempool/transactions/submit", json=signed_tx)
        data = resp.json()
        return data["id"] if isinstance(data, dict) else str(data)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _get_json(self, path: str) -> dict[str, Any]:
        resp = await self._request("GET", path)
        data: dict[str, Any] = resp.json()
        return data

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        return await send_checked(self._ensure_connected(), method, path, **kwargs)

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "ExplorerClient is not connected, call connect() first"
            raise RuntimeError(msg)
        return self._client
