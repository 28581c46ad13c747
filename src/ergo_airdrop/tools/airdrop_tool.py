#!/usr/bin/env python3
"""Ergo Airdrop Tool: inspect holdings and preview airdrop plans.

A standalone CLI utility:

    # List NFT collections and standalone NFTs held by an address
    python -m ergo_airdrop.tools.airdrop_tool collections <address>

    # Preview an airdrop plan described in YAML
    python -m ergo_airdrop.tools.airdrop_tool preview <plan.yaml>

Plan file layout:

    recipients:
      - {id: alice, address: 9f..., name: Alice}
    tokens:
      - {token_id: 03fa..., name: SigUSD, decimals: 2, type: total, amount: 10}
    nfts:
      - {token_id: 8e1b..., name: Ape 1, type: 1-to-1}
    collections:
      - id: collection_...
        name: Apes
        type: random
        nfts: [{token_id: ..., name: Ape 2}]

``1-to-1`` records without an explicit ``mapping`` get the i-th NFT mapped
to the i-th recipient. Settings come from ``AIRDROP_*`` environment
variables (``AIRDROP_CONFIG_PATH`` for a YAML settings file).
"""

from __future__ import annotations

import asyncio
import logging
import sys
from decimal import InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from ergo_airdrop.engine.models import NFT, AirdropConfig, Collection, Recipient, Token
from ergo_airdrop.engine.records import DistributionPlan


def load_plan(path: str | Path) -> AirdropConfig:
    """Read a YAML airdrop plan into an ``AirdropConfig``.

    Raises:
        ValueError: If the file is missing or malformed.
    """
    p = Path(path)
    if not p.exists():
        msg = f"plan file not found: {p}"
        raise ValueError(msg)
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        msg = f"plan file {p} must contain a mapping"
        raise ValueError(msg)

    plan = DistributionPlan()
    mappings: dict[str, dict[str, str]] = {}
    try:
        recipients = [
            Recipient(
                id=str(item.get("id") or f"recipient_{n}"),
                address=str(item["address"]).strip(),
                name=str(item.get("name") or ""),
            )
            for n, item in enumerate(data.get("recipients") or [])
        ]
        for item in data.get("tokens") or []:
            token = Token(
                token_id=item["token_id"],
                name=item.get("name", ""),
                decimals=int(item.get("decimals", 0)),
                amount=int(item.get("balance", 0)),
            )
            plan.add_token(token)
            plan.set_type(token.token_id, item.get("type", "total"))
            plan.set_amount(token.token_id, str(item.get("amount", 1)))
        for item in data.get("nfts") or []:
            nft = _nft(item)
            plan.add_nft(nft)
            _apply_nft_options(plan, nft.token_id, item, mappings)
        for item in data.get("collections") or []:
            collection = Collection(
                id=item["id"],
                name=item.get("name", ""),
                description=item.get("description", ""),
                nfts=[_nft(n) for n in item.get("nfts") or []],
            )
            plan.add_collection(collection)
            _apply_nft_options(plan, collection.id, item, mappings)
    except (KeyError, TypeError, AttributeError, ValueError, InvalidOperation) as exc:
        msg = f"malformed plan file {p}: {exc}"
        raise ValueError(msg) from exc

    plan.remap(recipients)
    for entity_id, mapping in mappings.items():
        plan.set_mapping(entity_id, mapping)
    return plan.to_config(recipients)


def _nft(item: dict[str, Any]) -> NFT:
    return NFT(
        token_id=item["token_id"],
        name=item.get("name", ""),
        description=item.get("description", ""),
        image_url=item.get("image_url", ""),
    )


def _apply_nft_options(
    plan: DistributionPlan,
    entity_id: str,
    item: dict[str, Any],
    mappings: dict[str, dict[str, str]],
) -> None:
    plan.set_type(entity_id, item.get("type", "1-to-1"))
    if "amount" in item:
        plan.set_amount(entity_id, int(item["amount"]))
    if "mapping" in item:
        mappings[entity_id] = {str(k): str(v) for k, v in item["mapping"].items()}


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _cmd_collections(address: str) -> None:
    """List NFT collections held by an address via the explorer."""
    from ergo_airdrop.chain.explorer.client import ExplorerClient
    from ergo_airdrop.config.settings import AppConfig
    from ergo_airdrop.engine.discovery import CollectionDiscovery

    config = AppConfig()
    _configure_logging(config.debug)

    async def _run() -> None:
        explorer = ExplorerClient(base_url=config.explorer.url, timeout=config.explorer.timeout)
        await explorer.connect()
        try:
            tokens = await explorer.get_address_tokens(address)
            discovery = CollectionDiscovery.from_config(explorer, config.discovery)
            result = await discovery.discover(tokens)
        finally:
            await explorer.close()

        print(f"Address: {address}  ({len(tokens)} tokens)")
        print("-" * 80)
        if not result.collections and not result.standalone_nfts:
            print("No NFTs found")
            return
        for collection in result.collections:
            print(f"Collection {collection.name!r}  [{len(collection.nfts)} NFTs]  {collection.id}")
            for nft in collection.nfts:
                print(f"    {nft.token_id}  {nft.name}")
        if result.standalone_nfts:
            print(f"Standalone NFTs  [{len(result.standalone_nfts)}]")
            for nft in result.standalone_nfts:
                print(f"    {nft.token_id}  {nft.name}")

    asyncio.run(_run())


def _cmd_preview(path: str) -> None:
    """Print what every recipient of a plan would receive."""
    from ergo_airdrop.config.settings import AppConfig
    from ergo_airdrop.engine.fees import FeeEstimator
    from ergo_airdrop.engine.models import validate_config
    from ergo_airdrop.engine.preview import generate_preview

    config = AppConfig()
    _configure_logging(config.debug)

    try:
        plan = load_plan(path)
    except ValueError as exc:
        print(f"Error: {exc}")
        sys.exit(1)
    problems = validate_config(plan)
    if problems:
        for problem in problems:
            print(f"Error: {problem}")
        sys.exit(1)

    preview = generate_preview(plan, estimator=FeeEstimator.from_config(config.fee))
    print(f"Recipients: {preview.total_recipients}")
    print("-" * 80)
    for recipient in plan.recipients:
        label = recipient.name or recipient.id
        print(f"{label}  {recipient.address}")
        for row in preview.rows_for(recipient.id):
            print(f"    {row.entity_type:<10}  {row.token_id}  {row.display_amount:>20}")
    print("-" * 80)
    for token_id, amount in preview.token_counts.items():
        print(f"  token {token_id}: {amount:,} raw units")
    for key, count in preview.nft_counts.items():
        print(f"  {key}: {count} NFTs")
    print(f"  Outputs: {len(preview.rows)}")
    print(f"  Estimated fee: {preview.estimated_fee:,} nanoERG  ({preview.estimated_fee_erg} ERG)")


def main() -> None:
    """CLI entry point."""
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    cmd = sys.argv[1].lower()

    if cmd == "collections":
        if len(sys.argv) < 3:
            print("Usage: airdrop_tool collections <address>")
            sys.exit(1)
        _cmd_collections(sys.argv[2])
    elif cmd == "preview":
        if len(sys.argv) < 3:
            print("Usage: airdrop_tool preview <plan.yaml>")
            sys.exit(1)
        _cmd_preview(sys.argv[2])
    else:
        print(f"Unknown command: {cmd}")
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
