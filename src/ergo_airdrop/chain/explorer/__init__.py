"""Explorer: token boxes, holdings and transaction submission."""

from ergo_airdrop.chain.explorer.client import (
    ExplorerClient,
    normalize_assets,
    normalize_registers,
    send_checked,
)

__all__ = ["ExplorerClient", "normalize_assets", "normalize_registers", "send_checked"]
