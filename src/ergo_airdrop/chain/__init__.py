"""Chain access: Ergo explorer integration."""

from ergo_airdrop.chain.explorer.client import ExplorerClient

__all__ = ["ExplorerClient"]
