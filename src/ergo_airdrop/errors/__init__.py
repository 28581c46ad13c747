"""Error hierarchy for ergo-airdrop."""

from __future__ import annotations

from ergo_airdrop.errors.airdrop_errors import AirdropError
from ergo_airdrop.errors.explorer_errors import ExplorerError, NetworkError, NotFound
from ergo_airdrop.errors.wallet_errors import (
    SigningFailed,
    SigningRejected,
    SubmissionFailed,
    WalletError,
)

__all__ = [
    "AirdropError",
    "ExplorerError",
    "NetworkError",
    "NotFound",
    "SigningFailed",
    "SigningRejected",
    "SubmissionFailed",
    "WalletError",
]
