"""Pre-defined airdrop errors.

Precondition errors abort an airdrop before any output is built; their
messages are surfaced verbatim to the user.
"""

from __future__ import annotations

from ergo_airdrop.errors.airdrop_errors import AirdropError

# -- Preconditions ---------------------------------------------------------

ErrWalletNotConnected = AirdropError(
    "wallet not connected", status_code=409, code="wallet-not-connected"
)
ErrNoRecipients = AirdropError(
    "no recipients specified for airdrop", status_code=400, code="no-recipients"
)
ErrNoFunds = AirdropError("no input boxes available in wallet", status_code=422, code="no-funds")

# -- Configuration ---------------------------------------------------------

ErrNoDistributions = AirdropError(
    "no token or NFT distributions configured", status_code=400, code="no-distributions"
)
ErrInvalidChangeAddress = AirdropError(
    "wallet change address is invalid", status_code=400, code="invalid-change-address"
)

# -- Transaction -----------------------------------------------------------

ErrNoOutputs = AirdropError(
    "airdrop produced no transaction outputs", status_code=422, code="no-outputs"
)
ErrInsufficientInputs = AirdropError(
    "not enough ERG in wallet inputs to cover outputs and fee",
    status_code=422,
    code="insufficient-inputs",
)
ErrInsufficientTokens = AirdropError(
    "not enough tokens in wallet inputs to cover outputs",
    status_code=422,
    code="insufficient-tokens",
)
