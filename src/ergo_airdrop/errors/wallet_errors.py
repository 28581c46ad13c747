"""Wallet signing and submission errors."""

from __future__ import annotations

from ergo_airdrop.errors.airdrop_errors import AirdropError


class WalletError(AirdropError):
    """Error raised by the wallet capability set."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 502,
        code: str = "wallet-error",
    ) -> None:
        super().__init__(message, status_code=status_code, code=code)


class SigningRejected(WalletError):
    """The user declined to sign the transaction."""

    def __init__(self, message: str = "transaction signing rejected by user") -> None:
        super().__init__(message, status_code=403, code="signing-rejected")


class SigningFailed(WalletError):
    """The wallet failed to sign the transaction."""

    def __init__(self, message: str = "failed to sign transaction") -> None:
        super().__init__(message, code="signing-failed")


class SubmissionFailed(WalletError):
    """The signed transaction could not be submitted."""

    def __init__(self, message: str = "failed to submit transaction") -> None:
        super().__init__(message, code="submission-failed")
