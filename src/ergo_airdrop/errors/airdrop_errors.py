"""AirdropError: base exception class for all ergo-airdrop errors."""

from __future__ import annotations


class AirdropError(Exception):
    """Base error for all airdrop operations.

    Attributes:
        message: Human-readable error description, safe to show to a user.
        status_code: Suggested HTTP status code.
        code: Machine-readable error code string.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        code: str = "airdrop-error",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
