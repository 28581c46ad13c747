"""Explorer (metadata fetcher) errors."""

from __future__ import annotations

from ergo_airdrop.errors.airdrop_errors import AirdropError


class ExplorerError(AirdropError):
    """Error from the Ergo explorer API."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 502,
        code: str = "explorer-error",
    ) -> None:
        super().__init__(message, status_code=status_code, code=code)


class NotFound(ExplorerError):
    """The requested box or token does not exist on the explorer."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404, code="not-found")


class NetworkError(ExplorerError):
    """The explorer could not be reached or returned an error status."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code, code="network-error")
