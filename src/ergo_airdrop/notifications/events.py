"""Event types pushed to the notification channel.

- ``RawEvent``: envelope with type string + JSON content
- ``AirdropSummary``: counts and fee of one airdrop transaction
- ``AirdropEvent``: an airdrop was submitted or failed
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ergo_airdrop.engine.assembly import AssemblyResult
    from ergo_airdrop.engine.models import AirdropConfig

AIRDROP_SUBMITTED = "airdrop_submitted"
AIRDROP_FAILED = "airdrop_failed"


@dataclass(frozen=True)
class RawEvent:
    """Generic event envelope sent to subscribers."""

    type: str
    content: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict."""
        return asdict(self)


@dataclass(frozen=True)
class AirdropSummary:
    """Structured summary of an airdrop transaction."""

    token_distributions: int = 0
    nft_distributions: int = 0
    recipients: int = 0
    transfers: int = 0
    input_count: int = 0
    output_count: int = 0
    fee: int = 0

    @classmethod
    def from_assembly(cls, config: AirdropConfig, result: AssemblyResult) -> AirdropSummary:
        return cls(
            token_distributions=len(config.token_distributions),
            nft_distributions=len(config.nft_distributions),
            recipients=len(config.recipients),
            transfers=len(result.transfers),
            input_count=len(result.unsigned_tx.inputs),
            output_count=len(result.unsigned_tx.outputs),
            fee=result.fee,
        )


@dataclass(frozen=True)
class AirdropEvent(RawEvent):
    """Event emitted when an airdrop transaction is submitted or fails."""

    type: str = AIRDROP_SUBMITTED
    transaction_id: str = ""
    summary: AirdropSummary = field(default_factory=AirdropSummary)
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict (includes all fields)."""
        return asdict(self)
