"""Data models shared by ingestion, aggregation, and presentation layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True, slots=True)
class RawAccount:
    """Undecoded account payload as returned by the ledger query."""

    address: str
    payload: bytes


@dataclass(frozen=True, slots=True)
class DecodedTokenAccount:
    """Token account fields decoded from the SPL Token account layout.

    ``amount`` is the raw base-unit balance as decimal digits; mint decimals
    are not applied.
    """

    address: str
    mint: str
    owner: str
    amount: str


@dataclass(frozen=True, slots=True)
class MarketSnapshot:
    """USD market statistics for a single mint."""

    price_usd: float = 0.0
    market_cap_usd: float = 0.0
    volume_24h_usd: float = 0.0

    @classmethod
    def zero(cls) -> "MarketSnapshot":
        return cls(0.0, 0.0, 0.0)


_ZERO_SNAPSHOT = MarketSnapshot.zero()


@dataclass(frozen=True, slots=True)
class EnrichedTokenRecord:
    """Decoded account merged with its market snapshot.

    ``market`` is ``None`` when the lookup failed. The flat accessors render a
    missing snapshot as zeros, so the log and the presentation layers print
    ``$0.00`` either way while callers can still check ``has_market_data``.
    """

    account: DecodedTokenAccount
    market: Optional[MarketSnapshot] = None

    @property
    def has_market_data(self) -> bool:
        return self.market is not None

    @property
    def address(self) -> str:
        return self.account.address

    @property
    def mint(self) -> str:
        return self.account.mint

    @property
    def owner(self) -> str:
        return self.account.owner

    @property
    def amount(self) -> str:
        return self.account.amount

    @property
    def price_usd(self) -> float:
        return (self.market or _ZERO_SNAPSHOT).price_usd

    @property
    def market_cap_usd(self) -> float:
        return (self.market or _ZERO_SNAPSHOT).market_cap_usd

    @property
    def volume_24h_usd(self) -> float:
        return (self.market or _ZERO_SNAPSHOT).volume_24h_usd

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "mint": self.mint,
            "owner": self.owner,
            "amount": self.amount,
            "price_usd": self.price_usd,
            "market_cap_usd": self.market_cap_usd,
            "volume_24h_usd": self.volume_24h_usd,
            "has_market_data": self.has_market_data,
        }


@dataclass(slots=True)
class AggregationResult:
    """Outcome of one pipeline run."""

    records: List[EnrichedTokenRecord] = field(default_factory=list)
    log_buffer: str = ""
    accounts_received: int = 0
    decode_failures: int = 0
    lookup_failures: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()


__all__ = [
    "AggregationResult",
    "DecodedTokenAccount",
    "EnrichedTokenRecord",
    "MarketSnapshot",
    "RawAccount",
]
