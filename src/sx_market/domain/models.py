"""Domain models for sx_market — pure dataclasses."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class PriceUpdate:
    venture_id: str
    old_price: Decimal | None
    new_price: Decimal | None

    @property
    def changed(self) -> bool:
        return self.old_price != self.new_price


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    subject_id: str
    name: str
    value: Decimal  # cents; market cap for startups, total value for investors
    roi_pct: Decimal | None = None
