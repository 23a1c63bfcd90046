"""Leaderboard ranking — pure functions, no I/O."""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from src.sx_market.domain.models import LeaderboardEntry
from src.sx_venture.domain.models import Venture


@dataclass(frozen=True)
class InvestorStanding:
    participant_id: str
    name: str
    cash: int                # cents
    initial_budget: int      # cents
    holdings_value: Decimal  # cents, marked at VWAP or cost

    @property
    def total_value(self) -> Decimal:
        return self.holdings_value + self.cash

    @property
    def roi_pct(self) -> Decimal | None:
        if self.initial_budget <= 0:
            return None
        return ((self.total_value - self.initial_budget) / self.initial_budget * 100).quantize(
            Decimal("0.01")
        )


def rank_startups(ventures: Iterable[Venture]) -> list[LeaderboardEntry]:
    ordered = sorted(ventures, key=lambda v: (-v.market_cap, v.name, v.id))
    return [
        LeaderboardEntry(rank=i, subject_id=v.id, name=v.name, value=v.market_cap)
        for i, v in enumerate(ordered, start=1)
    ]


def rank_investors(standings: Iterable[InvestorStanding]) -> list[LeaderboardEntry]:
    # Ties broken by ROI, then id, so the order is stable between requests
    ordered = sorted(
        standings,
        key=lambda s: (
            -s.total_value,
            -(s.roi_pct if s.roi_pct is not None else Decimal("0")),
            s.participant_id,
        ),
    )
    return [
        LeaderboardEntry(
            rank=i,
            subject_id=s.participant_id,
            name=s.name,
            value=s.total_value,
            roi_pct=s.roi_pct,
        )
        for i, s in enumerate(ordered, start=1)
    ]
