"""Domain models for sx_venture — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.sx_common.enums import FounderMemberRole


@dataclass
class Venture:
    id: str
    game_id: str
    name: str
    total_shares: int
    primary_shares_remaining: int  # in [0, total_shares], only ever decreases
    last_vwap_price: Decimal | None = None  # cents per share; None until first trade
    description: str | None = None
    logo_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def issued_shares(self) -> int:
        return self.total_shares - self.primary_shares_remaining

    @property
    def market_cap(self) -> Decimal:
        if self.last_vwap_price is None:
            return Decimal("0")
        return self.last_vwap_price * self.issued_shares


@dataclass
class FounderMember:
    venture_id: str
    participant_id: str
    role: FounderMemberRole
    created_at: datetime | None = None

    @property
    def is_owner(self) -> bool:
        return self.role is FounderMemberRole.OWNER


@dataclass
class OrphanRepair:
    """Outcome of restoring the at-least-one-founder rule for one venture."""

    venture_id: str
    successor_participant_id: str | None = None
    canceled_order_ids: list[str] | None = None
