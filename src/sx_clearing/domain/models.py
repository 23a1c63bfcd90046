"""Domain models for sx_clearing — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.sx_common.enums import MarketType
from src.sx_common.money import trade_value


@dataclass(frozen=True)
class Trade:
    """Immutable settlement record. Primary trades carry ``order_id`` and no
    seller; secondary trades carry ``notification_id`` and a seller."""

    id: str
    game_id: str
    venture_id: str
    market_type: MarketType
    buyer_participant_id: str
    qty: int
    price_per_share: int  # cents
    seller_participant_id: str | None = None
    order_id: str | None = None
    notification_id: str | None = None
    seller_realized_pnl: Decimal | None = None
    created_at: datetime | None = None

    @property
    def value(self) -> int:
        return trade_value(self.qty, self.price_per_share)

    @property
    def is_primary(self) -> bool:
        return self.market_type is MarketType.PRIMARY


@dataclass(frozen=True)
class SettlementResult:
    trade: Trade
    applied: bool  # False when the trade id was already settled
    buyer_cash_after: int | None = None
    seller_cash_after: int | None = None
    buyer_qty_after: int | None = None
    buyer_avg_cost_after: Decimal | None = None
    seller_realized_pnl: Decimal | None = None
