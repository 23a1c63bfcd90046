# src/sx_clearing/application/trades_schemas.py
"""Pydantic schemas for trades API."""
from decimal import Decimal

from pydantic import BaseModel

from src.sx_clearing.domain.models import Trade
from src.sx_common.enums import MarketType


class TradeResponse(BaseModel):
    trade_id: str
    game_id: str
    venture_id: str
    market_type: MarketType
    qty: int
    price_per_share: int
    value: int
    buyer_participant_id: str
    seller_participant_id: str | None
    order_id: str | None
    notification_id: str | None
    seller_realized_pnl: Decimal | None
    executed_at: str | None

    @classmethod
    def from_domain(cls, trade: Trade) -> "TradeResponse":
        return cls(
            trade_id=trade.id,
            game_id=trade.game_id,
            venture_id=trade.venture_id,
            market_type=trade.market_type,
            qty=trade.qty,
            price_per_share=trade.price_per_share,
            value=trade.value,
            buyer_participant_id=trade.buyer_participant_id,
            seller_participant_id=trade.seller_participant_id,
            order_id=trade.order_id,
            notification_id=trade.notification_id,
            seller_realized_pnl=trade.seller_realized_pnl,
            executed_at=trade.created_at.isoformat() if trade.created_at else None,
        )


class TradeListResponse(BaseModel):
    items: list[TradeResponse]
    has_more: bool
    next_cursor: str | None
