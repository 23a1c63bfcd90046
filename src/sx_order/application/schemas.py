# src/sx_order/application/schemas.py
from datetime import datetime

from pydantic import BaseModel, Field

from src.sx_common.enums import OrderDecision, OrderStatus, RejectReason
from src.sx_order.domain.models import PrimaryOrder


class CreateOrderRequest(BaseModel):
    venture_id: str
    qty: int = Field(..., description="Shares to buy from the venture's primary pool")
    price_per_share: int = Field(..., description="Offer in cents per share")
    auto_accept_min_price: int | None = Field(
        None, description="Founder-set floor; offers at or above it settle immediately"
    )


class DecideOrderRequest(BaseModel):
    decision: OrderDecision


class OrderResponse(BaseModel):
    id: str
    game_id: str
    venture_id: str
    buyer_participant_id: str
    qty: int
    price_per_share: int
    total_cost: int
    status: OrderStatus
    auto_accept_min_price: int | None = None
    decided_by_participant_id: str | None = None
    reject_reason: RejectReason | None = None
    trade_id: str | None = None
    created_at: datetime | None = None
    decided_at: datetime | None = None

    @classmethod
    def from_domain(cls, order: PrimaryOrder) -> "OrderResponse":
        return cls(
            id=order.id,
            game_id=order.game_id,
            venture_id=order.venture_id,
            buyer_participant_id=order.buyer_participant_id,
            qty=order.qty,
            price_per_share=order.price_per_share,
            total_cost=order.total_cost,
            status=order.status,
            auto_accept_min_price=order.auto_accept_min_price,
            decided_by_participant_id=order.decided_by_participant_id,
            reject_reason=order.reject_reason,
            trade_id=order.trade_id,
            created_at=order.created_at,
            decided_at=order.decided_at,
        )


class OrderListResponse(BaseModel):
    items: list[OrderResponse]


class ExpireOrdersResponse(BaseModel):
    expired: int
    game_ids: list[str]
