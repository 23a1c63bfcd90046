"""Pydantic schemas for sx_secondary API."""

from pydantic import BaseModel, Field

from src.sx_clearing.application.trades_schemas import TradeResponse
from src.sx_common.enums import NotificationStatus


class SecondaryTradeRequest(BaseModel):
    venture_id: str
    buyer_identifier: str = Field(
        ..., min_length=1, max_length=320, description="Buyer email or display name"
    )
    qty: int
    price_per_share: int = Field(..., description="Cents per share")


class SecondaryRequestResponse(BaseModel):
    notification_id: str
    venture_id: str
    seller_participant_id: str
    buyer_participant_id: str
    qty: int
    price_per_share: int
    total_value: int
    status: NotificationStatus


class SecondaryAcceptResponse(BaseModel):
    notification_id: str
    trade: TradeResponse
    buyer_cash_after: int | None = None


class SecondaryRejectResponse(BaseModel):
    notification_id: str
    status: NotificationStatus
