"""Pydantic schemas for sx_account API."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from src.sx_account.domain.models import LedgerEntry, Participant
from src.sx_common.enums import ParticipantRole, ParticipantStatus
from src.sx_common.money import cents_to_display

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class JoinGameRequest(BaseModel):
    role: ParticipantRole


class RemoveParticipantRequest(BaseModel):
    successor_participant_id: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ParticipantResponse(BaseModel):
    id: str
    game_id: str
    user_id: str
    role: ParticipantRole
    status: ParticipantStatus
    display_name: str | None = None
    initial_budget_cents: int
    current_cash_cents: int
    current_cash_display: str

    @classmethod
    def from_domain(cls, p: Participant, currency: str = "USD") -> "ParticipantResponse":
        return cls(
            id=p.id,
            game_id=p.game_id,
            user_id=p.user_id,
            role=p.role,
            status=p.status,
            display_name=p.display_name,
            initial_budget_cents=p.initial_budget,
            current_cash_cents=p.current_cash,
            current_cash_display=cents_to_display(p.current_cash, currency),
        )


class LedgerEntryItem(BaseModel):
    id: int
    entry_type: str
    amount_cents: int
    amount_display: str
    balance_after_cents: int
    balance_after_display: str
    reference_type: str | None
    reference_id: str | None
    created_at: str | None  # ISO8601 string

    @classmethod
    def from_domain(cls, e: LedgerEntry, currency: str = "USD") -> "LedgerEntryItem":
        return cls(
            id=e.id,
            entry_type=e.entry_type.value,
            amount_cents=e.amount,
            amount_display=cents_to_display(e.amount, currency),
            balance_after_cents=e.balance_after,
            balance_after_display=cents_to_display(e.balance_after, currency),
            reference_type=e.reference_type,
            reference_id=e.reference_id,
            created_at=e.created_at.isoformat() if e.created_at else None,
        )


class LedgerResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool


class PositionResponse(BaseModel):
    venture_id: str
    venture_name: str | None = None
    qty_total: int
    avg_cost: Decimal
    mark_price: Decimal
    market_value: Decimal
    unrealized_pnl: Decimal


class PositionListResponse(BaseModel):
    items: list[PositionResponse]
    total: int


class PortfolioResponse(BaseModel):
    participant_id: str
    currency: str
    cash_cents: int
    cash_display: str
    holdings_value: Decimal
    total_value: Decimal
    total_value_display: str
    initial_budget_cents: int
    roi_pct: Decimal | None
    unrealized_pnl: Decimal
    positions: list[PositionResponse]


class OrphanRepairItem(BaseModel):
    venture_id: str
    successor_participant_id: str | None = None
    canceled_order_ids: list[str] = []


class RemovalResponse(BaseModel):
    participant: ParticipantResponse
    canceled_order_ids: list[str]
    ventures: list[OrphanRepairItem]


class ParticipantDecisionResponse(BaseModel):
    participant: ParticipantResponse
    notification_id: str
    decided_at: datetime | None = None
