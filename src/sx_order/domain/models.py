"""Primary order domain model — pure dataclass, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.sx_common.enums import OrderStatus, RejectReason
from src.sx_common.money import trade_value

# One-way lifecycle: pending is the only non-terminal state.
ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.ACCEPTED, OrderStatus.REJECTED, OrderStatus.CANCELED, OrderStatus.EXPIRED}
    ),
    OrderStatus.ACCEPTED: frozenset(),
    OrderStatus.REJECTED: frozenset(),
    OrderStatus.CANCELED: frozenset(),
    OrderStatus.EXPIRED: frozenset(),
}


@dataclass
class PrimaryOrder:
    id: str
    game_id: str
    venture_id: str
    buyer_participant_id: str
    qty: int
    price_per_share: int  # cents
    status: OrderStatus = OrderStatus.PENDING
    auto_accept_min_price: int | None = None  # cents
    decided_by_participant_id: str | None = None
    reject_reason: RejectReason | None = None
    trade_id: str | None = None
    created_at: datetime | None = None
    decided_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_cost(self) -> int:
        return trade_value(self.qty, self.price_per_share)

    @property
    def is_pending(self) -> bool:
        return self.status is OrderStatus.PENDING

    @property
    def qualifies_for_auto_accept(self) -> bool:
        return (
            self.auto_accept_min_price is not None
            and self.price_per_share >= self.auto_accept_min_price
        )

    def can_move_to(self, target: OrderStatus) -> bool:
        return target in ORDER_TRANSITIONS[self.status]
