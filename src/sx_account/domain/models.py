"""Domain models for sx_account — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.sx_common.enums import LedgerEntryType, ParticipantRole, ParticipantStatus


@dataclass
class Participant:
    id: str
    game_id: str
    user_id: str
    role: ParticipantRole
    status: ParticipantStatus
    initial_budget: int  # cents
    current_cash: int    # cents, never negative
    email: str | None = None
    display_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status is ParticipantStatus.ACTIVE

    @property
    def is_organizer(self) -> bool:
        return self.role is ParticipantRole.ORGANIZER


@dataclass
class Position:
    participant_id: str
    venture_id: str
    qty_total: int = 0
    avg_cost: Decimal = Decimal("0")  # cents per share, quantity-weighted over buys
    updated_at: datetime | None = None

    @property
    def cost_basis(self) -> Decimal:
        return self.avg_cost * self.qty_total


@dataclass
class LedgerEntry:
    """Append-only cash journal row; one per cash movement."""

    id: int
    participant_id: str
    game_id: str
    entry_type: LedgerEntryType
    amount: int         # cents, positive=credit negative=debit
    balance_after: int  # cents, current_cash snapshot after the movement
    reference_type: str | None = None
    reference_id: str | None = None
    created_at: datetime | None = None
