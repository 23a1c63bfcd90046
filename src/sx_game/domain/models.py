"""Domain models for sx_game — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from src.sx_common.enums import GameStatus

# Organizer-driven lifecycle; anything not listed is refused.
ALLOWED_STATUS_TRANSITIONS: dict[GameStatus, frozenset[GameStatus]] = {
    GameStatus.DRAFT: frozenset({GameStatus.PRE_MARKET}),
    GameStatus.PRE_MARKET: frozenset({GameStatus.OPEN}),
    GameStatus.OPEN: frozenset({GameStatus.CLOSED}),
    GameStatus.CLOSED: frozenset({GameStatus.OPEN, GameStatus.RESULTS}),
    GameStatus.RESULTS: frozenset(),
}


def can_transition(current: GameStatus, target: GameStatus) -> bool:
    return target in ALLOWED_STATUS_TRANSITIONS[current]


@dataclass
class Game:
    id: str
    name: str
    owner_user_id: str
    status: GameStatus
    currency: str
    starts_at: datetime
    ends_at: datetime
    allow_secondary: bool = False
    circuit_breaker: bool = False
    circuit_breaker_active: bool = False
    circuit_breaker_until: datetime | None = None
    max_price_per_share: int | None = None  # cents; None = only the global ceiling
    locale: str = "en"
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status is GameStatus.OPEN

    def is_paused(self, now: datetime) -> bool:
        """Breaker pause is in force until ``circuit_breaker_until`` passes,
        even if the sweep has not cleared the flag yet."""
        if not self.circuit_breaker_active:
            return False
        return self.circuit_breaker_until is None or now <= self.circuit_breaker_until


@dataclass
class GameRole:
    """Per-role default budget applied when a participant joins."""

    game_id: str
    role: str
    default_budget: int  # cents


@dataclass
class CircuitBreakerEvent:
    game_id: str
    venture_id: str
    old_price: Decimal
    new_price: Decimal
    change_pct: Decimal
    until: datetime
    id: int | None = None
    triggered_at: datetime | None = None
    context: dict[str, object] = field(default_factory=dict)
