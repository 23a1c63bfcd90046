"""Pydantic schemas for sx_game API."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.sx_common.enums import GameStatus
from src.sx_game.domain.models import Game


class ChangeStatusRequest(BaseModel):
    status: GameStatus


class LastMinutesEmailRequest(BaseModel):
    minutes_left: int = Field(..., ge=1, le=1440)


class GameResponse(BaseModel):
    id: str
    name: str
    status: GameStatus
    currency: str
    locale: str
    starts_at: datetime
    ends_at: datetime
    allow_secondary: bool
    circuit_breaker: bool
    circuit_breaker_active: bool
    circuit_breaker_until: datetime | None = None
    max_price_per_share: int | None = None

    @classmethod
    def from_domain(cls, game: Game) -> "GameResponse":
        return cls(
            id=game.id,
            name=game.name,
            status=game.status,
            currency=game.currency,
            locale=game.locale,
            starts_at=game.starts_at,
            ends_at=game.ends_at,
            allow_secondary=game.allow_secondary,
            circuit_breaker=game.circuit_breaker,
            circuit_breaker_active=game.circuit_breaker_active,
            circuit_breaker_until=game.circuit_breaker_until,
            max_price_per_share=game.max_price_per_share,
        )


class StatusChangeResponse(BaseModel):
    game: GameResponse
    previous_status: GameStatus
    expired_orders: int = 0


class EmailQueuedResponse(BaseModel):
    email_type: str
    recipients: int


class BreakerSweepResponse(BaseModel):
    reset_game_ids: list[str]
