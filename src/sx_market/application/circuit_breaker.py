"""CircuitBreaker — inspects every price update and pauses the game's market
when the move exceeds the configured threshold."""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sx_common.enums import EventType
from src.sx_game.domain.models import CircuitBreakerEvent, Game
from src.sx_game.domain.repository import GameRepositoryProtocol
from src.sx_game.infrastructure.persistence import GameRepository
from src.sx_market.domain.models import PriceUpdate
from src.sx_market.domain.pricing import is_circuit_breaker_triggered, price_change_pct
from src.sx_notification.domain.events import DomainEvent

logger = logging.getLogger(__name__)


class CircuitBreaker:
    def __init__(
        self,
        games: GameRepositoryProtocol | None = None,
        threshold_pct: Decimal | None = None,
        cooldown: timedelta | None = None,
    ) -> None:
        self._games: GameRepositoryProtocol = games or GameRepository()
        self._threshold = (
            threshold_pct
            if threshold_pct is not None
            else Decimal(settings.CIRCUIT_BREAKER_THRESHOLD_PCT)
        )
        self._cooldown = cooldown or timedelta(minutes=settings.CIRCUIT_BREAKER_COOLDOWN_MINUTES)

    async def inspect(
        self,
        db: AsyncSession,
        game: Game,
        update: PriceUpdate,
        now: datetime,
        outbox: list[Any],
    ) -> bool:
        """Returns True when this update tripped the breaker."""
        if not game.circuit_breaker:
            return False
        if not is_circuit_breaker_triggered(update.old_price, update.new_price, self._threshold):
            return False

        until = now + self._cooldown
        tripped = await self._games.trip_circuit_breaker(db, game.id, until)
        if tripped is None:
            return False

        change = price_change_pct(update.old_price, update.new_price)
        assert update.old_price is not None and update.new_price is not None and change is not None
        await self._games.record_circuit_breaker_event(
            db,
            CircuitBreakerEvent(
                game_id=game.id,
                venture_id=update.venture_id,
                old_price=update.old_price,
                new_price=update.new_price,
                change_pct=change.quantize(Decimal("0.01")),
                until=until,
                context={"threshold_pct": str(self._threshold)},
            ),
        )
        outbox.append(
            DomainEvent(
                EventType.CIRCUIT_BREAKER_TRIPPED,
                game.id,
                {
                    "venture_id": update.venture_id,
                    "old_price": str(update.old_price),
                    "new_price": str(update.new_price),
                    "until": until.isoformat(),
                },
            )
        )
        logger.info(
            "Circuit breaker tripped: game=%s venture=%s %s -> %s (%.2f%%) until %s",
            game.id,
            update.venture_id,
            update.old_price,
            update.new_price,
            change,
            until.isoformat(),
        )
        return True
