"""GameService — organizer-driven lifecycle, emergency pause and the
circuit-breaker expiry sweep."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.application.access import require_organizer
from src.sx_account.domain.repository import ParticipantRepositoryProtocol
from src.sx_account.infrastructure.persistence import ParticipantRepository
from src.sx_common.datetime_utils import Clock, utc_now
from src.sx_common.enums import EmailType, EventType, GameStatus, ParticipantStatus
from src.sx_common.errors import (
    GameNotFoundError,
    GameNotOpenError,
    GameStatusConflictError,
    InvalidStatusTransitionError,
)
from src.sx_common.result import Err, Ok
from src.sx_game.application.schemas import (
    BreakerSweepResponse,
    EmailQueuedResponse,
    GameResponse,
    StatusChangeResponse,
)
from src.sx_game.domain.models import Game, can_transition
from src.sx_game.domain.repository import GameRepositoryProtocol
from src.sx_game.infrastructure.persistence import GameRepository
from src.sx_notification.application.dispatch import OutboxDispatcher
from src.sx_notification.domain.events import DomainEvent, EmailRequest
from src.sx_order.domain.repository import OrderRepositoryProtocol
from src.sx_order.infrastructure.persistence import OrderRepository

logger = logging.getLogger(__name__)

_STATUS_EMAILS: dict[GameStatus, EmailType] = {
    GameStatus.OPEN: EmailType.MARKET_OPEN,
    GameStatus.RESULTS: EmailType.RESULTS,
}


class GameService:
    def __init__(
        self,
        games: GameRepositoryProtocol | None = None,
        participants: ParticipantRepositoryProtocol | None = None,
        orders: OrderRepositoryProtocol | None = None,
        dispatcher: OutboxDispatcher | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._games: GameRepositoryProtocol = games or GameRepository()
        self._participants: ParticipantRepositoryProtocol = participants or ParticipantRepository()
        self._orders: OrderRepositoryProtocol = orders or OrderRepository()
        self._dispatcher = dispatcher or OutboxDispatcher()
        self._clock: Clock = clock or utc_now

    async def get_game(self, db: AsyncSession, game_id: str) -> GameResponse:
        game = await self._games.get_by_id(db, game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        return GameResponse.from_domain(game)

    async def change_status(
        self, db: AsyncSession, game_id: str, user_id: str, target: GameStatus
    ) -> Ok[StatusChangeResponse] | Err:
        async def op(outbox: list[Any]) -> StatusChangeResponse:
            game = await self._require_organizer(db, game_id, user_id)
            if not can_transition(game.status, target):
                raise InvalidStatusTransitionError(game.status.value, target.value)
            return await self._move(db, outbox, game, target)

        return await self._dispatcher.run(db, op)

    async def emergency_pause(
        self, db: AsyncSession, game_id: str, user_id: str
    ) -> Ok[StatusChangeResponse] | Err:
        """CAS open -> closed. Pending orders stay pending."""

        async def op(outbox: list[Any]) -> StatusChangeResponse:
            game = await self._require_organizer(db, game_id, user_id)
            if not game.is_open:
                raise GameNotOpenError(game.id, game.status.value)
            return await self._move(db, outbox, game, GameStatus.CLOSED)

        return await self._dispatcher.run(db, op)

    async def send_last_minutes(
        self, db: AsyncSession, game_id: str, user_id: str, minutes_left: int
    ) -> Ok[EmailQueuedResponse] | Err:
        async def op(outbox: list[Any]) -> EmailQueuedResponse:
            game = await self._require_organizer(db, game_id, user_id)
            if not game.is_open:
                raise GameNotOpenError(game.id, game.status.value)
            email = await self._email_for_game(
                db, game, EmailType.LAST_MINUTES, {"minutesLeft": minutes_left}
            )
            if email is not None:
                outbox.append(email)
            return EmailQueuedResponse(
                email_type=EmailType.LAST_MINUTES.value,
                recipients=len(email.recipients) if email else 0,
            )

        return await self._dispatcher.run(db, op)

    async def reset_expired_circuit_breakers(
        self, db: AsyncSession
    ) -> Ok[BreakerSweepResponse] | Err:
        """Sweep: clear every breaker whose ``circuit_breaker_until`` has passed."""

        async def op(outbox: list[Any]) -> BreakerSweepResponse:
            reset = await self._games.reset_expired_circuit_breakers(db, self._clock())
            for game_id in reset:
                outbox.append(DomainEvent(EventType.CIRCUIT_BREAKER_RESET, game_id, {}))
            if reset:
                logger.info("Circuit breakers reset for %d games: %s", len(reset), reset)
            return BreakerSweepResponse(reset_game_ids=reset)

        return await self._dispatcher.run(db, op)

    # ------------------------------------------------------------------

    async def _move(
        self, db: AsyncSession, outbox: list[Any], game: Game, target: GameStatus
    ) -> StatusChangeResponse:
        previous = game.status
        updated = await self._games.update_status(db, game.id, previous, target)
        if updated is None:
            raise GameStatusConflictError(game.id)

        expired = 0
        if target is GameStatus.RESULTS:
            expired_orders = await self._orders.expire_pending_for_games(db, [game.id])
            expired = len(expired_orders)
            if expired_orders:
                outbox.append(
                    DomainEvent(
                        EventType.ORDERS_EXPIRED,
                        game.id,
                        {"order_ids": [o.id for o in expired_orders]},
                    )
                )

        outbox.append(
            DomainEvent(
                EventType.GAME_STATUS_CHANGED,
                game.id,
                {"from": previous.value, "to": target.value},
            )
        )
        email_type = _STATUS_EMAILS.get(target, EmailType.STATUS_CHANGE)
        email = await self._email_for_game(
            db, updated, email_type, {"from": previous.value, "to": target.value}
        )
        if email is not None:
            outbox.append(email)

        logger.info("Game %s status %s -> %s", game.id, previous.value, target.value)
        return StatusChangeResponse(
            game=GameResponse.from_domain(updated),
            previous_status=previous,
            expired_orders=expired,
        )

    async def _email_for_game(
        self,
        db: AsyncSession,
        game: Game,
        email_type: EmailType,
        extra: dict[str, Any],
    ) -> EmailRequest | None:
        participants = await self._participants.list_by_game(db, game.id)
        recipients = tuple(
            p.email for p in participants
            if p.email and p.status is ParticipantStatus.ACTIVE
        )
        if not recipients:
            return None
        return EmailRequest(
            email_type=email_type,
            recipients=recipients,
            game_id=game.id,
            template_data={"gameName": game.name, "locale": game.locale, **extra},
        )

    async def _require_organizer(self, db: AsyncSession, game_id: str, user_id: str) -> Game:
        return await require_organizer(db, self._games, self._participants, game_id, user_id)
