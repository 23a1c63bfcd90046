"""Secondary Trade Engine — peer-to-peer share transfers as a
notification-gated handshake.

The request only writes a notification. Acceptance consumes that
notification (CAS ``unread -> read``) in the same transaction that settles
the trade, so one request can produce at most one trade. A request whose
preconditions no longer hold at acceptance is refused and rolled back; it
stays ``unread`` and the buyer can still reject it.
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.application.access import require_participant
from src.sx_account.domain.models import Participant
from src.sx_account.domain.repository import (
    ParticipantRepositoryProtocol,
    PositionRepositoryProtocol,
)
from src.sx_account.infrastructure.persistence import ParticipantRepository, PositionRepository
from src.sx_clearing.application.trades_schemas import TradeResponse
from src.sx_clearing.domain.models import Trade
from src.sx_clearing.domain.service import ClearingService
from src.sx_common.datetime_utils import Clock, utc_now
from src.sx_common.enums import MarketType, NotificationStatus, NotificationType
from src.sx_common.errors import (
    AlreadyConsumedError,
    BuyerNotFoundError,
    GameNotFoundError,
    NotificationNotFoundError,
    TradeRevalidationFailedError,
    VentureNotFoundError,
)
from src.sx_common.id_generator import generate_id
from src.sx_common.money import trade_value
from src.sx_common.result import Err, Ok
from src.sx_game.domain.models import Game
from src.sx_game.domain.repository import GameRepositoryProtocol
from src.sx_game.infrastructure.persistence import GameRepository
from src.sx_market.application.circuit_breaker import CircuitBreaker
from src.sx_market.application.price_oracle import PriceOracle
from src.sx_notification.application.dispatch import OutboxDispatcher
from src.sx_notification.application.service import NotificationService
from src.sx_notification.domain.models import Notification
from src.sx_risk.rules.balance_check import check_holding
from src.sx_risk.rules.market_status import (
    check_game_open,
    check_not_paused,
    check_secondary_enabled,
)
from src.sx_risk.rules.order_limit import check_quantity
from src.sx_risk.rules.participant_status import check_participant_active
from src.sx_risk.rules.price_range import check_price
from src.sx_risk.rules.self_trade import check_distinct_parties
from src.sx_secondary.application.schemas import (
    SecondaryAcceptResponse,
    SecondaryRejectResponse,
    SecondaryRequestResponse,
    SecondaryTradeRequest,
)
from src.sx_venture.domain.repository import VentureRepositoryProtocol
from src.sx_venture.infrastructure.persistence import VentureRepository

logger = logging.getLogger(__name__)


class SecondaryTradeService:
    def __init__(
        self,
        games: GameRepositoryProtocol | None = None,
        ventures: VentureRepositoryProtocol | None = None,
        participants: ParticipantRepositoryProtocol | None = None,
        positions: PositionRepositoryProtocol | None = None,
        notifications: NotificationService | None = None,
        clearing: ClearingService | None = None,
        oracle: PriceOracle | None = None,
        breaker: CircuitBreaker | None = None,
        dispatcher: OutboxDispatcher | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._games: GameRepositoryProtocol = games or GameRepository()
        self._ventures: VentureRepositoryProtocol = ventures or VentureRepository()
        self._participants: ParticipantRepositoryProtocol = participants or ParticipantRepository()
        self._positions: PositionRepositoryProtocol = positions or PositionRepository()
        self._notifications = notifications or NotificationService()
        self._clearing = clearing or ClearingService(
            participants=self._participants, positions=self._positions
        )
        self._oracle = oracle or PriceOracle(ventures=self._ventures)
        self._breaker = breaker or CircuitBreaker(games=self._games)
        self._dispatcher = dispatcher or OutboxDispatcher()
        self._clock: Clock = clock or utc_now

    async def request_trade(
        self, db: AsyncSession, game_id: str, seller_user_id: str, req: SecondaryTradeRequest
    ) -> Ok[SecondaryRequestResponse] | Err:
        async def op(outbox: list[Any]) -> SecondaryRequestResponse:
            game = await self._load_game(db, game_id)
            check_secondary_enabled(game)
            check_game_open(game)
            check_not_paused(game, self._clock())
            check_quantity(req.qty)
            check_price(req.price_per_share, game)

            seller = await require_participant(db, self._participants, game_id, seller_user_id)
            check_participant_active(seller)
            venture = await self._ventures.get_by_id(db, req.venture_id)
            if venture is None or venture.game_id != game.id:
                raise VentureNotFoundError(req.venture_id)
            position = await self._positions.get(db, seller.id, venture.id)
            check_holding(position.qty_total if position else 0, req.qty, venture.id)

            buyer = await self._participants.find_by_identifier(db, game.id, req.buyer_identifier)
            if buyer is None:
                raise BuyerNotFoundError(req.buyer_identifier)
            check_distinct_parties(buyer.id, seller.id)
            check_participant_active(buyer)

            notification = await self._notifications.notify(
                db,
                outbox,
                game.id,
                buyer.id,
                NotificationType.SECONDARY_TRADE_REQUEST,
                {
                    "venture_id": venture.id,
                    "venture_name": venture.name,
                    "seller_participant_id": seller.id,
                    "qty": req.qty,
                    "price_per_share": req.price_per_share,
                },
                sender_id=seller.id,
            )
            logger.info(
                "Secondary trade requested: %s seller=%s buyer=%s venture=%s qty=%d price=%d",
                notification.id, seller.id, buyer.id, venture.id, req.qty, req.price_per_share,
            )
            return SecondaryRequestResponse(
                notification_id=notification.id,
                venture_id=venture.id,
                seller_participant_id=seller.id,
                buyer_participant_id=buyer.id,
                qty=req.qty,
                price_per_share=req.price_per_share,
                total_value=trade_value(req.qty, req.price_per_share),
                status=notification.status,
            )

        return await self._dispatcher.run(db, op)

    async def accept_trade(
        self, db: AsyncSession, notification_id: str, user_id: str
    ) -> Ok[SecondaryAcceptResponse] | Err:
        async def op(outbox: list[Any]) -> SecondaryAcceptResponse:
            notification, buyer = await self._load_addressed(db, notification_id, user_id)
            game = await self._load_game(db, notification.game_id)
            check_game_open(game)
            check_not_paused(game, self._clock())

            terms = _terms(notification)
            venture = await self._ventures.get_for_update(db, terms.venture_id)
            if venture is None:
                raise VentureNotFoundError(terms.venture_id)
            locked = await self._participants.lock_many(db, [buyer.id, terms.seller_id])
            await self._revalidate(db, notification.id, locked, buyer.id, terms)

            consumed = await self._notifications.consume(
                db, outbox, notification, NotificationStatus.READ
            )
            if consumed is None:
                raise await self._already_consumed(db, notification.id)

            settlement = await self._clearing.apply_trade(
                db,
                Trade(
                    id=generate_id(),
                    game_id=game.id,
                    venture_id=venture.id,
                    market_type=MarketType.SECONDARY,
                    buyer_participant_id=buyer.id,
                    seller_participant_id=terms.seller_id,
                    qty=terms.qty,
                    price_per_share=terms.price,
                    notification_id=notification.id,
                ),
                outbox,
            )
            update = await self._oracle.recompute(db, venture)
            await self._breaker.inspect(db, game, update, self._clock(), outbox)

            await self._notifications.notify(
                db,
                outbox,
                game.id,
                terms.seller_id,
                NotificationType.SECONDARY_TRADE_ACCEPTED,
                {
                    "request_notification_id": notification.id,
                    "trade_id": settlement.trade.id,
                    "venture_id": venture.id,
                    "qty": terms.qty,
                    "price_per_share": terms.price,
                },
                sender_id=buyer.id,
            )
            logger.info("Secondary trade accepted: %s trade=%s", notification.id, settlement.trade.id)
            return SecondaryAcceptResponse(
                notification_id=notification.id,
                trade=TradeResponse.from_domain(settlement.trade),
                buyer_cash_after=settlement.buyer_cash_after,
            )

        return await self._dispatcher.run(db, op)

    async def reject_trade(
        self, db: AsyncSession, notification_id: str, user_id: str
    ) -> Ok[SecondaryRejectResponse] | Err:
        """Addressee declines. Allowed in any game state; no ledger effect."""

        async def op(outbox: list[Any]) -> SecondaryRejectResponse:
            notification, buyer = await self._load_addressed(db, notification_id, user_id)
            consumed = await self._notifications.consume(
                db, outbox, notification, NotificationStatus.REJECTED
            )
            if consumed is None:
                raise await self._already_consumed(db, notification.id)
            terms = _terms(notification)
            await self._notifications.notify(
                db,
                outbox,
                notification.game_id,
                terms.seller_id,
                NotificationType.SECONDARY_TRADE_REJECTED,
                {
                    "request_notification_id": notification.id,
                    "venture_id": terms.venture_id,
                    "qty": terms.qty,
                    "price_per_share": terms.price,
                },
                sender_id=buyer.id,
            )
            logger.info("Secondary trade rejected: %s by %s", notification.id, buyer.id)
            return SecondaryRejectResponse(notification_id=notification.id, status=consumed.status)

        return await self._dispatcher.run(db, op)

    # ------------------------------------------------------------------

    async def _revalidate(
        self,
        db: AsyncSession,
        notification_id: str,
        locked: dict[str, Participant],
        buyer_id: str,
        terms: "_Terms",
    ) -> None:
        buyer = locked.get(buyer_id)
        seller = locked.get(terms.seller_id)
        reason: str | None = None
        if buyer is None or not buyer.is_active:
            reason = "buyer is not active"
        elif seller is None or not seller.is_active:
            reason = "seller is not active"
        else:
            position = await self._positions.get(db, seller.id, terms.venture_id)
            held = position.qty_total if position else 0
            if held < terms.qty:
                reason = f"seller holds {held}, needs {terms.qty}"
            elif buyer.current_cash < terms.qty * terms.price:
                reason = (
                    f"buyer cash {buyer.current_cash} below {terms.qty * terms.price}"
                )
        if reason is not None:
            logger.warning("Secondary trade %s failed re-validation: %s", notification_id, reason)
            raise TradeRevalidationFailedError(notification_id, reason)

    async def _load_addressed(
        self, db: AsyncSession, notification_id: str, user_id: str
    ) -> tuple[Notification, Participant]:
        notification = await self._notifications.repo.get_by_id(db, notification_id)
        if (
            notification is None
            or notification.type is not NotificationType.SECONDARY_TRADE_REQUEST
        ):
            raise NotificationNotFoundError(notification_id)
        caller = await self._participants.get_by_user(db, notification.game_id, user_id)
        if caller is None or caller.id != notification.recipient_participant_id:
            raise NotificationNotFoundError(notification_id)
        if not notification.is_unread:
            raise AlreadyConsumedError(notification.id, notification.status.value)
        return notification, caller

    async def _already_consumed(
        self, db: AsyncSession, notification_id: str
    ) -> AlreadyConsumedError:
        current = await self._notifications.repo.get_by_id(db, notification_id)
        return AlreadyConsumedError(
            notification_id, current.status.value if current else "unknown"
        )

    async def _load_game(self, db: AsyncSession, game_id: str) -> Game:
        game = await self._games.get_by_id(db, game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        return game


@dataclass(frozen=True)
class _Terms:
    venture_id: str
    seller_id: str
    qty: int
    price: int


def _terms(notification: Notification) -> _Terms:
    payload = notification.payload
    return _Terms(
        venture_id=str(payload["venture_id"]),
        seller_id=str(notification.sender_participant_id or payload["seller_participant_id"]),
        qty=int(payload["qty"]),
        price=int(payload["price_per_share"]),
    )
