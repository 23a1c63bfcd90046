"""Order Engine — primary-market orders against a venture's unissued pool.

Locking order inside every transaction: venture row, then participant rows in
ascending id order, then the game row (breaker trip). Status changes are CAS
updates from ``pending``, so of two concurrent deciders exactly one wins and
the other observes AlreadyDecided.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.domain.models import Participant
from src.sx_account.domain.repository import ParticipantRepositoryProtocol
from src.sx_account.infrastructure.persistence import ParticipantRepository
from src.sx_clearing.domain.models import Trade
from src.sx_clearing.domain.service import ClearingService
from src.sx_common.datetime_utils import Clock, utc_now
from src.sx_common.enums import (
    EventType,
    MarketType,
    NotificationType,
    OrderDecision,
    OrderStatus,
    RejectReason,
)
from src.sx_common.errors import (
    AlreadyDecidedError,
    GameNotFoundError,
    InsufficientPositionError,
    OrderNotFoundError,
    OrderRevalidationFailedError,
    ParticipantNotFoundError,
    VentureNotFoundError,
    VentureOrphanedError,
)
from src.sx_common.id_generator import generate_id
from src.sx_common.result import Err, Ok
from src.sx_game.domain.models import Game
from src.sx_game.domain.repository import GameRepositoryProtocol
from src.sx_game.infrastructure.persistence import GameRepository
from src.sx_market.application.circuit_breaker import CircuitBreaker
from src.sx_market.application.price_oracle import PriceOracle
from src.sx_notification.application.dispatch import OutboxDispatcher
from src.sx_notification.application.service import NotificationService
from src.sx_notification.domain.events import DomainEvent
from src.sx_order.application.schemas import (
    CreateOrderRequest,
    ExpireOrdersResponse,
    OrderListResponse,
    OrderResponse,
)
from src.sx_order.domain.models import PrimaryOrder
from src.sx_order.domain.repository import OrderRepositoryProtocol
from src.sx_order.infrastructure.persistence import OrderRepository
from src.sx_risk.rules.balance_check import check_cash, check_primary_shares
from src.sx_risk.rules.market_status import check_game_open, check_not_paused
from src.sx_risk.rules.order_limit import check_quantity
from src.sx_risk.rules.participant_status import check_participant_active
from src.sx_risk.rules.price_range import check_price
from src.sx_risk.rules.self_trade import check_not_founder
from src.sx_venture.domain.models import Venture
from src.sx_venture.domain.repository import VentureRepositoryProtocol
from src.sx_venture.infrastructure.persistence import VentureRepository

logger = logging.getLogger(__name__)


def _order_event(event_type: EventType, order: PrimaryOrder) -> DomainEvent:
    return DomainEvent(
        event_type,
        order.game_id,
        {
            "order_id": order.id,
            "venture_id": order.venture_id,
            "buyer_participant_id": order.buyer_participant_id,
            "status": order.status.value,
            "reject_reason": order.reject_reason.value if order.reject_reason else None,
            "trade_id": order.trade_id,
        },
    )


class OrderService:
    def __init__(
        self,
        orders: OrderRepositoryProtocol | None = None,
        games: GameRepositoryProtocol | None = None,
        ventures: VentureRepositoryProtocol | None = None,
        participants: ParticipantRepositoryProtocol | None = None,
        notifications: NotificationService | None = None,
        clearing: ClearingService | None = None,
        oracle: PriceOracle | None = None,
        breaker: CircuitBreaker | None = None,
        dispatcher: OutboxDispatcher | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._orders: OrderRepositoryProtocol = orders or OrderRepository()
        self._games: GameRepositoryProtocol = games or GameRepository()
        self._ventures: VentureRepositoryProtocol = ventures or VentureRepository()
        self._participants: ParticipantRepositoryProtocol = participants or ParticipantRepository()
        self._notifications = notifications or NotificationService()
        self._clearing = clearing or ClearingService(participants=self._participants)
        self._oracle = oracle or PriceOracle(ventures=self._ventures)
        self._breaker = breaker or CircuitBreaker(games=self._games)
        self._dispatcher = dispatcher or OutboxDispatcher()
        self._clock: Clock = clock or utc_now

    @property
    def orders(self) -> OrderRepositoryProtocol:
        return self._orders

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_order(
        self, db: AsyncSession, game_id: str, buyer_id: str, req: CreateOrderRequest
    ) -> Ok[OrderResponse] | Err:
        async def op(outbox: list[Any]) -> OrderResponse | Err:
            now = self._clock()
            game = await self._load_game(db, game_id)
            check_game_open(game)
            check_not_paused(game, now)
            check_quantity(req.qty)
            check_price(req.price_per_share, game)

            venture = await self._ventures.get_for_update(db, req.venture_id)
            if venture is None or venture.game_id != game.id:
                raise VentureNotFoundError(req.venture_id)
            founders = await self._ventures.list_founders(db, venture.id)
            if not founders:
                raise VentureOrphanedError(venture.id)
            check_not_founder(buyer_id, {f.participant_id for f in founders})

            buyer = await self._lock_participant(db, buyer_id)
            check_participant_active(buyer)
            check_primary_shares(venture, req.qty)
            check_cash(buyer, req.qty * req.price_per_share)

            order = await self._orders.create(
                db,
                PrimaryOrder(
                    id=generate_id(),
                    game_id=game.id,
                    venture_id=venture.id,
                    buyer_participant_id=buyer.id,
                    qty=req.qty,
                    price_per_share=req.price_per_share,
                    auto_accept_min_price=req.auto_accept_min_price,
                ),
            )
            outbox.append(_order_event(EventType.ORDER_CREATED, order))
            logger.info(
                "Order created: %s venture=%s buyer=%s qty=%d price=%d",
                order.id, venture.id, buyer.id, order.qty, order.price_per_share,
            )

            if order.qualifies_for_auto_accept:
                settled = await self._accept_locked(
                    db, outbox, game, venture, buyer, order, decider_id=None
                )
                if isinstance(settled, Err):
                    return settled
                return OrderResponse.from_domain(settled)

            await self._notifications.notify_many(
                db,
                outbox,
                game.id,
                [f.participant_id for f in founders],
                NotificationType.PRIMARY_ORDER_RECEIVED,
                {
                    "order_id": order.id,
                    "venture_id": venture.id,
                    "venture_name": venture.name,
                    "qty": order.qty,
                    "price_per_share": order.price_per_share,
                },
                sender_id=buyer.id,
            )
            return OrderResponse.from_domain(order)

        return await self._dispatcher.run(db, op)

    async def decide_order(
        self, db: AsyncSession, order_id: str, user_id: str, decision: OrderDecision
    ) -> Ok[OrderResponse] | Err:
        async def op(outbox: list[Any]) -> OrderResponse | Err:
            order = await self._orders.get_by_id(db, order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            decider = await self._participants.get_by_user(db, order.game_id, user_id)
            if decider is None or not await self._ventures.is_founder(
                db, order.venture_id, decider.id
            ):
                raise OrderNotFoundError(order_id)
            if not order.is_pending:
                raise AlreadyDecidedError(order.id, order.status.value)

            game = await self._load_game(db, order.game_id)
            check_game_open(game)

            if decision is OrderDecision.REJECT:
                rejected = await self._orders.transition(
                    db, order.id, OrderStatus.REJECTED,
                    decided_by=decider.id, reject_reason=RejectReason.FOUNDER_REJECTED,
                )
                if rejected is None:
                    raise await self._already_decided(db, order.id)
                await self._notify_decided(db, outbox, rejected)
                logger.info("Order rejected by founder: %s by %s", order.id, decider.id)
                return OrderResponse.from_domain(rejected)

            check_not_paused(game, self._clock())
            check_participant_active(decider)
            venture = await self._ventures.get_for_update(db, order.venture_id)
            if venture is None:
                raise VentureNotFoundError(order.venture_id)
            buyer = await self._lock_participant(db, order.buyer_participant_id)
            settled = await self._accept_locked(
                db, outbox, game, venture, buyer, order, decider_id=decider.id
            )
            if isinstance(settled, Err):
                return settled
            return OrderResponse.from_domain(settled)

        return await self._dispatcher.run(db, op)

    async def cancel_order(
        self, db: AsyncSession, order_id: str, user_id: str
    ) -> Ok[OrderResponse] | Err:
        """Buyer withdraws a pending order. Allowed in any game state."""

        async def op(outbox: list[Any]) -> OrderResponse:
            order = await self._orders.get_by_id(db, order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            buyer = await self._participants.get_by_user(db, order.game_id, user_id)
            if buyer is None or buyer.id != order.buyer_participant_id:
                raise OrderNotFoundError(order_id)
            if not order.is_pending:
                raise AlreadyDecidedError(order.id, order.status.value)
            canceled = await self._orders.transition(
                db, order.id, OrderStatus.CANCELED, decided_by=buyer.id
            )
            if canceled is None:
                raise await self._already_decided(db, order.id)
            outbox.append(_order_event(EventType.ORDER_CANCELED, canceled))
            logger.info("Order canceled by buyer: %s", order.id)
            return OrderResponse.from_domain(canceled)

        return await self._dispatcher.run(db, op)

    async def expire_pending_orders(self, db: AsyncSession) -> Ok[ExpireOrdersResponse] | Err:
        """Sweep: pending orders of ended games (or games in results) expire."""

        async def op(outbox: list[Any]) -> ExpireOrdersResponse:
            game_ids = await self._games.list_ended_game_ids(db, self._clock())
            expired = await self._orders.expire_pending_for_games(db, game_ids)
            by_game: dict[str, list[str]] = {}
            for order in expired:
                by_game.setdefault(order.game_id, []).append(order.id)
            for gid, ids in by_game.items():
                outbox.append(DomainEvent(EventType.ORDERS_EXPIRED, gid, {"order_ids": ids}))
            if expired:
                logger.info("Expired %d pending orders across %d games", len(expired), len(by_game))
            return ExpireOrdersResponse(expired=len(expired), game_ids=sorted(by_game))

        return await self._dispatcher.run(db, op)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_order(self, db: AsyncSession, order_id: str, user_id: str) -> OrderResponse:
        order = await self._orders.get_by_id(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        viewer = await self._participants.get_by_user(db, order.game_id, user_id)
        if viewer is None:
            raise OrderNotFoundError(order_id)
        if viewer.id != order.buyer_participant_id and not viewer.is_organizer:
            if not await self._ventures.is_founder(db, order.venture_id, viewer.id):
                raise OrderNotFoundError(order_id)
        return OrderResponse.from_domain(order)

    async def list_venture_orders(
        self,
        db: AsyncSession,
        venture_id: str,
        user_id: str,
        status: OrderStatus | None,
        limit: int,
    ) -> OrderListResponse:
        """Founders (and organizers) see the order book of their venture."""
        venture = await self._ventures.get_by_id(db, venture_id)
        if venture is None:
            raise VentureNotFoundError(venture_id)
        viewer = await self._participants.get_by_user(db, venture.game_id, user_id)
        if viewer is None:
            raise VentureNotFoundError(venture_id)
        if not viewer.is_organizer and not await self._ventures.is_founder(
            db, venture_id, viewer.id
        ):
            raise VentureNotFoundError(venture_id)
        orders = await self._orders.list_by_venture(db, venture_id, status, limit)
        return OrderListResponse(items=[OrderResponse.from_domain(o) for o in orders])

    async def list_my_orders(
        self, db: AsyncSession, participant_id: str, status: OrderStatus | None, limit: int
    ) -> OrderListResponse:
        orders = await self._orders.list_by_buyer(db, participant_id, status, limit)
        return OrderListResponse(items=[OrderResponse.from_domain(o) for o in orders])

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _accept_locked(
        self,
        db: AsyncSession,
        outbox: list[Any],
        game: Game,
        venture: Venture,
        buyer: Participant,
        order: PrimaryOrder,
        decider_id: str | None,
    ) -> PrimaryOrder | Err:
        """Settle ``order`` with the venture and buyer rows already locked.

        Re-validates against the locked rows; on drift the order is rejected
        and the rejection is returned as a committed Err.
        """
        reason: RejectReason | None = None
        if await self._ventures.is_founder(db, venture.id, buyer.id):
            reason = RejectReason.BUYER_IS_FOUNDER
        elif not buyer.is_active:
            reason = RejectReason.BUYER_INACTIVE
        elif order.qty > venture.primary_shares_remaining:
            reason = RejectReason.INSUFFICIENT_SHARES
        elif buyer.current_cash < order.total_cost:
            reason = RejectReason.INSUFFICIENT_CASH

        if reason is not None:
            rejected = await self._orders.transition(
                db, order.id, OrderStatus.REJECTED, decided_by=decider_id, reject_reason=reason
            )
            if rejected is None:
                raise await self._already_decided(db, order.id)
            await self._notify_decided(db, outbox, rejected)
            logger.warning(
                "Order %s rejected on re-validation: %s (remaining=%d cash=%d)",
                order.id, reason.value, venture.primary_shares_remaining, buyer.current_cash,
            )
            return Err(OrderRevalidationFailedError(order.id, reason.value))

        trade_id = generate_id()
        accepted = await self._orders.transition(
            db, order.id, OrderStatus.ACCEPTED, decided_by=decider_id, trade_id=trade_id
        )
        if accepted is None:
            raise await self._already_decided(db, order.id)
        if await self._ventures.consume_primary_shares(db, venture.id, order.qty) is None:
            raise InsufficientPositionError(
                f"venture {venture.id} pool changed under lock; order {order.id} not settled"
            )

        trade = Trade(
            id=trade_id,
            game_id=game.id,
            venture_id=venture.id,
            market_type=MarketType.PRIMARY,
            buyer_participant_id=buyer.id,
            qty=order.qty,
            price_per_share=order.price_per_share,
            order_id=order.id,
        )
        await self._clearing.apply_trade(db, trade, outbox)
        update = await self._oracle.recompute(db, venture)
        await self._breaker.inspect(db, game, update, self._clock(), outbox)

        await self._notify_decided(db, outbox, accepted)
        logger.info(
            "Order accepted: %s by %s trade=%s",
            order.id, decider_id or "auto-accept", trade_id,
        )
        return accepted

    async def _notify_decided(
        self, db: AsyncSession, outbox: list[Any], order: PrimaryOrder
    ) -> None:
        outbox.append(_order_event(EventType.ORDER_DECIDED, order))
        await self._notifications.notify(
            db,
            outbox,
            order.game_id,
            order.buyer_participant_id,
            NotificationType.PRIMARY_ORDER_DECIDED,
            {
                "order_id": order.id,
                "venture_id": order.venture_id,
                "status": order.status.value,
                "reject_reason": order.reject_reason.value if order.reject_reason else None,
            },
            sender_id=order.decided_by_participant_id,
        )

    async def _already_decided(self, db: AsyncSession, order_id: str) -> AlreadyDecidedError:
        current = await self._orders.get_by_id(db, order_id)
        status = current.status.value if current else "unknown"
        return AlreadyDecidedError(order_id, status)

    async def _load_game(self, db: AsyncSession, game_id: str) -> Game:
        game = await self._games.get_by_id(db, game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        return game

    async def _lock_participant(self, db: AsyncSession, participant_id: str) -> Participant:
        locked = await self._participants.lock_many(db, [participant_id])
        participant = locked.get(participant_id)
        if participant is None:
            raise ParticipantNotFoundError(participant_id)
        return participant
