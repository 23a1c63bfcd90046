"""ParticipantService — joining, organizer approval and removal.

Removal restores the founder invariant in the same transaction: ventures left
without founders go to the successor, or have their pending orders canceled.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.application.access import require_organizer
from src.sx_account.application.schemas import (
    OrphanRepairItem,
    ParticipantDecisionResponse,
    ParticipantResponse,
    RemovalResponse,
)
from src.sx_account.domain.models import Participant
from src.sx_account.domain.repository import ParticipantRepositoryProtocol
from src.sx_account.infrastructure.persistence import ParticipantRepository
from src.sx_common.enums import (
    EmailType,
    EventType,
    GameStatus,
    NotificationStatus,
    NotificationType,
    ParticipantDecision,
    ParticipantRole,
    ParticipantStatus,
    RejectReason,
)
from src.sx_common.errors import (
    AlreadyConsumedError,
    AlreadyParticipantError,
    GameNotFoundError,
    GameNotOpenError,
    NotificationNotFoundError,
    ParticipantInactiveError,
    ParticipantNotFoundError,
    RoleNotAllowedError,
)
from src.sx_common.id_generator import generate_id
from src.sx_common.result import Err, Ok
from src.sx_game.domain.repository import GameRepositoryProtocol
from src.sx_game.infrastructure.persistence import GameRepository
from src.sx_notification.application.dispatch import OutboxDispatcher
from src.sx_notification.application.service import NotificationService
from src.sx_notification.domain.events import DomainEvent, EmailRequest
from src.sx_order.domain.repository import OrderRepositoryProtocol
from src.sx_order.infrastructure.persistence import OrderRepository
from src.sx_venture.application.service import VentureService
from src.sx_venture.domain.repository import VentureRepositoryProtocol
from src.sx_venture.infrastructure.persistence import VentureRepository

logger = logging.getLogger(__name__)


def _participant_event(participant: Participant) -> DomainEvent:
    return DomainEvent(
        EventType.PARTICIPANT_UPDATED,
        participant.game_id,
        {
            "participant_id": participant.id,
            "status": participant.status.value,
            "role": participant.role.value,
        },
    )


class ParticipantService:
    def __init__(
        self,
        participants: ParticipantRepositoryProtocol | None = None,
        games: GameRepositoryProtocol | None = None,
        orders: OrderRepositoryProtocol | None = None,
        ventures: VentureRepositoryProtocol | None = None,
        notifications: NotificationService | None = None,
        venture_service: VentureService | None = None,
        dispatcher: OutboxDispatcher | None = None,
    ) -> None:
        self._participants: ParticipantRepositoryProtocol = participants or ParticipantRepository()
        self._games: GameRepositoryProtocol = games or GameRepository()
        self._orders: OrderRepositoryProtocol = orders or OrderRepository()
        self._ventures: VentureRepositoryProtocol = ventures or VentureRepository()
        self._notifications = notifications or NotificationService()
        self._venture_service = venture_service or VentureService(
            ventures=self._ventures,
            games=self._games,
            participants=self._participants,
            orders=self._orders,
            notifications=self._notifications,
        )
        self._dispatcher = dispatcher or OutboxDispatcher()

    async def request_to_join(
        self, db: AsyncSession, game_id: str, user_id: str, role: ParticipantRole
    ) -> Ok[ParticipantResponse] | Err:
        async def op(outbox: list[Any]) -> ParticipantResponse:
            game = await self._games.get_by_id(db, game_id)
            if game is None:
                raise GameNotFoundError(game_id)
            if game.status is GameStatus.RESULTS:
                raise GameNotOpenError(game.id, game.status.value)
            if role is ParticipantRole.ORGANIZER:
                raise RoleNotAllowedError(role.value, "join without an invitation")
            if await self._participants.get_by_user(db, game_id, user_id) is not None:
                raise AlreadyParticipantError(game_id)

            budget = await self._games.get_default_budget(db, game_id, role.value) or 0
            participant = await self._participants.create(
                db,
                Participant(
                    id=generate_id(),
                    game_id=game_id,
                    user_id=user_id,
                    role=role,
                    status=ParticipantStatus.PENDING,
                    initial_budget=budget,
                    current_cash=budget,
                ),
            )
            organizers = [
                p.id
                for p in await self._participants.list_by_game(
                    db, game_id, ParticipantRole.ORGANIZER.value
                )
                if p.is_active
            ]
            if not organizers:
                logger.warning("Join request %s for game %s has no organizer to approve it",
                               participant.id, game_id)
            await self._notifications.notify_many(
                db,
                outbox,
                game_id,
                organizers,
                NotificationType.PARTICIPANT_APPROVAL_REQUEST,
                {"participant_id": participant.id, "user_id": user_id, "role": role.value},
                sender_id=participant.id,
            )
            outbox.append(_participant_event(participant))
            logger.info("Join requested: game=%s user=%s role=%s", game_id, user_id, role.value)
            return ParticipantResponse.from_domain(participant, game.currency)

        return await self._dispatcher.run(db, op)

    async def decide_participant(
        self,
        db: AsyncSession,
        notification_id: str,
        user_id: str,
        decision: ParticipantDecision,
    ) -> Ok[ParticipantDecisionResponse] | Err:
        """Consume an approval request; at most once across all organizers."""

        async def op(outbox: list[Any]) -> ParticipantDecisionResponse:
            notification = await self._notifications.repo.get_by_id(db, notification_id)
            if (
                notification is None
                or notification.type is not NotificationType.PARTICIPANT_APPROVAL_REQUEST
            ):
                raise NotificationNotFoundError(notification_id)
            organizer = await self._participants.get_by_user(db, notification.game_id, user_id)
            if organizer is None or organizer.id != notification.recipient_participant_id:
                raise NotificationNotFoundError(notification_id)
            if not notification.is_unread:
                raise AlreadyConsumedError(notification.id, notification.status.value)

            approve = decision is ParticipantDecision.APPROVE
            consumed = await self._notifications.consume(
                db,
                outbox,
                notification,
                NotificationStatus.READ if approve else NotificationStatus.REJECTED,
            )
            if consumed is None:
                raise await self._already_consumed(db, notification.id)

            participant_id = str(notification.payload.get("participant_id", ""))
            target = ParticipantStatus.ACTIVE if approve else ParticipantStatus.SUSPENDED
            updated = await self._participants.update_status(
                db, participant_id, ParticipantStatus.PENDING, target
            )
            if updated is None:
                # Another organizer decided first through their own copy.
                raise AlreadyConsumedError(notification.id, "participant already decided")
            await self._notifications.close_related(
                db,
                outbox,
                updated.game_id,
                NotificationType.PARTICIPANT_APPROVAL_REQUEST,
                updated.id,
            )

            await self._notifications.notify(
                db,
                outbox,
                updated.game_id,
                updated.id,
                NotificationType.PARTICIPANT_DECIDED,
                {"decision": decision.value},
                sender_id=organizer.id,
            )
            outbox.append(_participant_event(updated))
            if approve and updated.email:
                game = await self._games.get_by_id(db, updated.game_id)
                outbox.append(
                    EmailRequest(
                        EmailType.INVITE,
                        (updated.email,),
                        updated.game_id,
                        {"gameName": game.name if game else "", "role": updated.role.value},
                    )
                )
            logger.info("Participant %s %s by %s", updated.id, target.value, organizer.id)
            return ParticipantDecisionResponse(
                participant=ParticipantResponse.from_domain(updated),
                notification_id=consumed.id,
                decided_at=consumed.updated_at,
            )

        return await self._dispatcher.run(db, op)

    async def remove_participant(
        self,
        db: AsyncSession,
        game_id: str,
        participant_id: str,
        user_id: str,
        successor_id: str | None = None,
    ) -> Ok[RemovalResponse] | Err:
        async def op(outbox: list[Any]) -> RemovalResponse:
            game = await require_organizer(db, self._games, self._participants, game_id, user_id)
            ids = [participant_id] + ([successor_id] if successor_id else [])
            locked = await self._participants.lock_many(db, ids)

            removed = locked.get(participant_id)
            if removed is None or removed.game_id != game.id:
                raise ParticipantNotFoundError(participant_id)
            if removed.status is ParticipantStatus.SUSPENDED:
                raise ParticipantInactiveError(removed.id, removed.status.value)

            successor: Participant | None = None
            if successor_id:
                successor = locked.get(successor_id)
                if (
                    successor is None
                    or successor.game_id != game.id
                    or successor.id == removed.id
                    or not successor.is_active
                ):
                    raise ParticipantNotFoundError(successor_id)

            suspended = await self._participants.update_status(
                db, removed.id, removed.status, ParticipantStatus.SUSPENDED
            )
            if suspended is None:
                raise ParticipantInactiveError(removed.id, "changed concurrently")

            canceled = await self._orders.cancel_pending_for_buyer(
                db, removed.id, RejectReason.BUYER_REMOVED
            )
            for order in canceled:
                outbox.append(
                    DomainEvent(
                        EventType.ORDER_CANCELED,
                        order.game_id,
                        {
                            "order_id": order.id,
                            "venture_id": order.venture_id,
                            "reject_reason": RejectReason.BUYER_REMOVED.value,
                        },
                    )
                )

            venture_ids = await self._ventures.remove_founder_memberships(db, removed.id)
            repairs = await self._venture_service.restore_founders(
                db, outbox, venture_ids, successor
            )

            outbox.append(_participant_event(suspended))
            if suspended.email:
                outbox.append(
                    EmailRequest(
                        EmailType.PARTICIPANT_REMOVED,
                        (suspended.email,),
                        game.id,
                        {"gameName": game.name},
                    )
                )
            logger.info(
                "Participant removed: %s game=%s canceled_orders=%d ventures_touched=%d",
                removed.id, game.id, len(canceled), len(venture_ids),
            )
            return RemovalResponse(
                participant=ParticipantResponse.from_domain(suspended, game.currency),
                canceled_order_ids=[o.id for o in canceled],
                ventures=[
                    OrphanRepairItem(
                        venture_id=r.venture_id,
                        successor_participant_id=r.successor_participant_id,
                        canceled_order_ids=r.canceled_order_ids or [],
                    )
                    for r in repairs
                ],
            )

        return await self._dispatcher.run(db, op)

    async def _already_consumed(
        self, db: AsyncSession, notification_id: str
    ) -> AlreadyConsumedError:
        current = await self._notifications.repo.get_by_id(db, notification_id)
        return AlreadyConsumedError(
            notification_id, current.status.value if current else "unknown"
        )
