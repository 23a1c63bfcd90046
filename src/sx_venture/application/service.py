"""VentureService — ventures, their founders, and the orphan repair that
keeps every venture with at least one founder while it can take orders."""

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.application.access import require_participant
from src.sx_account.domain.models import Participant
from src.sx_account.domain.repository import ParticipantRepositoryProtocol
from src.sx_account.infrastructure.persistence import ParticipantRepository
from src.sx_common.enums import (
    EventType,
    FounderMemberRole,
    GameStatus,
    NotificationType,
    ParticipantRole,
    RejectReason,
)
from src.sx_common.errors import (
    AlreadyFounderError,
    GameNotFoundError,
    GameNotOpenError,
    InvalidSharesError,
    ParticipantNotFoundError,
    RoleNotAllowedError,
    VentureNotFoundError,
)
from src.sx_common.id_generator import generate_id
from src.sx_common.result import Err, Ok
from src.sx_game.domain.repository import GameRepositoryProtocol
from src.sx_game.infrastructure.persistence import GameRepository
from src.sx_notification.application.dispatch import OutboxDispatcher
from src.sx_notification.application.service import NotificationService
from src.sx_notification.domain.events import DomainEvent
from src.sx_order.domain.models import PrimaryOrder
from src.sx_order.domain.repository import OrderRepositoryProtocol
from src.sx_order.infrastructure.persistence import OrderRepository
from src.sx_risk.rules.participant_status import check_participant_active
from src.sx_venture.application.schemas import (
    AddFounderRequest,
    CreateVentureRequest,
    FounderResponse,
    VentureListResponse,
    VentureResponse,
)
from src.sx_venture.domain.models import OrphanRepair, Venture
from src.sx_venture.domain.repository import VentureRepositoryProtocol
from src.sx_venture.infrastructure.persistence import VentureRepository

logger = logging.getLogger(__name__)

_VENTURE_CREATOR_ROLES = frozenset({ParticipantRole.FOUNDER, ParticipantRole.ORGANIZER})


def _canceled_event(order: PrimaryOrder) -> DomainEvent:
    return DomainEvent(
        EventType.ORDER_CANCELED,
        order.game_id,
        {
            "order_id": order.id,
            "venture_id": order.venture_id,
            "buyer_participant_id": order.buyer_participant_id,
            "reject_reason": order.reject_reason.value if order.reject_reason else None,
        },
    )


class VentureService:
    def __init__(
        self,
        ventures: VentureRepositoryProtocol | None = None,
        games: GameRepositoryProtocol | None = None,
        participants: ParticipantRepositoryProtocol | None = None,
        orders: OrderRepositoryProtocol | None = None,
        notifications: NotificationService | None = None,
        dispatcher: OutboxDispatcher | None = None,
    ) -> None:
        self._ventures: VentureRepositoryProtocol = ventures or VentureRepository()
        self._games: GameRepositoryProtocol = games or GameRepository()
        self._participants: ParticipantRepositoryProtocol = participants or ParticipantRepository()
        self._orders: OrderRepositoryProtocol = orders or OrderRepository()
        self._notifications = notifications or NotificationService()
        self._dispatcher = dispatcher or OutboxDispatcher()

    async def list_ventures(self, db: AsyncSession, game_id: str) -> VentureListResponse:
        ventures = await self._ventures.list_by_game(db, game_id)
        items = [
            VentureResponse.from_domain(v, await self._ventures.list_founders(db, v.id))
            for v in ventures
        ]
        return VentureListResponse(items=items)

    async def create_venture(
        self, db: AsyncSession, game_id: str, user_id: str, req: CreateVentureRequest
    ) -> Ok[VentureResponse] | Err:
        async def op(outbox: list[Any]) -> VentureResponse:
            game = await self._games.get_by_id(db, game_id)
            if game is None:
                raise GameNotFoundError(game_id)
            if game.status is GameStatus.RESULTS:
                raise GameNotOpenError(game.id, game.status.value)
            if req.total_shares <= 0:
                raise InvalidSharesError(f"total_shares must be positive, got {req.total_shares}")
            creator = await require_participant(db, self._participants, game_id, user_id)
            check_participant_active(creator)
            if creator.role not in _VENTURE_CREATOR_ROLES:
                raise RoleNotAllowedError(creator.role.value, "create ventures")

            venture = await self._ventures.create(
                db,
                Venture(
                    id=generate_id(),
                    game_id=game.id,
                    name=req.name.strip(),
                    description=req.description,
                    logo_url=req.logo_url,
                    total_shares=req.total_shares,
                    primary_shares_remaining=req.total_shares,
                ),
            )
            owner = await self._ventures.add_founder(
                db, venture.id, creator.id, FounderMemberRole.OWNER
            )
            logger.info(
                "Venture created: %s '%s' shares=%d owner=%s",
                venture.id, venture.name, venture.total_shares, creator.id,
            )
            return VentureResponse.from_domain(venture, [owner] if owner else [])

        return await self._dispatcher.run(db, op)

    async def add_founder(
        self, db: AsyncSession, venture_id: str, user_id: str, req: AddFounderRequest
    ) -> Ok[FounderResponse] | Err:
        async def op(outbox: list[Any]) -> FounderResponse:
            if req.role is FounderMemberRole.OWNER:
                raise RoleNotAllowedError(req.role.value, "be added directly; transfer ownership")
            venture = await self._require_venture_owner(db, venture_id, user_id)
            member = await self._require_active_member(db, venture.game_id, req.participant_id)
            added = await self._ventures.add_founder(db, venture.id, member.id, req.role)
            if added is None:
                raise AlreadyFounderError(venture.id, member.id)
            await self._cancel_own_orders(db, outbox, venture, member.id)
            logger.info("Founder added: venture=%s participant=%s", venture.id, member.id)
            return FounderResponse.from_domain(added)

        return await self._dispatcher.run(db, op)

    async def transfer_ownership(
        self, db: AsyncSession, venture_id: str, user_id: str, to_participant_id: str
    ) -> Ok[VentureResponse] | Err:
        async def op(outbox: list[Any]) -> VentureResponse:
            venture = await self._require_venture_owner(db, venture_id, user_id)
            target = await self._require_active_member(db, venture.game_id, to_participant_id)
            founders = await self._ventures.list_founders(db, venture.id)
            owner = next((f.participant_id for f in founders if f.is_owner), None)
            await self._ventures.transfer_ownership(db, venture.id, owner, target.id)
            await self._cancel_own_orders(db, outbox, venture, target.id)
            await self._notify_new_owner(db, outbox, venture, target.id)
            logger.info("Venture %s ownership transferred to %s", venture.id, target.id)
            return VentureResponse.from_domain(
                venture, await self._ventures.list_founders(db, venture.id)
            )

        return await self._dispatcher.run(db, op)

    async def restore_founders(
        self,
        db: AsyncSession,
        outbox: list[Any],
        venture_ids: Iterable[str],
        successor: Participant | None,
    ) -> list[OrphanRepair]:
        """For each venture left without founders: hand it to ``successor``,
        or cancel its pending orders when there is none."""
        repairs: list[OrphanRepair] = []
        for venture_id in sorted(set(venture_ids)):
            if await self._ventures.count_founders(db, venture_id) > 0:
                continue
            venture = await self._ventures.get_by_id(db, venture_id)
            if venture is None:
                continue
            if successor is not None:
                await self._ventures.transfer_ownership(db, venture.id, None, successor.id)
                await self._cancel_own_orders(db, outbox, venture, successor.id)
                await self._notify_new_owner(db, outbox, venture, successor.id)
                logger.info("Orphaned venture %s handed to %s", venture.id, successor.id)
                repairs.append(OrphanRepair(venture.id, successor_participant_id=successor.id))
                continue

            canceled = await self._orders.cancel_pending_for_venture(
                db, venture.id, RejectReason.VENTURE_ORPHANED
            )
            outbox.extend(_canceled_event(o) for o in canceled)
            logger.warning(
                "Venture %s orphaned with no successor; %d pending orders canceled",
                venture.id, len(canceled),
            )
            repairs.append(OrphanRepair(venture.id, canceled_order_ids=[o.id for o in canceled]))
        return repairs

    # ------------------------------------------------------------------

    async def _cancel_own_orders(
        self, db: AsyncSession, outbox: list[Any], venture: Venture, participant_id: str
    ) -> None:
        """A founder may not buy from their own venture: drop what they still have pending."""
        canceled = await self._orders.cancel_pending_for_buyer(
            db, participant_id, RejectReason.BUYER_IS_FOUNDER, venture_id=venture.id
        )
        outbox.extend(_canceled_event(o) for o in canceled)
        if canceled:
            logger.info(
                "Canceled %d pending orders of new founder %s on venture %s",
                len(canceled), participant_id, venture.id,
            )

    async def _notify_new_owner(
        self, db: AsyncSession, outbox: list[Any], venture: Venture, participant_id: str
    ) -> None:
        await self._notifications.notify(
            db,
            outbox,
            venture.game_id,
            participant_id,
            NotificationType.VENTURE_OWNERSHIP_TRANSFERRED,
            {"venture_id": venture.id, "venture_name": venture.name},
        )

    async def _require_venture_owner(
        self, db: AsyncSession, venture_id: str, user_id: str
    ) -> Venture:
        """The venture's owner, or an organizer of its game."""
        venture = await self._ventures.get_by_id(db, venture_id)
        if venture is None:
            raise VentureNotFoundError(venture_id)
        caller = await self._participants.get_by_user(db, venture.game_id, user_id)
        if caller is None or not caller.is_active:
            raise VentureNotFoundError(venture_id)
        if caller.is_organizer:
            return venture
        founders = await self._ventures.list_founders(db, venture.id)
        if not any(f.participant_id == caller.id and f.is_owner for f in founders):
            raise VentureNotFoundError(venture_id)
        return venture

    async def _require_active_member(
        self, db: AsyncSession, game_id: str, participant_id: str
    ) -> Participant:
        participant = await self._participants.get_by_id(db, participant_id)
        if participant is None or participant.game_id != game_id:
            raise ParticipantNotFoundError(participant_id)
        check_participant_active(participant)
        return participant
