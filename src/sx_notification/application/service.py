"""NotificationService — writes addressed notifications inside the caller's
transaction and queues the matching pub/sub event on its outbox."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.enums import EventType, NotificationStatus, NotificationType
from src.sx_common.id_generator import generate_id
from src.sx_notification.application.schemas import (
    NotificationListResponse,
    NotificationResponse,
)
from src.sx_notification.domain.events import DomainEvent
from src.sx_notification.domain.models import Notification
from src.sx_notification.domain.repository import NotificationRepositoryProtocol
from src.sx_notification.infrastructure.persistence import NotificationRepository


class NotificationService:
    def __init__(self, repo: NotificationRepositoryProtocol | None = None) -> None:
        self._repo: NotificationRepositoryProtocol = repo or NotificationRepository()

    @property
    def repo(self) -> NotificationRepositoryProtocol:
        return self._repo

    async def notify(
        self,
        db: AsyncSession,
        outbox: list[Any],
        game_id: str,
        recipient_id: str,
        type_: NotificationType,
        payload: dict[str, Any],
        sender_id: str | None = None,
    ) -> Notification:
        notification = await self._repo.create(
            db,
            Notification(
                id=generate_id(),
                game_id=game_id,
                recipient_participant_id=recipient_id,
                sender_participant_id=sender_id,
                type=type_,
                payload=payload,
            ),
        )
        outbox.append(
            DomainEvent(
                EventType.NOTIFICATION_CREATED,
                game_id,
                {
                    "notification_id": notification.id,
                    "recipient_participant_id": recipient_id,
                    "type": type_.value,
                },
            )
        )
        return notification

    async def notify_many(
        self,
        db: AsyncSession,
        outbox: list[Any],
        game_id: str,
        recipient_ids: list[str],
        type_: NotificationType,
        payload: dict[str, Any],
        sender_id: str | None = None,
    ) -> list[Notification]:
        return [
            await self.notify(db, outbox, game_id, rid, type_, payload, sender_id)
            for rid in recipient_ids
        ]

    async def consume(
        self,
        db: AsyncSession,
        outbox: list[Any],
        notification: Notification,
        target: NotificationStatus,
    ) -> Notification | None:
        """CAS unread -> target; None when someone else consumed it first."""
        updated = await self._repo.transition(
            db, notification.id, NotificationStatus.UNREAD, target
        )
        if updated is not None:
            outbox.append(
                DomainEvent(
                    EventType.NOTIFICATION_UPDATED,
                    notification.game_id,
                    {"notification_id": notification.id, "status": target.value},
                )
            )
        return updated

    async def close_related(
        self,
        db: AsyncSession,
        outbox: list[Any],
        game_id: str,
        type_: NotificationType,
        participant_id: str,
    ) -> list[Notification]:
        """Mark the remaining unread copies of a request about ``participant_id`` read."""
        closed = await self._repo.mark_read_about(db, game_id, type_, participant_id)
        outbox.extend(
            DomainEvent(
                EventType.NOTIFICATION_UPDATED,
                game_id,
                {"notification_id": n.id, "status": n.status.value},
            )
            for n in closed
        )
        return closed

    async def list_for_participant(
        self,
        db: AsyncSession,
        participant_id: str,
        status: NotificationStatus | None = None,
        limit: int = 50,
    ) -> NotificationListResponse:
        items = await self._repo.list_for_participant(db, participant_id, status, limit)
        return NotificationListResponse(
            items=[NotificationResponse.from_domain(n) for n in items],
            unread_count=await self._repo.count_unread(db, participant_id),
        )
