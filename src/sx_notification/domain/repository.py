"""Repository Protocol — dependency inversion for testability."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.enums import NotificationStatus, NotificationType
from src.sx_notification.domain.models import Notification


class NotificationRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, notification: Notification) -> Notification: ...

    async def get_by_id(self, db: AsyncSession, notification_id: str) -> Notification | None: ...

    async def transition(
        self,
        db: AsyncSession,
        notification_id: str,
        expected: NotificationStatus,
        target: NotificationStatus,
    ) -> Notification | None:
        """CAS on status: the at-most-once gate for actionable notifications."""
        ...

    async def list_for_participant(
        self,
        db: AsyncSession,
        participant_id: str,
        status: NotificationStatus | None,
        limit: int,
    ) -> list[Notification]: ...

    async def count_unread(self, db: AsyncSession, participant_id: str) -> int: ...

    async def mark_read_about(
        self,
        db: AsyncSession,
        game_id: str,
        notification_type: NotificationType,
        participant_id: str,
    ) -> list[Notification]:
        """Close every unread ``notification_type`` whose payload names ``participant_id``."""
        ...
