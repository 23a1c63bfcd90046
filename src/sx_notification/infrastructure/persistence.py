"""NotificationRepository — raw SQL against the notifications table."""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.enums import NotificationStatus, NotificationType
from src.sx_notification.domain.models import Notification

_COLUMNS = """
    id, game_id, recipient_participant_id, sender_participant_id,
    type, status, payload, created_at, updated_at
"""

_INSERT_SQL = text("""
    INSERT INTO notifications
        (id, game_id, recipient_participant_id, sender_participant_id,
         type, status, payload)
    VALUES
        (:id, :game_id, :recipient_participant_id, :sender_participant_id,
         :type, :status, CAST(:payload AS JSONB))
    RETURNING created_at, updated_at
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM notifications WHERE id = :notification_id")

_TRANSITION_SQL = text(f"""
    UPDATE notifications
    SET status = :target, updated_at = NOW()
    WHERE id = :notification_id AND status = :expected
    RETURNING {_COLUMNS}
""")

_LIST_SQL = text(f"""
    SELECT {_COLUMNS} FROM notifications
    WHERE recipient_participant_id = :participant_id
      AND (CAST(:status AS VARCHAR) IS NULL OR status = :status)
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_COUNT_UNREAD_SQL = text("""
    SELECT COUNT(*) FROM notifications
    WHERE recipient_participant_id = :participant_id AND status = 'unread'
""")

_MARK_READ_ABOUT_SQL = text(f"""
    UPDATE notifications
    SET status = 'read', updated_at = NOW()
    WHERE game_id = :game_id
      AND type = :type
      AND status = 'unread'
      AND payload->>'participant_id' = :participant_id
    RETURNING {_COLUMNS}
""")


def _row_to_notification(row: Any) -> Notification:
    payload = row.payload
    if isinstance(payload, str):
        payload = json.loads(payload)
    return Notification(
        id=row.id,
        game_id=row.game_id,
        recipient_participant_id=row.recipient_participant_id,
        sender_participant_id=row.sender_participant_id,
        type=NotificationType(row.type),
        status=NotificationStatus(row.status),
        payload=payload or {},
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class NotificationRepository:
    """Concrete implementation of NotificationRepositoryProtocol."""

    async def create(self, db: AsyncSession, notification: Notification) -> Notification:
        row = (
            await db.execute(
                _INSERT_SQL,
                {
                    "id": notification.id,
                    "game_id": notification.game_id,
                    "recipient_participant_id": notification.recipient_participant_id,
                    "sender_participant_id": notification.sender_participant_id,
                    "type": notification.type.value,
                    "status": notification.status.value,
                    "payload": json.dumps(notification.payload, default=str),
                },
            )
        ).fetchone()
        notification.created_at = row.created_at
        notification.updated_at = row.updated_at
        return notification

    async def get_by_id(self, db: AsyncSession, notification_id: str) -> Notification | None:
        row = (await db.execute(_GET_SQL, {"notification_id": notification_id})).fetchone()
        return _row_to_notification(row) if row else None

    async def transition(
        self,
        db: AsyncSession,
        notification_id: str,
        expected: NotificationStatus,
        target: NotificationStatus,
    ) -> Notification | None:
        row = (
            await db.execute(
                _TRANSITION_SQL,
                {
                    "notification_id": notification_id,
                    "expected": expected.value,
                    "target": target.value,
                },
            )
        ).fetchone()
        return _row_to_notification(row) if row else None

    async def list_for_participant(
        self,
        db: AsyncSession,
        participant_id: str,
        status: NotificationStatus | None,
        limit: int,
    ) -> list[Notification]:
        rows = (
            await db.execute(
                _LIST_SQL,
                {
                    "participant_id": participant_id,
                    "status": status.value if status else None,
                    "limit": limit,
                },
            )
        ).fetchall()
        return [_row_to_notification(r) for r in rows]

    async def count_unread(self, db: AsyncSession, participant_id: str) -> int:
        count = (
            await db.execute(_COUNT_UNREAD_SQL, {"participant_id": participant_id})
        ).scalar()
        return int(count or 0)

    async def mark_read_about(
        self,
        db: AsyncSession,
        game_id: str,
        notification_type: NotificationType,
        participant_id: str,
    ) -> list[Notification]:
        rows = (
            await db.execute(
                _MARK_READ_ABOUT_SQL,
                {
                    "game_id": game_id,
                    "type": notification_type.value,
                    "participant_id": participant_id,
                },
            )
        ).fetchall()
        return [_row_to_notification(r) for r in rows]
