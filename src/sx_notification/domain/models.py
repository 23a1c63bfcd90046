"""Domain models for sx_notification — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.sx_common.enums import NotificationStatus, NotificationType

ACTIONABLE_TYPES: frozenset[NotificationType] = frozenset(
    {
        NotificationType.SECONDARY_TRADE_REQUEST,
        NotificationType.PARTICIPANT_APPROVAL_REQUEST,
    }
)


@dataclass
class Notification:
    """Addressed message. For actionable types ``status`` gates the action:
    only an ``unread`` notification can still be accepted or rejected."""

    id: str
    game_id: str
    recipient_participant_id: str
    type: NotificationType
    status: NotificationStatus = NotificationStatus.UNREAD
    sender_participant_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_actionable(self) -> bool:
        return self.type in ACTIONABLE_TYPES

    @property
    def is_unread(self) -> bool:
        return self.status is NotificationStatus.UNREAD
