"""Pydantic schemas for sx_notification API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.sx_common.enums import NotificationStatus, NotificationType, ParticipantDecision
from src.sx_notification.domain.models import Notification


class DecideParticipantRequest(BaseModel):
    decision: ParticipantDecision


class NotificationResponse(BaseModel):
    id: str
    game_id: str
    type: NotificationType
    status: NotificationStatus
    actionable: bool
    sender_participant_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.id,
            game_id=notification.game_id,
            type=notification.type,
            status=notification.status,
            actionable=notification.is_actionable and notification.is_unread,
            sender_participant_id=notification.sender_participant_id,
            payload=notification.payload,
            created_at=notification.created_at,
        )


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    unread_count: int
