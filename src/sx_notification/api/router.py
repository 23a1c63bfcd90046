"""sx_notification REST API — inbox and participant approval."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.application.participants import ParticipantService
from src.sx_account.domain.models import Participant
from src.sx_common.database import get_db_session
from src.sx_common.enums import NotificationStatus
from src.sx_common.response import ApiResponse, success_response
from src.sx_common.result import unwrap
from src.sx_gateway.auth.dependencies import get_current_participant, get_current_user
from src.sx_gateway.auth.jwt_handler import CurrentUser
from src.sx_notification.application.schemas import DecideParticipantRequest
from src.sx_notification.application.service import NotificationService

router = APIRouter(tags=["notifications"])

_service = NotificationService()
_participants = ParticipantService(notifications=_service)


@router.get("/games/{game_id}/notifications")
async def list_notifications(
    participant: Annotated[Participant, Depends(get_current_participant)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: NotificationStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    data = await _service.list_for_participant(db, participant.id, status, limit)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/notifications/{notification_id}/decide-participant")
async def decide_participant(
    notification_id: str,
    body: DecideParticipantRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(
        await _participants.decide_participant(
            db, notification_id, current_user.id, body.decision
        )
    )
    return success_response(data.model_dump(mode="json"), request)
