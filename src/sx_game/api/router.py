"""sx_game REST API — lifecycle, emergency pause, join requests."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.application.participants import ParticipantService
from src.sx_account.application.schemas import JoinGameRequest
from src.sx_common.database import get_db_session
from src.sx_common.response import ApiResponse, success_response
from src.sx_common.result import unwrap
from src.sx_game.application.schemas import ChangeStatusRequest, LastMinutesEmailRequest
from src.sx_game.application.service import GameService
from src.sx_gateway.auth.dependencies import get_current_user
from src.sx_gateway.auth.jwt_handler import CurrentUser

router = APIRouter(prefix="/games", tags=["games"])

_service = GameService()
_participants = ParticipantService()


@router.get("/{game_id}")
async def get_game(
    game_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_game(db, game_id)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{game_id}/status")
async def change_status(
    game_id: str,
    body: ChangeStatusRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(await _service.change_status(db, game_id, current_user.id, body.status))
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{game_id}/pause")
async def emergency_pause(
    game_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(await _service.emergency_pause(db, game_id, current_user.id))
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{game_id}/emails/last-minutes")
async def send_last_minutes(
    game_id: str,
    body: LastMinutesEmailRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(
        await _service.send_last_minutes(db, game_id, current_user.id, body.minutes_left)
    )
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{game_id}/join", status_code=201)
async def join_game(
    game_id: str,
    body: JoinGameRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(await _participants.request_to_join(db, game_id, current_user.id, body.role))
    return success_response(data.model_dump(mode="json"), request)
