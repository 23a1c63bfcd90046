"""sx_secondary REST API — peer-to-peer trade requests."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.database import get_db_session
from src.sx_common.response import ApiResponse, success_response
from src.sx_common.result import unwrap
from src.sx_gateway.auth.dependencies import get_current_user
from src.sx_gateway.auth.jwt_handler import CurrentUser
from src.sx_secondary.application.schemas import SecondaryTradeRequest
from src.sx_secondary.application.service import SecondaryTradeService

router = APIRouter(tags=["secondary"])

_service = SecondaryTradeService()


@router.post("/games/{game_id}/secondary-trades", status_code=201)
async def request_trade(
    game_id: str,
    body: SecondaryTradeRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(await _service.request_trade(db, game_id, current_user.id, body))
    return success_response(data.model_dump(mode="json"), request)


@router.post("/notifications/{notification_id}/accept-trade")
async def accept_trade(
    notification_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(await _service.accept_trade(db, notification_id, current_user.id))
    return success_response(data.model_dump(mode="json"), request)


@router.post("/notifications/{notification_id}/reject-trade")
async def reject_trade(
    notification_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(await _service.reject_trade(db, notification_id, current_user.id))
    return success_response(data.model_dump(mode="json"), request)
