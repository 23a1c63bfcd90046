"""sx_order REST API — primary market orders."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.domain.models import Participant
from src.sx_common.database import get_db_session
from src.sx_common.response import ApiResponse, success_response
from src.sx_common.result import unwrap
from src.sx_gateway.auth.dependencies import get_current_participant, get_current_user
from src.sx_gateway.auth.jwt_handler import CurrentUser
from src.sx_order.application.schemas import CreateOrderRequest, DecideOrderRequest
from src.sx_order.application.service import OrderService

router = APIRouter(tags=["orders"])

_service = OrderService()


@router.post("/games/{game_id}/orders", status_code=201)
async def create_order(
    game_id: str,
    body: CreateOrderRequest,
    participant: Annotated[Participant, Depends(get_current_participant)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(await _service.create_order(db, game_id, participant.id, body))
    return success_response(data.model_dump(mode="json"), request)


@router.post("/orders/{order_id}/decide")
async def decide_order(
    order_id: str,
    body: DecideOrderRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(await _service.decide_order(db, order_id, current_user.id, body.decision))
    return success_response(data.model_dump(mode="json"), request)


@router.post("/orders/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(await _service.cancel_order(db, order_id, current_user.id))
    return success_response(data.model_dump(mode="json"), request)


@router.get("/orders/{order_id}")
async def get_order(
    order_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_order(db, order_id, current_user.id)
    return success_response(data.model_dump(mode="json"), request)
