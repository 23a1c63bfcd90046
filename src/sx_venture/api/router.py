"""sx_venture REST API."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.domain.models import Participant
from src.sx_clearing.application.trades_service import TradeQueryService
from src.sx_common.database import get_db_session
from src.sx_common.enums import OrderStatus
from src.sx_common.response import ApiResponse, success_response
from src.sx_common.result import unwrap
from src.sx_gateway.auth.dependencies import get_current_participant, get_current_user
from src.sx_gateway.auth.jwt_handler import CurrentUser
from src.sx_order.application.service import OrderService
from src.sx_venture.application.schemas import (
    AddFounderRequest,
    CreateVentureRequest,
    TransferOwnershipRequest,
)
from src.sx_venture.application.service import VentureService

router = APIRouter(tags=["ventures"])

_service = VentureService()
_orders = OrderService()
_trades = TradeQueryService()


@router.get("/games/{game_id}/ventures")
async def list_ventures(
    game_id: str,
    participant: Annotated[Participant, Depends(get_current_participant)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_ventures(db, game_id)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/games/{game_id}/ventures", status_code=201)
async def create_venture(
    game_id: str,
    body: CreateVentureRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(await _service.create_venture(db, game_id, current_user.id, body))
    return success_response(data.model_dump(mode="json"), request)


@router.post("/ventures/{venture_id}/founders", status_code=201)
async def add_founder(
    venture_id: str,
    body: AddFounderRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(await _service.add_founder(db, venture_id, current_user.id, body))
    return success_response(data.model_dump(mode="json"), request)


@router.post("/ventures/{venture_id}/transfer")
async def transfer_ownership(
    venture_id: str,
    body: TransferOwnershipRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(
        await _service.transfer_ownership(
            db, venture_id, current_user.id, body.to_participant_id
        )
    )
    return success_response(data.model_dump(mode="json"), request)


@router.get("/ventures/{venture_id}/orders")
async def list_venture_orders(
    venture_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: OrderStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    data = await _orders.list_venture_orders(db, venture_id, current_user.id, status, limit)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/ventures/{venture_id}/trades")
async def list_venture_trades(
    venture_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    data = await _trades.list_venture_trades(db, venture_id, current_user.id, cursor, limit)
    return success_response(data.model_dump(mode="json"), request)
