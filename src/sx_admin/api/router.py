"""Admin REST API — invariant checks, stats and the cron-triggered sweeps."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_admin.application.service import AdminService
from src.sx_common.database import get_db_session
from src.sx_common.response import ApiResponse, success_response
from src.sx_common.result import unwrap
from src.sx_game.application.service import GameService
from src.sx_gateway.auth.dependencies import get_current_user
from src.sx_gateway.auth.jwt_handler import CurrentUser
from src.sx_order.application.service import OrderService

router = APIRouter(prefix="/admin", tags=["admin"])

_service = AdminService()
_games = GameService()
_orders = OrderService()


@router.get("/games/{game_id}/invariants")
async def verify_invariants(
    game_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.verify_invariants(db, game_id, current_user.id)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/games/{game_id}/stats")
async def get_game_stats(
    game_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_game_stats(db, game_id, current_user.id)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/sweeps/circuit-breakers")
async def sweep_circuit_breakers(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(await _games.reset_expired_circuit_breakers(db))
    return success_response(data.model_dump(mode="json"), request)


@router.post("/sweeps/expired-orders")
async def sweep_expired_orders(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(await _orders.expire_pending_orders(db))
    return success_response(data.model_dump(mode="json"), request)
