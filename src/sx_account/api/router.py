"""sx_account REST API — the caller's cash, positions, journal and portfolio,
plus organizer removal of participants."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.application.participants import ParticipantService
from src.sx_account.application.schemas import RemoveParticipantRequest
from src.sx_account.application.service import PortfolioService
from src.sx_account.domain.models import Participant
from src.sx_common.database import get_db_session
from src.sx_common.enums import LedgerEntryType, OrderStatus
from src.sx_common.response import ApiResponse, success_response
from src.sx_common.result import unwrap
from src.sx_gateway.auth.dependencies import get_current_participant, get_current_user
from src.sx_gateway.auth.jwt_handler import CurrentUser
from src.sx_order.application.service import OrderService

router = APIRouter(prefix="/games/{game_id}", tags=["account"])

_portfolio = PortfolioService()
_participants = ParticipantService()
_orders = OrderService()


@router.get("/me")
async def get_me(
    participant: Annotated[Participant, Depends(get_current_participant)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _portfolio.get_me(db, participant)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/me/positions")
async def list_positions(
    participant: Annotated[Participant, Depends(get_current_participant)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _portfolio.list_positions(db, participant)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/me/ledger")
async def list_ledger(
    participant: Annotated[Participant, Depends(get_current_participant)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    entry_type: LedgerEntryType | None = Query(None, description="Filter by entry type"),
) -> ApiResponse:
    data = await _portfolio.list_ledger(
        db, participant, cursor, limit, entry_type.value if entry_type else None
    )
    return success_response(data.model_dump(mode="json"), request)


@router.get("/me/portfolio")
async def get_portfolio(
    participant: Annotated[Participant, Depends(get_current_participant)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _portfolio.get_portfolio(db, participant)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/me/orders")
async def list_my_orders(
    participant: Annotated[Participant, Depends(get_current_participant)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: OrderStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    data = await _orders.list_my_orders(db, participant.id, status, limit)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/participants/{participant_id}/remove")
async def remove_participant(
    game_id: str,
    participant_id: str,
    body: RemoveParticipantRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = unwrap(
        await _participants.remove_participant(
            db, game_id, participant_id, current_user.id, body.successor_participant_id
        )
    )
    return success_response(data.model_dump(mode="json"), request)
