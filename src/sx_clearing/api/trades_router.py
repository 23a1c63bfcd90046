"""Trade history of the calling participant."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.domain.models import Participant
from src.sx_clearing.application.trades_service import TradeQueryService
from src.sx_common.database import get_db_session
from src.sx_common.response import ApiResponse, success_response
from src.sx_gateway.auth.dependencies import get_current_participant

router = APIRouter(tags=["trades"])

_service = TradeQueryService()


@router.get("/games/{game_id}/trades")
async def list_my_trades(
    game_id: str,
    participant: Annotated[Participant, Depends(get_current_participant)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    data = await _service.list_trades(
        db, game_id=game_id, participant_id=participant.id, cursor=cursor, limit=limit
    )
    return success_response(data.model_dump(mode="json"), request)
