"""Leaderboards."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.domain.models import Participant
from src.sx_common.database import get_db_session
from src.sx_common.enums import LeaderboardKind
from src.sx_common.response import ApiResponse, success_response
from src.sx_gateway.auth.dependencies import get_current_participant
from src.sx_market.application.leaderboard_service import LeaderboardService

router = APIRouter(tags=["leaderboards"])

_service = LeaderboardService()


@router.get("/games/{game_id}/leaderboards/{kind}")
async def get_leaderboard(
    game_id: str,
    kind: LeaderboardKind,
    participant: Annotated[Participant, Depends(get_current_participant)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_leaderboard(db, game_id, kind)
    return success_response(data.model_dump(mode="json"), request)
