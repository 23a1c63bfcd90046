"""Startup and investor leaderboards for a game."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.enums import LeaderboardKind, ParticipantRole
from src.sx_common.errors import GameNotFoundError
from src.sx_game.domain.repository import GameRepositoryProtocol
from src.sx_game.infrastructure.persistence import GameRepository
from src.sx_market.application.schemas import LeaderboardEntryResponse, LeaderboardResponse
from src.sx_market.domain.leaderboard import rank_investors, rank_startups
from src.sx_market.infrastructure.leaderboard_repository import LeaderboardRepository
from src.sx_venture.domain.repository import VentureRepositoryProtocol
from src.sx_venture.infrastructure.persistence import VentureRepository

_INVESTOR_ROLES = {
    LeaderboardKind.ANGELS: ParticipantRole.ANGEL,
    LeaderboardKind.VCS: ParticipantRole.VC,
}


class LeaderboardService:
    def __init__(
        self,
        games: GameRepositoryProtocol | None = None,
        ventures: VentureRepositoryProtocol | None = None,
        standings: LeaderboardRepository | None = None,
    ) -> None:
        self._games: GameRepositoryProtocol = games or GameRepository()
        self._ventures: VentureRepositoryProtocol = ventures or VentureRepository()
        self._standings = standings or LeaderboardRepository()

    async def get_leaderboard(
        self, db: AsyncSession, game_id: str, kind: LeaderboardKind
    ) -> LeaderboardResponse:
        game = await self._games.get_by_id(db, game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        if kind is LeaderboardKind.STARTUPS:
            entries = rank_startups(await self._ventures.list_by_game(db, game_id))
        else:
            role = _INVESTOR_ROLES[kind]
            entries = rank_investors(
                await self._standings.investor_standings(db, game_id, role.value)
            )
        return LeaderboardResponse(
            game_id=game_id,
            kind=kind,
            items=[LeaderboardEntryResponse.from_domain(e, game.currency) for e in entries],
        )
