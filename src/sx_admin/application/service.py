"""Organizer tooling: invariant verification and per-game trading stats."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.application.access import require_organizer
from src.sx_account.domain.repository import ParticipantRepositoryProtocol
from src.sx_account.infrastructure.persistence import ParticipantRepository
from src.sx_admin.application.schemas import GameStats, InvariantReport
from src.sx_clearing.domain.invariants import verify_game_invariants
from src.sx_game.domain.repository import GameRepositoryProtocol
from src.sx_game.infrastructure.persistence import GameRepository

_STATS_SQL = text("""
    SELECT
        COUNT(*) AS total_trades,
        COUNT(*) FILTER (WHERE market_type = 'primary') AS primary_trades,
        COUNT(*) FILTER (WHERE market_type = 'secondary') AS secondary_trades,
        COALESCE(SUM(qty), 0) AS total_volume,
        COALESCE(SUM(qty * price_per_share), 0) AS traded_value,
        (
            SELECT COUNT(DISTINCT pid) FROM (
                SELECT buyer_participant_id AS pid FROM trades WHERE game_id = :game_id
                UNION
                SELECT seller_participant_id FROM trades
                WHERE game_id = :game_id AND seller_participant_id IS NOT NULL
            ) traders
        ) AS unique_traders
    FROM trades
    WHERE game_id = :game_id
""")


class AdminService:
    def __init__(
        self,
        games: GameRepositoryProtocol | None = None,
        participants: ParticipantRepositoryProtocol | None = None,
    ) -> None:
        self._games: GameRepositoryProtocol = games or GameRepository()
        self._participants: ParticipantRepositoryProtocol = participants or ParticipantRepository()

    async def verify_invariants(
        self, db: AsyncSession, game_id: str, user_id: str
    ) -> InvariantReport:
        await require_organizer(db, self._games, self._participants, game_id, user_id)
        violations = await verify_game_invariants(db, game_id)
        return InvariantReport(game_id=game_id, ok=not violations, violations=violations)

    async def get_game_stats(self, db: AsyncSession, game_id: str, user_id: str) -> GameStats:
        game = await require_organizer(db, self._games, self._participants, game_id, user_id)
        row = (await db.execute(_STATS_SQL, {"game_id": game_id})).fetchone()
        return GameStats(
            game_id=game_id,
            status=game.status.value,
            total_trades=int(row.total_trades) if row else 0,
            primary_trades=int(row.primary_trades) if row else 0,
            secondary_trades=int(row.secondary_trades) if row else 0,
            total_volume=int(row.total_volume) if row else 0,
            traded_value=int(row.traded_value) if row else 0,
            unique_traders=int(row.unique_traders) if row else 0,
        )
