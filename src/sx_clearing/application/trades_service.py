"""Trade history queries with (created_at, id) cursor pagination."""
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.domain.repository import ParticipantRepositoryProtocol
from src.sx_account.infrastructure.persistence import ParticipantRepository
from src.sx_clearing.application.trades_schemas import TradeListResponse, TradeResponse
from src.sx_clearing.domain.repository import TradeRepositoryProtocol
from src.sx_clearing.infrastructure.trades_repository import TradeRepository
from src.sx_common.errors import VentureNotFoundError
from src.sx_common.pagination import cursor_decode, cursor_encode
from src.sx_venture.domain.repository import VentureRepositoryProtocol
from src.sx_venture.infrastructure.persistence import VentureRepository


class TradeQueryService:
    def __init__(
        self,
        repo: TradeRepositoryProtocol | None = None,
        ventures: VentureRepositoryProtocol | None = None,
        participants: ParticipantRepositoryProtocol | None = None,
    ) -> None:
        self._repo: TradeRepositoryProtocol = repo or TradeRepository()
        self._ventures: VentureRepositoryProtocol = ventures or VentureRepository()
        self._participants: ParticipantRepositoryProtocol = participants or ParticipantRepository()

    async def list_trades(
        self,
        db: AsyncSession,
        *,
        game_id: str | None = None,
        venture_id: str | None = None,
        participant_id: str | None = None,
        cursor: str | None = None,
        limit: int = 20,
    ) -> TradeListResponse:
        cursor_ts, cursor_id = None, None
        position = cursor_decode(cursor)
        if position and "ts" in position and "id" in position:
            try:
                cursor_ts = datetime.fromisoformat(str(position["ts"]))
                cursor_id = str(position["id"])
            except ValueError:
                cursor_ts, cursor_id = None, None

        trades = await self._repo.list_trades(
            db,
            game_id=game_id,
            venture_id=venture_id,
            participant_id=participant_id,
            cursor_ts=cursor_ts,
            cursor_id=cursor_id,
            limit=limit + 1,
        )
        has_more = len(trades) > limit
        page = trades[:limit]
        next_cursor = None
        if has_more and page and page[-1].created_at is not None:
            next_cursor = cursor_encode({"ts": page[-1].created_at.isoformat(), "id": page[-1].id})
        return TradeListResponse(
            items=[TradeResponse.from_domain(t) for t in page],
            has_more=has_more,
            next_cursor=next_cursor,
        )

    async def list_venture_trades(
        self,
        db: AsyncSession,
        venture_id: str,
        user_id: str,
        cursor: str | None,
        limit: int,
    ) -> TradeListResponse:
        """Tape of one venture, visible to any participant of its game."""
        venture = await self._ventures.get_by_id(db, venture_id)
        if venture is None:
            raise VentureNotFoundError(venture_id)
        if await self._participants.get_by_user(db, venture.game_id, user_id) is None:
            raise VentureNotFoundError(venture_id)
        return await self.list_trades(db, venture_id=venture_id, cursor=cursor, limit=limit)
