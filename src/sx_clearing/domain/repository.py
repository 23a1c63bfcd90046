"""Repository Protocol — dependency inversion for testability."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_clearing.domain.models import Trade


class TradeRepositoryProtocol(Protocol):
    async def exists(self, db: AsyncSession, trade_id: str) -> bool: ...

    async def insert(self, db: AsyncSession, trade: Trade) -> Trade: ...

    async def recent_for_venture(
        self, db: AsyncSession, venture_id: str, limit: int
    ) -> list[Trade]:
        """Newest first, ordered by (created_at, id)."""
        ...

    async def list_trades(
        self,
        db: AsyncSession,
        *,
        game_id: str | None = None,
        venture_id: str | None = None,
        participant_id: str | None = None,
        cursor_ts: datetime | None = None,
        cursor_id: str | None = None,
        limit: int = 20,
    ) -> list[Trade]: ...
