"""TradeRepository — append-only trades table.

``order_id`` and ``notification_id`` are each UNIQUE, so a second settlement
of the same order or trade request fails at the store even if a service check
were bypassed.

``created_at`` is stamped with ``clock_timestamp()`` at insert, which runs
after the venture row lock is held, so time order matches settlement order
even when a transaction waited on that lock.
"""

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_clearing.domain.models import Trade
from src.sx_common.enums import MarketType

_COLUMNS = """
    id, game_id, venture_id, market_type,
    buyer_participant_id, seller_participant_id,
    qty, price_per_share, order_id, notification_id,
    seller_realized_pnl, created_at
"""

_EXISTS_SQL = text("SELECT 1 FROM trades WHERE id = :trade_id")

_INSERT_SQL = text("""
    INSERT INTO trades
        (id, game_id, venture_id, market_type,
         buyer_participant_id, seller_participant_id,
         qty, price_per_share, order_id, notification_id, seller_realized_pnl,
         created_at)
    VALUES
        (:id, :game_id, :venture_id, :market_type,
         :buyer_participant_id, :seller_participant_id,
         :qty, :price_per_share, :order_id, :notification_id, :seller_realized_pnl,
         clock_timestamp())
    RETURNING created_at
""")

_RECENT_FOR_VENTURE_SQL = text(f"""
    SELECT {_COLUMNS} FROM trades
    WHERE venture_id = :venture_id
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_SQL = text(f"""
    SELECT {_COLUMNS} FROM trades
    WHERE (CAST(:game_id AS VARCHAR) IS NULL OR game_id = :game_id)
      AND (CAST(:venture_id AS VARCHAR) IS NULL OR venture_id = :venture_id)
      AND (CAST(:participant_id AS VARCHAR) IS NULL
           OR buyer_participant_id = :participant_id
           OR seller_participant_id = :participant_id)
      AND (CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
           OR (created_at, id) < (CAST(:cursor_ts AS TIMESTAMPTZ), :cursor_id))
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")


def _row_to_trade(row: Any) -> Trade:
    return Trade(
        id=row.id,
        game_id=row.game_id,
        venture_id=row.venture_id,
        market_type=MarketType(row.market_type),
        buyer_participant_id=row.buyer_participant_id,
        seller_participant_id=row.seller_participant_id,
        qty=row.qty,
        price_per_share=row.price_per_share,
        order_id=row.order_id,
        notification_id=row.notification_id,
        seller_realized_pnl=(
            Decimal(row.seller_realized_pnl) if row.seller_realized_pnl is not None else None
        ),
        created_at=row.created_at,
    )


class TradeRepository:
    """Concrete implementation of TradeRepositoryProtocol."""

    async def exists(self, db: AsyncSession, trade_id: str) -> bool:
        row = (await db.execute(_EXISTS_SQL, {"trade_id": trade_id})).fetchone()
        return row is not None

    async def insert(self, db: AsyncSession, trade: Trade) -> Trade:
        row = (
            await db.execute(
                _INSERT_SQL,
                {
                    "id": trade.id,
                    "game_id": trade.game_id,
                    "venture_id": trade.venture_id,
                    "market_type": trade.market_type.value,
                    "buyer_participant_id": trade.buyer_participant_id,
                    "seller_participant_id": trade.seller_participant_id,
                    "qty": trade.qty,
                    "price_per_share": trade.price_per_share,
                    "order_id": trade.order_id,
                    "notification_id": trade.notification_id,
                    "seller_realized_pnl": trade.seller_realized_pnl,
                },
            )
        ).fetchone()
        return replace(trade, created_at=row.created_at)

    async def recent_for_venture(
        self, db: AsyncSession, venture_id: str, limit: int
    ) -> list[Trade]:
        rows = (
            await db.execute(
                _RECENT_FOR_VENTURE_SQL, {"venture_id": venture_id, "limit": limit}
            )
        ).fetchall()
        return [_row_to_trade(r) for r in rows]

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
    ) -> list[Trade]:
        rows = (
            await db.execute(
                _LIST_SQL,
                {
                    "game_id": game_id,
                    "venture_id": venture_id,
                    "participant_id": participant_id,
                    "cursor_ts": cursor_ts,
                    "cursor_id": cursor_id,
                    "limit": limit,
                },
            )
        ).fetchall()
        return [_row_to_trade(r) for r in rows]
