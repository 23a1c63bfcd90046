"""OrderRepository — raw SQL against orders_primary."""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.enums import OrderStatus, RejectReason
from src.sx_order.domain.models import PrimaryOrder

_COLUMNS = """
    id, game_id, venture_id, buyer_participant_id, qty, price_per_share,
    status, auto_accept_min_price, decided_by_participant_id, reject_reason,
    trade_id, created_at, decided_at, updated_at
"""

_INSERT_SQL = text(f"""
    INSERT INTO orders_primary
        (id, game_id, venture_id, buyer_participant_id, qty, price_per_share,
         status, auto_accept_min_price)
    VALUES
        (:id, :game_id, :venture_id, :buyer_participant_id, :qty, :price_per_share,
         'pending', :auto_accept_min_price)
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM orders_primary WHERE id = :order_id")

_TRANSITION_SQL = text(f"""
    UPDATE orders_primary
    SET status = :target,
        decided_by_participant_id = COALESCE(:decided_by, decided_by_participant_id),
        reject_reason = :reject_reason,
        trade_id = :trade_id,
        decided_at = NOW(),
        updated_at = NOW()
    WHERE id = :order_id AND status = 'pending'
    RETURNING {_COLUMNS}
""")

_LIST_BY_VENTURE_SQL = text(f"""
    SELECT {_COLUMNS} FROM orders_primary
    WHERE venture_id = :venture_id
      AND (CAST(:status AS VARCHAR) IS NULL OR status = :status)
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_BY_BUYER_SQL = text(f"""
    SELECT {_COLUMNS} FROM orders_primary
    WHERE buyer_participant_id = :participant_id
      AND (CAST(:status AS VARCHAR) IS NULL OR status = :status)
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_CANCEL_FOR_BUYER_SQL = text(f"""
    UPDATE orders_primary
    SET status = 'canceled', reject_reason = :reason,
        decided_at = NOW(), updated_at = NOW()
    WHERE buyer_participant_id = :participant_id AND status = 'pending'
      AND (CAST(:venture_id AS VARCHAR) IS NULL OR venture_id = :venture_id)
    RETURNING {_COLUMNS}
""")

_CANCEL_FOR_VENTURE_SQL = text(f"""
    UPDATE orders_primary
    SET status = 'canceled', reject_reason = :reason,
        decided_at = NOW(), updated_at = NOW()
    WHERE venture_id = :venture_id AND status = 'pending'
    RETURNING {_COLUMNS}
""")

_EXPIRE_FOR_GAMES_SQL = text(f"""
    UPDATE orders_primary
    SET status = 'expired', decided_at = NOW(), updated_at = NOW()
    WHERE game_id IN :game_ids AND status = 'pending'
    RETURNING {_COLUMNS}
""").bindparams(bindparam("game_ids", expanding=True))


def _row_to_order(row: Any) -> PrimaryOrder:
    return PrimaryOrder(
        id=row.id,
        game_id=row.game_id,
        venture_id=row.venture_id,
        buyer_participant_id=row.buyer_participant_id,
        qty=row.qty,
        price_per_share=row.price_per_share,
        status=OrderStatus(row.status),
        auto_accept_min_price=row.auto_accept_min_price,
        decided_by_participant_id=row.decided_by_participant_id,
        reject_reason=RejectReason(row.reject_reason) if row.reject_reason else None,
        trade_id=row.trade_id,
        created_at=row.created_at,
        decided_at=row.decided_at,
        updated_at=row.updated_at,
    )


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol."""

    async def create(self, db: AsyncSession, order: PrimaryOrder) -> PrimaryOrder:
        row = (
            await db.execute(
                _INSERT_SQL,
                {
                    "id": order.id,
                    "game_id": order.game_id,
                    "venture_id": order.venture_id,
                    "buyer_participant_id": order.buyer_participant_id,
                    "qty": order.qty,
                    "price_per_share": order.price_per_share,
                    "auto_accept_min_price": order.auto_accept_min_price,
                },
            )
        ).fetchone()
        return _row_to_order(row)

    async def get_by_id(self, db: AsyncSession, order_id: str) -> PrimaryOrder | None:
        row = (await db.execute(_GET_SQL, {"order_id": order_id})).fetchone()
        return _row_to_order(row) if row else None

    async def transition(
        self,
        db: AsyncSession,
        order_id: str,
        target: OrderStatus,
        decided_by: str | None = None,
        reject_reason: RejectReason | None = None,
        trade_id: str | None = None,
    ) -> PrimaryOrder | None:
        row = (
            await db.execute(
                _TRANSITION_SQL,
                {
                    "order_id": order_id,
                    "target": target.value,
                    "decided_by": decided_by,
                    "reject_reason": reject_reason.value if reject_reason else None,
                    "trade_id": trade_id,
                },
            )
        ).fetchone()
        return _row_to_order(row) if row else None

    async def list_by_venture(
        self, db: AsyncSession, venture_id: str, status: OrderStatus | None, limit: int
    ) -> list[PrimaryOrder]:
        rows = (
            await db.execute(
                _LIST_BY_VENTURE_SQL,
                {
                    "venture_id": venture_id,
                    "status": status.value if status else None,
                    "limit": limit,
                },
            )
        ).fetchall()
        return [_row_to_order(r) for r in rows]

    async def list_by_buyer(
        self, db: AsyncSession, participant_id: str, status: OrderStatus | None, limit: int
    ) -> list[PrimaryOrder]:
        rows = (
            await db.execute(
                _LIST_BY_BUYER_SQL,
                {
                    "participant_id": participant_id,
                    "status": status.value if status else None,
                    "limit": limit,
                },
            )
        ).fetchall()
        return [_row_to_order(r) for r in rows]

    async def cancel_pending_for_buyer(
        self,
        db: AsyncSession,
        participant_id: str,
        reason: RejectReason,
        venture_id: str | None = None,
    ) -> list[PrimaryOrder]:
        rows = (
            await db.execute(
                _CANCEL_FOR_BUYER_SQL,
                {
                    "participant_id": participant_id,
                    "reason": reason.value,
                    "venture_id": venture_id,
                },
            )
        ).fetchall()
        return [_row_to_order(r) for r in rows]

    async def cancel_pending_for_venture(
        self, db: AsyncSession, venture_id: str, reason: RejectReason
    ) -> list[PrimaryOrder]:
        rows = (
            await db.execute(
                _CANCEL_FOR_VENTURE_SQL, {"venture_id": venture_id, "reason": reason.value}
            )
        ).fetchall()
        return [_row_to_order(r) for r in rows]

    async def expire_pending_for_games(
        self, db: AsyncSession, game_ids: Sequence[str]
    ) -> list[PrimaryOrder]:
        if not game_ids:
            return []
        rows = (
            await db.execute(_EXPIRE_FOR_GAMES_SQL, {"game_ids": list(game_ids)})
        ).fetchall()
        return [_row_to_order(r) for r in rows]
