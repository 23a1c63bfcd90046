"""GameRepository — raw SQL against the games / game_roles /
circuit_breaker_events tables.

Status changes are compare-and-swap UPDATEs: 0 rows returned means another
transaction moved the game first.
"""

import json
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.enums import GameStatus
from src.sx_game.domain.models import CircuitBreakerEvent, Game

_GAME_COLUMNS = """
    id, name, owner_user_id, status, currency, locale,
    starts_at, ends_at, allow_secondary, circuit_breaker,
    circuit_breaker_active, circuit_breaker_until, max_price_per_share,
    created_at, updated_at
"""

_GET_GAME_SQL = text(f"SELECT {_GAME_COLUMNS} FROM games WHERE id = :game_id")

_UPDATE_STATUS_SQL = text(f"""
    UPDATE games
    SET status = :target, updated_at = NOW()
    WHERE id = :game_id AND status = :expected
    RETURNING {_GAME_COLUMNS}
""")

_DEFAULT_BUDGET_SQL = text("""
    SELECT default_budget FROM game_roles
    WHERE game_id = :game_id AND role = :role
""")

_TRIP_BREAKER_SQL = text(f"""
    UPDATE games
    SET circuit_breaker_active = TRUE,
        circuit_breaker_until = :until,
        updated_at = NOW()
    WHERE id = :game_id AND circuit_breaker = TRUE
    RETURNING {_GAME_COLUMNS}
""")

_INSERT_BREAKER_EVENT_SQL = text("""
    INSERT INTO circuit_breaker_events
        (game_id, venture_id, trigger_reason, old_price, new_price,
         change_pct, active_until, context)
    VALUES
        (:game_id, :venture_id, 'PRICE_MOVE', :old_price, :new_price,
         :change_pct, :until, CAST(:context AS JSONB))
""")

_RESET_BREAKERS_SQL = text("""
    UPDATE games
    SET circuit_breaker_active = FALSE,
        circuit_breaker_until = NULL,
        updated_at = NOW()
    WHERE circuit_breaker_active = TRUE
      AND circuit_breaker_until IS NOT NULL
      AND circuit_breaker_until < :now
    RETURNING id
""")

_RESOLVE_BREAKER_EVENTS_SQL = text("""
    UPDATE circuit_breaker_events
    SET resolved_at = :now, resolved_by = 'SWEEP'
    WHERE game_id = ANY(:game_ids) AND resolved_at IS NULL
""")

_LIST_ENDED_SQL = text("""
    SELECT id FROM games
    WHERE ends_at < :now OR status = 'results'
""")


def _row_to_game(row: Any) -> Game:
    return Game(
        id=row.id,
        name=row.name,
        owner_user_id=row.owner_user_id,
        status=GameStatus(row.status),
        currency=row.currency,
        locale=row.locale,
        starts_at=row.starts_at,
        ends_at=row.ends_at,
        allow_secondary=row.allow_secondary,
        circuit_breaker=row.circuit_breaker,
        circuit_breaker_active=row.circuit_breaker_active,
        circuit_breaker_until=row.circuit_breaker_until,
        max_price_per_share=row.max_price_per_share,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class GameRepository:
    """Concrete implementation of GameRepositoryProtocol."""

    async def get_by_id(self, db: AsyncSession, game_id: str) -> Game | None:
        row = (await db.execute(_GET_GAME_SQL, {"game_id": game_id})).fetchone()
        return _row_to_game(row) if row else None

    async def update_status(
        self, db: AsyncSession, game_id: str, expected: GameStatus, target: GameStatus
    ) -> Game | None:
        row = (
            await db.execute(
                _UPDATE_STATUS_SQL,
                {"game_id": game_id, "expected": expected.value, "target": target.value},
            )
        ).fetchone()
        return _row_to_game(row) if row else None

    async def get_default_budget(
        self, db: AsyncSession, game_id: str, role: str
    ) -> int | None:
        result = await db.execute(_DEFAULT_BUDGET_SQL, {"game_id": game_id, "role": role})
        return result.scalar_one_or_none()

    async def trip_circuit_breaker(
        self, db: AsyncSession, game_id: str, until: datetime
    ) -> Game | None:
        row = (
            await db.execute(_TRIP_BREAKER_SQL, {"game_id": game_id, "until": until})
        ).fetchone()
        return _row_to_game(row) if row else None

    async def record_circuit_breaker_event(
        self, db: AsyncSession, event: CircuitBreakerEvent
    ) -> None:
        await db.execute(
            _INSERT_BREAKER_EVENT_SQL,
            {
                "game_id": event.game_id,
                "venture_id": event.venture_id,
                "old_price": event.old_price,
                "new_price": event.new_price,
                "change_pct": event.change_pct,
                "until": event.until,
                "context": json.dumps(event.context, default=str),
            },
        )

    async def reset_expired_circuit_breakers(
        self, db: AsyncSession, now: datetime
    ) -> list[str]:
        rows = (await db.execute(_RESET_BREAKERS_SQL, {"now": now})).fetchall()
        game_ids = [row.id for row in rows]
        if game_ids:
            await db.execute(_RESOLVE_BREAKER_EVENTS_SQL, {"now": now, "game_ids": game_ids})
        return game_ids

    async def list_ended_game_ids(self, db: AsyncSession, now: datetime) -> list[str]:
        rows = (await db.execute(_LIST_ENDED_SQL, {"now": now})).fetchall()
        return [row.id for row in rows]
