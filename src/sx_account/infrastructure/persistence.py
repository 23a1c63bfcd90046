"""Participant / position / ledger repositories.

All cash and share mutations use atomic PostgreSQL UPDATE ... RETURNING.
A result of 0 rows means a business constraint was violated (insufficient
cash/shares) or the row moved to another status first.

Transaction ownership: the CALLER owns the transaction (see
``src.sx_common.result.run_atomic``).
"""

from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.domain.models import LedgerEntry, Participant, Position
from src.sx_common.enums import LedgerEntryType, ParticipantRole, ParticipantStatus

# ---------------------------------------------------------------------------
# SQL: participants
# ---------------------------------------------------------------------------

_PARTICIPANT_COLUMNS = """
    p.id, p.game_id, p.user_id, p.role, p.status,
    p.initial_budget, p.current_cash, p.created_at, p.updated_at,
    u.email, u.display_name
"""

_GET_PARTICIPANT_SQL = text(f"""
    SELECT {_PARTICIPANT_COLUMNS}
    FROM participants p
    LEFT JOIN users u ON u.id = p.user_id
    WHERE p.id = :participant_id
""")

_GET_BY_USER_SQL = text(f"""
    SELECT {_PARTICIPANT_COLUMNS}
    FROM participants p
    LEFT JOIN users u ON u.id = p.user_id
    WHERE p.game_id = :game_id AND p.user_id = :user_id
""")

_LOCK_MANY_SQL = text(f"""
    SELECT {_PARTICIPANT_COLUMNS}
    FROM participants p
    LEFT JOIN users u ON u.id = p.user_id
    WHERE p.id IN :participant_ids
    ORDER BY p.id
    FOR UPDATE OF p
""").bindparams(bindparam("participant_ids", expanding=True))

_FIND_BY_IDENTIFIER_SQL = text(f"""
    SELECT {_PARTICIPANT_COLUMNS}
    FROM participants p
    JOIN users u ON u.id = p.user_id
    WHERE p.game_id = :game_id
      AND (LOWER(u.email) = LOWER(:identifier) OR u.display_name = :identifier)
    ORDER BY (LOWER(u.email) = LOWER(:identifier)) DESC, p.created_at
    LIMIT 1
""")

_LIST_BY_GAME_SQL = text(f"""
    SELECT {_PARTICIPANT_COLUMNS}
    FROM participants p
    LEFT JOIN users u ON u.id = p.user_id
    WHERE p.game_id = :game_id
      AND (CAST(:role AS VARCHAR) IS NULL OR p.role = :role)
    ORDER BY p.created_at, p.id
""")

_INSERT_PARTICIPANT_SQL = text("""
    INSERT INTO participants
        (id, game_id, user_id, role, status, initial_budget, current_cash)
    VALUES
        (:id, :game_id, :user_id, :role, :status, :initial_budget, :current_cash)
    RETURNING id, created_at, updated_at
""")

_UPDATE_STATUS_SQL = text("""
    UPDATE participants
    SET status = :target, updated_at = NOW()
    WHERE id = :participant_id AND status = :expected
    RETURNING id
""")

_DEBIT_CASH_SQL = text("""
    UPDATE participants
    SET current_cash = current_cash - :amount, updated_at = NOW()
    WHERE id = :participant_id AND current_cash >= :amount
    RETURNING id
""")

_CREDIT_CASH_SQL = text("""
    UPDATE participants
    SET current_cash = current_cash + :amount, updated_at = NOW()
    WHERE id = :participant_id
    RETURNING id
""")

# ---------------------------------------------------------------------------
# SQL: positions
# ---------------------------------------------------------------------------

_POSITION_COLUMNS = "participant_id, venture_id, qty_total, avg_cost, updated_at"

_GET_POSITION_SQL = text(f"""
    SELECT {_POSITION_COLUMNS}
    FROM positions
    WHERE participant_id = :participant_id AND venture_id = :venture_id
""")

# ON CONFLICT DO UPDATE takes the row lock even when the row already exists.
_GET_OR_CREATE_POSITION_SQL = text(f"""
    INSERT INTO positions (participant_id, venture_id)
    VALUES (:participant_id, :venture_id)
    ON CONFLICT (participant_id, venture_id) DO UPDATE
        SET updated_at = NOW()
    RETURNING {_POSITION_COLUMNS}
""")

_SET_BUY_STATE_SQL = text(f"""
    UPDATE positions
    SET qty_total = :qty_total, avg_cost = :avg_cost, updated_at = NOW()
    WHERE participant_id = :participant_id AND venture_id = :venture_id
    RETURNING {_POSITION_COLUMNS}
""")

_DECREMENT_POSITION_SQL = text(f"""
    UPDATE positions
    SET qty_total = qty_total - :qty, updated_at = NOW()
    WHERE participant_id = :participant_id
      AND venture_id = :venture_id
      AND qty_total >= :qty
    RETURNING {_POSITION_COLUMNS}
""")

_LIST_POSITIONS_SQL = text(f"""
    SELECT {_POSITION_COLUMNS}
    FROM positions
    WHERE participant_id = :participant_id AND qty_total > 0
    ORDER BY venture_id
""")

# ---------------------------------------------------------------------------
# SQL: ledger
# ---------------------------------------------------------------------------

_INSERT_LEDGER_SQL = text("""
    INSERT INTO ledger_entries
        (participant_id, game_id, entry_type, amount, balance_after,
         reference_type, reference_id)
    VALUES
        (:participant_id, :game_id, :entry_type, :amount, :balance_after,
         :reference_type, :reference_id)
""")

_LIST_LEDGER_SQL = text("""
    SELECT id, participant_id, game_id, entry_type, amount, balance_after,
           reference_type, reference_id, created_at
    FROM ledger_entries
    WHERE participant_id = :participant_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
      AND (CAST(:entry_type AS VARCHAR) IS NULL OR entry_type = :entry_type)
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_participant(row: Any) -> Participant:
    return Participant(
        id=row.id,
        game_id=row.game_id,
        user_id=row.user_id,
        role=ParticipantRole(row.role),
        status=ParticipantStatus(row.status),
        initial_budget=row.initial_budget,
        current_cash=row.current_cash,
        email=row.email,
        display_name=row.display_name,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_position(row: Any) -> Position:
    return Position(
        participant_id=row.participant_id,
        venture_id=row.venture_id,
        qty_total=row.qty_total,
        avg_cost=Decimal(row.avg_cost),
        updated_at=row.updated_at,
    )


def _row_to_ledger(row: Any) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,
        participant_id=row.participant_id,
        game_id=row.game_id,
        entry_type=LedgerEntryType(row.entry_type),
        amount=row.amount,
        balance_after=row.balance_after,
        reference_type=row.reference_type,
        reference_id=row.reference_id,
        created_at=row.created_at,
    )


class ParticipantRepository:
    """Concrete implementation of ParticipantRepositoryProtocol."""

    async def get_by_id(self, db: AsyncSession, participant_id: str) -> Participant | None:
        row = (
            await db.execute(_GET_PARTICIPANT_SQL, {"participant_id": participant_id})
        ).fetchone()
        return _row_to_participant(row) if row else None

    async def get_by_user(
        self, db: AsyncSession, game_id: str, user_id: str
    ) -> Participant | None:
        row = (
            await db.execute(_GET_BY_USER_SQL, {"game_id": game_id, "user_id": user_id})
        ).fetchone()
        return _row_to_participant(row) if row else None

    async def lock_many(
        self, db: AsyncSession, participant_ids: Sequence[str]
    ) -> dict[str, Participant]:
        ids = sorted(set(participant_ids))
        if not ids:
            return {}
        rows = (await db.execute(_LOCK_MANY_SQL, {"participant_ids": ids})).fetchall()
        return {row.id: _row_to_participant(row) for row in rows}

    async def find_by_identifier(
        self, db: AsyncSession, game_id: str, identifier: str
    ) -> Participant | None:
        row = (
            await db.execute(
                _FIND_BY_IDENTIFIER_SQL,
                {"game_id": game_id, "identifier": identifier.strip()},
            )
        ).fetchone()
        return _row_to_participant(row) if row else None

    async def list_by_game(
        self, db: AsyncSession, game_id: str, role: str | None = None
    ) -> list[Participant]:
        rows = (
            await db.execute(_LIST_BY_GAME_SQL, {"game_id": game_id, "role": role})
        ).fetchall()
        return [_row_to_participant(r) for r in rows]

    async def create(self, db: AsyncSession, participant: Participant) -> Participant:
        row = (
            await db.execute(
                _INSERT_PARTICIPANT_SQL,
                {
                    "id": participant.id,
                    "game_id": participant.game_id,
                    "user_id": participant.user_id,
                    "role": participant.role.value,
                    "status": participant.status.value,
                    "initial_budget": participant.initial_budget,
                    "current_cash": participant.current_cash,
                },
            )
        ).fetchone()
        participant.created_at = row.created_at
        participant.updated_at = row.updated_at
        return participant

    async def update_status(
        self,
        db: AsyncSession,
        participant_id: str,
        expected: ParticipantStatus,
        target: ParticipantStatus,
    ) -> Participant | None:
        row = (
            await db.execute(
                _UPDATE_STATUS_SQL,
                {
                    "participant_id": participant_id,
                    "expected": expected.value,
                    "target": target.value,
                },
            )
        ).fetchone()
        if row is None:
            return None
        return await self.get_by_id(db, participant_id)

    async def debit_cash(
        self, db: AsyncSession, participant_id: str, amount: int
    ) -> Participant | None:
        row = (
            await db.execute(
                _DEBIT_CASH_SQL, {"participant_id": participant_id, "amount": amount}
            )
        ).fetchone()
        if row is None:
            return None
        return await self.get_by_id(db, participant_id)

    async def credit_cash(
        self, db: AsyncSession, participant_id: str, amount: int
    ) -> Participant | None:
        row = (
            await db.execute(
                _CREDIT_CASH_SQL, {"participant_id": participant_id, "amount": amount}
            )
        ).fetchone()
        if row is None:
            return None
        return await self.get_by_id(db, participant_id)


class PositionRepository:
    """Concrete implementation of PositionRepositoryProtocol."""

    async def get(
        self, db: AsyncSession, participant_id: str, venture_id: str
    ) -> Position | None:
        row = (
            await db.execute(
                _GET_POSITION_SQL,
                {"participant_id": participant_id, "venture_id": venture_id},
            )
        ).fetchone()
        return _row_to_position(row) if row else None

    async def get_or_create_locked(
        self, db: AsyncSession, participant_id: str, venture_id: str
    ) -> Position:
        row = (
            await db.execute(
                _GET_OR_CREATE_POSITION_SQL,
                {"participant_id": participant_id, "venture_id": venture_id},
            )
        ).fetchone()
        return _row_to_position(row)

    async def set_buy_state(
        self,
        db: AsyncSession,
        participant_id: str,
        venture_id: str,
        qty_total: int,
        avg_cost: Decimal,
    ) -> Position:
        row = (
            await db.execute(
                _SET_BUY_STATE_SQL,
                {
                    "participant_id": participant_id,
                    "venture_id": venture_id,
                    "qty_total": qty_total,
                    "avg_cost": avg_cost,
                },
            )
        ).fetchone()
        return _row_to_position(row)

    async def decrement(
        self, db: AsyncSession, participant_id: str, venture_id: str, qty: int
    ) -> Position | None:
        row = (
            await db.execute(
                _DECREMENT_POSITION_SQL,
                {"participant_id": participant_id, "venture_id": venture_id, "qty": qty},
            )
        ).fetchone()
        return _row_to_position(row) if row else None

    async def list_by_participant(
        self, db: AsyncSession, participant_id: str
    ) -> list[Position]:
        rows = (
            await db.execute(_LIST_POSITIONS_SQL, {"participant_id": participant_id})
        ).fetchall()
        return [_row_to_position(r) for r in rows]


class LedgerRepository:
    """Concrete implementation of LedgerRepositoryProtocol."""

    async def append(
        self,
        db: AsyncSession,
        participant_id: str,
        game_id: str,
        entry_type: str,
        amount: int,
        balance_after: int,
        reference_type: str,
        reference_id: str,
    ) -> None:
        await db.execute(
            _INSERT_LEDGER_SQL,
            {
                "participant_id": participant_id,
                "game_id": game_id,
                "entry_type": entry_type,
                "amount": amount,
                "balance_after": balance_after,
                "reference_type": reference_type,
                "reference_id": reference_id,
            },
        )

    async def list_entries(
        self,
        db: AsyncSession,
        participant_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]:
        rows = (
            await db.execute(
                _LIST_LEDGER_SQL,
                {
                    "participant_id": participant_id,
                    "cursor_id": cursor_id,
                    "limit": limit,
                    "entry_type": entry_type,
                },
            )
        ).fetchall()
        return [_row_to_ledger(r) for r in rows]
