"""VentureRepository — raw SQL against ventures / founder_members."""

from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.enums import FounderMemberRole
from src.sx_venture.domain.models import FounderMember, Venture

_VENTURE_COLUMNS = """
    id, game_id, name, description, logo_url, total_shares,
    primary_shares_remaining, last_vwap_price, created_at, updated_at
"""

_GET_VENTURE_SQL = text(f"SELECT {_VENTURE_COLUMNS} FROM ventures WHERE id = :venture_id")

_GET_VENTURE_FOR_UPDATE_SQL = text(f"""
    SELECT {_VENTURE_COLUMNS} FROM ventures
    WHERE id = :venture_id
    FOR UPDATE
""")

_LIST_BY_GAME_SQL = text(f"""
    SELECT {_VENTURE_COLUMNS} FROM ventures
    WHERE game_id = :game_id
    ORDER BY created_at, id
""")

_INSERT_VENTURE_SQL = text("""
    INSERT INTO ventures
        (id, game_id, name, description, logo_url, total_shares, primary_shares_remaining)
    VALUES
        (:id, :game_id, :name, :description, :logo_url, :total_shares, :total_shares)
    RETURNING created_at, updated_at
""")

_CONSUME_SHARES_SQL = text(f"""
    UPDATE ventures
    SET primary_shares_remaining = primary_shares_remaining - :qty,
        updated_at = NOW()
    WHERE id = :venture_id AND primary_shares_remaining >= :qty
    RETURNING {_VENTURE_COLUMNS}
""")

_UPDATE_VWAP_SQL = text("""
    UPDATE ventures
    SET last_vwap_price = :price, updated_at = NOW()
    WHERE id = :venture_id
""")

_LIST_FOUNDERS_SQL = text("""
    SELECT venture_id, participant_id, role, created_at
    FROM founder_members
    WHERE venture_id = :venture_id
    ORDER BY created_at, participant_id
""")

_IS_FOUNDER_SQL = text("""
    SELECT 1 FROM founder_members
    WHERE venture_id = :venture_id AND participant_id = :participant_id
""")

_INSERT_FOUNDER_SQL = text("""
    INSERT INTO founder_members (venture_id, participant_id, role)
    VALUES (:venture_id, :participant_id, :role)
    ON CONFLICT (venture_id, participant_id) DO NOTHING
    RETURNING venture_id, participant_id, role, created_at
""")

_UPSERT_OWNER_SQL = text("""
    INSERT INTO founder_members (venture_id, participant_id, role)
    VALUES (:venture_id, :participant_id, 'owner')
    ON CONFLICT (venture_id, participant_id) DO UPDATE SET role = 'owner'
""")

_DEMOTE_SQL = text("""
    UPDATE founder_members
    SET role = 'member'
    WHERE venture_id = :venture_id AND participant_id = :participant_id
""")

_DELETE_MEMBERSHIPS_SQL = text("""
    DELETE FROM founder_members
    WHERE participant_id = :participant_id
    RETURNING venture_id
""")

_COUNT_FOUNDERS_SQL = text("""
    SELECT COUNT(*) FROM founder_members WHERE venture_id = :venture_id
""")


def _row_to_venture(row: Any) -> Venture:
    return Venture(
        id=row.id,
        game_id=row.game_id,
        name=row.name,
        description=row.description,
        logo_url=row.logo_url,
        total_shares=row.total_shares,
        primary_shares_remaining=row.primary_shares_remaining,
        last_vwap_price=Decimal(row.last_vwap_price) if row.last_vwap_price is not None else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_founder(row: Any) -> FounderMember:
    return FounderMember(
        venture_id=row.venture_id,
        participant_id=row.participant_id,
        role=FounderMemberRole(row.role),
        created_at=row.created_at,
    )


class VentureRepository:
    """Concrete implementation of VentureRepositoryProtocol."""

    async def get_by_id(self, db: AsyncSession, venture_id: str) -> Venture | None:
        row = (await db.execute(_GET_VENTURE_SQL, {"venture_id": venture_id})).fetchone()
        return _row_to_venture(row) if row else None

    async def get_for_update(self, db: AsyncSession, venture_id: str) -> Venture | None:
        row = (
            await db.execute(_GET_VENTURE_FOR_UPDATE_SQL, {"venture_id": venture_id})
        ).fetchone()
        return _row_to_venture(row) if row else None

    async def list_by_game(self, db: AsyncSession, game_id: str) -> list[Venture]:
        rows = (await db.execute(_LIST_BY_GAME_SQL, {"game_id": game_id})).fetchall()
        return [_row_to_venture(r) for r in rows]

    async def create(self, db: AsyncSession, venture: Venture) -> Venture:
        row = (
            await db.execute(
                _INSERT_VENTURE_SQL,
                {
                    "id": venture.id,
                    "game_id": venture.game_id,
                    "name": venture.name,
                    "description": venture.description,
                    "logo_url": venture.logo_url,
                    "total_shares": venture.total_shares,
                },
            )
        ).fetchone()
        venture.primary_shares_remaining = venture.total_shares
        venture.created_at = row.created_at
        venture.updated_at = row.updated_at
        return venture

    async def consume_primary_shares(
        self, db: AsyncSession, venture_id: str, qty: int
    ) -> Venture | None:
        row = (
            await db.execute(_CONSUME_SHARES_SQL, {"venture_id": venture_id, "qty": qty})
        ).fetchone()
        return _row_to_venture(row) if row else None

    async def update_vwap(self, db: AsyncSession, venture_id: str, price: Decimal) -> None:
        await db.execute(_UPDATE_VWAP_SQL, {"venture_id": venture_id, "price": price})

    async def list_founders(self, db: AsyncSession, venture_id: str) -> list[FounderMember]:
        rows = (await db.execute(_LIST_FOUNDERS_SQL, {"venture_id": venture_id})).fetchall()
        return [_row_to_founder(r) for r in rows]

    async def is_founder(
        self, db: AsyncSession, venture_id: str, participant_id: str
    ) -> bool:
        row = (
            await db.execute(
                _IS_FOUNDER_SQL,
                {"venture_id": venture_id, "participant_id": participant_id},
            )
        ).fetchone()
        return row is not None

    async def add_founder(
        self, db: AsyncSession, venture_id: str, participant_id: str, role: FounderMemberRole
    ) -> FounderMember | None:
        row = (
            await db.execute(
                _INSERT_FOUNDER_SQL,
                {"venture_id": venture_id, "participant_id": participant_id, "role": role.value},
            )
        ).fetchone()
        return _row_to_founder(row) if row else None

    async def transfer_ownership(
        self,
        db: AsyncSession,
        venture_id: str,
        from_participant_id: str | None,
        to_participant_id: str,
    ) -> None:
        await db.execute(
            _UPSERT_OWNER_SQL,
            {"venture_id": venture_id, "participant_id": to_participant_id},
        )
        if from_participant_id and from_participant_id != to_participant_id:
            await db.execute(
                _DEMOTE_SQL,
                {"venture_id": venture_id, "participant_id": from_participant_id},
            )

    async def remove_founder_memberships(
        self, db: AsyncSession, participant_id: str
    ) -> list[str]:
        rows = (
            await db.execute(_DELETE_MEMBERSHIPS_SQL, {"participant_id": participant_id})
        ).fetchall()
        return sorted({row.venture_id for row in rows})

    async def count_founders(self, db: AsyncSession, venture_id: str) -> int:
        result = await db.execute(_COUNT_FOUNDERS_SQL, {"venture_id": venture_id})
        return int(result.scalar_one())
