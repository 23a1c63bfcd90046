"""Conservation checks over a game's ledger and position book.

Cash: primary purchases leave the game, secondary trades move cash between
participants, so Σ current_cash == Σ initial_budget - Σ primary trade value.
Shares: every issued share sits in some position, so per venture
Σ qty_total + primary_shares_remaining == total_shares.
"""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_CASH_SQL = text("""
    SELECT COALESCE(SUM(current_cash), 0) AS cash,
           COALESCE(SUM(initial_budget), 0) AS budget
    FROM participants
    WHERE game_id = :game_id
""")
_PRIMARY_VALUE_SQL = text("""
    SELECT COALESCE(SUM(qty * price_per_share), 0)
    FROM trades
    WHERE game_id = :game_id AND market_type = 'primary'
""")
_SHARES_SQL = text("""
    SELECT v.id, v.total_shares, v.primary_shares_remaining,
           COALESCE(SUM(pos.qty_total), 0) AS held
    FROM ventures v
    LEFT JOIN positions pos ON pos.venture_id = v.id
    WHERE v.game_id = :game_id
    GROUP BY v.id, v.total_shares, v.primary_shares_remaining
    ORDER BY v.id
""")
_NEGATIVE_CASH_SQL = text("""
    SELECT id, current_cash FROM participants
    WHERE game_id = :game_id AND current_cash < 0
""")
_NEGATIVE_POSITIONS_SQL = text("""
    SELECT pos.participant_id, pos.venture_id, pos.qty_total
    FROM positions pos
    JOIN ventures v ON v.id = pos.venture_id
    WHERE v.game_id = :game_id AND pos.qty_total < 0
""")


async def verify_game_invariants(db: AsyncSession, game_id: str) -> list[str]:
    """Returns one message per violation; an empty list means the game is consistent."""
    params = {"game_id": game_id}
    violations: list[str] = []

    cash_row = (await db.execute(_CASH_SQL, params)).fetchone()
    primary_value = int((await db.execute(_PRIMARY_VALUE_SQL, params)).scalar_one())
    cash = int(cash_row.cash) if cash_row else 0
    budget = int(cash_row.budget) if cash_row else 0
    if cash != budget - primary_value:
        violations.append(
            f"cash conservation: current_cash({cash}) != "
            f"initial_budget({budget}) - primary_value({primary_value})"
        )

    for row in (await db.execute(_SHARES_SQL, params)).fetchall():
        held = int(row.held)
        if held + row.primary_shares_remaining != row.total_shares:
            violations.append(
                f"share conservation: venture {row.id} held({held}) + "
                f"remaining({row.primary_shares_remaining}) != total({row.total_shares})"
            )

    for row in (await db.execute(_NEGATIVE_CASH_SQL, params)).fetchall():
        violations.append(f"negative cash: participant {row.id} has {row.current_cash}")
    for row in (await db.execute(_NEGATIVE_POSITIONS_SQL, params)).fetchall():
        violations.append(
            f"negative position: participant {row.participant_id} "
            f"venture {row.venture_id} qty {row.qty_total}"
        )

    for msg in violations:
        logger.error("Invariant violated in game %s: %s", game_id, msg)
    return violations
