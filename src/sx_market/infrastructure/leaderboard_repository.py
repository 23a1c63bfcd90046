"""Investor standings in one aggregate query over participants and positions."""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_market.domain.leaderboard import InvestorStanding

_STANDINGS_SQL = text("""
    SELECT p.id,
           COALESCE(u.display_name, u.email, p.id) AS name,
           p.current_cash,
           p.initial_budget,
           COALESCE(
               SUM(pos.qty_total * COALESCE(v.last_vwap_price, pos.avg_cost)), 0
           ) AS holdings_value
    FROM participants p
    LEFT JOIN users u ON u.id = p.user_id
    LEFT JOIN positions pos ON pos.participant_id = p.id AND pos.qty_total > 0
    LEFT JOIN ventures v ON v.id = pos.venture_id
    WHERE p.game_id = :game_id AND p.role = :role AND p.status = 'active'
    GROUP BY p.id, u.display_name, u.email, p.current_cash, p.initial_budget
""")


class LeaderboardRepository:
    async def investor_standings(
        self, db: AsyncSession, game_id: str, role: str
    ) -> list[InvestorStanding]:
        rows = (await db.execute(_STANDINGS_SQL, {"game_id": game_id, "role": role})).fetchall()
        return [
            InvestorStanding(
                participant_id=row.id,
                name=row.name,
                cash=int(row.current_cash),
                initial_budget=int(row.initial_budget),
                holdings_value=Decimal(row.holdings_value),
            )
            for row in rows
        ]
