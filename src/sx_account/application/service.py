"""PortfolioService — read side of the Ledger and Position Book.

Read-only; runs without an explicit transaction.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.application.schemas import (
    LedgerEntryItem,
    LedgerResponse,
    ParticipantResponse,
    PortfolioResponse,
    PositionListResponse,
    PositionResponse,
)
from src.sx_account.domain.models import Participant, Position
from src.sx_account.domain.repository import (
    LedgerRepositoryProtocol,
    PositionRepositoryProtocol,
)
from src.sx_account.infrastructure.persistence import LedgerRepository, PositionRepository
from src.sx_clearing.domain.position_math import unrealized_pnl
from src.sx_common.money import cents_to_display, quantize_average
from src.sx_common.pagination import cursor_decode, cursor_encode
from src.sx_game.domain.repository import GameRepositoryProtocol
from src.sx_game.infrastructure.persistence import GameRepository
from src.sx_venture.domain.models import Venture
from src.sx_venture.domain.repository import VentureRepositoryProtocol
from src.sx_venture.infrastructure.persistence import VentureRepository


def value_position(position: Position, venture: Venture | None) -> PositionResponse:
    """Mark at the venture's VWAP; fall back to cost when it has never traded."""
    mark = (
        venture.last_vwap_price
        if venture is not None and venture.last_vwap_price is not None
        else position.avg_cost
    )
    return PositionResponse(
        venture_id=position.venture_id,
        venture_name=venture.name if venture else None,
        qty_total=position.qty_total,
        avg_cost=position.avg_cost,
        mark_price=mark,
        market_value=quantize_average(mark * position.qty_total),
        unrealized_pnl=unrealized_pnl(position.qty_total, mark, position.avg_cost),
    )


def roi_pct(total_value: Decimal, initial_budget: int) -> Decimal | None:
    if initial_budget <= 0:
        return None
    return ((total_value - initial_budget) / initial_budget * 100).quantize(Decimal("0.01"))


class PortfolioService:
    def __init__(
        self,
        positions: PositionRepositoryProtocol | None = None,
        ledger: LedgerRepositoryProtocol | None = None,
        ventures: VentureRepositoryProtocol | None = None,
        games: GameRepositoryProtocol | None = None,
    ) -> None:
        self._positions: PositionRepositoryProtocol = positions or PositionRepository()
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()
        self._ventures: VentureRepositoryProtocol = ventures or VentureRepository()
        self._games: GameRepositoryProtocol = games or GameRepository()

    async def get_me(self, db: AsyncSession, participant: Participant) -> ParticipantResponse:
        return ParticipantResponse.from_domain(participant, await self._currency(db, participant))

    async def list_positions(
        self, db: AsyncSession, participant: Participant
    ) -> PositionListResponse:
        items = await self._valued_positions(db, participant)
        return PositionListResponse(items=items, total=len(items))

    async def list_ledger(
        self,
        db: AsyncSession,
        participant: Participant,
        cursor: str | None,
        limit: int,
        entry_type: str | None,
    ) -> LedgerResponse:
        position = cursor_decode(cursor)
        cursor_id = int(position["id"]) if position and "id" in position else None
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._ledger.list_entries(
            db, participant.id, cursor_id, limit + 1, entry_type
        )
        has_more = len(entries) > limit
        page = entries[:limit]
        currency = await self._currency(db, participant)
        return LedgerResponse(
            items=[LedgerEntryItem.from_domain(e, currency) for e in page],
            next_cursor=cursor_encode({"id": page[-1].id}) if has_more and page else None,
            has_more=has_more,
        )

    async def get_portfolio(
        self, db: AsyncSession, participant: Participant
    ) -> PortfolioResponse:
        currency = await self._currency(db, participant)
        positions = await self._valued_positions(db, participant)
        holdings = sum((p.market_value for p in positions), Decimal("0"))
        total = holdings + participant.current_cash
        return PortfolioResponse(
            participant_id=participant.id,
            currency=currency,
            cash_cents=participant.current_cash,
            cash_display=cents_to_display(participant.current_cash, currency),
            holdings_value=holdings,
            total_value=total,
            total_value_display=cents_to_display(int(total.to_integral_value()), currency),
            initial_budget_cents=participant.initial_budget,
            roi_pct=roi_pct(total, participant.initial_budget),
            unrealized_pnl=sum((p.unrealized_pnl for p in positions), Decimal("0")),
            positions=positions,
        )

    async def _valued_positions(
        self, db: AsyncSession, participant: Participant
    ) -> list[PositionResponse]:
        positions = await self._positions.list_by_participant(db, participant.id)
        ventures = {v.id: v for v in await self._ventures.list_by_game(db, participant.game_id)}
        return [value_position(p, ventures.get(p.venture_id)) for p in positions]

    async def _currency(self, db: AsyncSession, participant: Participant) -> str:
        game = await self._games.get_by_id(db, participant.game_id)
        return game.currency if game else "USD"
