"""Trade settlement — the Ledger + Position Book write path.

``apply_trade`` runs inside the caller's transaction, after the caller has
locked the venture and the participant rows involved. Replaying a trade id
that is already in the store is a no-op.
"""

import logging
from dataclasses import replace
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.domain.repository import (
    LedgerRepositoryProtocol,
    ParticipantRepositoryProtocol,
    PositionRepositoryProtocol,
)
from src.sx_account.infrastructure.persistence import (
    LedgerRepository,
    ParticipantRepository,
    PositionRepository,
)
from src.sx_clearing.domain.models import SettlementResult, Trade
from src.sx_clearing.domain.position_math import realized_pnl, weighted_average
from src.sx_clearing.domain.repository import TradeRepositoryProtocol
from src.sx_clearing.infrastructure.trades_repository import TradeRepository
from src.sx_common.enums import EventType, LedgerEntryType
from src.sx_common.errors import (
    InsufficientBalanceError,
    InsufficientPositionError,
    ParticipantNotFoundError,
)
from src.sx_notification.domain.events import DomainEvent

logger = logging.getLogger(__name__)


class ClearingService:
    def __init__(
        self,
        trades: TradeRepositoryProtocol | None = None,
        participants: ParticipantRepositoryProtocol | None = None,
        positions: PositionRepositoryProtocol | None = None,
        ledger: LedgerRepositoryProtocol | None = None,
    ) -> None:
        self._trades: TradeRepositoryProtocol = trades or TradeRepository()
        self._participants: ParticipantRepositoryProtocol = participants or ParticipantRepository()
        self._positions: PositionRepositoryProtocol = positions or PositionRepository()
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()

    @property
    def trades(self) -> TradeRepositoryProtocol:
        return self._trades

    async def apply_trade(
        self, db: AsyncSession, trade: Trade, outbox: list[Any]
    ) -> SettlementResult:
        if await self._trades.exists(db, trade.id):
            logger.info("Trade %s already settled; replay ignored", trade.id)
            return SettlementResult(trade=trade, applied=False)

        value = trade.value
        entry_type = (
            LedgerEntryType.PRIMARY_PURCHASE if trade.is_primary else LedgerEntryType.SECONDARY_PURCHASE
        )

        # Seller side first: realized P&L needs the pre-sale average cost.
        seller_cash_after: int | None = None
        pnl = None
        if not trade.is_primary:
            seller_id = trade.seller_participant_id
            assert seller_id is not None, "secondary trade without seller"
            seller_pos = await self._positions.decrement(db, seller_id, trade.venture_id, trade.qty)
            if seller_pos is None:
                raise InsufficientPositionError(
                    f"seller {seller_id} holds fewer than {trade.qty} of {trade.venture_id}"
                )
            pnl = realized_pnl(trade.qty, trade.price_per_share, seller_pos.avg_cost)
            seller = await self._participants.credit_cash(db, seller_id, value)
            if seller is None:
                raise ParticipantNotFoundError(seller_id)
            seller_cash_after = seller.current_cash
            await self._ledger.append(
                db, seller_id, trade.game_id, LedgerEntryType.SECONDARY_SALE.value,
                value, seller.current_cash, "TRADE", trade.id,
            )

        buyer = await self._participants.debit_cash(db, trade.buyer_participant_id, value)
        if buyer is None:
            current = await self._participants.get_by_id(db, trade.buyer_participant_id)
            raise InsufficientBalanceError(value, current.current_cash if current else 0)
        await self._ledger.append(
            db, buyer.id, trade.game_id, entry_type.value,
            -value, buyer.current_cash, "TRADE", trade.id,
        )

        position = await self._positions.get_or_create_locked(
            db, trade.buyer_participant_id, trade.venture_id
        )
        new_avg = weighted_average(
            position.qty_total, position.avg_cost, trade.qty, trade.price_per_share
        )
        position = await self._positions.set_buy_state(
            db, trade.buyer_participant_id, trade.venture_id,
            position.qty_total + trade.qty, new_avg,
        )

        if pnl is not None:
            trade = replace(trade, seller_realized_pnl=pnl)
        trade = await self._trades.insert(db, trade)

        outbox.append(
            DomainEvent(
                EventType.TRADE_SETTLED,
                trade.game_id,
                {
                    "trade_id": trade.id,
                    "venture_id": trade.venture_id,
                    "market_type": trade.market_type.value,
                    "buyer_participant_id": trade.buyer_participant_id,
                    "seller_participant_id": trade.seller_participant_id,
                    "qty": trade.qty,
                    "price_per_share": trade.price_per_share,
                },
            )
        )
        logger.info(
            "Trade settled: %s %s venture=%s qty=%d price=%d buyer=%s seller=%s",
            trade.id,
            trade.market_type.value,
            trade.venture_id,
            trade.qty,
            trade.price_per_share,
            trade.buyer_participant_id,
            trade.seller_participant_id,
        )
        return SettlementResult(
            trade=trade,
            applied=True,
            buyer_cash_after=buyer.current_cash,
            seller_cash_after=seller_cash_after,
            buyer_qty_after=position.qty_total,
            buyer_avg_cost_after=position.avg_cost,
            seller_realized_pnl=pnl,
        )
