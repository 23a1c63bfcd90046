"""PriceOracle — recomputes a venture's VWAP from committed trade history."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sx_clearing.domain.repository import TradeRepositoryProtocol
from src.sx_clearing.infrastructure.trades_repository import TradeRepository
from src.sx_market.domain.models import PriceUpdate
from src.sx_market.domain.pricing import vwap
from src.sx_venture.domain.models import Venture
from src.sx_venture.domain.repository import VentureRepositoryProtocol
from src.sx_venture.infrastructure.persistence import VentureRepository

logger = logging.getLogger(__name__)


class PriceOracle:
    def __init__(
        self,
        trades: TradeRepositoryProtocol | None = None,
        ventures: VentureRepositoryProtocol | None = None,
        window: int | None = None,
    ) -> None:
        self._trades: TradeRepositoryProtocol = trades or TradeRepository()
        self._ventures: VentureRepositoryProtocol = ventures or VentureRepository()
        self._window = window or settings.VWAP_WINDOW

    async def recompute(self, db: AsyncSession, venture: Venture) -> PriceUpdate:
        """Replace ``last_vwap_price`` with the VWAP of the trailing window.

        ``venture`` must be the row as it was before the current trade so that
        ``old_price`` is the immediately preceding price.
        """
        recent = await self._trades.recent_for_venture(db, venture.id, self._window)
        new_price = vwap([(t.qty, t.price_per_share) for t in recent], self._window)
        old_price = venture.last_vwap_price
        if new_price is not None and new_price != old_price:
            await self._ventures.update_vwap(db, venture.id, new_price)
            logger.debug("VWAP %s: %s -> %s", venture.id, old_price, new_price)
        return PriceUpdate(venture_id=venture.id, old_price=old_price, new_price=new_price)
