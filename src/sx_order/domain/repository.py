"""Repository Protocol — dependency inversion for testability.

Every status change is a CAS from ``pending``: ``None`` / an empty list means
the order had already left ``pending`` when the UPDATE ran.
"""

from collections.abc import Sequence
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.enums import OrderStatus, RejectReason
from src.sx_order.domain.models import PrimaryOrder


class OrderRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, order: PrimaryOrder) -> PrimaryOrder: ...

    async def get_by_id(self, db: AsyncSession, order_id: str) -> PrimaryOrder | None: ...

    async def transition(
        self,
        db: AsyncSession,
        order_id: str,
        target: OrderStatus,
        decided_by: str | None = None,
        reject_reason: RejectReason | None = None,
        trade_id: str | None = None,
    ) -> PrimaryOrder | None: ...

    async def list_by_venture(
        self, db: AsyncSession, venture_id: str, status: OrderStatus | None, limit: int
    ) -> list[PrimaryOrder]: ...

    async def list_by_buyer(
        self, db: AsyncSession, participant_id: str, status: OrderStatus | None, limit: int
    ) -> list[PrimaryOrder]: ...

    async def cancel_pending_for_buyer(
        self,
        db: AsyncSession,
        participant_id: str,
        reason: RejectReason,
        venture_id: str | None = None,
    ) -> list[PrimaryOrder]: ...

    async def cancel_pending_for_venture(
        self, db: AsyncSession, venture_id: str, reason: RejectReason
    ) -> list[PrimaryOrder]: ...

    async def expire_pending_for_games(
        self, db: AsyncSession, game_ids: Sequence[str]
    ) -> list[PrimaryOrder]: ...
