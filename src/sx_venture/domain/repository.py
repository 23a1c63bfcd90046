"""Repository Protocol — dependency inversion for testability."""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.enums import FounderMemberRole
from src.sx_venture.domain.models import FounderMember, Venture


class VentureRepositoryProtocol(Protocol):
    async def get_by_id(self, db: AsyncSession, venture_id: str) -> Venture | None: ...

    async def get_for_update(self, db: AsyncSession, venture_id: str) -> Venture | None:
        """Row-locks the venture; always taken before any participant lock."""
        ...

    async def list_by_game(self, db: AsyncSession, game_id: str) -> list[Venture]: ...

    async def create(self, db: AsyncSession, venture: Venture) -> Venture: ...

    async def consume_primary_shares(
        self, db: AsyncSession, venture_id: str, qty: int
    ) -> Venture | None:
        """CAS decrement; None when fewer than ``qty`` shares remain."""
        ...

    async def update_vwap(
        self, db: AsyncSession, venture_id: str, price: Decimal
    ) -> None: ...

    async def list_founders(
        self, db: AsyncSession, venture_id: str
    ) -> list[FounderMember]: ...

    async def is_founder(
        self, db: AsyncSession, venture_id: str, participant_id: str
    ) -> bool: ...

    async def add_founder(
        self, db: AsyncSession, venture_id: str, participant_id: str, role: FounderMemberRole
    ) -> FounderMember | None:
        """None when the participant is already a founder of the venture."""
        ...

    async def transfer_ownership(
        self,
        db: AsyncSession,
        venture_id: str,
        from_participant_id: str | None,
        to_participant_id: str,
    ) -> None:
        """Upsert ``to`` as owner; demote ``from`` (if still a member) to member."""
        ...

    async def remove_founder_memberships(
        self, db: AsyncSession, participant_id: str
    ) -> list[str]:
        """Drop every FounderMember row of the participant; returns venture ids."""
        ...

    async def count_founders(self, db: AsyncSession, venture_id: str) -> int: ...
