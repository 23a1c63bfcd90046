"""Repository Protocols — dependency inversion for testability.

Unit tests inject in-memory fakes that conform to these Protocols.
Infrastructure layer provides the real implementations.

Cash and share mutations are conditional single-statement UPDATEs: ``None``
means the guard (enough cash / enough shares) failed and nothing changed.
"""

from collections.abc import Sequence
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.domain.models import LedgerEntry, Participant, Position
from src.sx_common.enums import ParticipantStatus


class ParticipantRepositoryProtocol(Protocol):
    async def get_by_id(self, db: AsyncSession, participant_id: str) -> Participant | None: ...

    async def get_by_user(
        self, db: AsyncSession, game_id: str, user_id: str
    ) -> Participant | None: ...

    async def lock_many(
        self, db: AsyncSession, participant_ids: Sequence[str]
    ) -> dict[str, Participant]:
        """SELECT ... FOR UPDATE in ascending id order (deadlock-free)."""
        ...

    async def find_by_identifier(
        self, db: AsyncSession, game_id: str, identifier: str
    ) -> Participant | None:
        """Match an email (case-insensitive) or a display name within one game."""
        ...

    async def list_by_game(
        self, db: AsyncSession, game_id: str, role: str | None = None
    ) -> list[Participant]: ...

    async def create(self, db: AsyncSession, participant: Participant) -> Participant: ...

    async def update_status(
        self,
        db: AsyncSession,
        participant_id: str,
        expected: ParticipantStatus,
        target: ParticipantStatus,
    ) -> Participant | None: ...

    async def debit_cash(
        self, db: AsyncSession, participant_id: str, amount: int
    ) -> Participant | None: ...

    async def credit_cash(
        self, db: AsyncSession, participant_id: str, amount: int
    ) -> Participant | None: ...


class PositionRepositoryProtocol(Protocol):
    async def get(
        self, db: AsyncSession, participant_id: str, venture_id: str
    ) -> Position | None: ...

    async def get_or_create_locked(
        self, db: AsyncSession, participant_id: str, venture_id: str
    ) -> Position: ...

    async def set_buy_state(
        self, db: AsyncSession, participant_id: str, venture_id: str,
        qty_total: int, avg_cost: Decimal,
    ) -> Position: ...

    async def decrement(
        self, db: AsyncSession, participant_id: str, venture_id: str, qty: int
    ) -> Position | None: ...

    async def list_by_participant(
        self, db: AsyncSession, participant_id: str
    ) -> list[Position]: ...


class LedgerRepositoryProtocol(Protocol):
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
    ) -> None: ...

    async def list_entries(
        self,
        db: AsyncSession,
        participant_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]: ...
