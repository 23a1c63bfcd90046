# src/sx_game/domain/repository.py
"""Repository Protocol — dependency inversion for testability."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.enums import GameStatus
from src.sx_game.domain.models import CircuitBreakerEvent, Game


class GameRepositoryProtocol(Protocol):
    async def get_by_id(self, db: AsyncSession, game_id: str) -> Game | None: ...

    async def update_status(
        self, db: AsyncSession, game_id: str, expected: GameStatus, target: GameStatus
    ) -> Game | None:
        """CAS: only moves the row if it is still in ``expected``."""
        ...

    async def get_default_budget(
        self, db: AsyncSession, game_id: str, role: str
    ) -> int | None: ...

    async def trip_circuit_breaker(
        self, db: AsyncSession, game_id: str, until: datetime
    ) -> Game | None: ...

    async def record_circuit_breaker_event(
        self, db: AsyncSession, event: CircuitBreakerEvent
    ) -> None: ...

    async def reset_expired_circuit_breakers(
        self, db: AsyncSession, now: datetime
    ) -> list[str]: ...

    async def list_ended_game_ids(self, db: AsyncSession, now: datetime) -> list[str]:
        """Games whose pending orders must expire: ended or in results."""
        ...
