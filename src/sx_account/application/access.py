"""Caller resolution shared by the services.

A caller who is not entitled to see something is told it does not exist.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.domain.models import Participant
from src.sx_account.domain.repository import ParticipantRepositoryProtocol
from src.sx_common.errors import GameNotFoundError, ParticipantNotFoundError
from src.sx_game.domain.models import Game
from src.sx_game.domain.repository import GameRepositoryProtocol


async def require_organizer(
    db: AsyncSession,
    games: GameRepositoryProtocol,
    participants: ParticipantRepositoryProtocol,
    game_id: str,
    user_id: str,
) -> Game:
    """Game owner or an active organizer participant."""
    game = await games.get_by_id(db, game_id)
    if game is None:
        raise GameNotFoundError(game_id)
    if game.owner_user_id == user_id:
        return game
    participant = await participants.get_by_user(db, game_id, user_id)
    if participant is None or not (participant.is_organizer and participant.is_active):
        raise GameNotFoundError(game_id)
    return game


async def require_participant(
    db: AsyncSession,
    participants: ParticipantRepositoryProtocol,
    game_id: str,
    user_id: str,
) -> Participant:
    participant = await participants.get_by_user(db, game_id, user_id)
    if participant is None:
        raise ParticipantNotFoundError(f"user {user_id} in game {game_id}")
    return participant
