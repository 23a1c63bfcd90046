"""FastAPI dependencies: get_current_user, get_current_participant.

Usage in any protected router:
    from src.sx_gateway.auth.dependencies import get_current_user

    @router.get("/protected")
    async def protected(user: Annotated[CurrentUser, Depends(get_current_user)]):
        ...
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_account.application.access import require_participant
from src.sx_account.domain.models import Participant
from src.sx_account.infrastructure.persistence import ParticipantRepository
from src.sx_common.database import get_db_session
from src.sx_common.errors import InvalidCredentialsError
from src.sx_gateway.auth.jwt_handler import CurrentUser, decode_token

bearer_scheme = HTTPBearer(auto_error=False)

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)

_participants = ParticipantRepository()


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> CurrentUser:
    """Raises HTTP 401 if the token is missing, invalid, or expired."""
    if credentials is None:
        raise _CREDENTIALS_EXCEPTION
    try:
        return decode_token(credentials.credentials)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None


async def get_current_participant(
    game_id: str,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> Participant:
    """The caller's participant in ``game_id``; NotFound when they have none."""
    return await require_participant(db, _participants, game_id, user.id)
