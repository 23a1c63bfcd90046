"""Verification of identity-provider access tokens.

Tokens are issued elsewhere (HS256 shared secret); this service only
decodes them. The ``aud`` claim must match JWT_AUDIENCE and ``sub`` carries
the user id.
"""

from dataclasses import dataclass

from jose import JWTError, jwt

from config.settings import settings
from src.sx_common.errors import InvalidCredentialsError


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str | None = None


def decode_token(token: str) -> CurrentUser:
    """Decode and validate a bearer token.

    Raises:
        InvalidCredentialsError: signature, expiry, audience or subject invalid.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],  # Explicit list prevents algorithm confusion
            audience=settings.JWT_AUDIENCE,
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    user_id = payload.get("sub")
    if not user_id:
        raise InvalidCredentialsError()
    return CurrentUser(id=str(user_id), email=payload.get("email"))
