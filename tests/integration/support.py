"""Token signing and seeded-game handle shared by the integration tests."""

import time
from dataclasses import dataclass, field

from jose import jwt

from config.settings import settings


def make_token(user_id: str, email: str | None = None) -> str:
    """Sign a token the way the identity provider does."""
    return jwt.encode(
        {
            "sub": user_id,
            "email": email,
            "aud": settings.JWT_AUDIENCE,
            "exp": int(time.time()) + 3600,
        },
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


@dataclass
class SeededGame:
    game_id: str
    owner_user_id: str
    participant_ids: dict[str, str] = field(default_factory=dict)
    emails: dict[str, str] = field(default_factory=dict)

    def headers(self, who: str) -> dict[str, str]:
        user_id = self.owner_user_id if who == "owner" else f"{self.game_id}-{who}"
        return {"Authorization": f"Bearer {make_token(user_id)}"}
