from decimal import Decimal

from pydantic import BaseModel

from src.sx_common.enums import LeaderboardKind
from src.sx_common.money import average_to_display
from src.sx_market.domain.models import LeaderboardEntry


class LeaderboardEntryResponse(BaseModel):
    rank: int
    id: str
    name: str
    value: Decimal
    value_display: str | None
    roi_pct: Decimal | None = None

    @classmethod
    def from_domain(cls, entry: LeaderboardEntry, currency: str) -> "LeaderboardEntryResponse":
        return cls(
            rank=entry.rank,
            id=entry.subject_id,
            name=entry.name,
            value=entry.value,
            value_display=average_to_display(entry.value, currency),
            roi_pct=entry.roi_pct,
        )


class LeaderboardResponse(BaseModel):
    game_id: str
    kind: LeaderboardKind
    items: list[LeaderboardEntryResponse]
