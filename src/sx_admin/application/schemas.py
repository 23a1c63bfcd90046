from pydantic import BaseModel


class InvariantReport(BaseModel):
    game_id: str
    ok: bool
    violations: list[str]


class GameStats(BaseModel):
    game_id: str
    status: str
    total_trades: int
    primary_trades: int
    secondary_trades: int
    total_volume: int   # shares
    traded_value: int   # cents
    unique_traders: int
