from datetime import datetime

from src.sx_common.datetime_utils import iso_or_none
from src.sx_common.errors import GameNotOpenError, MarketPausedError, SecondaryMarketDisabledError
from src.sx_game.domain.models import Game


def check_game_open(game: Game) -> None:
    if not game.is_open:
        raise GameNotOpenError(game.id, game.status.value)


def check_not_paused(game: Game, now: datetime) -> None:
    """Trade creation is refused while the circuit breaker pause is in force."""
    if game.is_paused(now):
        raise MarketPausedError(game.id, iso_or_none(game.circuit_breaker_until))


def check_secondary_enabled(game: Game) -> None:
    if not game.allow_secondary:
        raise SecondaryMarketDisabledError(game.id)
