from config.settings import settings
from src.sx_common.errors import PriceOutOfRangeError
from src.sx_game.domain.models import Game


def effective_price_cap(game: Game) -> int:
    """The game's own cap when set, never above the global ceiling."""
    ceiling = settings.MAX_PRICE_PER_SHARE_CENTS
    if game.max_price_per_share is None:
        return ceiling
    return min(game.max_price_per_share, ceiling)


def check_price(price_cents: int, game: Game) -> None:
    cap = effective_price_cap(game)
    if not (1 <= price_cents <= cap):
        raise PriceOutOfRangeError(price_cents, cap)
