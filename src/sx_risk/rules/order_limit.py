from config.settings import settings
from src.sx_common.errors import QuantityOutOfRangeError


def check_quantity(quantity: int, maximum: int | None = None) -> None:
    """Raise QuantityOutOfRangeError unless 1 <= quantity <= maximum."""
    limit = maximum if maximum is not None else settings.MAX_ORDER_QUANTITY
    if not (1 <= quantity <= limit):
        raise QuantityOutOfRangeError(f"{quantity} must be in [1, {limit}]")
