from src.sx_account.domain.models import Participant
from src.sx_common.errors import InsufficientBalanceError, InsufficientPositionError
from src.sx_venture.domain.models import Venture


def check_cash(participant: Participant, amount: int) -> None:
    if participant.current_cash < amount:
        raise InsufficientBalanceError(amount, participant.current_cash)


def check_primary_shares(venture: Venture, qty: int) -> None:
    if qty > venture.primary_shares_remaining:
        raise InsufficientPositionError(
            f"requested {qty}, venture {venture.id} has "
            f"{venture.primary_shares_remaining} primary shares left"
        )


def check_holding(held: int, qty: int, venture_id: str) -> None:
    if held < qty:
        raise InsufficientPositionError(f"requested {qty} of {venture_id}, holding {held}")
