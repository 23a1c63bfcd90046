"""Self-dealing checks.

A venture's founders may not buy its primary shares, and a seller may not
address a secondary trade request to themselves.
"""

from src.sx_common.errors import SelfTradeError


def check_not_founder(buyer_id: str, founder_ids: set[str]) -> None:
    if buyer_id in founder_ids:
        raise SelfTradeError()


def check_distinct_parties(buyer_id: str, seller_id: str) -> None:
    if buyer_id == seller_id:
        raise SelfTradeError()
