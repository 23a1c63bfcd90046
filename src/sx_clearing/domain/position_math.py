"""Cost-basis arithmetic for the Position Book.

Buys move the quantity-weighted average; sells only reduce quantity.
"""

from decimal import Decimal

from src.sx_common.money import quantize_average


def weighted_average(old_qty: int, old_avg: Decimal, qty: int, price: int) -> Decimal:
    """new_avg = (old_qty*old_avg + qty*price) / (old_qty + qty)."""
    if qty <= 0:
        raise ValueError(f"buy quantity must be positive, got {qty}")
    total = old_qty + qty
    return quantize_average((Decimal(old_qty) * old_avg + Decimal(qty) * Decimal(price)) / total)


def realized_pnl(qty_sold: int, sale_price: int, avg_cost: Decimal) -> Decimal:
    return quantize_average(Decimal(qty_sold) * (Decimal(sale_price) - avg_cost))


def unrealized_pnl(qty: int, mark_price: Decimal, avg_cost: Decimal) -> Decimal:
    return quantize_average(Decimal(qty) * (mark_price - avg_cost))
