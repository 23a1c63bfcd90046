"""Price Oracle and circuit-breaker rules — pure functions over trade history."""

from collections.abc import Sequence
from decimal import Decimal

from src.sx_common.money import quantize_average

DEFAULT_VWAP_WINDOW = 3
DEFAULT_THRESHOLD_PCT = Decimal("200")


def vwap(fills: Sequence[tuple[int, int]], window: int = DEFAULT_VWAP_WINDOW) -> Decimal | None:
    """Volume-weighted average price over the trailing ``window`` fills.

    ``fills`` are ``(qty, price_cents)`` pairs, newest first. Returns None
    when there is nothing to average.
    """
    recent = [(q, p) for q, p in fills[:window] if q > 0]
    volume = sum(q for q, _ in recent)
    if volume == 0:
        return None
    notional = sum(Decimal(q) * Decimal(p) for q, p in recent)
    return quantize_average(notional / volume)


def price_change_pct(old: Decimal | None, new: Decimal | None) -> Decimal | None:
    if old is None or new is None or old == 0:
        return None
    return abs(new - old) / old * 100


def is_circuit_breaker_triggered(
    old: Decimal | None,
    new: Decimal | None,
    threshold_pct: Decimal = DEFAULT_THRESHOLD_PCT,
) -> bool:
    """Strictly greater than the threshold; no prior price never trips."""
    change = price_change_pct(old, new)
    return change is not None and change > threshold_pct
