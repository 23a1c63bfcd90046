"""Money helpers for the cents-based ledger.

Cash, prices and trade values are int cents. Averages (avg_cost, VWAP) are
Decimal cents quantized to 4 places; they never feed back into cash.
"""

from decimal import ROUND_HALF_EVEN, Decimal

AVERAGE_QUANTUM = Decimal("0.0001")

_CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "BRL": "R$",
    "GBP": "£",
}


def trade_value(qty: int, price_cents: int) -> int:
    """Cash moved by a fill: qty * price, exact."""
    return qty * price_cents


def quantize_average(value: Decimal) -> Decimal:
    return value.quantize(AVERAGE_QUANTUM, rounding=ROUND_HALF_EVEN)


def cents_to_display(cents: int, currency: str = "USD") -> str:
    """Convert cents to display string: 6500 -> '$65.00', -1200 -> '-$12.00'."""
    symbol = _CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    sign = "-" if cents < 0 else ""
    abs_cents = abs(cents)
    return f"{sign}{symbol}{abs_cents // 100:,}.{abs_cents % 100:02d}"


def average_to_display(value: Decimal | None, currency: str = "USD") -> str | None:
    """Render a Decimal-cents average rounded to whole cents."""
    if value is None:
        return None
    return cents_to_display(int(value.quantize(Decimal("1"), rounding=ROUND_HALF_EVEN)), currency)
