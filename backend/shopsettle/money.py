"""
Currency and rate arithmetic.

Amounts are integer cents, rates and percentages are integer basis points
(10000 bps = 100%). Intermediate products stay in Decimal; anything that
becomes a currency amount goes through round_cents().
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP


BPS_SCALE = Decimal(10000)
MAX_BPS = 10000

CURRENCY_SYMBOLS = {
    "USD": "$",
    "GBP": "£",
    "EUR": "€",
}


def round_cents(value) -> int:
    """Round a cent amount (int, Decimal, or str) to whole cents, half-up."""
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def bps_fraction(bps: int) -> Decimal:
    return Decimal(bps) / BPS_SCALE


def fraction_to_bps(value) -> int:
    """Convert a 0..1 fraction (float, str or Decimal) to basis points."""
    return int((Decimal(str(value)) * BPS_SCALE).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return max(low, min(value, high))


def format_currency(cents: int, currency_code: str = "USD") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency_code.upper(), "")
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    text = f"{sign}{symbol}{whole:,}.{frac:02d}"
    if not symbol:
        text = f"{text} {currency_code.upper()}"
    return text
