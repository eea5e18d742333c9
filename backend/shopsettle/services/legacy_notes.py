"""
Compatibility codec for settlement tokens embedded in manual sale notes.

The legacy system had no columns for a manual sale's profit and commission
figures, so it appended them to the free-text notes:

    Paint job for the blue Sultan
    profit_total=120.50 commission_total=12.05 commission_base=120.50

EmployeeSale now stores these as columns. The codec is kept so imported rows
can still be settled and so exported notes stay readable by the old tools.
Values are decimal currency amounts with at most two places.
"""

from __future__ import annotations

import re
from decimal import Decimal

from ..money import round_cents


TOKEN_KEYS = ("profit_total", "commission_total", "commission_base")

_TOKEN_RE = re.compile(
    r"(?<![\w.])(profit_total|commission_total|commission_base)=(-?\d+(?:\.\d+)?)(?![\w.])"
)


def _cents_to_text(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    return f"{sign}{whole}.{frac:02d}"


def encode_settlement_tokens(
    *,
    profit_total_cents: int | None = None,
    commission_total_cents: int | None = None,
    commission_base_cents: int | None = None,
) -> str:
    values = {
        "profit_total": profit_total_cents,
        "commission_total": commission_total_cents,
        "commission_base": commission_base_cents,
    }
    return " ".join(
        f"{key}={_cents_to_text(values[key])}" for key in TOKEN_KEYS if values[key] is not None
    )


def decode_settlement_tokens(notes: str | None) -> dict[str, int]:
    """Return {token: cents} for every token found; the last occurrence wins."""
    if not notes:
        return {}
    return {key: round_cents(Decimal(value) * 100) for key, value in _TOKEN_RE.findall(notes)}


def strip_settlement_tokens(notes: str | None) -> str:
    if not notes:
        return ""
    stripped = _TOKEN_RE.sub("", notes)
    lines = [" ".join(line.split()) for line in stripped.splitlines()]
    return "\n".join(line for line in lines if line)


def append_settlement_tokens(notes: str | None, **values) -> str:
    """Replace any existing tokens in `notes` with freshly encoded ones."""
    text = strip_settlement_tokens(notes)
    tokens = encode_settlement_tokens(**values)
    if not tokens:
        return text
    return f"{text}\n{tokens}" if text else tokens
