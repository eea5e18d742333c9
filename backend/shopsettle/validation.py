from __future__ import annotations

from typing import Any

from .errors import ValidationError


# Maximum single amount: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_AMOUNT_CENTS = 999_999_999


def coerce_int(value: Any, field: str, *, minimum: int | None = None, maximum: int | None = None) -> int:
    """
    Strict integer coercion for JSON / form input.

    Accepts ints and plain digit strings. Rejects bools, floats, decimals
    and scientific notation so "12.5" never silently becomes 12.
    """
    if value is None:
        raise ValidationError(f"{field} is required")

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} is required")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    if maximum is not None and result > maximum:
        raise ValidationError(f"{field} must be at most {maximum}")
    return result


def coerce_optional_int(value: Any, field: str, **bounds) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return coerce_int(value, field, **bounds)


def coerce_amount_cents(value: Any, field: str) -> int:
    return coerce_int(value, field, minimum=0, maximum=MAX_AMOUNT_CENTS)


def coerce_optional_amount_cents(value: Any, field: str) -> int | None:
    return coerce_optional_int(value, field, minimum=0, maximum=MAX_AMOUNT_CENTS)


def require_text(value: Any, field: str, *, max_length: int, message: str | None = None) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValidationError(message or f"{field} is required")
    if len(text) > max_length:
        raise ValidationError(f"{field} must be {max_length} characters or fewer")
    return text


def optional_text(value: Any, field: str, *, max_length: int) -> str | None:
    text = "" if value is None else str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} must be {max_length} characters or fewer")
    return text
