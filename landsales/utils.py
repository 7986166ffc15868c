"""Small shared helpers: money rounding, UTC clock, text sanitizing."""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

import bleach

from landsales.errors import ValidationError

CENT = Decimal("0.01")


def to_money(value, field="amount"):
    """Coerce a number/string to a 2-decimal Decimal.

    Floats go through str() so 0.1 stays 0.10 instead of 0.1000000000000000055.
    """
    if value is None:
        raise ValidationError(f"{field} is required.")
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number, got {value!r}.")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number, got {value!r}.")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    """SQLite returns naive datetimes; Postgres returns aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def sanitize(text):
    """Strip all HTML tags from user input."""
    if text is None:
        return text
    return bleach.clean(text, tags=[], strip=True).strip()
