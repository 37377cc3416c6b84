from __future__ import annotations

from typing import Any, Iterable


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Discounts are basis points: 10000 bps = 100%
MAX_DISCOUNT_BPS = 10_000


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate id)."""


class NotFoundError(LookupError):
    """404-level: a record addressed by id does not exist."""

    def __init__(self, kind: str, record_id):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


def as_int(value: Any, field: str, *, default: int | None = None) -> int | None:
    """
    Strict integer coercion for JSON input.

    Rejects floats, booleans, decimals and scientific notation.
    """
    if value is None:
        return default

    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def as_bool(value: Any, *, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    # fallback: truthiness
    return bool(value)


def as_str(value: Any, *, default: str | None = None) -> str | None:
    if value is None:
        return default
    return str(value).strip()


def require_fields(data: dict, fields: Iterable[str]) -> None:
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required")


def require_choice(value: str | None, choices: Iterable[str], field: str, *, allow_none: bool = False) -> None:
    if value is None and allow_none:
        return
    choices = tuple(choices)
    if value not in choices:
        raise ValidationError(f"Invalid {field}: {value}. Must be one of {list(choices)}")


def enforce_rules_price(value: int | None, field: str = "price_cents") -> None:
    if value is None:
        return
    if value < 0:
        raise ValidationError(f"{field} must be >= 0")
    if value > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS} ({MAX_PRICE_CENTS / 100:,.2f})")


def enforce_rules_discount_bps(value: int | None, field: str = "discount_bps") -> None:
    if value is None:
        return
    if value < 0 or value > MAX_DISCOUNT_BPS:
        raise ValidationError(f"{field} must be between 0 and {MAX_DISCOUNT_BPS}")
