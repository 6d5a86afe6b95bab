"""
Money conversion and escrow amount validation.

Amounts are stored as Decimal in major units (100.00) and sent to Stripe
as integers in minor units (10000). Every crossing between the two goes
through this module.

Usage:
    from payments.money import from_minor_units, validate_escrow_amount

    currency = validate_escrow_amount(10000, "EUR")  # -> "eur"
    amount = from_minor_units(10000, currency)        # -> Decimal("100.00")
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

from core.exceptions import ValidationError

# Stripe's zero-decimal currencies; everything else uses two decimal places.
ZERO_DECIMAL_CURRENCIES = frozenset(
    {"bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga", "pyg", "rwf",
     "ugx", "vnd", "vuv", "xaf", "xof", "xpf"}
)


def _exponent(currency: str) -> int:
    return 0 if currency.lower() in ZERO_DECIMAL_CURRENCIES else 2


def to_minor_units(amount: Decimal, currency: str) -> int:
    """Convert a major-unit Decimal to integer minor units (half-up)."""
    scaled = Decimal(amount) * (10 ** _exponent(currency))
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount_cents: int, currency: str) -> Decimal:
    """Convert integer minor units to a major-unit Decimal."""
    exponent = _exponent(currency)
    quantum = Decimal(1).scaleb(-exponent)
    return (Decimal(int(amount_cents)) / (10**exponent)).quantize(quantum)


def supported_currencies() -> list[str]:
    return [c.strip().lower() for c in settings.ESCROW_SUPPORTED_CURRENCIES if c.strip()]


def validate_escrow_amount(amount_cents, currency: str | None) -> str:
    """
    Validate an escrow amount and currency before any side effect.

    Bounds are inclusive: ESCROW_MIN_AMOUNT_CENTS and
    ESCROW_MAX_AMOUNT_CENTS are both accepted.

    Args:
        amount_cents: Integer amount in minor units
        currency: Currency code (any case); defaults to ESCROW_DEFAULT_CURRENCY

    Returns:
        Normalized lowercase currency code

    Raises:
        ValidationError: Missing, non-integer or out-of-range amount, or
            unsupported currency
    """
    if amount_cents is None:
        raise ValidationError("Amount is required", error_code="AMOUNT_REQUIRED")
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise ValidationError(
            "Amount must be an integer number of minor currency units",
            error_code="INVALID_AMOUNT",
            details={"amount": str(amount_cents)},
        )

    minimum = settings.ESCROW_MIN_AMOUNT_CENTS
    maximum = settings.ESCROW_MAX_AMOUNT_CENTS
    if amount_cents < minimum:
        raise ValidationError(
            f"Amount must be at least {minimum}",
            error_code="AMOUNT_TOO_SMALL",
            details={"amount": amount_cents, "minimum": minimum},
        )
    if amount_cents > maximum:
        raise ValidationError(
            f"Amount must not exceed {maximum}",
            error_code="AMOUNT_TOO_LARGE",
            details={"amount": amount_cents, "maximum": maximum},
        )

    normalized = (currency or settings.ESCROW_DEFAULT_CURRENCY).strip().lower()
    allowed = supported_currencies()
    if normalized not in allowed:
        raise ValidationError(
            f"Unsupported currency: {normalized}",
            error_code="UNSUPPORTED_CURRENCY",
            details={"currency": normalized, "supported": allowed},
        )
    return normalized
