"""
Pricing primitives.

Every amount in the storefront is an integer count of minor currency units
(cents). Amounts arriving from JSON payloads are loosely typed, so
``coerce_minor_units`` is the single place where "missing or invalid number"
turns into zero; everything downstream can assume plain ints.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

# Anything at or above 10**18 cents is treated as garbage input.
MAX_MINOR_UNITS_DIGITS = 18
MAX_MINOR_UNITS = 10 ** MAX_MINOR_UNITS_DIGITS


def coerce_minor_units(value: Any) -> int:
    """
    Convert an untrusted numeric value into an integer amount.

    ``None``, booleans, NaN, infinities, magnitudes of 10**18 or more, and
    anything that does not parse as a number become 0. Fractional values
    are rounded to the nearest integer.

    Examples:
        >>> coerce_minor_units("1200")
        1200
        >>> coerce_minor_units(float("nan"))
        0
        >>> coerce_minor_units(None)
        0
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if abs(value) < MAX_MINOR_UNITS else 0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0
    try:
        number = Decimal(str(value)) if not isinstance(value, Decimal) else value
    except (InvalidOperation, ValueError, TypeError):
        return 0
    if not number.is_finite() or number.adjusted() >= MAX_MINOR_UNITS_DIGITS:
        return 0
    return int(number.to_integral_value())


def format_currency(cents: Any, symbol: str = "$") -> str:
    """
    Render minor units as ``{symbol}{units}.{cents:02d}``.

    Examples:
        >>> format_currency(2700)
        '$27.00'
        >>> format_currency(None)
        '$0.00'
    """
    safe = coerce_minor_units(cents)
    sign = "-" if safe < 0 else ""
    whole, fraction = divmod(abs(safe), 100)
    return f"{sign}{symbol}{whole}.{fraction:02d}"


def unit_price(variant_price: int, addon_prices: Iterable[int]) -> int:
    """Price of one configured item: variant plus every selected add-on."""
    return variant_price + sum(addon_prices)


def line_total(variant_price: int, addon_prices: Iterable[int], quantity: int) -> int:
    """Price of a configured item multiplied by its quantity."""
    return unit_price(variant_price, addon_prices) * quantity

