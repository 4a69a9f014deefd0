"""Exact decimal money helpers; amounts are never carried as floats."""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional
from catalog_options.core.config import settings
from catalog_options.core.exceptions import ValidationError

ZERO = Decimal("0")


def to_money(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # go through repr so 10.005 stays 10.005 rather than its binary expansion
        return Decimal(repr(value))
    try:
        return Decimal(str(value))
    except ArithmeticError as exc:
        raise ValidationError(f"Invalid monetary amount {value!r}") from exc


def round_money(amount: Decimal, places: Optional[int] = None) -> Decimal:
    """Round once, half up, to the configured number of places."""
    places = settings.PRICE_DECIMAL_PLACES if places is None else places
    return amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
