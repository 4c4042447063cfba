"""
Domain: quantity tiers, tier discount and line-item value checks.

Rules implemented here:
- A line item may carry between 1 and 20 units of the same product.
- Discount tiers are keyed on quantity, evaluated in this order:
  - NONE: quantity <= 4, no discount
  - TWENTY_PERCENT: quantity in [10, 20]
  - TEN_PERCENT: quantity > 4 (i.e. 5 to 9)
- The discount is the tier rate applied to unit_price * quantity, rounded to
  cents (half up).

This module is pure: no I/O, no state. Both SaleItem and the batch
Sale.apply_discounts() go through tier_discount().
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any

from .errors import InvalidDiscount, InvalidQuantity, InvalidUnitPrice

MIN_QUANTITY: int = 1
MAX_QUANTITY: int = 20

_CENTS = Decimal("0.01")


class DiscountTier(str, Enum):
    NONE = "NONE"
    TEN_PERCENT = "TEN_PERCENT"
    TWENTY_PERCENT = "TWENTY_PERCENT"

    @property
    def rate(self) -> Decimal:
        return _RATES[self]

    @staticmethod
    def for_quantity(quantity: int) -> "DiscountTier":
        """Resolve the tier for a quantity that already passed require_quantity()."""

        if quantity <= 4:
            return DiscountTier.NONE
        if 10 <= quantity <= MAX_QUANTITY:
            return DiscountTier.TWENTY_PERCENT
        return DiscountTier.TEN_PERCENT


_RATES = {
    DiscountTier.NONE: Decimal("0"),
    DiscountTier.TEN_PERCENT: Decimal("0.10"),
    DiscountTier.TWENTY_PERCENT: Decimal("0.20"),
}


def to_money(value: Any) -> Decimal:
    """Convert an int/str/float/Decimal into a Decimal, going through str for floats."""

    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean is not a monetary amount")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise TypeError(f"Not a monetary amount: {value!r}") from exc


def require_quantity(quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantity(f"Quantity must be an integer, got {quantity!r}")
    if quantity > MAX_QUANTITY:
        raise InvalidQuantity(
            f"Cannot sell more than {MAX_QUANTITY} units of the same product"
        )
    if quantity < MIN_QUANTITY:
        raise InvalidQuantity("Quantity must be greater than zero")
    return quantity


def require_unit_price(unit_price: Any) -> Decimal:
    try:
        price = to_money(unit_price)
    except TypeError as exc:
        raise InvalidUnitPrice(str(exc)) from exc
    if not price.is_finite() or price < 0:
        raise InvalidUnitPrice("Unit price cannot be negative")
    return price


def require_discount(discount: Any) -> Decimal:
    try:
        amount = to_money(discount)
    except TypeError as exc:
        raise InvalidDiscount(str(exc)) from exc
    if not amount.is_finite() or amount < 0:
        raise InvalidDiscount("Discount cannot be negative")
    return amount


def tier_discount(unit_price: Decimal, quantity: int) -> Decimal:
    """
    Discount owed on a line of `quantity` units at `unit_price`.

    Example:
        tier_discount(Decimal("50"), 10)
        # Returns Decimal('100.00')
    """

    rate = DiscountTier.for_quantity(quantity).rate
    if not rate:
        return Decimal("0.00")
    return (unit_price * quantity * rate).quantize(_CENTS, rounding=ROUND_HALF_UP)


__all__ = [
    "MIN_QUANTITY",
    "MAX_QUANTITY",
    "DiscountTier",
    "to_money",
    "require_quantity",
    "require_unit_price",
    "require_discount",
    "tier_discount",
]
