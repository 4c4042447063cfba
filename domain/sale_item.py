"""
Domain: SaleItem, one priced line within a Sale.

Rules implemented here:
- quantity is always within [1, 20]; violations are rejected before any mutation.
- unit_price and discount are never negative.
- discount follows the quantity tier rule whenever quantity or unit_price
  changes; apply_discount() may overwrite it with an explicit amount.
- total = max(0, unit_price * quantity - discount), and 0 once cancelled.
- Cancellation is one-way and idempotent.

total is computed on access and never stored, so it cannot drift from the
fields it is derived from.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .discount import (
    require_discount,
    require_quantity,
    require_unit_price,
    tier_discount,
)
from .errors import InvalidProduct
from .status import CancellationStatus


def require_product(product: object) -> str:
    if not isinstance(product, str) or not product.strip():
        raise InvalidProduct("Product must be a non-empty string")
    return product


@dataclass(slots=True, eq=False)
class SaleItem:
    """
    A single line of a sale.

    Fields:
    - item_id: identity within the owning sale, assigned by persistence (None until saved)
    - discount: pass a value only when rehydrating a stored line; new lines
      start from the tier rule
    """

    product: str
    quantity: int
    unit_price: Decimal
    discount: Optional[Decimal] = None
    item_id: Optional[int] = None
    status: CancellationStatus = CancellationStatus.ACTIVE

    def __post_init__(self) -> None:
        self.product = require_product(self.product)
        self.quantity = require_quantity(self.quantity)
        self.unit_price = require_unit_price(self.unit_price)
        if self.discount is None:
            self.discount = tier_discount(self.unit_price, self.quantity)
        else:
            self.discount = require_discount(self.discount)
        self.status = CancellationStatus(self.status)

    @property
    def is_cancelled(self) -> bool:
        return self.status.is_cancelled

    @property
    def gross_amount(self) -> Decimal:
        """unit_price * quantity, before discount."""
        return self.unit_price * self.quantity

    @property
    def total(self) -> Decimal:
        if self.is_cancelled:
            return Decimal("0.00")
        return max(Decimal("0.00"), self.gross_amount - self.discount)

    def apply_discount(self, discount: Decimal) -> None:
        """Overwrite the discount with an explicit amount, bypassing the tier rule."""

        self.discount = require_discount(discount)

    def update_product(self, new_product: str) -> None:
        self.product = new_product

    def update_quantity(self, new_quantity: int) -> None:
        self.quantity = require_quantity(new_quantity)
        self._recalculate_discount()

    def update_unit_price(self, new_unit_price: Decimal) -> None:
        self.unit_price = require_unit_price(new_unit_price)
        self._recalculate_discount()

    def cancel(self) -> None:
        self.status = self.status.cancel()

    def _recalculate_discount(self) -> None:
        self.discount = tier_discount(self.unit_price, self.quantity)


__all__ = ["SaleItem", "require_product"]
