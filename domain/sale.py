"""
Domain: Sale aggregate.

A Sale owns an ordered list of SaleItem and is the only entry point for
mutating them.

Rules implemented here:
- branch and customer are required at construction.
- total_amount is always the sum of current item totals (cancelled items add 0).
- Cancelling a Sale cancels every item.
- Cancelling an item re-checks the sale: once every item is cancelled the
  sale is cancelled too. Removing an item does not trigger that check.
- Cancellation is terminal; there is no way back to ACTIVE.
- update_item() validates every supplied field before applying any of them.
- A cancelled sale does not accept new items.

This module contains only pure domain logic: no I/O, no database, no frameworks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from .discount import require_quantity, require_unit_price, tier_discount
from .errors import ItemNotFound, MissingBranch, MissingCustomer, SaleAlreadyCancelled
from .sale_item import SaleItem, require_product
from .status import CancellationStatus
from .time import require_utc_timestamp, utc_now


@dataclass(slots=True, eq=False)
class Sale:
    """
    Aggregate root for one sales transaction.

    Fields:
    - sale_id: assigned by persistence on creation (None until saved)
    - version: optimistic concurrency token, bumped by each successful save
    """

    sale_number: int
    customer: str
    branch: str
    sale_date: datetime
    items: List[SaleItem] = field(default_factory=list)
    sale_id: Optional[int] = None
    status: CancellationStatus = CancellationStatus.ACTIVE
    version: int = 0

    def __post_init__(self) -> None:
        if self.branch is None or not str(self.branch).strip():
            raise MissingBranch("Sale branch is required")
        if self.customer is None or not str(self.customer).strip():
            raise MissingCustomer("Sale customer is required")
        require_utc_timestamp("sale_date", self.sale_date)
        self.items = list(self.items)
        self.status = CancellationStatus(self.status)

    @classmethod
    def create(
        cls,
        sale_number: int,
        customer: str,
        items: Iterable[SaleItem],
        branch: str,
        sale_date: Optional[datetime] = None,
        total_amount: Optional[Decimal] = None,
    ) -> "Sale":
        """
        Open a new, unsaved sale.

        total_amount is accepted for callers that already computed one, but the
        sale total is always derived from its items.
        """

        return cls(
            sale_number=sale_number,
            customer=customer,
            branch=branch,
            sale_date=sale_date if sale_date is not None else utc_now(),
            items=list(items),
        )

    @property
    def is_cancelled(self) -> bool:
        return self.status.is_cancelled

    @property
    def total_amount(self) -> Decimal:
        return sum((item.total for item in self.items), Decimal("0.00"))

    def set_sale_date(self, sale_date: datetime) -> None:
        require_utc_timestamp("sale_date", sale_date)
        self.sale_date = sale_date

    def find_item(self, item_id: int) -> SaleItem:
        for item in self.items:
            if item.item_id == item_id:
                return item
        raise ItemNotFound(item_id)

    def cancel(self) -> None:
        if self.is_cancelled:
            return

        self.status = self.status.cancel()
        for item in self.items:
            item.cancel()

    def cancel_item(self, item_id: int) -> None:
        item = self.find_item(item_id)
        item.cancel()
        if all(i.is_cancelled for i in self.items):
            self.status = self.status.cancel()

    def update_item(
        self,
        item_id: int,
        new_product: Optional[str] = None,
        new_quantity: Optional[int] = None,
        new_unit_price: Optional[Decimal] = None,
    ) -> SaleItem:
        """
        Apply the supplied fields to one item.

        None (and a blank product) means "leave unchanged". Every supplied field
        is checked first, so a rejected quantity leaves the product untouched.
        """

        item = self.find_item(item_id)

        apply_product = new_product is not None and new_product.strip() != ""
        if apply_product:
            require_product(new_product)
        if new_quantity is not None:
            require_quantity(new_quantity)
        if new_unit_price is not None:
            require_unit_price(new_unit_price)

        if apply_product:
            item.update_product(new_product)
        if new_quantity is not None:
            item.update_quantity(new_quantity)
        if new_unit_price is not None:
            item.update_unit_price(new_unit_price)
        return item

    def apply_discounts(self) -> None:
        """Re-derive every item's discount from the tier rule."""

        for item in self.items:
            item.apply_discount(tier_discount(item.unit_price, item.quantity))

    def add_item(self, item: SaleItem) -> SaleItem:
        if self.is_cancelled:
            raise SaleAlreadyCancelled(self.sale_id)
        self.items.append(item)
        return item

    def remove_item(self, item_id: int) -> SaleItem:
        item = self.find_item(item_id)
        self.items.remove(item)
        return item


__all__ = ["Sale"]
