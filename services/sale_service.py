"""
Sale service: orchestration of the Sale aggregate.

Every operation follows the same shape:
1. Load the sale (with its items) from the repository
2. Invoke exactly one aggregate method
3. Save the resulting state

Business rules live in `domain/`; this module only sequences calls, raises
SaleNotFound for unknown sales and logs what happened.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from domain.errors import ItemNotFound, SaleNotFound
from domain.sale import Sale
from domain.sale_item import SaleItem
from repositories import sale_repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NewSaleItem:
    """One line of a sale to be created."""
    product: str
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True, slots=True)
class CreateSaleRequest:
    """
    Request to open a new sale.

    total_amount is an optional client-side figure; it is compared with the
    derived total for logging only.
    """
    sale_number: int
    customer: str
    branch: str
    items: List[NewSaleItem] = field(default_factory=list)
    sale_date: Optional[datetime] = None
    total_amount: Optional[Decimal] = None


def _load_sale(sale_id: int, action: str) -> Sale:
    sale = sale_repository.get_sale_by_id(sale_id)
    if sale is None:
        logger.warning(
            f"Sale {sale_id} not found for {action}",
            extra={"sale_id": sale_id, "action": action},
        )
        raise SaleNotFound(sale_id)
    return sale


def create_sale(request: CreateSaleRequest) -> Sale:
    """
    Create and store a new sale.

    Returns:
        The stored Sale with identities assigned

    Raises:
        SaleValidationError: if the sale or any of its items is invalid
    """
    logger.info(
        f"Creating sale {request.sale_number} for customer {request.customer} "
        f"at branch {request.branch}"
    )

    items = [
        SaleItem(product=line.product, quantity=line.quantity, unit_price=line.unit_price)
        for line in request.items
    ]
    sale = Sale.create(
        sale_number=request.sale_number,
        customer=request.customer,
        items=items,
        branch=request.branch,
        sale_date=request.sale_date,
        total_amount=request.total_amount,
    )

    if request.total_amount is not None and request.total_amount != sale.total_amount:
        logger.warning(
            f"Ignoring client total {request.total_amount} for sale {request.sale_number}; "
            f"derived total is {sale.total_amount}",
            extra={"sale_number": request.sale_number},
        )

    stored = sale_repository.add_sale(sale)
    logger.info(f"Sale {stored.sale_id} created", extra={"sale_id": stored.sale_id})
    return stored


def get_sale(sale_id: int) -> Sale:
    """
    Fetch a sale by id.

    Raises:
        SaleNotFound: if no sale has this id
    """
    logger.info(f"Fetching sale {sale_id}")
    return _load_sale(sale_id, "fetch")


def update_sale_date(sale_id: int, sale_date: datetime) -> Sale:
    logger.info(f"Changing date of sale {sale_id}")

    sale = _load_sale(sale_id, "date change")
    sale.set_sale_date(sale_date)
    stored = sale_repository.update_sale(sale)

    logger.info(f"Sale {sale_id} date changed", extra={"sale_id": sale_id})
    return stored


def cancel_sale(sale_id: int) -> Sale:
    """Cancel a sale and every one of its items. Cancelling twice is a no-op."""
    logger.info(f"Cancelling sale {sale_id}")

    sale = _load_sale(sale_id, "cancellation")
    sale.cancel()
    stored = sale_repository.update_sale(sale)

    logger.info(f"Sale {sale_id} cancelled", extra={"sale_id": sale_id})
    return stored


def cancel_item(sale_id: int, item_id: int) -> Sale:
    """
    Cancel one item. Cancelling the last active item also cancels the sale.

    Raises:
        SaleNotFound: unknown sale
        ItemNotFound: the sale has no item with this id
    """
    logger.info(f"Cancelling item {item_id} of sale {sale_id}")

    sale = _load_sale(sale_id, "item cancellation")
    sale.cancel_item(item_id)
    stored = sale_repository.update_sale(sale)

    logger.info(
        f"Item {item_id} of sale {sale_id} cancelled",
        extra={"sale_id": sale_id, "item_id": item_id, "sale_cancelled": stored.is_cancelled},
    )
    return stored


def update_item(
    sale_id: int,
    item_id: int,
    new_product: Optional[str] = None,
    new_quantity: Optional[int] = None,
    new_unit_price: Optional[Decimal] = None,
) -> Sale:
    """
    Update product, quantity and/or unit price of one item.

    Only supplied fields change. Nothing is saved if any of them is invalid.
    """
    logger.info(f"Updating item {item_id} of sale {sale_id}")

    sale = _load_sale(sale_id, "item update")
    sale.update_item(
        item_id,
        new_product=new_product,
        new_quantity=new_quantity,
        new_unit_price=new_unit_price,
    )
    stored = sale_repository.update_sale(sale)

    logger.info(
        f"Item {item_id} of sale {sale_id} updated",
        extra={"sale_id": sale_id, "item_id": item_id},
    )
    return stored


def apply_discounts(sale_id: int) -> Sale:
    """Re-derive the tier discount of every item, dropping manual overrides."""
    logger.info(f"Re-applying tier discounts on sale {sale_id}")

    sale = _load_sale(sale_id, "discount recalculation")
    sale.apply_discounts()
    return sale_repository.update_sale(sale)


def add_item(sale_id: int, line: NewSaleItem) -> Sale:
    logger.info(f"Adding {line.product} x{line.quantity} to sale {sale_id}")

    sale = _load_sale(sale_id, "item addition")
    sale.add_item(SaleItem(product=line.product, quantity=line.quantity, unit_price=line.unit_price))
    stored = sale_repository.update_sale(sale)

    logger.info(f"Item added to sale {sale_id}", extra={"sale_id": sale_id})
    return stored


def delete_sale(sale_id: int) -> None:
    logger.info(f"Deleting sale {sale_id}")

    sale = _load_sale(sale_id, "deletion")
    sale_repository.delete_sale(sale)

    logger.info(f"Sale {sale_id} deleted", extra={"sale_id": sale_id})


def delete_item(sale_id: int, item_id: int) -> Sale:
    """
    Remove one item from a sale. The sale total follows; the sale is not
    cancelled even if only cancelled items remain.
    """
    logger.info(f"Deleting item {item_id} from sale {sale_id}")

    sale = _load_sale(sale_id, "item deletion")
    try:
        sale.remove_item(item_id)
    except ItemNotFound:
        logger.warning(
            f"Item {item_id} not found in sale {sale_id}",
            extra={"sale_id": sale_id, "item_id": item_id},
        )
        raise
    stored = sale_repository.update_sale(sale)

    logger.info(
        f"Item {item_id} deleted from sale {sale_id}",
        extra={"sale_id": sale_id, "item_id": item_id},
    )
    return stored


__all__ = [
    "NewSaleItem",
    "CreateSaleRequest",
    "create_sale",
    "get_sale",
    "update_sale_date",
    "cancel_sale",
    "cancel_item",
    "update_item",
    "apply_discounts",
    "add_item",
    "delete_sale",
    "delete_item",
]
