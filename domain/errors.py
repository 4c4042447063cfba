"""
Domain: error kinds raised by the sale aggregate and its collaborators.

Not-found and validation failures are distinct families so callers can map
them to different responses without inspecting messages.
"""

from __future__ import annotations


class SaleError(Exception):
    """Base class for every error raised by the sales domain."""


class NotFoundError(SaleError, LookupError):
    """A referenced Sale or SaleItem does not exist."""


class SaleNotFound(NotFoundError):
    def __init__(self, sale_id: object) -> None:
        super().__init__(f"Sale not found: {sale_id}")
        self.sale_id = sale_id


class ItemNotFound(NotFoundError):
    def __init__(self, item_id: object) -> None:
        super().__init__(f"Item not found: {item_id}")
        self.item_id = item_id


class SaleValidationError(SaleError, ValueError):
    """A precondition on the aggregate was violated; nothing was mutated."""


class InvalidQuantity(SaleValidationError):
    pass


class InvalidUnitPrice(SaleValidationError):
    pass


class InvalidDiscount(SaleValidationError):
    pass


class InvalidProduct(SaleValidationError):
    pass


class MissingBranch(SaleValidationError):
    pass


class MissingCustomer(SaleValidationError):
    pass


class SaleAlreadyCancelled(SaleValidationError):
    """A cancelled sale cannot take new items."""

    def __init__(self, sale_id: object) -> None:
        super().__init__(f"Sale {sale_id} is cancelled and cannot take new items")
        self.sale_id = sale_id


class StaleSaleError(SaleError):
    """Raised when a sale was modified by someone else since it was loaded."""

    def __init__(self, sale_id: object, version: int) -> None:
        super().__init__(
            f"Sale {sale_id} was modified concurrently (expected version {version})"
        )
        self.sale_id = sale_id
        self.version = version


__all__ = [
    "SaleError",
    "NotFoundError",
    "SaleNotFound",
    "ItemNotFound",
    "SaleValidationError",
    "InvalidQuantity",
    "InvalidUnitPrice",
    "InvalidDiscount",
    "InvalidProduct",
    "MissingBranch",
    "MissingCustomer",
    "SaleAlreadyCancelled",
    "StaleSaleError",
]
