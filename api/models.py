"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Range and business checks (quantity tiers, non-negative prices, required
branch) are left to the domain so every failure surfaces as the same error kind.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from domain.sale import Sale
from domain.sale_item import SaleItem


# ============================================================================
# Request Models
# ============================================================================

class SaleItemRequest(BaseModel):
    """One line of a new sale."""
    product: str
    quantity: int = Field(..., description="Units of the product (1 to 20)")
    unit_price: Decimal

    class Config:
        json_schema_extra = {
            "example": {
                "product": "Widget",
                "quantity": 2,
                "unit_price": "100.00"
            }
        }


class CreateSaleRequest(BaseModel):
    """Request to create a sale together with its items."""
    sale_number: int
    customer: str
    branch: Optional[str] = None
    items: List[SaleItemRequest] = Field(
        ...,
        min_length=1,
        description="Items sold in this transaction"
    )
    sale_date: Optional[datetime] = Field(
        default=None,
        description="Defaults to the time of creation"
    )
    total_amount: Optional[Decimal] = Field(
        default=None,
        description="Ignored; the total is always derived from the items"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "sale_number": 1001,
                "customer": "ACME Corp",
                "branch": "Downtown",
                "items": [
                    {"product": "Widget", "quantity": 2, "unit_price": "100.00"},
                    {"product": "Gadget", "quantity": 10, "unit_price": "50.00"}
                ]
            }
        }


class UpdateSaleRequest(BaseModel):
    """Request to change the date of a sale."""
    sale_date: datetime


class UpdateSaleItemRequest(BaseModel):
    """Partial update of a sale item; omitted fields are left unchanged."""
    new_product: Optional[str] = None
    new_quantity: Optional[int] = None
    new_unit_price: Optional[Decimal] = None

    class Config:
        json_schema_extra = {
            "example": {
                "new_quantity": 12
            }
        }


# ============================================================================
# Response Models
# ============================================================================

class SaleItemResponse(BaseModel):
    """Single item of a sale."""
    item_id: Optional[int]
    product: str
    quantity: int
    unit_price: Decimal
    discount: Decimal
    total: Decimal
    is_cancelled: bool

    @classmethod
    def from_domain(cls, item: SaleItem) -> "SaleItemResponse":
        return cls(
            item_id=item.item_id,
            product=item.product,
            quantity=item.quantity,
            unit_price=item.unit_price,
            discount=item.discount,
            total=item.total,
            is_cancelled=item.is_cancelled,
        )


class SaleResponse(BaseModel):
    """A sale with its items and derived total."""
    sale_id: Optional[int]
    sale_number: int
    sale_date: datetime
    customer: str
    branch: str
    total_amount: Decimal
    is_cancelled: bool
    version: int
    items: List[SaleItemResponse]

    @classmethod
    def from_domain(cls, sale: Sale) -> "SaleResponse":
        return cls(
            sale_id=sale.sale_id,
            sale_number=sale.sale_number,
            sale_date=sale.sale_date,
            customer=sale.customer,
            branch=sale.branch,
            total_amount=sale.total_amount,
            is_cancelled=sale.is_cancelled,
            version=sale.version,
            items=[SaleItemResponse.from_domain(item) for item in sale.items],
        )

    class Config:
        json_schema_extra = {
            "example": {
                "sale_id": 1,
                "sale_number": 1001,
                "sale_date": "2025-01-01T12:00:00Z",
                "customer": "ACME Corp",
                "branch": "Downtown",
                "total_amount": "600.00",
                "is_cancelled": False,
                "version": 0,
                "items": [
                    {
                        "item_id": 1,
                        "product": "Widget",
                        "quantity": 2,
                        "unit_price": "100.00",
                        "discount": "0.00",
                        "total": "200.00",
                        "is_cancelled": False
                    }
                ]
            }
        }


class MessageResponse(BaseModel):
    """Plain confirmation message."""
    message: str


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Invalid request",
                "detail": "Cannot sell more than 20 units of the same product",
                "status_code": 400
            }
        }
