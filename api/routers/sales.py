"""
Sales API Endpoints.

Endpoints for creating sales and for cancelling, updating and deleting sales
and individual sale items.
"""

import logging

from fastapi import APIRouter, HTTPException, status

from api.models import (
    CreateSaleRequest,
    ErrorResponse,
    MessageResponse,
    SaleItemRequest,
    SaleResponse,
    UpdateSaleItemRequest,
    UpdateSaleRequest,
)
from domain.errors import NotFoundError, SaleValidationError, StaleSaleError
from domain.time import to_utc
from services import sale_service

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation failure"},
    404: {"model": ErrorResponse, "description": "Sale or item not found"},
    409: {"model": ErrorResponse, "description": "Sale was modified concurrently"},
    500: {"model": ErrorResponse, "description": "Unexpected failure"},
}


def _to_http_exception(exc: Exception, action: str) -> HTTPException:
    """Translate a domain/service failure into the matching HTTP error."""

    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, SaleValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, StaleSaleError):
        return HTTPException(status_code=409, detail=str(exc))

    logger.exception(f"Unexpected error while trying to {action}")
    return HTTPException(status_code=500, detail=f"Failed to {action}: {str(exc)}")


def _to_line(item: SaleItemRequest) -> sale_service.NewSaleItem:
    return sale_service.NewSaleItem(
        product=item.product,
        quantity=item.quantity,
        unit_price=item.unit_price,
    )


@router.post(
    "/sales",
    response_model=SaleResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
    summary="Create Sale",
    description="Create a sale with its items. Discounts and totals are computed by the server."
)
def create_sale(request: CreateSaleRequest):
    """
    Create a new sale.

    **Discount tiers (per item, by quantity):**
    - 1 to 4 units: no discount
    - 5 to 9 units: 10% off
    - 10 to 20 units: 20% off
    - more than 20 units: rejected

    Any `total_amount` sent by the client is ignored.
    """
    try:
        sale = sale_service.create_sale(
            sale_service.CreateSaleRequest(
                sale_number=request.sale_number,
                customer=request.customer,
                branch=request.branch,
                items=[_to_line(item) for item in request.items],
                sale_date=to_utc(request.sale_date) if request.sale_date else None,
                total_amount=request.total_amount,
            )
        )
        return SaleResponse.from_domain(sale)

    except Exception as e:
        raise _to_http_exception(e, "create sale")


@router.get(
    "/sales/{sale_id}",
    response_model=SaleResponse,
    responses=_ERROR_RESPONSES,
    summary="Get Sale"
)
def get_sale(sale_id: int):
    try:
        return SaleResponse.from_domain(sale_service.get_sale(sale_id))
    except Exception as e:
        raise _to_http_exception(e, "get sale")


@router.patch(
    "/sales/{sale_id}",
    response_model=SaleResponse,
    responses=_ERROR_RESPONSES,
    summary="Change Sale Date"
)
def update_sale(sale_id: int, request: UpdateSaleRequest):
    try:
        sale = sale_service.update_sale_date(sale_id, to_utc(request.sale_date))
        return SaleResponse.from_domain(sale)
    except Exception as e:
        raise _to_http_exception(e, "update sale")


@router.delete(
    "/sales/{sale_id}",
    response_model=MessageResponse,
    responses=_ERROR_RESPONSES,
    summary="Delete Sale"
)
def delete_sale(sale_id: int):
    """Delete a sale together with all of its items."""
    try:
        sale_service.delete_sale(sale_id)
        return MessageResponse(message="Sale deleted successfully.")
    except Exception as e:
        raise _to_http_exception(e, "delete sale")


@router.post(
    "/sales/{sale_id}/cancel",
    response_model=SaleResponse,
    responses=_ERROR_RESPONSES,
    summary="Cancel Sale"
)
def cancel_sale(sale_id: int):
    """
    Cancel a sale.

    All items are cancelled with it and the sale total drops to zero.
    Cancelling an already cancelled sale is a no-op.
    """
    try:
        return SaleResponse.from_domain(sale_service.cancel_sale(sale_id))
    except Exception as e:
        raise _to_http_exception(e, "cancel sale")


@router.post(
    "/sales/{sale_id}/discounts",
    response_model=SaleResponse,
    responses=_ERROR_RESPONSES,
    summary="Re-apply Tier Discounts"
)
def apply_discounts(sale_id: int):
    try:
        return SaleResponse.from_domain(sale_service.apply_discounts(sale_id))
    except Exception as e:
        raise _to_http_exception(e, "apply discounts")


@router.post(
    "/sales/{sale_id}/items",
    response_model=SaleResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
    summary="Add Sale Item"
)
def add_item(sale_id: int, request: SaleItemRequest):
    try:
        return SaleResponse.from_domain(sale_service.add_item(sale_id, _to_line(request)))
    except Exception as e:
        raise _to_http_exception(e, "add item")


@router.put(
    "/sales/{sale_id}/items/{item_id}",
    response_model=SaleResponse,
    responses=_ERROR_RESPONSES,
    summary="Update Sale Item"
)
def update_item(sale_id: int, item_id: int, request: UpdateSaleItemRequest):
    """
    Update product, quantity and/or unit price of an item.

    Omitted (or blank product) fields are left unchanged. If any supplied
    field is invalid the item is not modified at all.
    """
    try:
        sale = sale_service.update_item(
            sale_id,
            item_id,
            new_product=request.new_product,
            new_quantity=request.new_quantity,
            new_unit_price=request.new_unit_price,
        )
        return SaleResponse.from_domain(sale)
    except Exception as e:
        raise _to_http_exception(e, "update item")


@router.post(
    "/sales/{sale_id}/items/{item_id}/cancel",
    response_model=SaleResponse,
    responses=_ERROR_RESPONSES,
    summary="Cancel Sale Item"
)
def cancel_item(sale_id: int, item_id: int):
    """Cancel one item. Cancelling the last active item cancels the whole sale."""
    try:
        return SaleResponse.from_domain(sale_service.cancel_item(sale_id, item_id))
    except Exception as e:
        raise _to_http_exception(e, "cancel item")


@router.delete(
    "/sales/{sale_id}/items/{item_id}",
    response_model=MessageResponse,
    responses=_ERROR_RESPONSES,
    summary="Delete Sale Item"
)
def delete_item(sale_id: int, item_id: int):
    try:
        sale_service.delete_item(sale_id, item_id)
        return MessageResponse(message="Item removed from sale successfully.")
    except Exception as e:
        raise _to_http_exception(e, "delete item")
