"""
Sale repository (persistence).

This module provides *only* persistence operations for the Sale aggregate. It
does not enforce business rules (discounts, cancellation cascades); it loads
and stores the full state of a sale together with its ordered items.

Tables:
- sales: sale_id, sale_number, sale_date_utc, customer, branch, status,
  version, created_at_utc
- sale_items: item_id, sale_id, position, product, quantity, unit_price,
  discount, status

Saves are guarded by the `version` column: a sale is only written if nobody
saved it since it was loaded.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Sequence

from domain.errors import StaleSaleError
from domain.sale import Sale
from domain.sale_item import SaleItem
from domain.status import CancellationStatus
from domain.time import require_utc_timestamp, to_utc, utc_now
from repositories.client import get_supabase

logger = logging.getLogger(__name__)

# Supabase table names.
# Keep these aligned with your database schema.
_SALES_TABLE: str = "sales"
_SALE_ITEMS_TABLE: str = "sale_items"


def _to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def _parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, str):
        return to_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    raise TypeError(f"Unsupported timestamp type: {type(value)!r}")


def _raise_on_error(response: Any, action: str) -> List[Mapping[str, Any]]:
    """Raise if the Supabase response carries an error, otherwise return its rows."""

    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {action}: {error}")
    return getattr(response, "data", None) or []


def _row_to_item(row: Mapping[str, Any]) -> SaleItem:
    """Convert a sale_items row into a SaleItem."""

    return SaleItem(
        item_id=int(row["item_id"]),
        product=str(row["product"]),
        quantity=int(row["quantity"]),
        unit_price=Decimal(str(row["unit_price"])),
        discount=Decimal(str(row["discount"])),
        status=CancellationStatus(str(row.get("status") or CancellationStatus.ACTIVE.value)),
    )


def _row_to_sale(row: Mapping[str, Any], item_rows: Sequence[Mapping[str, Any]]) -> Sale:
    """Convert a sales row plus its sale_items rows into a Sale."""

    ordered = sorted(item_rows, key=lambda r: int(r.get("position") or 0))
    return Sale(
        sale_id=int(row["sale_id"]),
        sale_number=int(row["sale_number"]),
        customer=str(row["customer"]),
        branch=str(row["branch"]),
        sale_date=_parse_utc_datetime(row["sale_date_utc"]),
        status=CancellationStatus(str(row.get("status") or CancellationStatus.ACTIVE.value)),
        version=int(row.get("version") or 0),
        items=[_row_to_item(r) for r in ordered],
    )


def _sale_payload(sale: Sale) -> dict[str, Any]:
    return {
        "sale_number": sale.sale_number,
        "customer": sale.customer,
        "branch": sale.branch,
        "sale_date_utc": _to_iso_utc(sale.sale_date, name="sale_date"),
        "status": sale.status.value,
    }


def _item_payload(item: SaleItem, *, sale_id: int, position: int) -> dict[str, Any]:
    return {
        "sale_id": sale_id,
        "position": position,
        "product": item.product,
        "quantity": item.quantity,
        "unit_price": str(item.unit_price),
        "discount": str(item.discount),
        "status": item.status.value,
    }


def _fetch_item_rows(sale_id: int) -> List[Mapping[str, Any]]:
    response = (
        get_supabase()
        .table(_SALE_ITEMS_TABLE)
        .select("*")
        .eq("sale_id", sale_id)
        .order("position")
        .execute()
    )
    return _raise_on_error(response, "list sale items")


def get_sale_by_id(sale_id: int) -> Optional[Sale]:
    """
    Retrieve a sale and its ordered items.

    Args:
        sale_id: Sale identifier

    Returns:
        Sale or None if not found
    """

    response = (
        get_supabase()
        .table(_SALES_TABLE)
        .select("*")
        .eq("sale_id", sale_id)
        .limit(1)
        .execute()
    )
    rows = _raise_on_error(response, "get sale")

    if not rows:
        return None

    return _row_to_sale(rows[0], _fetch_item_rows(sale_id))


def add_sale(sale: Sale) -> Sale:
    """
    Insert a new sale and its items.

    Args:
        sale: Unsaved Sale (sale_id is None)

    Returns:
        The stored Sale, with sale_id and item ids assigned by the database

    If the item insert fails the header row is deleted again before the error
    propagates.
    """

    if sale.sale_id is not None:
        raise ValueError(f"Sale {sale.sale_id} is already stored")

    payload = _sale_payload(sale)
    payload["version"] = sale.version
    payload["created_at_utc"] = utc_now().isoformat()

    response = get_supabase().table(_SALES_TABLE).insert(payload).execute()
    rows = _raise_on_error(response, "record sale")
    if not rows:
        raise RuntimeError("Failed to record sale: no row returned")

    sale_id = int(rows[0]["sale_id"])

    if sale.items:
        item_payloads = [
            _item_payload(item, sale_id=sale_id, position=position)
            for position, item in enumerate(sale.items)
        ]
        try:
            response = get_supabase().table(_SALE_ITEMS_TABLE).insert(item_payloads).execute()
            _raise_on_error(response, "record sale items")
        except Exception:
            # No transaction: drop the header so no item-less sale is left behind
            logger.error(
                f"Item insert failed for sale {sale_id}; removing sale header",
                extra={"sale_id": sale_id},
            )
            get_supabase().table(_SALES_TABLE).delete().eq("sale_id", sale_id).execute()
            raise

    stored = get_sale_by_id(sale_id)
    if stored is None:
        raise RuntimeError(f"Failed to read back sale {sale_id} after insert")
    return stored


def update_sale(sale: Sale) -> Sale:
    """
    Persist the full current state of a previously loaded sale.

    The header row is only written when its stored version still matches
    `sale.version`. Items are then synchronized: new items are inserted,
    existing ones updated and items no longer in the sale deleted.

    Raises:
        StaleSaleError: if the sale was saved by someone else since it was loaded
    """

    if sale.sale_id is None:
        raise ValueError("Cannot update a sale that was never stored")

    payload = _sale_payload(sale)
    payload["version"] = sale.version + 1

    response = (
        get_supabase()
        .table(_SALES_TABLE)
        .update(payload)
        .eq("sale_id", sale.sale_id)
        .eq("version", sale.version)
        .execute()
    )
    rows = _raise_on_error(response, "update sale")
    if not rows:
        logger.warning(
            f"Stale write rejected for sale {sale.sale_id}",
            extra={"sale_id": sale.sale_id, "version": sale.version},
        )
        raise StaleSaleError(sale.sale_id, sale.version)

    stored_ids = {int(r["item_id"]) for r in _fetch_item_rows(sale.sale_id)}
    current_ids = {item.item_id for item in sale.items if item.item_id is not None}

    removed_ids = sorted(stored_ids - current_ids)
    if removed_ids:
        response = (
            get_supabase()
            .table(_SALE_ITEMS_TABLE)
            .delete()
            .in_("item_id", removed_ids)
            .execute()
        )
        _raise_on_error(response, "delete sale items")

    new_payloads: List[dict[str, Any]] = []
    for position, item in enumerate(sale.items):
        item_payload = _item_payload(item, sale_id=sale.sale_id, position=position)
        if item.item_id is None:
            new_payloads.append(item_payload)
            continue
        response = (
            get_supabase()
            .table(_SALE_ITEMS_TABLE)
            .update(item_payload)
            .eq("item_id", item.item_id)
            .execute()
        )
        _raise_on_error(response, "update sale item")

    if new_payloads:
        response = get_supabase().table(_SALE_ITEMS_TABLE).insert(new_payloads).execute()
        _raise_on_error(response, "record sale items")

    stored = get_sale_by_id(sale.sale_id)
    if stored is None:
        raise RuntimeError(f"Failed to read back sale {sale.sale_id} after update")
    return stored


def delete_sale(sale: Sale) -> None:
    """Remove a sale and all of its items."""

    if sale.sale_id is None:
        raise ValueError("Cannot delete a sale that was never stored")

    response = (
        get_supabase()
        .table(_SALE_ITEMS_TABLE)
        .delete()
        .eq("sale_id", sale.sale_id)
        .execute()
    )
    _raise_on_error(response, "delete sale items")

    response = (
        get_supabase()
        .table(_SALES_TABLE)
        .delete()
        .eq("sale_id", sale.sale_id)
        .execute()
    )
    _raise_on_error(response, "delete sale")


__all__ = [
    "get_sale_by_id",
    "add_sale",
    "update_sale",
    "delete_sale",
]
