"""
Tests for `repositories/sale_repository.py`.

The Supabase client is replaced by a MagicMock so these tests cover row
mapping and the version guard without a database.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from domain.errors import StaleSaleError
from domain.sale import Sale
from domain.sale_item import SaleItem
from domain.status import CancellationStatus
from repositories import sale_repository

SALE_ROW = {
    "sale_id": 5,
    "sale_number": 1001,
    "customer": "ACME Corp",
    "branch": "Downtown",
    "sale_date_utc": "2025-01-01T12:00:00Z",
    "status": "Active",
    "version": 3,
}

ITEM_ROWS = [
    {
        "item_id": 11,
        "sale_id": 5,
        "position": 1,
        "product": "Gizmo",
        "quantity": 10,
        "unit_price": "50.00",
        "discount": "100.00",
        "status": "Cancelled",
    },
    {
        "item_id": 10,
        "sale_id": 5,
        "position": 0,
        "product": "Widget",
        "quantity": 2,
        "unit_price": "100.00",
        "discount": "15.00",
        "status": "Active",
    },
]


def _response(data=None, error=None) -> SimpleNamespace:
    return SimpleNamespace(data=data, error=error)


@pytest.fixture
def supabase(monkeypatch) -> MagicMock:
    client = MagicMock()
    monkeypatch.setattr(sale_repository, "get_supabase", lambda: client)
    return client


def test_row_to_sale_orders_items_by_position_and_keeps_stored_discount() -> None:
    sale = sale_repository._row_to_sale(SALE_ROW, ITEM_ROWS)

    assert sale.sale_id == 5
    assert sale.version == 3
    assert sale.sale_date == datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    assert [item.item_id for item in sale.items] == [10, 11]
    assert sale.items[0].discount == Decimal("15.00")
    assert sale.items[1].status is CancellationStatus.CANCELLED
    assert sale.total_amount == Decimal("185.00")


def test_get_sale_by_id_returns_none_when_missing(supabase: MagicMock) -> None:
    supabase.table.return_value.select.return_value.eq.return_value.limit.return_value.execute.return_value = (
        _response(data=[])
    )

    assert sale_repository.get_sale_by_id(5) is None


def test_get_sale_by_id_raises_on_supabase_error(supabase: MagicMock) -> None:
    supabase.table.return_value.select.return_value.eq.return_value.limit.return_value.execute.return_value = (
        _response(error="permission denied")
    )

    with pytest.raises(RuntimeError, match="permission denied"):
        sale_repository.get_sale_by_id(5)


def test_update_sale_rejects_stale_version(supabase: MagicMock) -> None:
    supabase.table.return_value.update.return_value.eq.return_value.eq.return_value.execute.return_value = (
        _response(data=[])
    )
    sale = Sale(
        sale_id=5,
        sale_number=1001,
        customer="ACME Corp",
        branch="Downtown",
        sale_date=datetime(2025, 1, 1, tzinfo=timezone.utc),
        items=[SaleItem(item_id=10, product="Widget", quantity=2, unit_price=Decimal("100"))],
        version=3,
    )

    with pytest.raises(StaleSaleError):
        sale_repository.update_sale(sale)

    update_call = supabase.table.return_value.update
    payload = update_call.call_args.args[0]
    assert payload["version"] == 4
    update_call.return_value.eq.return_value.eq.assert_called_with("version", 3)


def test_update_sale_requires_stored_sale() -> None:
    sale = Sale.create(sale_number=1, customer="ACME Corp", items=[], branch="Downtown")

    with pytest.raises(ValueError):
        sale_repository.update_sale(sale)


def test_item_payload_serializes_money_as_strings() -> None:
    item = SaleItem(product="Gizmo", quantity=10, unit_price=Decimal("50.00"))

    payload = sale_repository._item_payload(item, sale_id=5, position=2)

    assert payload == {
        "sale_id": 5,
        "position": 2,
        "product": "Gizmo",
        "quantity": 10,
        "unit_price": "50.00",
        "discount": "100.00",
        "status": "Active",
    }


@pytest.fixture
def tables(monkeypatch) -> dict:
    """
    One MagicMock per Supabase table.

    `touched` records the table name of every `.table()` call in order.
    """

    mocks = {"sales": MagicMock(), "sale_items": MagicMock()}
    touched: list = []

    def table(name: str) -> MagicMock:
        touched.append(name)
        return mocks[name]

    client = MagicMock()
    client.table.side_effect = table
    monkeypatch.setattr(sale_repository, "get_supabase", lambda: client)
    mocks["touched"] = touched
    return mocks


def _stub_read_back(tables: dict, sale_row: dict, item_rows: list) -> None:
    tables["sales"].select.return_value.eq.return_value.limit.return_value.execute.return_value = (
        _response(data=[sale_row])
    )
    tables["sale_items"].select.return_value.eq.return_value.order.return_value.execute.return_value = (
        _response(data=item_rows)
    )


def _new_sale() -> Sale:
    return Sale.create(
        sale_number=1001,
        customer="ACME Corp",
        branch="Downtown",
        sale_date=datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc),
        items=[
            SaleItem(product="Widget", quantity=2, unit_price=Decimal("100.00")),
            SaleItem(product="Gizmo", quantity=10, unit_price=Decimal("50.00")),
        ],
    )


def test_add_sale_inserts_header_then_items_in_order_and_reads_back(tables: dict) -> None:
    tables["sales"].insert.return_value.execute.return_value = _response(data=[{"sale_id": 5}])
    tables["sale_items"].insert.return_value.execute.return_value = _response(data=[{}, {}])
    _stub_read_back(tables, SALE_ROW, ITEM_ROWS)

    stored = sale_repository.add_sale(_new_sale())

    header = tables["sales"].insert.call_args.args[0]
    assert header["sale_number"] == 1001
    assert header["version"] == 0
    assert header["sale_date_utc"] == "2025-01-01T12:00:00+00:00"

    item_payloads = tables["sale_items"].insert.call_args.args[0]
    assert [p["position"] for p in item_payloads] == [0, 1]
    assert [p["product"] for p in item_payloads] == ["Widget", "Gizmo"]
    assert all(p["sale_id"] == 5 for p in item_payloads)

    assert tables["touched"][:2] == ["sales", "sale_items"]
    assert stored.sale_id == 5
    assert [item.item_id for item in stored.items] == [10, 11]


def test_add_sale_rejects_already_stored_sale(tables: dict) -> None:
    sale = _new_sale()
    sale.sale_id = 3

    with pytest.raises(ValueError):
        sale_repository.add_sale(sale)

    tables["sales"].insert.assert_not_called()


def test_add_sale_removes_header_when_item_insert_fails(tables: dict) -> None:
    """A failed item insert must not leave a sale without items behind."""

    tables["sales"].insert.return_value.execute.return_value = _response(data=[{"sale_id": 9}])
    tables["sale_items"].insert.return_value.execute.return_value = _response(error="boom")

    with pytest.raises(RuntimeError, match="boom"):
        sale_repository.add_sale(_new_sale())

    tables["sales"].delete.assert_called_once_with()
    tables["sales"].delete.return_value.eq.assert_called_once_with("sale_id", 9)
    tables["sales"].delete.return_value.eq.return_value.execute.assert_called_once_with()
    tables["sales"].select.assert_not_called()


def test_update_sale_syncs_items(tables: dict) -> None:
    """Removed items are deleted, kept ones updated, new ones inserted at their position."""

    tables["sales"].update.return_value.eq.return_value.eq.return_value.execute.return_value = (
        _response(data=[dict(SALE_ROW, version=4)])
    )
    tables["sale_items"].update.return_value.eq.return_value.execute.return_value = _response(data=[{}])
    tables["sale_items"].delete.return_value.in_.return_value.execute.return_value = _response(data=[{}])
    tables["sale_items"].insert.return_value.execute.return_value = _response(data=[{}])
    _stub_read_back(tables, dict(SALE_ROW, version=4), ITEM_ROWS)

    sale = sale_repository._row_to_sale(SALE_ROW, ITEM_ROWS)
    sale.remove_item(11)
    sale.update_item(10, new_quantity=5)
    sale.add_item(SaleItem(product="Gadget", quantity=1, unit_price=Decimal("20.00")))

    stored = sale_repository.update_sale(sale)

    tables["sale_items"].delete.return_value.in_.assert_called_once_with("item_id", [11])

    updated_payload = tables["sale_items"].update.call_args.args[0]
    assert updated_payload["position"] == 0
    assert updated_payload["quantity"] == 5
    assert updated_payload["discount"] == "50.00"
    tables["sale_items"].update.return_value.eq.assert_called_once_with("item_id", 10)

    inserted = tables["sale_items"].insert.call_args.args[0]
    assert len(inserted) == 1
    assert inserted[0]["product"] == "Gadget"
    assert inserted[0]["position"] == 1
    assert inserted[0]["sale_id"] == 5

    assert stored.version == 4


def test_update_sale_without_item_changes_deletes_and_inserts_nothing(tables: dict) -> None:
    tables["sales"].update.return_value.eq.return_value.eq.return_value.execute.return_value = (
        _response(data=[SALE_ROW])
    )
    tables["sale_items"].update.return_value.eq.return_value.execute.return_value = _response(data=[{}])
    _stub_read_back(tables, SALE_ROW, ITEM_ROWS)

    sale_repository.update_sale(sale_repository._row_to_sale(SALE_ROW, ITEM_ROWS))

    tables["sale_items"].delete.assert_not_called()
    tables["sale_items"].insert.assert_not_called()
    assert tables["sale_items"].update.call_count == 2


def test_delete_sale_removes_items_before_header(tables: dict) -> None:
    tables["sale_items"].delete.return_value.eq.return_value.execute.return_value = _response(data=[])
    tables["sales"].delete.return_value.eq.return_value.execute.return_value = _response(data=[])

    sale_repository.delete_sale(sale_repository._row_to_sale(SALE_ROW, ITEM_ROWS))

    assert tables["touched"] == ["sale_items", "sales"]
    tables["sale_items"].delete.return_value.eq.assert_called_once_with("sale_id", 5)
    tables["sales"].delete.return_value.eq.assert_called_once_with("sale_id", 5)


def test_delete_sale_stops_when_item_delete_fails(tables: dict) -> None:
    tables["sale_items"].delete.return_value.eq.return_value.execute.return_value = (
        _response(error="permission denied")
    )

    with pytest.raises(RuntimeError, match="permission denied"):
        sale_repository.delete_sale(sale_repository._row_to_sale(SALE_ROW, ITEM_ROWS))

    tables["sales"].delete.assert_not_called()
