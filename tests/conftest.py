"""
Pytest configuration.

Adds the project root to the Python path so tests can import domain,
repositories, services and api, and provides an in-memory stand-in for the
Supabase-backed sale repository.
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.errors import StaleSaleError  # noqa: E402
from domain.sale import Sale  # noqa: E402
from domain.sale_item import SaleItem  # noqa: E402
from repositories import sale_repository  # noqa: E402


class InMemorySaleStore:
    """
    Dict-backed replacement for repositories.sale_repository.

    Loads and saves hand out copies, so a test only sees a change once the
    service has saved it, the same as with the real database.
    """

    def __init__(self) -> None:
        self.sales: Dict[int, Sale] = {}
        self.deleted: List[int] = []
        self._next_sale_id = 1
        self._next_item_id = 1

    def _copy(self, sale: Sale, *, sale_id: int, version: int) -> Sale:
        items = []
        for item in sale.items:
            item_id = item.item_id
            if item_id is None:
                item_id = self._next_item_id
                self._next_item_id += 1
            items.append(
                SaleItem(
                    item_id=item_id,
                    product=item.product,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    discount=item.discount,
                    status=item.status,
                )
            )
        return Sale(
            sale_id=sale_id,
            sale_number=sale.sale_number,
            customer=sale.customer,
            branch=sale.branch,
            sale_date=sale.sale_date,
            items=items,
            status=sale.status,
            version=version,
        )

    def get_sale_by_id(self, sale_id: int) -> Optional[Sale]:
        stored = self.sales.get(sale_id)
        if stored is None:
            return None
        return self._copy(stored, sale_id=sale_id, version=stored.version)

    def add_sale(self, sale: Sale) -> Sale:
        sale_id = self._next_sale_id
        self._next_sale_id += 1
        self.sales[sale_id] = self._copy(sale, sale_id=sale_id, version=sale.version)
        return self.get_sale_by_id(sale_id)

    def update_sale(self, sale: Sale) -> Sale:
        stored = self.sales.get(sale.sale_id)
        if stored is None or stored.version != sale.version:
            raise StaleSaleError(sale.sale_id, sale.version)
        self.sales[sale.sale_id] = self._copy(sale, sale_id=sale.sale_id, version=sale.version + 1)
        return self.get_sale_by_id(sale.sale_id)

    def delete_sale(self, sale: Sale) -> None:
        self.sales.pop(sale.sale_id, None)
        self.deleted.append(sale.sale_id)


@pytest.fixture
def sale_store(monkeypatch: pytest.MonkeyPatch) -> InMemorySaleStore:
    """Route every repository call made by the service through an InMemorySaleStore."""

    store = InMemorySaleStore()
    for name in ("get_sale_by_id", "add_sale", "update_sale", "delete_sale"):
        monkeypatch.setattr(sale_repository, name, getattr(store, name))
    return store
