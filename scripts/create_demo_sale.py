"""
Create a demo sale for testing and demos.

This script stores sale number 1001 for "Demo Customer" at branch "Downtown"
with three items, one per discount tier:
- Widget x2 @ 100.00 (no discount)
- Gadget x5 @ 20.00 (10% off)
- Gizmo x10 @ 50.00 (20% off)

Running it twice does not create a second copy.
"""

import sys
from pathlib import Path

# Add parent directory to path so we can import from repositories
sys.path.insert(0, str(Path(__file__).parent.parent))

from decimal import Decimal

from repositories.client import get_supabase
from services.sale_service import CreateSaleRequest, NewSaleItem, create_sale


DEMO_SALE_NUMBER = 1001


def create_demo_sale():
    """Create the demo sale unless it already exists."""

    existing = (
        get_supabase()
        .table("sales")
        .select("sale_id")
        .eq("sale_number", DEMO_SALE_NUMBER)
        .execute()
    )

    if existing.data:
        print(f"Demo sale already exists: sale_id={existing.data[0]['sale_id']}")
        return

    sale = create_sale(
        CreateSaleRequest(
            sale_number=DEMO_SALE_NUMBER,
            customer="Demo Customer",
            branch="Downtown",
            items=[
                NewSaleItem(product="Widget", quantity=2, unit_price=Decimal("100.00")),
                NewSaleItem(product="Gadget", quantity=5, unit_price=Decimal("20.00")),
                NewSaleItem(product="Gizmo", quantity=10, unit_price=Decimal("50.00")),
            ],
        )
    )

    print(f"[SUCCESS] Demo sale created successfully!")
    print(f"  Sale ID: {sale.sale_id}")
    print(f"  Sale number: {sale.sale_number}")
    for item in sale.items:
        print(f"  - {item.product} x{item.quantity}: discount {item.discount}, total {item.total}")
    print(f"  Total: {sale.total_amount}")


if __name__ == "__main__":
    create_demo_sale()
