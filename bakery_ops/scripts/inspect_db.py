#!/usr/bin/env python3
"""
Inspect the bakery database: print stock levels, purchase orders with their
items, and delivery assignments.

Usage:
  python -m bakery_ops.scripts.inspect_db

Notes:
- Uses the existing SQLAlchemy session and models.
- Read-only; makes no writes.
"""

from __future__ import annotations

from datetime import datetime

from bakery_ops.data.database import SessionLocal
from bakery_ops.data.models import DeliveryTracking, OrderItem, Product, PurchaseOrder, Supplier
from bakery_ops.services.product_service import stock_status


def line(ch: str = "-", width: int = 60) -> str:
    return ch * width


def print_products(session):
    print(line("="))
    print("Products")
    print(line("="))
    products = session.query(Product).order_by(Product.id).all()
    print(f"Total products: {len(products)}")
    for p in products:
        print(
            f"- #{p.id} {p.name} | stock={p.current_stock} {p.unit} | reorder at {p.reorder_point} "
            f"| {stock_status(p)} | price=£{p.price:.2f} | category={p.category}"
        )
    print()


def print_orders(session):
    print(line("="))
    print("Purchase orders (with items and deliveries)")
    print(line("="))
    orders = session.query(PurchaseOrder).order_by(PurchaseOrder.id).all()
    print(f"Total orders: {len(orders)}")
    for o in orders:
        supplier = session.get(Supplier, o.supplier_id)
        print(
            f"\nOrder #{o.id} | supplier={supplier.name if supplier else '(missing)'} | status={o.status.value} "
            f"| total=£{float(o.total_cost or 0):.2f} | expected={o.expected_delivery or 'N/A'}"
        )

        items = session.query(OrderItem).filter(OrderItem.order_id == o.id).all()
        print(f"  Items: {len(items)}")
        for it in items:
            product = session.get(Product, it.product_id)
            pname = product.name if product else "(missing product)"
            print(f"    - {it.quantity} x {pname} (product_id={it.product_id}) @ £{float(it.unit_price or 0):.2f}")

        tracking = session.query(DeliveryTracking).filter(DeliveryTracking.order_id == o.id).first()
        if tracking:
            print(f"  Delivery → driver #{tracking.driver_id} | status={tracking.status.value}")
        else:
            print("  Delivery → (not assigned)")
    print()


def main():
    session = SessionLocal()
    try:
        print(f"DB inspection at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print_products(session)
        print_orders(session)
        print(line("="))
        print("End of database inspection")
        print(line("="))
    finally:
        session.close()


if __name__ == "__main__":
    main()
