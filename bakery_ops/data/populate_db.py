from datetime import date, timedelta

from .database import SessionLocal, create_tables
from .models import (
    DeliveryDriver, DeliveryStatus, DeliveryTracking, OrderItem, OrderStatus, Product,
    PurchaseOrder, Supplier, Tenant, User, UserRole,
)
from ..services.product_service import predict_stockout
from ..utils.logger import get_logger
from ..utils.security import hash_password

logger = get_logger()

DEMO_PASSWORD = "password123"

TENANTS = [
    {"name": "Roni's Bakery - Main", "type": "restaurant", "address": "12 Hampstead High St, London NW3"},
    {"name": "Roni's Bakery - Belsize Park", "type": "restaurant", "address": "4 Belsize Terrace, London NW3"},
    {"name": "Heritage Jewish Breads", "type": "supplier", "address": "Unit 7, Edgware Road, London NW9"},
    {"name": "EdgeAI Logistics", "type": "logistics", "address": "Park Royal, London NW10"},
]

SUPPLIERS = [
    {"name": "Heritage Jewish Breads", "contact": "Miriam Cohen", "lead_time": 1, "mcp_id": "hjb-001",
     "email": "supplier@hjb.com", "phone": "020 7946 0001", "address": "Unit 7, Edgware Road, London NW9",
     "kosher_certified": True, "delivery_schedule": "Daily", "minimum_order": 50.0},
    {"name": "Golders Dairy", "contact": "David Levi", "lead_time": 2, "mcp_id": "gd-002",
     "email": "orders@goldersdairy.co.uk", "phone": "020 7946 0002", "address": "Golders Green, London NW11",
     "kosher_certified": True, "delivery_schedule": "Mon, Wed, Fri", "minimum_order": 75.0},
    {"name": "North London Coffee Roasters", "contact": "Sam Price", "lead_time": 3, "mcp_id": "nlcr-003",
     "email": "trade@nlcoffee.co.uk", "phone": "020 7946 0003", "address": "Kentish Town, London NW5",
     "kosher_certified": False, "delivery_schedule": "Weekly", "minimum_order": 100.0},
]

# (name, category, stock, unit, reorder point, optimal stock, supplier index, price, daily usage, storage)
PRODUCTS = [
    ("Plain Bagel", "bagels", 40, "units", 100, 400, 0, 0.60, 120, "room_temp"),
    ("Sesame Bagel", "bagels", 220, "units", 100, 400, 0, 0.70, 90, "room_temp"),
    ("Everything Bagel", "bagels", 60, "units", 80, 300, 0, 0.75, 70, "room_temp"),
    ("Challah Loaf", "bread", 35, "loaves", 20, 60, 0, 3.50, 15, "room_temp"),
    ("Rye Bread", "bread", 8, "loaves", 15, 40, 0, 3.20, 6, "room_temp"),
    ("Cream Cheese", "dairy", 12, "kg", 10, 30, 1, 6.80, 4, "refrigerated"),
    ("Whole Milk", "dairy", 50, "litres", 30, 80, 1, 1.10, 25, "refrigerated"),
    ("Smoked Salmon", "fish", 3, "kg", 5, 15, 1, 28.00, 2, "refrigerated"),
    ("House Blend Coffee Beans", "coffee", 18, "kg", 6, 20, 2, 18.50, 2, "room_temp"),
]

DRIVERS = [
    {"name": "Delivery Driver", "phone": "07700 900001", "email": "driver@edgeai.com",
     "vehicle_registration": "LN21 ABC", "license_number": "DRV-1001", "supplier": 0},
    {"name": "Yossi Katz", "phone": "07700 900002", "email": "yossi@edgeai.com",
     "vehicle_registration": "LN19 XYZ", "license_number": "DRV-1002", "supplier": 1},
]


def populate_database():
    """Seed demo tenants, suppliers, products, drivers, users and one order in flight."""
    create_tables()

    db = SessionLocal()
    try:
        if db.query(Product).count() > 0:
            logger.info("Products table is not empty. Skipping population.")
            return

        today = date.today()
        tenants = [Tenant(**t) for t in TENANTS]
        suppliers = [Supplier(**s) for s in SUPPLIERS]
        db.add_all(tenants + suppliers)
        db.flush()

        products = []
        for name, category, stock, unit, reorder, optimal, sup, price, usage, storage in PRODUCTS:
            products.append(Product(
                name=name,
                category=category,
                current_stock=stock,
                unit=unit,
                reorder_point=reorder,
                optimal_stock=optimal,
                supplier_id=suppliers[sup].id,
                tenant_id=tenants[0].id,
                last_delivery=today - timedelta(days=2),
                consumption_rate=usage,
                predicted_stockout=predict_stockout(stock, usage, today),
                price=price,
                description=f"{name} from {suppliers[sup].name}",
                daily_usage=usage,
                order_quantity=optimal - reorder,
                lead_time=suppliers[sup].lead_time,
                kosher_certified=suppliers[sup].kosher_certified,
                storage_temp=storage,
            ))
        db.add_all(products)

        drivers = []
        for d in DRIVERS:
            data = dict(d)
            data["supplier_id"] = suppliers[data.pop("supplier")].id
            drivers.append(DeliveryDriver(**data))
        db.add_all(drivers)
        db.flush()

        password_hash = hash_password(DEMO_PASSWORD)
        db.add_all([
            User(email="admin@ronisbakery.com", password_hash=password_hash, full_name="Admin User",
                 role=UserRole.admin),
            User(email="owner@ronisbakery.com", password_hash=password_hash, full_name="Restaurant Owner",
                 role=UserRole.client, tenant_id=tenants[0].id),
            User(email="supplier@hjb.com", password_hash=password_hash, full_name="Heritage Breads Manager",
                 role=UserRole.supplier, supplier_id=suppliers[0].id, tenant_id=tenants[2].id),
            User(email="driver@edgeai.com", password_hash=password_hash, full_name="Delivery Driver",
                 role=UserRole.driver, supplier_id=suppliers[0].id, tenant_id=tenants[3].id),
        ])

        order = PurchaseOrder(
            order_date=today,
            supplier_id=suppliers[0].id,
            tenant_id=tenants[0].id,
            status=OrderStatus.confirmed,
            expected_delivery=today + timedelta(days=suppliers[0].lead_time),
            notes="Morning bagel restock",
        )
        order.items.append(OrderItem(product_id=products[0].id, quantity=300, unit_price=products[0].price))
        order.items.append(OrderItem(product_id=products[4].id, quantity=25, unit_price=products[4].price))
        order.total_cost = sum(i.quantity * i.unit_price for i in order.items)
        db.add(order)
        db.flush()
        db.add(DeliveryTracking(order_id=order.id, driver_id=drivers[0].id, status=DeliveryStatus.assigned))

        db.commit()
        logger.info(f"Seeded {len(products)} products, {len(suppliers)} suppliers and {len(drivers)} drivers")
    except Exception as e:
        db.rollback()
        logger.error(f"Error populating database: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    populate_database()
