"""
Shared fixtures for the API and agent test suites.

Each suite gets its own in-memory SQLite database (one connection shared via
StaticPool) wired into the FastAPI app through ``get_db``.
"""

from datetime import date, timedelta

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bakery_ops.app.main import app
from bakery_ops.data.database import create_tables, enable_sqlite_foreign_keys, get_db
from bakery_ops.data.models import (
    DeliveryDriver, DeliveryStatus, DeliveryTracking, OrderItem, OrderStatus, Product,
    PurchaseOrder, Supplier, Tenant, User, UserRole,
)
from bakery_ops.services.user_service import to_current_user
from bakery_ops.utils import security
from bakery_ops.utils.security import create_access_token, hash_password

# Fast hashes for tests
security.BCRYPT_ROUNDS = 4

PASSWORD = "password123"


def make_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    create_tables(bind=engine)
    return engine, sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def clear_overrides():
    app.dependency_overrides.clear()


def seed(db):
    """Two suppliers, four products around the reorder point, two drivers, one user per role,
    and one confirmed order assigned to the first driver. Returns the ids."""
    today = date.today()
    tenant = Tenant(name="Roni's Bakery - Main", type="restaurant", address="12 High St")
    other_tenant = Tenant(name="Roni's Bakery - Belsize Park", type="restaurant", address="4 Belsize Ter")
    hjb = Supplier(name="Heritage Jewish Breads", lead_time=2, email="supplier@hjb.com", kosher_certified=True)
    dairy = Supplier(name="Golders Dairy", lead_time=1, email="orders@dairy.test")
    db.add_all([tenant, other_tenant, hjb, dairy])
    db.flush()

    def product(name, category, stock, reorder, optimal, supplier, price, rate):
        return Product(
            name=name, category=category, current_stock=stock, unit="units",
            reorder_point=reorder, optimal_stock=optimal, supplier_id=supplier.id,
            tenant_id=tenant.id, price=price, consumption_rate=rate, daily_usage=rate,
            predicted_stockout=today + timedelta(days=1), kosher_certified=supplier.kosher_certified,
            description=f"{name} from {supplier.name}",
        )

    critical = product("Plain Bagel", "bagels", 2, 10, 50, hjb, 0.5, 4)
    low = product("Sesame Bagel", "bagels", 7, 10, 50, hjb, 0.6, 3)
    edge = product("Cream Cheese", "dairy", 10, 10, 30, dairy, 4.0, 2)
    healthy = product("Challah Loaf", "bread", 100, 10, 120, hjb, 3.5, 5)
    db.add_all([critical, low, edge, healthy])

    driver = DeliveryDriver(name="Dan Driver", phone="07700 900001", email="driver@edgeai.com",
                            vehicle_registration="LN21 ABC", supplier_id=hjb.id)
    other_driver = DeliveryDriver(name="Olga Other", phone="07700 900002", email="olga@edgeai.com",
                                  supplier_id=dairy.id)
    db.add_all([driver, other_driver])
    db.flush()

    password_hash = hash_password(PASSWORD)
    users = {
        "admin": User(email="admin@ronisbakery.com", password_hash=password_hash, full_name="Admin User",
                      role=UserRole.admin),
        "client": User(email="owner@ronisbakery.com", password_hash=password_hash, full_name="Owner",
                       role=UserRole.client, tenant_id=tenant.id),
        "supplier": User(email="supplier@hjb.com", password_hash=password_hash, full_name="HJB Manager",
                         role=UserRole.supplier, supplier_id=hjb.id),
        "driver": User(email="driver@edgeai.com", password_hash=password_hash, full_name="Dan Driver",
                       role=UserRole.driver, supplier_id=hjb.id),
    }
    db.add_all(users.values())

    order = PurchaseOrder(order_date=today, supplier_id=hjb.id, tenant_id=tenant.id,
                          status=OrderStatus.confirmed, expected_delivery=today + timedelta(days=2),
                          total_cost=50.0, notes="seed order")
    order.items.append(OrderItem(product_id=critical.id, quantity=100, unit_price=0.5))
    db.add(order)
    db.flush()
    tracking = DeliveryTracking(order_id=order.id, driver_id=driver.id, status=DeliveryStatus.assigned)
    db.add(tracking)
    db.commit()

    return {
        "tenant": tenant.id,
        "other_tenant": other_tenant.id,
        "hjb": hjb.id,
        "dairy": dairy.id,
        "critical": critical.id,
        "low": low.id,
        "edge": edge.id,
        "healthy": healthy.id,
        "driver": driver.id,
        "other_driver": other_driver.id,
        "order": order.id,
        "tracking": tracking.id,
        "users": {role: u.id for role, u in users.items()},
    }


def auth_header(db, user_id):
    user = db.get(User, user_id)
    return {"Authorization": f"Bearer {create_access_token(to_current_user(user))}"}
