from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean, Text, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base
import enum


class OrderStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"


class DeliveryStatus(str, enum.Enum):
    assigned = "assigned"
    pickup = "pickup"
    in_transit = "in_transit"
    delivered = "delivered"
    failed = "failed"


class UserRole(str, enum.Enum):
    admin = "admin"
    client = "client"
    supplier = "supplier"
    driver = "driver"


ACTIVE_DELIVERY_STATUSES = (DeliveryStatus.assigned, DeliveryStatus.pickup, DeliveryStatus.in_transit)


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False, default="restaurant")  # restaurant | supplier | logistics
    address = Column(String)
    subscription_status = Column(String, nullable=False, default="active")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    users = relationship("User", back_populates="tenant")
    orders = relationship("PurchaseOrder", back_populates="tenant")


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    contact = Column(String)
    lead_time = Column(Integer, nullable=False, default=1)  # days
    mcp_id = Column(String)
    email = Column(String, index=True)
    phone = Column(String)
    address = Column(String)
    kosher_certified = Column(Boolean, default=False)
    delivery_schedule = Column(String)
    minimum_order = Column(Float)
    is_active = Column(Boolean, nullable=False, default=True)

    products = relationship("Product", back_populates="supplier")
    orders = relationship("PurchaseOrder", back_populates="supplier")
    drivers = relationship("DeliveryDriver", back_populates="supplier")


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False)
    current_stock = Column(Float, nullable=False, default=0)
    unit = Column(String, nullable=False, default="units")
    reorder_point = Column(Float, nullable=False, default=0)
    optimal_stock = Column(Float, nullable=False, default=0)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=True)
    last_delivery = Column(Date, nullable=True)
    consumption_rate = Column(Float, nullable=True)  # units per day
    predicted_stockout = Column(Date, nullable=True)
    price = Column(Float, nullable=False)
    description = Column(String)
    image_url = Column(String)
    daily_usage = Column(Float, nullable=False, default=0)
    order_quantity = Column(Float, nullable=False, default=0)
    lead_time = Column(Integer, nullable=False, default=1)
    lead_time_unit = Column(String, nullable=False, default="days")
    kosher_certified = Column(Boolean, default=False)
    storage_temp = Column(String, default="room_temp")  # frozen | refrigerated | room_temp
    shelf_life_days = Column(Integer, nullable=True)

    supplier = relationship("Supplier", back_populates="products")
    order_items = relationship("OrderItem", back_populates="product")
    consumption_records = relationship("ConsumptionRecord", back_populates="product")


class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_date = Column(Date, nullable=False)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=True)
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.pending)
    expected_delivery = Column(Date, nullable=True)
    total_cost = Column(Float, nullable=True)
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    supplier = relationship("Supplier", back_populates="orders")
    tenant = relationship("Tenant", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    tracking = relationship("DeliveryTracking", back_populates="order", uselist=False)


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("purchase_orders.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Float, nullable=False)
    unit_price = Column(Float, nullable=True)

    order = relationship("PurchaseOrder", back_populates="items")
    product = relationship("Product", back_populates="order_items")


class ConsumptionRecord(Base):
    __tablename__ = "consumption_records"

    id = Column(Integer, primary_key=True, index=True)
    record_date = Column(Date, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Float, nullable=False)
    notes = Column(String)

    product = relationship("Product", back_populates="consumption_records")


class DeliveryDriver(Base):
    __tablename__ = "delivery_drivers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    email = Column(String, index=True)
    vehicle_registration = Column(String)
    license_number = Column(String)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    supplier = relationship("Supplier", back_populates="drivers")
    deliveries = relationship("DeliveryTracking", back_populates="driver")


class DeliveryTracking(Base):
    __tablename__ = "delivery_tracking"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("purchase_orders.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("delivery_drivers.id"), nullable=False)
    status = Column(Enum(DeliveryStatus), nullable=False, default=DeliveryStatus.assigned)
    estimated_arrival = Column(DateTime(timezone=True), nullable=True)
    actual_departure = Column(DateTime(timezone=True), nullable=True)
    actual_arrival = Column(DateTime(timezone=True), nullable=True)
    current_latitude = Column(Float, nullable=True)
    current_longitude = Column(Float, nullable=True)
    last_location_update = Column(DateTime(timezone=True), nullable=True)
    delivery_notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    order = relationship("PurchaseOrder", back_populates="tracking")
    driver = relationship("DeliveryDriver", back_populates="deliveries")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    full_name = Column(String, nullable=False)
    phone = Column(String)
    role = Column(Enum(UserRole), nullable=False)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    tenant = relationship("Tenant", back_populates="users")
    addresses = relationship("ClientAddress", back_populates="user", cascade="all, delete-orphan")


class ClientAddress(Base):
    __tablename__ = "client_addresses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    address_label = Column(String, default="Home")
    street_address = Column(String, nullable=False)
    city = Column(String)
    postcode = Column(String)
    latitude = Column(Float)
    longitude = Column(Float)
    is_default = Column(Boolean, default=False)
    delivery_instructions = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="addresses")


class OrderApiLog(Base):
    __tablename__ = "order_api_logs"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("purchase_orders.id"), nullable=False)
    api_endpoint = Column(String, nullable=False)
    request_payload = Column(Text)
    response_payload = Column(Text)
    status_code = Column(Integer)
    timestamp = Column(DateTime(timezone=True), server_default=func.now())


class CustomerOrder(Base):
    __tablename__ = "customer_orders"

    id = Column(Integer, primary_key=True, index=True)
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False)
    delivery_address = Column(String, nullable=False)
    total_amount = Column(Float, nullable=False)
    notes = Column(Text)
    status = Column(String, nullable=False, default="pending")
    order_date = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship("CustomerOrderItem", back_populates="order", cascade="all, delete-orphan")


class CustomerOrderItem(Base):
    __tablename__ = "customer_order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("customer_orders.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price_per_unit = Column(Float, nullable=False)

    order = relationship("CustomerOrder", back_populates="items")
