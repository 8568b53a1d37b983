"""Order related pydantic models.

- Quantities are validated as positive so bad items never reach the database.
- Datetime fields parse ISO strings.
- Status stays a plain string; the service layer validates it so the error
  can list the allowed values.
"""
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class OrderItemIn(BaseModel):
    product_id: int
    quantity: float = Field(gt=0)
    unit_price: Optional[float] = None


class OrderCreate(BaseModel):
    supplier_id: int
    items: List[OrderItemIn] = Field(min_length=1)
    notes: Optional[str] = None
    tenant_id: Optional[int] = None


class OrderStatusUpdate(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = None


class SupplierOrderUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: Optional[int] = Field(default=None, alias="orderId")
    status: Optional[str] = None
    estimated_delivery: Optional[datetime] = Field(default=None, alias="estimatedDelivery")
    driver_id: Optional[int] = Field(default=None, alias="driverId")
    notes: Optional[str] = None


class TrackingUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    driver_id: Optional[int] = Field(default=None, alias="driverId")
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: Optional[str] = None
    delivery_notes: Optional[str] = Field(default=None, alias="deliveryNotes")
    departure_time: Optional[datetime] = Field(default=None, alias="departureTime")
    arrival_time: Optional[datetime] = Field(default=None, alias="arrivalTime")


class DriverAssignment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    driver_id: Optional[int] = Field(default=None, alias="driverId")
    estimated_arrival: Optional[datetime] = Field(default=None, alias="estimatedArrival")


class CustomerInfo(BaseModel):
    name: str
    email: str
    phone: str
    address: str


class CustomerOrderItemIn(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    price: float


class CustomerOrderCreate(BaseModel):
    customer_info: Optional[CustomerInfo] = None
    items: List[CustomerOrderItemIn] = Field(default_factory=list)
    total_amount: Optional[float] = None
    notes: Optional[str] = None
