"""Delivery tracking, driver management and driver-facing queries."""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..app.errors import Forbidden, NotFoundError, ValidationFailed
from ..data.models import (
    ACTIVE_DELIVERY_STATUSES, DeliveryDriver, DeliveryStatus, DeliveryTracking,
    OrderStatus, PurchaseOrder, Supplier,
)
from ..utils.logger import get_logger
from . import order_service

logger = get_logger()

VALID_DELIVERY_STATUSES = [s.value for s in DeliveryStatus]
BASE_DELIVERY_FEE = 5.0
ORDER_VALUE_SHARE = 0.1
EARNING_PERIODS = {"today": 0, "week": 7, "month": 30}


def _now():
    return datetime.now(timezone.utc)


def parse_delivery_status(status: str) -> DeliveryStatus:
    if status not in VALID_DELIVERY_STATUSES:
        raise ValidationFailed(
            "Invalid delivery status",
            f"Status must be one of: {', '.join(VALID_DELIVERY_STATUSES)}",
        )
    return DeliveryStatus(status)


def delivery_earnings(order_value: Optional[float]) -> float:
    return round(BASE_DELIVERY_FEE + (order_value or 0) * ORDER_VALUE_SHARE, 2)


def serialize_driver(driver: DeliveryDriver) -> Dict[str, Any]:
    return {
        "id": driver.id,
        "name": driver.name,
        "phone": driver.phone,
        "email": driver.email,
        "vehicle_registration": driver.vehicle_registration,
        "license_number": driver.license_number,
        "supplier_id": driver.supplier_id,
        "is_active": bool(driver.is_active),
        "created_at": driver.created_at,
    }


def get_tracking(db: Session, order_id: int) -> Dict[str, Any]:
    tracking = (
        db.query(DeliveryTracking)
        .options(
            joinedload(DeliveryTracking.order).joinedload(PurchaseOrder.supplier),
            joinedload(DeliveryTracking.driver),
        )
        .filter(DeliveryTracking.order_id == order_id)
        .first()
    )
    if not tracking:
        raise NotFoundError("Delivery tracking not found for this order")
    order = tracking.order
    driver = tracking.driver
    return {
        "id": tracking.id,
        "order_id": tracking.order_id,
        "driver_id": tracking.driver_id,
        "status": tracking.status.value,
        "estimated_arrival": tracking.estimated_arrival,
        "actual_departure": tracking.actual_departure,
        "actual_arrival": tracking.actual_arrival,
        "current_latitude": tracking.current_latitude,
        "current_longitude": tracking.current_longitude,
        "last_location_update": tracking.last_location_update,
        "delivery_notes": tracking.delivery_notes,
        "order_date": order.order_date,
        "supplier_id": order.supplier_id,
        "total_cost": order.total_cost,
        "supplier_name": order.supplier.name if order.supplier else None,
        "supplier_address": order.supplier.address if order.supplier else None,
        "driver_name": driver.name,
        "driver_phone": driver.phone,
        "vehicle_registration": driver.vehicle_registration,
    }


def _mark_order_delivered(db: Session, order_id: int):
    order = db.get(PurchaseOrder, order_id)
    if order is not None:
        order_service.apply_order_status(db, order, OrderStatus.delivered)


def update_tracking(db: Session, order_id: int, driver_id: Optional[int], latitude: Optional[float] = None,
                    longitude: Optional[float] = None, status: Optional[str] = None,
                    delivery_notes: Optional[str] = None, departure_time=None, arrival_time=None) -> Dict[str, Any]:
    """Apply a driver's update; a ``delivered`` status also closes the purchase order."""
    if not driver_id:
        raise ValidationFailed("Driver ID is required")
    tracking = (
        db.query(DeliveryTracking)
        .filter(DeliveryTracking.order_id == order_id, DeliveryTracking.driver_id == driver_id)
        .first()
    )
    if not tracking:
        raise Forbidden("Driver not authorized for this order")

    new_status = parse_delivery_status(status) if status else None
    changed = False
    if latitude is not None and longitude is not None:
        tracking.current_latitude = latitude
        tracking.current_longitude = longitude
        tracking.last_location_update = _now()
        changed = True
    if new_status:
        tracking.status = new_status
        changed = True
    if delivery_notes:
        tracking.delivery_notes = delivery_notes
        changed = True
    if departure_time:
        tracking.actual_departure = departure_time
        changed = True
    if arrival_time:
        tracking.actual_arrival = arrival_time
        changed = True
    if changed:
        tracking.updated_at = _now()

    if new_status == DeliveryStatus.delivered:
        _mark_order_delivered(db, order_id)
    db.commit()
    logger.info(f"Tracking for order #{order_id} updated by driver #{driver_id} status={status or 'unchanged'}")
    return {
        "success": True,
        "message": "Tracking updated successfully",
        "orderId": order_id,
        "status": status or "updated",
    }


def assign_driver(db: Session, order_id: int, driver_id: Optional[int], estimated_arrival=None) -> Dict[str, Any]:
    """Upsert an ``assigned`` tracking row and confirm the order."""
    if not driver_id:
        raise ValidationFailed("Driver ID is required")
    order = db.get(PurchaseOrder, order_id)
    if not order:
        raise NotFoundError("Order not found")
    if not db.get(DeliveryDriver, driver_id):
        raise NotFoundError("Driver not found")

    tracking = db.query(DeliveryTracking).filter(DeliveryTracking.order_id == order_id).first()
    if tracking:
        tracking.driver_id = driver_id
        tracking.estimated_arrival = estimated_arrival
        tracking.status = DeliveryStatus.assigned
        tracking.updated_at = _now()
    else:
        db.add(DeliveryTracking(
            order_id=order_id,
            driver_id=driver_id,
            estimated_arrival=estimated_arrival,
            status=DeliveryStatus.assigned,
        ))
    order.status = OrderStatus.confirmed
    db.commit()
    logger.info(f"Order #{order_id} assigned to driver #{driver_id}")
    return {
        "success": True,
        "message": "Driver assigned successfully",
        "orderId": order_id,
        "driverId": driver_id,
    }


def list_drivers(db: Session, supplier_id: Optional[int] = None) -> List[Dict[str, Any]]:
    active = (
        db.query(DeliveryTracking.driver_id, func.count(DeliveryTracking.id).label("active"))
        .filter(DeliveryTracking.status.in_((DeliveryStatus.assigned, DeliveryStatus.in_transit)))
        .group_by(DeliveryTracking.driver_id)
        .subquery()
    )
    q = (
        db.query(DeliveryDriver, Supplier.name, active.c.active)
        .outerjoin(Supplier, DeliveryDriver.supplier_id == Supplier.id)
        .outerjoin(active, active.c.driver_id == DeliveryDriver.id)
    )
    if supplier_id is not None:
        q = q.filter(DeliveryDriver.supplier_id == supplier_id)
    drivers = []
    for driver, supplier_name, active_count in q.order_by(DeliveryDriver.name).all():
        data = serialize_driver(driver)
        data["supplier_name"] = supplier_name
        data["active_deliveries"] = active_count or 0
        drivers.append(data)
    return drivers


def create_driver(db: Session, name: Optional[str], phone: Optional[str], email: Optional[str] = None,
                  vehicle_registration: Optional[str] = None, license_number: Optional[str] = None,
                  supplier_id: Optional[int] = None) -> Dict[str, Any]:
    if not name or not phone:
        raise ValidationFailed("Name and phone are required")
    if supplier_id is not None and not db.get(Supplier, supplier_id):
        raise ValidationFailed("Invalid supplier ID")
    driver = DeliveryDriver(
        name=name,
        phone=phone,
        email=email,
        vehicle_registration=vehicle_registration,
        license_number=license_number,
        supplier_id=supplier_id,
    )
    db.add(driver)
    db.commit()
    db.refresh(driver)
    return serialize_driver(driver)


# --- driver-facing queries (agent tools) ---

def find_driver_for_email(db: Session, email: Optional[str]) -> DeliveryDriver:
    driver = db.query(DeliveryDriver).filter(DeliveryDriver.email == email).first() if email else None
    if not driver:
        raise NotFoundError(f"Driver record not found for email: {email}")
    return driver


def get_driver_deliveries(db: Session, driver: DeliveryDriver, status: Optional[str] = None) -> Dict[str, Any]:
    q = (
        db.query(DeliveryTracking)
        .options(joinedload(DeliveryTracking.order).joinedload(PurchaseOrder.tenant))
        .filter(DeliveryTracking.driver_id == driver.id)
    )
    if status:
        q = q.filter(DeliveryTracking.status == parse_delivery_status(status))
    rows = q.order_by(DeliveryTracking.created_at.desc(), DeliveryTracking.id.desc()).all()
    deliveries = []
    for d in rows:
        order = d.order
        tenant = order.tenant if order else None
        deliveries.append({
            "id": d.id,
            "order_id": d.order_id,
            "status": d.status.value,
            "order_status": order.status.value if order else None,
            "tenant_name": tenant.name if tenant else None,
            "delivery_address": tenant.address if tenant else None,
            "order_value": order.total_cost if order else None,
            "estimated_arrival": d.estimated_arrival,
            "estimated_earnings": delivery_earnings(order.total_cost if order else None),
        })
    return {
        "deliveries": deliveries,
        "total_count": len(deliveries),
        "active_count": sum(1 for d in rows if d.status in ACTIVE_DELIVERY_STATUSES),
    }


def update_driver_delivery_status(db: Session, driver: DeliveryDriver, delivery_id: int, status: str,
                                  notes: Optional[str] = None) -> Dict[str, Any]:
    new_status = parse_delivery_status(status)
    delivery = (
        db.query(DeliveryTracking)
        .filter(DeliveryTracking.id == delivery_id, DeliveryTracking.driver_id == driver.id)
        .first()
    )
    if not delivery:
        raise NotFoundError("Delivery not found or not assigned to you")
    now = _now()
    delivery.status = new_status
    if notes:
        delivery.delivery_notes = notes
    delivery.last_location_update = now
    delivery.updated_at = now
    if new_status == DeliveryStatus.delivered:
        delivery.actual_arrival = now
        _mark_order_delivered(db, delivery.order_id)
    db.commit()
    return {
        "delivery_id": delivery_id,
        "new_status": new_status.value,
        "updated_at": now.isoformat(),
        "message": f"Delivery {delivery_id} status updated to {new_status.value}",
    }


def get_driver_earnings(db: Session, driver: DeliveryDriver, period: str = "today") -> Dict[str, Any]:
    if period not in EARNING_PERIODS:
        raise ValidationFailed("Invalid period", f"Period must be one of: {', '.join(EARNING_PERIODS)}")
    today = _now().replace(hour=0, minute=0, second=0, microsecond=0)
    since = today - timedelta(days=EARNING_PERIODS[period])
    rows = (
        db.query(DeliveryTracking)
        .options(joinedload(DeliveryTracking.order))
        .filter(DeliveryTracking.driver_id == driver.id, DeliveryTracking.created_at >= since)
        .all()
    )
    completed = [d for d in rows if d.status == DeliveryStatus.delivered]
    total = sum(delivery_earnings(d.order.total_cost if d.order else None) for d in completed)
    return {
        "period": period,
        "completed_deliveries": len(completed),
        "total_deliveries": len(rows),
        "total_earnings": f"{total:.2f}",
        "earnings_per_delivery": f"{total / len(completed):.2f}" if completed else "0.00",
    }
