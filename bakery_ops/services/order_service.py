"""Purchase orders, suppliers and storefront orders."""
import json
from collections import OrderedDict
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from ..app.errors import NotFoundError, ValidationFailed
from ..data.models import (
    CustomerOrder, CustomerOrderItem, DeliveryDriver, DeliveryStatus, DeliveryTracking, OrderApiLog,
    OrderItem, OrderStatus, Product, PurchaseOrder, Supplier,
)
from ..utils.logger import get_logger
from .product_service import enrich_product, predict_stockout

logger = get_logger()

VALID_STATUSES = [s.value for s in OrderStatus]
OPEN_EXCLUDED = (OrderStatus.delivered, OrderStatus.cancelled)


def parse_status(status: Optional[str]) -> OrderStatus:
    if not status:
        raise ValidationFailed("Status is required")
    if status not in VALID_STATUSES:
        raise ValidationFailed("Invalid status", f"Status must be one of: {', '.join(VALID_STATUSES)}")
    return OrderStatus(status)


def serialize_supplier(supplier: Optional[Supplier]) -> Optional[Dict[str, Any]]:
    if supplier is None:
        return None
    return {
        "id": supplier.id,
        "name": supplier.name,
        "contact": supplier.contact,
        "lead_time": supplier.lead_time,
        "mcp_id": supplier.mcp_id,
        "email": supplier.email,
        "phone": supplier.phone,
        "address": supplier.address,
        "kosher_certified": bool(supplier.kosher_certified),
        "delivery_schedule": supplier.delivery_schedule,
        "minimum_order": supplier.minimum_order,
    }


def serialize_order(order: PurchaseOrder, with_items: bool = False) -> Dict[str, Any]:
    data = {
        "id": order.id,
        "order_date": order.order_date,
        "supplier_id": order.supplier_id,
        "tenant_id": order.tenant_id,
        "status": order.status.value,
        "expected_delivery": order.expected_delivery,
        "total_cost": order.total_cost,
        "notes": order.notes,
        "supplier_name": order.supplier.name if order.supplier else None,
        "supplier": serialize_supplier(order.supplier),
        "delivery_status": order.tracking.status.value if order.tracking else None,
    }
    if with_items:
        data["items"] = [
            {
                "id": item.id,
                "order_id": item.order_id,
                "product_id": item.product_id,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "product_name": item.product.name if item.product else None,
                "unit": item.product.unit if item.product else None,
            }
            for item in order.items
        ]
    return data


def _order_query(db: Session):
    return db.query(PurchaseOrder).options(
        joinedload(PurchaseOrder.supplier),
        joinedload(PurchaseOrder.tracking),
    )


def get_all_orders(db: Session, status: Optional[str] = None, limit: Optional[int] = None,
                   tenant_id: Optional[int] = None, supplier_id: Optional[int] = None) -> List[Dict[str, Any]]:
    q = _order_query(db)
    if status:
        q = q.filter(PurchaseOrder.status == parse_status(status))
    if tenant_id is not None:
        q = q.filter(PurchaseOrder.tenant_id == tenant_id)
    if supplier_id is not None:
        q = q.filter(PurchaseOrder.supplier_id == supplier_id)
    q = q.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc())
    if limit:
        q = q.limit(limit)
    return [serialize_order(o) for o in q.all()]


def get_order(db: Session, order_id: int) -> PurchaseOrder:
    order = (
        _order_query(db)
        .options(joinedload(PurchaseOrder.items).joinedload(OrderItem.product))
        .filter(PurchaseOrder.id == order_id)
        .first()
    )
    if not order:
        raise NotFoundError("Order not found")
    return order


def get_order_by_id(db: Session, order_id: int) -> Dict[str, Any]:
    return serialize_order(get_order(db, order_id), with_items=True)


def get_pending_orders(db: Session) -> List[Dict[str, Any]]:
    orders = (
        _order_query(db)
        .filter(PurchaseOrder.status.notin_(OPEN_EXCLUDED))
        .order_by(PurchaseOrder.expected_delivery.asc())
        .all()
    )
    return [serialize_order(o) for o in orders]


def create_order(db: Session, supplier_id: int, items: List[Dict[str, Any]],
                 notes: Optional[str] = None, tenant_id: Optional[int] = None) -> Dict[str, Any]:
    """Create a pending purchase order priced from the current catalogue."""
    if not items:
        raise ValidationFailed("Invalid request body", "An order needs at least one item")
    supplier = db.get(Supplier, supplier_id)
    if not supplier:
        raise NotFoundError("Supplier not found")

    order_date = date.today()
    order = PurchaseOrder(
        order_date=order_date,
        supplier_id=supplier_id,
        tenant_id=tenant_id,
        status=OrderStatus.pending,
        expected_delivery=order_date + timedelta(days=supplier.lead_time or 0),
        notes=notes or "",
    )
    total_cost = 0.0
    for item in items:
        product_id = item.get("product_id")
        quantity = item.get("quantity")
        if not product_id or not quantity or quantity <= 0:
            raise ValidationFailed(
                "Invalid item in order",
                "Each item must have a product_id and a positive quantity",
            )
        product = db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product not found", f"Product {product_id} does not exist")
        total_cost += product.price * quantity
        order.items.append(OrderItem(product_id=product_id, quantity=quantity, unit_price=product.price))
    order.total_cost = total_cost

    db.add(order)
    db.commit()
    logger.info(f"Created purchase order #{order.id} for supplier #{supplier_id} total={total_cost:.2f}")
    return get_order_by_id(db, order.id)


def _receive_delivery(db: Session, order: PurchaseOrder):
    """Book delivered quantities into stock."""
    today = date.today()
    for item in order.items:
        product = item.product
        product.current_stock = product.current_stock + item.quantity
        product.last_delivery = today
        new_stockout = predict_stockout(product.current_stock, product.consumption_rate, today)
        if new_stockout:
            product.predicted_stockout = new_stockout


def apply_order_status(db: Session, order: PurchaseOrder, new_status: OrderStatus) -> OrderStatus:
    """Set the status; only the first move into ``delivered`` books the items into stock."""
    previous = order.status
    order.status = new_status
    if new_status == OrderStatus.delivered and previous != OrderStatus.delivered:
        _receive_delivery(db, order)
    return previous


def update_order_status(db: Session, order_id: int, status: Optional[str],
                        notes: Optional[str] = None) -> Dict[str, Any]:
    new_status = parse_status(status)
    order = get_order(db, order_id)
    if notes is not None:
        order.notes = notes
    previous = apply_order_status(db, order, new_status)
    db.commit()
    logger.info(f"Order #{order_id} status {previous.value} -> {new_status.value}")
    return get_order_by_id(db, order_id)


def get_all_suppliers(db: Session) -> List[Dict[str, Any]]:
    return [serialize_supplier(s) for s in db.query(Supplier).order_by(Supplier.name).all()]


def get_supplier_by_id(db: Session, supplier_id: int) -> Dict[str, Any]:
    supplier = db.get(Supplier, supplier_id)
    if not supplier:
        raise NotFoundError("Supplier not found")
    return serialize_supplier(supplier)


def get_supplier_performance(db: Session, supplier_id: Optional[int] = None) -> Dict[str, Any]:
    """Order history per supplier, scored by the share of orders delivered."""
    q = db.query(Supplier).options(joinedload(Supplier.products))
    if supplier_id is not None:
        q = q.filter(Supplier.id == supplier_id)
    suppliers = q.order_by(Supplier.name).all()
    if supplier_id is not None and not suppliers:
        raise NotFoundError("Supplier not found")

    performance = []
    for supplier in suppliers:
        orders = db.query(PurchaseOrder).filter(PurchaseOrder.supplier_id == supplier.id).all()
        delivered = sum(1 for o in orders if o.status == OrderStatus.delivered)
        total_spent = sum(o.total_cost or 0 for o in orders)
        delivery_rate = round(delivered / len(orders) * 100, 1) if orders else 0.0
        if delivery_rate >= 95:
            reliability = "excellent"
        elif delivery_rate >= 85:
            reliability = "good"
        else:
            reliability = "needs_improvement"
        performance.append({
            "supplier": serialize_supplier(supplier),
            "stats": {
                "total_orders": len(orders),
                "delivered_orders": delivered,
                "pending_orders": sum(1 for o in orders if o.status == OrderStatus.pending),
                "total_spent": total_spent,
                "avg_order_value": total_spent / len(orders) if orders else 0.0,
                "product_count": len(supplier.products),
                "delivery_rate": delivery_rate,
                "reliability_score": reliability,
            },
        })
    return {
        "supplier_performance": performance,
        "recommendations": [
            f"Consider discussing delivery improvements with {p['supplier']['name']}"
            for p in performance
            if p["stats"]["total_orders"] and p["stats"]["delivery_rate"] < 90
        ],
    }


def generate_recommended_order(db: Session) -> Dict[int, List[Dict[str, Any]]]:
    """Low-stock products grouped by supplier with the quantity to reach optimal stock."""
    products = (
        db.query(Product)
        .options(joinedload(Product.supplier))
        .join(Supplier, Product.supplier_id == Supplier.id)
        .filter(Product.current_stock <= Product.reorder_point)
        .order_by(Supplier.name, Product.name)
        .all()
    )
    recommendations: Dict[int, List[Dict[str, Any]]] = OrderedDict()
    for product in products:
        recommendations.setdefault(product.supplier_id, []).append({
            "product": enrich_product(product),
            "quantity": product.optimal_stock - product.current_stock,
        })
    return recommendations


def get_supplier_orders(db: Session, supplier_id: int) -> List[Dict[str, Any]]:
    orders = (
        _order_query(db)
        .options(
            joinedload(PurchaseOrder.items).joinedload(OrderItem.product),
            joinedload(PurchaseOrder.tracking).joinedload(DeliveryTracking.driver),
        )
        .filter(PurchaseOrder.supplier_id == supplier_id)
        .order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc())
        .all()
    )
    result = []
    for order in orders:
        data = serialize_order(order, with_items=True)
        tracking = order.tracking
        data.update({
            "current_latitude": tracking.current_latitude if tracking else None,
            "current_longitude": tracking.current_longitude if tracking else None,
            "estimated_arrival": tracking.estimated_arrival if tracking else None,
            "actual_departure": tracking.actual_departure if tracking else None,
            "actual_arrival": tracking.actual_arrival if tracking else None,
            "driver_name": tracking.driver.name if tracking and tracking.driver else None,
            "driver_phone": tracking.driver.phone if tracking and tracking.driver else None,
        })
        result.append(data)
    return result


def log_order_api_call(db: Session, order_id: int, endpoint: str, payload: Dict[str, Any], status_code: int):
    db.add(OrderApiLog(
        order_id=order_id,
        api_endpoint=endpoint,
        request_payload=json.dumps(payload, default=str),
        status_code=status_code,
    ))
    db.commit()


def log_failed_order_api_call(db: Session, order_id: Optional[int], endpoint: str,
                              payload: Dict[str, Any], status_code: int):
    if order_id and db.get(PurchaseOrder, order_id) is not None:
        log_order_api_call(db, order_id, endpoint, payload, status_code)


def supplier_update_order(db: Session, supplier_id: int, order_id: Optional[int], status: Optional[str],
                          estimated_delivery=None, driver_id: Optional[int] = None,
                          notes: Optional[str] = None) -> Dict[str, Any]:
    """Status webhook for a supplier's own order; mirrors progress into delivery tracking."""
    if not order_id or not status:
        raise ValidationFailed("Order ID and status are required")
    new_status = parse_status(status)
    order = (
        db.query(PurchaseOrder)
        .filter(PurchaseOrder.id == order_id, PurchaseOrder.supplier_id == supplier_id)
        .first()
    )
    if not order:
        raise NotFoundError("Order not found")
    if driver_id and not db.get(DeliveryDriver, driver_id):
        raise NotFoundError("Driver not found")

    apply_order_status(db, order, new_status)
    if notes is not None:
        order.notes = notes

    if new_status in (OrderStatus.confirmed, OrderStatus.shipped):
        tracking_status = DeliveryStatus.in_transit if new_status == OrderStatus.shipped else DeliveryStatus.assigned
        tracking = order.tracking
        if tracking:
            tracking.status = tracking_status
            tracking.estimated_arrival = estimated_delivery
            if driver_id:
                tracking.driver_id = driver_id
        elif driver_id:
            db.add(DeliveryTracking(
                order_id=order_id,
                driver_id=driver_id,
                status=tracking_status,
                estimated_arrival=estimated_delivery,
            ))
    db.commit()
    return {
        "success": True,
        "message": "Order status updated successfully",
        "orderId": order_id,
        "status": new_status.value,
    }


def create_customer_order(db: Session, customer_info: Optional[Dict[str, Any]], items: List[Dict[str, Any]],
                          total_amount: Optional[float], notes: Optional[str] = None) -> int:
    if not customer_info or not items:
        raise ValidationFailed("Customer info and items are required")
    if total_amount is None:
        total_amount = sum(i["price"] * i["quantity"] for i in items)
    order = CustomerOrder(
        customer_name=customer_info["name"],
        customer_email=customer_info["email"],
        customer_phone=customer_info["phone"],
        delivery_address=customer_info["address"],
        total_amount=total_amount,
        notes=notes or "",
        status="pending",
    )
    for item in items:
        if not db.get(Product, item["product_id"]):
            raise NotFoundError("Product not found", f"Product {item['product_id']} does not exist")
        order.items.append(CustomerOrderItem(
            product_id=item["product_id"],
            quantity=item["quantity"],
            price_per_unit=item["price"],
        ))
    db.add(order)
    db.commit()
    logger.info(f"Customer order #{order.id} placed total={total_amount:.2f}")
    return order.id
