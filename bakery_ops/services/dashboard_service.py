"""Dashboard aggregates and owner-facing business insights."""
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..data.models import OrderStatus, Product, PurchaseOrder
from . import order_service, product_service


def get_dashboard(db: Session) -> Dict[str, Any]:
    alerts = product_service.get_stock_alerts(db)
    pending_orders = order_service.get_pending_orders(db)
    trends = product_service.get_consumption_trends(db)

    critical_alerts = sum(1 for a in alerts if a["priority"] == "high")
    stock_out_risk = sum(1 for a in alerts if 0 < a["product"]["days_until_stockout"] < 3)
    expected_deliveries = sum(1 for o in pending_orders if o["status"] in ("shipped", "confirmed"))

    return {
        "alerts": alerts,
        "pendingOrders": pending_orders,
        "trends": trends,
        "stats": {
            "criticalAlerts": critical_alerts,
            "stockOutRisk": stock_out_risk,
            "pendingOrders": len(pending_orders),
            "expectedDeliveries": expected_deliveries,
        },
    }


def get_business_data(db: Session, tenant_id: Optional[int] = None) -> Dict[str, Any]:
    products = db.query(Product)
    orders = db.query(PurchaseOrder)
    if tenant_id is not None:
        products = products.filter(Product.tenant_id == tenant_id)
        orders = orders.filter(PurchaseOrder.tenant_id == tenant_id)

    product_count = products.count()
    low_stock_count = products.filter(Product.current_stock <= Product.reorder_point).count()
    pending_orders = orders.filter(PurchaseOrder.status == OrderStatus.pending).count()
    inventory_value = products.with_entities(
        func.coalesce(func.sum(Product.current_stock * Product.price), 0)
    ).scalar() or 0
    top_products = (
        products
        .filter(Product.daily_usage > 0)
        .order_by(Product.daily_usage.desc())
        .limit(5)
        .all()
    )
    return {
        "productCount": product_count,
        "lowStockCount": low_stock_count,
        "pendingOrders": pending_orders,
        "totalInventoryValue": float(inventory_value),
        "topProducts": [
            {
                "name": p.name,
                "daily_usage": p.daily_usage,
                "current_stock": p.current_stock,
                "reorder_point": p.reorder_point,
            }
            for p in top_products
        ],
        "recentOrders": order_service.get_all_orders(db, limit=5, tenant_id=tenant_id),
    }


def generate_business_insights(message: str, data: Dict[str, Any]) -> List[Dict[str, str]]:
    insights = []
    text = (message or "").lower()

    if any(w in text for w in ("performance", "sales", "today")):
        insights.append({
            "type": "metric",
            "title": "Inventory Value",
            "value": f"£{data['totalInventoryValue']:,.2f}",
            "description": "Current total value of your inventory",
            "action": "View detailed breakdown",
        })

    if any(w in text for w in ("stock", "inventory", "reorder")) and data["lowStockCount"] > 0:
        insights.append({
            "type": "alert",
            "title": "Low Stock Alert",
            "value": f"{data['lowStockCount']} items",
            "description": "Products below reorder point need immediate attention",
            "action": "Create reorder list",
        })

    if any(w in text for w in ("order", "supplier")) and data["pendingOrders"] > 0:
        insights.append({
            "type": "recommendation",
            "title": "Pending Orders",
            "value": f"{data['pendingOrders']} orders",
            "description": "Orders awaiting supplier confirmation or delivery",
            "action": "Review pending orders",
        })

    if any(w in text for w in ("trend", "popular", "top")) and data["topProducts"]:
        top = data["topProducts"][0]
        insights.append({
            "type": "metric",
            "title": "Top Consumed Product",
            "value": top["name"],
            "description": f"Daily usage: {top['daily_usage']} units",
            "action": "View consumption analysis",
        })

    return insights
