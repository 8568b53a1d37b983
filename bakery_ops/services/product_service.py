"""Product and inventory queries shared by the HTTP routes and agent tools."""
import difflib
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ..app.errors import NotFoundError, ValidationFailed
from ..data.models import ConsumptionRecord, Product
from ..utils.logger import get_logger

logger = get_logger()

CRITICAL_RATIO = 0.5
MEDIUM_RATIO = 0.75
TREND_THRESHOLD = 10.0
OVERSTOCK_RATIO = 1.5
HEALTH_ORDER = {"critical": 0, "low": 1, "overstocked": 2, "healthy": 3}
FRESH_STORAGE = ("refrigerated", "frozen")
BUDGET_RANGES = {"low": (None, 5), "medium": (5, 15), "high": (15, None)}


def stock_status(product: Product) -> str:
    if product.current_stock <= product.reorder_point * CRITICAL_RATIO:
        return "critical"
    if product.current_stock <= product.reorder_point:
        return "low"
    return "ok"


def days_until_stockout(product: Product, today: Optional[date] = None) -> int:
    if not product.predicted_stockout:
        return 0
    today = today or date.today()
    return max(0, (product.predicted_stockout - today).days)


def predict_stockout(current_stock: float, consumption_rate: Optional[float], today: Optional[date] = None) -> Optional[date]:
    """Date stock runs out at the baseline rate, or None when nothing is consumed."""
    if not consumption_rate or consumption_rate <= 0:
        return None
    today = today or date.today()
    return today + timedelta(days=int(max(current_stock, 0) // consumption_rate))


def enrich_product(product: Product) -> Dict[str, Any]:
    supplier = product.supplier
    return {
        "id": product.id,
        "name": product.name,
        "category": product.category,
        "current_stock": product.current_stock,
        "unit": product.unit,
        "reorder_point": product.reorder_point,
        "optimal_stock": product.optimal_stock,
        "supplier_id": product.supplier_id,
        "tenant_id": product.tenant_id,
        "last_delivery": product.last_delivery,
        "consumption_rate": product.consumption_rate,
        "predicted_stockout": product.predicted_stockout,
        "price": product.price,
        "description": product.description,
        "image_url": product.image_url,
        "daily_usage": product.daily_usage,
        "order_quantity": product.order_quantity,
        "lead_time": product.lead_time,
        "lead_time_unit": product.lead_time_unit,
        "kosher_certified": bool(product.kosher_certified),
        "storage_temp": product.storage_temp,
        "shelf_life_days": product.shelf_life_days,
        "supplier": {
            "id": supplier.id,
            "name": supplier.name,
            "lead_time": supplier.lead_time,
        } if supplier else None,
        "stock_status": stock_status(product),
        "days_until_stockout": days_until_stockout(product),
    }


def _base_query(db: Session):
    return db.query(Product).options(joinedload(Product.supplier))


def get_all_products(db: Session, tenant_id: Optional[int] = None) -> List[Dict[str, Any]]:
    q = _base_query(db)
    if tenant_id is not None:
        q = q.filter(Product.tenant_id == tenant_id)
    return [enrich_product(p) for p in q.order_by(Product.name).all()]


def get_product(db: Session, product_id: int) -> Product:
    product = _base_query(db).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError("Product not found")
    return product


def get_product_by_id(db: Session, product_id: int) -> Dict[str, Any]:
    return enrich_product(get_product(db, product_id))


def get_products_by_category(db: Session, category: str) -> List[Dict[str, Any]]:
    products = (
        _base_query(db)
        .filter(func.lower(Product.category) == category.lower())
        .order_by(Product.name)
        .all()
    )
    return [enrich_product(p) for p in products]


def get_product_categories(db: Session) -> List[str]:
    rows = db.query(Product.category).distinct().order_by(Product.category).all()
    return [r[0] for r in rows]


def get_low_stock_products(db: Session, tenant_id: Optional[int] = None) -> List[Dict[str, Any]]:
    """Products at or below their reorder point, most depleted first."""
    q = _base_query(db).filter(Product.current_stock <= Product.reorder_point)
    if tenant_id is not None:
        q = q.filter(Product.tenant_id == tenant_id)
    products = q.all()
    products.sort(key=lambda p: (p.current_stock / p.reorder_point) if p.reorder_point else 0)
    return [enrich_product(p) for p in products]


def get_stock_alerts(db: Session) -> List[Dict[str, Any]]:
    alerts = []
    for product in get_low_stock_products(db):
        reorder_point = product["reorder_point"]
        percent = (product["current_stock"] / reorder_point * 100) if reorder_point else 0
        if percent <= CRITICAL_RATIO * 100:
            priority = "high"
            message = (
                f"Critical: {product['name']} is at {percent:.0f}% of reorder point. "
                f"Predicted stockout by {product['predicted_stockout']}."
            )
        elif percent <= MEDIUM_RATIO * 100:
            priority = "medium"
            message = f"Warning: {product['name']} is below reorder point. Consider restocking soon."
        else:
            priority = "low"
            message = f"{product['name']} is near reorder point."
        alerts.append({
            "product": product,
            "message": message,
            "priority": priority,
            "recommended_order_quantity": product["optimal_stock"] - product["current_stock"],
        })
    return alerts


def get_consumption_trends(db: Session, days: int = 7) -> List[Dict[str, Any]]:
    since = date.today() - timedelta(days=days)
    rows = (
        db.query(
            ConsumptionRecord.product_id,
            Product.name,
            Product.consumption_rate,
            func.avg(ConsumptionRecord.quantity),
        )
        .join(Product, ConsumptionRecord.product_id == Product.id)
        .filter(ConsumptionRecord.record_date >= since)
        .group_by(ConsumptionRecord.product_id, Product.name, Product.consumption_rate)
        .all()
    )
    trends = []
    for product_id, name, baseline, avg_daily in rows:
        trend_percentage = ((avg_daily / baseline) - 1) * 100 if baseline else 0.0
        if trend_percentage > TREND_THRESHOLD:
            direction = "increasing"
        elif trend_percentage < -TREND_THRESHOLD:
            direction = "decreasing"
        else:
            direction = "stable"
        trends.append({
            "product_id": product_id,
            "product_name": name,
            "avg_daily_consumption": avg_daily,
            "trend_percentage": trend_percentage,
            "trend_direction": direction,
        })
    return trends


def update_product_stock(db: Session, product_id: int, new_stock: float) -> Dict[str, Any]:
    product = get_product(db, product_id)
    product.current_stock = new_stock
    product.predicted_stockout = predict_stockout(new_stock, product.consumption_rate)
    db.commit()
    db.refresh(product)
    logger.info(f"Stock for product #{product_id} set to {new_stock}")
    return enrich_product(product)


def record_consumption(db: Session, product_id: int, quantity: float, notes: Optional[str] = None) -> Dict[str, Any]:
    product = get_product(db, product_id)
    if quantity <= 0:
        raise ValidationFailed("Quantity must be positive")
    if product.current_stock < quantity:
        raise ValidationFailed("Not enough stock available")

    db.add(ConsumptionRecord(
        record_date=date.today(),
        product_id=product_id,
        quantity=quantity,
        notes=notes or "Daily usage",
    ))
    product.current_stock = product.current_stock - quantity
    new_stockout = predict_stockout(product.current_stock, product.consumption_rate)
    if new_stockout:
        product.predicted_stockout = new_stockout
    db.commit()
    db.refresh(product)
    logger.info(f"Recorded consumption of {quantity} {product.unit} for product #{product_id}")
    return enrich_product(product)


def _catalogue_entry(p: Product) -> Dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "category": p.category,
        "price": p.price,
        "unit": p.unit,
        "description": p.description,
        "kosher_certified": bool(p.kosher_certified),
        "supplier_name": p.supplier.name if p.supplier else None,
    }


def search_products(db: Session, query: str = "", category: Optional[str] = None,
                    kosher_only: bool = False, limit: int = 20) -> Dict[str, Any]:
    q = _base_query(db).filter(Product.current_stock > 0)
    if query:
        term = f"%{query}%"
        q = q.filter(or_(
            Product.name.ilike(term),
            Product.description.ilike(term),
            Product.category.ilike(term),
        ))
    if category:
        q = q.filter(func.lower(Product.category) == category.lower())
    if kosher_only:
        q = q.filter(Product.kosher_certified.is_(True))
    products = q.order_by(Product.name).limit(limit).all()
    return {
        "products": [_catalogue_entry(p) for p in products],
        "count": len(products),
        "query": query,
    }


def check_product_availability(db: Session, product_names: List[str], cutoff: float = 0.6) -> Dict[str, Any]:
    """Match requested names against the catalogue and report stock for each."""
    products = db.query(Product).all()
    by_name = {p.name.lower(): p for p in products}
    results = []
    for requested in product_names:
        wanted = (requested or "").strip().lower()
        match = None
        for name, product in by_name.items():
            if wanted and wanted in name:
                match = product
                break
        if match is None:
            close = difflib.get_close_matches(wanted, list(by_name), n=1, cutoff=cutoff)
            match = by_name[close[0]] if close else None
        if match is None:
            results.append({"requested": requested, "found": False})
            continue
        results.append({
            "requested": requested,
            "found": True,
            "product_id": match.id,
            "name": match.name,
            "in_stock": match.current_stock > 0,
            "current_stock": match.current_stock,
            "unit": match.unit,
            "price": match.price,
        })
    return {"availability": results}


def recommend_products(db: Session, preferences: Optional[List[str]] = None,
                       budget_range: Optional[str] = None, limit: int = 10) -> Dict[str, Any]:
    """In-stock products matching any preference, most used first."""
    q = _base_query(db).filter(Product.current_stock > 0)
    terms = [p for p in (preferences or []) if p]
    if terms:
        q = q.filter(or_(*[
            or_(Product.category.ilike(f"%{t}%"), Product.name.ilike(f"%{t}%"), Product.description.ilike(f"%{t}%"))
            for t in terms
        ]))
    if budget_range:
        if budget_range not in BUDGET_RANGES:
            raise ValidationFailed("Invalid budget range", f"Budget must be one of: {', '.join(BUDGET_RANGES)}")
        low, high = BUDGET_RANGES[budget_range]
        if low is not None:
            q = q.filter(Product.price > low)
        if high is not None:
            q = q.filter(Product.price <= high)
    products = q.order_by(Product.daily_usage.desc(), Product.price.asc()).limit(limit).all()
    return {
        "products": [_catalogue_entry(p) for p in products],
        "count": len(products),
        "message": f"Here are {len(products)} products recommended for you based on your preferences.",
    }


def get_fresh_products(db: Session, min_shelf_life: int = 3, limit: int = 15) -> Dict[str, Any]:
    """Chilled or frozen stock with at least ``min_shelf_life`` days left on the shelf."""
    products = (
        _base_query(db)
        .filter(
            Product.current_stock > 0,
            Product.shelf_life_days >= min_shelf_life,
            Product.storage_temp.in_(FRESH_STORAGE),
        )
        .order_by(Product.shelf_life_days.desc(), Product.name)
        .limit(limit)
        .all()
    )
    entries = []
    for p in products:
        entry = _catalogue_entry(p)
        entry["shelf_life_days"] = p.shelf_life_days
        entry["storage_temp"] = p.storage_temp
        entries.append(entry)
    return {
        "products": entries,
        "count": len(entries),
        "message": f"Found {len(entries)} fresh products with at least {min_shelf_life} days shelf life.",
    }


def inventory_health(product: Product) -> str:
    if product.current_stock <= product.reorder_point * CRITICAL_RATIO:
        return "critical"
    if product.current_stock <= product.reorder_point:
        return "low"
    if product.optimal_stock and product.current_stock > product.optimal_stock * OVERSTOCK_RATIO:
        return "overstocked"
    return "healthy"


def analyze_inventory_health(db: Session, tenant_id: Optional[int] = None) -> Dict[str, Any]:
    q = _base_query(db)
    if tenant_id is not None:
        q = q.filter(Product.tenant_id == tenant_id)
    products = q.order_by(Product.name).all()

    stock_analysis = []
    categories: Dict[str, Dict[str, Any]] = {}
    for p in products:
        health = inventory_health(p)
        stock_analysis.append({
            "name": p.name,
            "category": p.category,
            "current_stock": p.current_stock,
            "reorder_point": p.reorder_point,
            "optimal_stock": p.optimal_stock,
            "health_status": health,
            "days_remaining": round(p.current_stock / p.daily_usage, 1) if p.daily_usage else None,
        })
        category = categories.setdefault(p.category, {
            "category": p.category, "total_products": 0, "low_stock_items": 0, "stock_value": 0.0,
        })
        category["total_products"] += 1
        category["stock_value"] += p.current_stock * (p.price or 0)
        if p.current_stock <= p.reorder_point:
            category["low_stock_items"] += 1
    stock_analysis.sort(key=lambda item: HEALTH_ORDER[item["health_status"]])

    counts = {status: sum(1 for item in stock_analysis if item["health_status"] == status) for status in HEALTH_ORDER}
    issues, recommendations = [], []
    if counts["critical"]:
        issues.append(f"{counts['critical']} items at critical stock levels")
        recommendations.append("Immediate reordering required for critical items")
    if counts["low"] > 5:
        issues.append(f"{counts['low']} items below reorder point")
        recommendations.append("Review and optimize reorder points")
    if counts["overstocked"]:
        issues.append(f"{counts['overstocked']} items overstocked")
        recommendations.append("Consider reducing order quantities for overstocked items")

    if not issues:
        overall = "excellent"
    elif len(issues) <= 2:
        overall = "good"
    else:
        overall = "needs_attention"
    return {
        "stock_analysis": stock_analysis,
        "category_breakdown": sorted(categories.values(), key=lambda c: -c["low_stock_items"]),
        "issues": issues,
        "recommendations": recommendations,
        "overall_health": overall,
    }
