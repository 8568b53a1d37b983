"""User registration, login and admin-level tenant views."""
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..app.errors import Conflict, Unauthorized, ValidationFailed
from ..data.models import ClientAddress, CustomerOrder, PurchaseOrder, Supplier, Tenant, User, UserRole
from ..schemas.io_models import CurrentUser
from ..utils.logger import get_logger
from ..utils.security import VALID_ROLES, hash_password, mask_pii, verify_password

logger = get_logger()

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8

# Used when a client registers an address without coordinates
DEFAULT_LATITUDE = 51.5072
DEFAULT_LONGITUDE = -0.1276


def to_current_user(user: User) -> CurrentUser:
    return CurrentUser(
        id=user.id,
        email=user.email,
        name=user.full_name,
        role=user.role.value,
        supplier_id=user.supplier_id,
        tenant_id=user.tenant_id,
    )


def register_user(db: Session, email: Optional[str], password: Optional[str], full_name: Optional[str],
                  role: Optional[str], phone: Optional[str] = None, supplier_id: Optional[int] = None,
                  tenant_id: Optional[int] = None, address: Optional[Dict[str, Any]] = None) -> User:
    if not email or not password or not full_name or not role:
        raise ValidationFailed("Missing required fields")
    if not EMAIL_RE.match(email):
        raise ValidationFailed("Invalid email format")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if role not in VALID_ROLES:
        raise ValidationFailed("Invalid role")
    if role in ("supplier", "driver") and not supplier_id:
        raise ValidationFailed("Supplier ID is required for supplier and driver roles")

    if db.query(User).filter(User.email == email).first():
        raise Conflict("User with this email already exists")
    if supplier_id and not db.get(Supplier, supplier_id):
        raise ValidationFailed("Invalid supplier ID")
    if tenant_id and not db.get(Tenant, tenant_id):
        raise ValidationFailed("Invalid tenant ID")

    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        phone=phone,
        role=UserRole(role),
        supplier_id=supplier_id,
        tenant_id=tenant_id,
        is_active=True,
    )
    if role == "client" and address:
        user.addresses.append(ClientAddress(
            address_label=address.get("label") or "Home",
            street_address=address["street_address"],
            city=address.get("city"),
            postcode=address.get("postcode"),
            latitude=address.get("latitude") or DEFAULT_LATITUDE,
            longitude=address.get("longitude") or DEFAULT_LONGITUDE,
            is_default=True,
            delivery_instructions=address.get("delivery_instructions"),
        ))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered {role} user #{user.id} {mask_pii(email)}")
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(password, user.password_hash):
        logger.warning(f"Login failed for {mask_pii(email)}")
        raise Unauthorized("Invalid email or password")
    if not user.is_active:
        raise Unauthorized("Account is disabled")
    user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def list_tenants(db: Session) -> List[Dict[str, Any]]:
    user_counts = dict(
        db.query(User.tenant_id, func.count(User.id))
        .filter(User.is_active.is_(True))
        .group_by(User.tenant_id)
        .all()
    )
    tenants = (
        db.query(Tenant)
        .filter(Tenant.is_active.is_(True))
        .order_by(Tenant.created_at.desc(), Tenant.id.desc())
        .all()
    )
    result = []
    for tenant in tenants:
        result.append({
            "id": str(tenant.id),
            "name": tenant.name,
            "type": "restaurant" if tenant.type == "bakery" else tenant.type,
            "status": "active" if tenant.subscription_status == "active" else "inactive",
            "users": user_counts.get(tenant.id, 0),
            "orders": len(tenant.orders),
            "address": tenant.address,
        })
    return result


def get_system_metrics(db: Session) -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    total_users = db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0
    active_users = (
        db.query(func.count(User.id))
        .filter(User.is_active.is_(True), User.last_login >= now - timedelta(days=7))
        .scalar() or 0
    )
    active_tenants = db.query(func.count(Tenant.id)).filter(Tenant.is_active.is_(True)).scalar() or 0
    orders_today = (
        db.query(func.count(CustomerOrder.id)).filter(CustomerOrder.order_date >= start_of_day).scalar() or 0
    )
    revenue_today = (
        db.query(func.coalesce(func.sum(CustomerOrder.total_amount), 0))
        .filter(CustomerOrder.order_date >= start_of_day, CustomerOrder.status == "completed")
        .scalar() or 0
    )
    return {
        "totalUsers": {"value": str(total_users), "label": "Total Users"},
        "activeUsers": {"value": str(active_users), "label": "Active Users (7 days)"},
        "activeTenants": {"value": str(active_tenants), "label": "Active Tenants"},
        "totalRevenue": {"value": f"£{revenue_today / 1000:.1f}K", "label": "Revenue Today"},
        "ordersToday": {"value": str(orders_today), "label": "Orders Today"},
    }


ANALYTICS_PERIODS = {"today": 0, "week": 7, "month": 30, "quarter": 90}


def get_tenant_overview(db: Session, status: Optional[str] = None, limit: int = 50) -> Dict[str, Any]:
    tenants = list_tenants(db)
    if status:
        tenants = [t for t in tenants if t["status"] == status]
    tenants = tenants[:limit]
    return {
        "summary": {
            "total_tenants": len(tenants),
            "active_tenants": sum(1 for t in tenants if t["status"] == "active"),
            "total_users": sum(t["users"] for t in tenants),
            "total_orders": sum(t["orders"] for t in tenants),
        },
        "tenants": tenants,
    }


def get_system_analytics(db: Session, period: str = "week") -> Dict[str, Any]:
    """Platform usage since the start of ``period``."""
    if period not in ANALYTICS_PERIODS:
        raise ValidationFailed("Invalid period", f"Period must be one of: {', '.join(ANALYTICS_PERIODS)}")
    days = ANALYTICS_PERIODS[period]
    now = datetime.now(timezone.utc)
    start = now.replace(hour=0, minute=0, second=0, microsecond=0) - timedelta(days=days)

    active_users = (
        db.query(func.count(User.id))
        .filter(User.is_active.is_(True), User.last_login >= start)
        .scalar() or 0
    )
    purchase_orders = (
        db.query(PurchaseOrder.status, func.count(PurchaseOrder.id))
        .filter(PurchaseOrder.order_date >= start.date())
        .group_by(PurchaseOrder.status)
        .all()
    )
    by_status = {status.value: count for status, count in purchase_orders}
    total_orders = sum(by_status.values())
    customer_orders = (
        db.query(func.count(CustomerOrder.id)).filter(CustomerOrder.order_date >= start).scalar() or 0
    )
    return {
        "period": {"name": period, "start": start.date().isoformat(), "end": now.date().isoformat()},
        "usage": {
            "active_users": active_users,
            "purchase_orders": total_orders,
            "customer_orders": customer_orders,
            "daily_average_orders": round(total_orders / max(1, days), 1),
        },
        "orders_by_status": by_status,
    }
