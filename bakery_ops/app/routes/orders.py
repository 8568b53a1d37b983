from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...data.database import get_db
from ...schemas.io_models import CurrentUser
from ...schemas.order_models import OrderCreate, OrderStatusUpdate
from ...services import order_service
from ...utils.security import get_optional_user

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.get("")
def list_orders(status: Optional[str] = None, recommended: bool = False, limit: Optional[int] = None,
                db: Session = Depends(get_db)):
    if recommended:
        # JSON object keys are strings
        recommendations = {str(k): v for k, v in order_service.generate_recommended_order(db).items()}
        return {"recommendations": recommendations}
    return {"orders": order_service.get_all_orders(db, status=status, limit=limit)}


@router.post("", status_code=201)
def create_order(body: OrderCreate, db: Session = Depends(get_db),
                 user: Optional[CurrentUser] = Depends(get_optional_user)):
    tenant_id = body.tenant_id if body.tenant_id is not None else (user.tenant_id if user else None)
    order = order_service.create_order(
        db,
        supplier_id=body.supplier_id,
        items=[item.model_dump() for item in body.items],
        notes=body.notes,
        tenant_id=tenant_id,
    )
    return {"order": order}


@router.get("/{order_id}")
def get_order(order_id: int, db: Session = Depends(get_db)):
    return {"order": order_service.get_order_by_id(db, order_id)}


@router.patch("/{order_id}")
def update_order(order_id: int, body: OrderStatusUpdate, db: Session = Depends(get_db)):
    return {"order": order_service.update_order_status(db, order_id, body.status, body.notes)}
