from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...data.database import get_db
from ...schemas.order_models import CustomerOrderCreate
from ...services import order_service

router = APIRouter(prefix="/api", tags=["storefront"])


@router.post("/customer-orders", status_code=201)
def create_customer_order(body: CustomerOrderCreate, db: Session = Depends(get_db)):
    order_id = order_service.create_customer_order(
        db,
        customer_info=body.customer_info.model_dump() if body.customer_info else None,
        items=[item.model_dump() for item in body.items],
        total_amount=body.total_amount,
        notes=body.notes,
    )
    return {"success": True, "orderId": order_id, "message": "Order placed successfully"}
