from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...data.database import get_db
from ...schemas.io_models import CurrentUser
from ...schemas.order_models import SupplierOrderUpdate
from ...services import order_service
from ...utils.logger import get_logger
from ...utils.security import require_tenant_access

logger = get_logger()

router = APIRouter(prefix="/api", tags=["suppliers"])


@router.get("/suppliers")
def list_suppliers(db: Session = Depends(get_db)):
    return {"suppliers": order_service.get_all_suppliers(db)}


@router.get("/suppliers/{supplier_id}")
def get_supplier(supplier_id: int, db: Session = Depends(get_db)):
    return {"supplier": order_service.get_supplier_by_id(db, supplier_id)}


@router.get("/supplier-orders/{supplier_id}")
def supplier_orders(supplier_id: int, db: Session = Depends(get_db),
                    user: CurrentUser = Depends(require_tenant_access)):
    return {"orders": order_service.get_supplier_orders(db, supplier_id)}


@router.post("/supplier-orders/{supplier_id}")
def supplier_order_webhook(supplier_id: int, body: SupplierOrderUpdate, request: Request,
                           db: Session = Depends(get_db), user: CurrentUser = Depends(require_tenant_access)):
    """Suppliers push order progress here; every call against a known order is logged."""
    payload = body.model_dump(by_alias=True)
    try:
        result = order_service.supplier_update_order(
            db,
            supplier_id,
            order_id=body.order_id,
            status=body.status,
            estimated_delivery=body.estimated_delivery,
            driver_id=body.driver_id,
            notes=body.notes,
        )
    except Exception as e:
        db.rollback()
        status_code = getattr(e, "status_code", 500)
        logger.error(f"Supplier webhook failed supplierId={supplier_id} orderId={body.order_id} status={status_code}: {e}")
        order_service.log_failed_order_api_call(db, body.order_id, request.url.path, payload, status_code)
        raise
    order_service.log_order_api_call(db, body.order_id, request.url.path, payload, 200)
    return result
