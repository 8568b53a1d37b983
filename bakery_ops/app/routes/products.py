from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..errors import ValidationFailed
from ...data.database import get_db
from ...schemas.io_models import ProductPatch
from ...services import product_service

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("")
def list_products(categories: bool = False, low_stock: bool = False, category: Optional[str] = None,
                  db: Session = Depends(get_db)):
    if categories:
        return {"categories": product_service.get_product_categories(db)}
    if low_stock:
        return {"products": product_service.get_low_stock_products(db)}
    if category:
        return {"products": product_service.get_products_by_category(db, category)}
    return {"products": product_service.get_all_products(db)}


@router.get("/{product_id}")
def get_product(product_id: int, db: Session = Depends(get_db)):
    return {"product": product_service.get_product_by_id(db, product_id)}


@router.patch("/{product_id}")
def patch_product(product_id: int, body: ProductPatch, db: Session = Depends(get_db)):
    """``updateStock`` sets the level outright; ``recordConsumption`` books usage."""
    if body.action == "updateStock":
        if body.quantity < 0:
            raise ValidationFailed("Stock cannot be negative")
        return {"product": product_service.update_product_stock(db, product_id, body.quantity)}
    if body.action == "recordConsumption":
        return {"product": product_service.record_consumption(db, product_id, body.quantity, body.notes)}
    raise ValidationFailed("Invalid action", "Action must be one of: updateStock, recordConsumption")
