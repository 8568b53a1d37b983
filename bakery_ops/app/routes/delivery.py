from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...data.database import get_db
from ...schemas.io_models import CurrentUser, DriverCreate
from ...schemas.order_models import DriverAssignment, TrackingUpdate
from ...services import delivery_service
from ...utils.security import require_roles

router = APIRouter(prefix="/api", tags=["delivery"])


@router.get("/delivery-tracking/{order_id}")
def get_tracking(order_id: int, db: Session = Depends(get_db)):
    return {"tracking": delivery_service.get_tracking(db, order_id)}


@router.post("/delivery-tracking/{order_id}")
def update_tracking(order_id: int, body: TrackingUpdate, db: Session = Depends(get_db)):
    """Driver location/status update for an order they are assigned to."""
    return delivery_service.update_tracking(
        db,
        order_id,
        driver_id=body.driver_id,
        latitude=body.latitude,
        longitude=body.longitude,
        status=body.status,
        delivery_notes=body.delivery_notes,
        departure_time=body.departure_time,
        arrival_time=body.arrival_time,
    )


@router.put("/delivery-tracking/{order_id}")
def assign_driver(order_id: int, body: DriverAssignment, db: Session = Depends(get_db),
                  user: CurrentUser = Depends(require_roles("admin", "supplier"))):
    return delivery_service.assign_driver(db, order_id, body.driver_id, body.estimated_arrival)


@router.get("/drivers")
def list_drivers(supplier_id: Optional[int] = None, db: Session = Depends(get_db)):
    return {"drivers": delivery_service.list_drivers(db, supplier_id)}


@router.post("/drivers", status_code=201)
def create_driver(body: DriverCreate, db: Session = Depends(get_db)):
    driver = delivery_service.create_driver(
        db,
        name=body.name,
        phone=body.phone,
        email=body.email,
        vehicle_registration=body.vehicle_registration,
        license_number=body.license_number,
        supplier_id=body.supplier_id,
    )
    return {"success": True, "message": "Driver created successfully", "driver": driver}
