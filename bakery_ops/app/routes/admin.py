from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..errors import Forbidden
from ...data.database import get_db
from ...schemas.io_models import CurrentUser
from ...services import dashboard_service, user_service
from ...utils.security import allowed_roles_for_path, get_current_user, is_path_allowed, require_roles

router = APIRouter(prefix="/api", tags=["admin"])


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db), user: CurrentUser = Depends(require_roles("admin", "client"))):
    return dashboard_service.get_dashboard(db)


@router.get("/admin/tenants")
def tenants(db: Session = Depends(get_db), user: CurrentUser = Depends(require_roles("admin"))):
    return user_service.list_tenants(db)


@router.get("/admin/system-metrics")
def system_metrics(db: Session = Depends(get_db), user: CurrentUser = Depends(require_roles("admin"))):
    return user_service.get_system_metrics(db)


@router.get("/protected/{area:path}")
def protected_area(area: str, user: CurrentUser = Depends(get_current_user)):
    """Whether the caller may enter a portal area such as ``admin`` or ``driver/route``."""
    path = "/" + area.strip("/")
    if not is_path_allowed(path, user.role):
        raise Forbidden("Forbidden - Insufficient permissions", f"Role '{user.role}' cannot access {path}")
    roles = allowed_roles_for_path(path)
    return {
        "path": path,
        "allowed": True,
        "role": user.role,
        "allowedRoles": sorted(roles) if roles else None,
    }
