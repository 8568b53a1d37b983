"""Security helpers: password hashing, bearer tokens, role and tenant guards, PII masking."""
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..app.config import Config
from ..app.errors import Forbidden, Unauthorized
from ..schemas.io_models import CurrentUser

ALGORITHM = "HS256"
BCRYPT_ROUNDS = 12

VALID_ROLES = ("admin", "client", "supplier", "driver")

# Portal path prefix -> roles allowed in
ROUTE_ROLES = {
    "/admin": {"admin"},
    "/supplier": {"admin", "supplier"},
    "/driver": {"admin", "driver"},
    "/dashboard": {"admin", "client"},
    "/owner": {"admin", "client"},
    "/apps": {"admin", "client"},
}

bearer_scheme = HTTPBearer(auto_error=False)


def mask_pii(text: str) -> str:
    masked = re.sub(r"\b\d{10,}\b", "[REDACTED]", text or "")
    masked = re.sub(r"[\w.+-]+@[\w-]+\.[\w.]+", "[EMAIL]", masked)
    return masked


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


def create_access_token(user: CurrentUser, expires_hours: Optional[int] = None) -> str:
    if expires_hours is None:
        expires_hours = Config.TOKEN_EXPIRE_HOURS
    expire = datetime.now(timezone.utc) + timedelta(hours=expires_hours)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "supplier_id": user.supplier_id,
        "tenant_id": user.tenant_id,
        "exp": expire,
    }
    return jwt.encode(payload, Config.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> CurrentUser:
    try:
        claims = jwt.decode(token, Config.SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.PyJWTError as e:
        raise Unauthorized("Unauthorized - Invalid token", str(e))
    return CurrentUser(
        id=int(claims["sub"]),
        email=claims.get("email", ""),
        name=claims.get("name", ""),
        role=claims.get("role", ""),
        supplier_id=claims.get("supplier_id"),
        tenant_id=claims.get("tenant_id"),
    )


def has_role(user: Optional[CurrentUser], allowed_roles: Iterable[str]) -> bool:
    if user is None or not user.role:
        return False
    return user.role in set(allowed_roles)


def belongs_to_tenant(user: Optional[CurrentUser], supplier_id: int) -> bool:
    if user is None:
        return False
    if user.role == "admin":
        return True
    return user.supplier_id == supplier_id


def allowed_roles_for_path(path: str) -> Optional[set]:
    """Roles allowed into a portal path, or None when the path is unguarded."""
    for prefix, roles in ROUTE_ROLES.items():
        if path == prefix or path.startswith(prefix + "/"):
            return roles
    return None


def is_path_allowed(path: str, role: Optional[str]) -> bool:
    roles = allowed_roles_for_path(path)
    if roles is None:
        return True
    return role in roles


# --- FastAPI dependencies ---

def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[CurrentUser]:
    if credentials is None or not credentials.credentials:
        return None
    return decode_access_token(credentials.credentials)


def get_current_user(user: Optional[CurrentUser] = Depends(get_optional_user)) -> CurrentUser:
    if user is None:
        raise Unauthorized("Unauthorized - Please login")
    return user


def require_roles(*roles: str):
    """Dependency factory rejecting users whose role is not in ``roles``."""
    def _guard(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not has_role(user, roles):
            raise Forbidden("Forbidden - Insufficient permissions")
        return user
    return _guard


def require_tenant_access(supplier_id: int, user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not belongs_to_tenant(user, supplier_id):
        raise Forbidden("Forbidden - Access denied to this tenant")
    return user
