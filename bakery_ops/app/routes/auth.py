from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...data.database import get_db
from ...schemas.io_models import CurrentUser, LoginRequest, RegisterRequest, TokenResponse
from ...services import user_service
from ...utils.security import create_access_token, get_current_user

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=201)
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    user = user_service.register_user(
        db,
        email=body.email,
        password=body.password,
        full_name=body.full_name,
        role=body.role,
        phone=body.phone,
        supplier_id=body.supplier_id,
        tenant_id=body.tenant_id,
        address=body.address.model_dump() if body.address else None,
    )
    return {"message": "User registered successfully", "user": user_service.to_current_user(user)}


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = user_service.to_current_user(user_service.authenticate(db, body.email, body.password))
    return TokenResponse(access_token=create_access_token(user), user=user)


@router.get("/session", response_model=CurrentUser)
def session(user: CurrentUser = Depends(get_current_user)):
    return user
