"""Agent endpoints: one unified entry point plus thin role wrappers."""
import random
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..config import Config
from ..errors import ValidationFailed
from ..session import SessionManager
from ...agents.tools import ROLE_TOOLS
from ...agents.unified_agent import UnifiedAgent
from ...data.database import get_db
from ...schemas.io_models import AgentRequest, CurrentUser
from ...services import dashboard_service, product_service
from ...utils.logger import get_logger
from ...utils.security import get_current_user, get_optional_user

logger = get_logger()

router = APIRouter(prefix="/api", tags=["agents"])

session_manager = SessionManager()

RECOMMENDATION_KEYWORDS = ["bread", "coffee", "milk", "cheese", "bagel", "produce", "fresh", "kosher"]

SUPPLIER_FALLBACK = (
    "I'm having trouble accessing your supplier information right now. Please try again in a moment "
    "or check the main supplier dashboard for your orders."
)
DRIVER_FALLBACKS = [
    "I'm having trouble connecting right now. Here are some common solutions:\n\n"
    "- Check your delivery schedule in the main app\n- Make sure your location services are enabled\n"
    "- Contact dispatch if you need immediate assistance",
    "I can't access the system right now, but I can still help! Common driver tasks:\n\n"
    "- Call customers using the phone button\n- Take photos for proof of delivery\n"
    "- Update your location manually if needed",
    "System temporarily unavailable. For immediate help:\n\n"
    "- Check the delivery details in your main screen\n- Use the navigation button for directions\n"
    "- Contact support if you have urgent issues",
]


def get_agent(db: Session = Depends(get_db)) -> UnifiedAgent:
    return UnifiedAgent(db, session_manager=session_manager)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require_message(body: AgentRequest) -> str:
    message = (body.message or "").strip()
    if not message:
        raise ValidationFailed("Message is required and must be a non-empty string")
    if len(message) > Config.MAX_MESSAGE_LENGTH:
        raise ValidationFailed(f"Message too long. Maximum {Config.MAX_MESSAGE_LENGTH} characters allowed.")
    return message


def detect_role(user: Optional[CurrentUser], requested_role: Optional[str]) -> str:
    """Admins and unauthenticated demo callers may pick a role; everyone else gets their own."""
    if requested_role and (user is None or user.role == "admin"):
        role = requested_role
    else:
        role = user.role if user else "customer"
    if role not in ROLE_TOOLS:
        raise ValidationFailed("Invalid role", f"Role must be one of: {', '.join(ROLE_TOOLS)}")
    return role


def _session_id(body: AgentRequest, default: Optional[str] = None) -> Optional[str]:
    return body.session_id or body.context.get("sessionId") or default


@router.post("/unified-agent")
def unified_agent(body: AgentRequest, user: Optional[CurrentUser] = Depends(get_optional_user),
                  agent: UnifiedAgent = Depends(get_agent)):
    role = detect_role(user, body.role)
    message = _require_message(body)
    user_id = str(user.id) if user else f"demo-{role}"
    logger.info(f"Unified agent request userId={user_id} userRole={role} authenticated={user is not None}")

    result = agent.execute(
        message,
        user_id,
        role,
        tenant_id=user.tenant_id if user else None,
        session_id=_session_id(body, f"{role}-{user_id}" if user else None),
        supplier_id=user.supplier_id if user else None,
        email=user.email if user else None,
    )
    payload = jsonable_encoder(result.model_dump(by_alias=True))
    if result.error:
        if not Config.is_development():
            payload["error"] = "Internal server error"
        return JSONResponse(status_code=500, content=payload)
    return payload


@router.post("/owner-agent")
def owner_agent(body: AgentRequest, db: Session = Depends(get_db),
                user: Optional[CurrentUser] = Depends(get_optional_user),
                agent: UnifiedAgent = Depends(get_agent)):
    message = _require_message(body)
    user_id = str(user.id) if user else "demo-owner"
    business_data = dashboard_service.get_business_data(db)
    result = agent.execute(
        message, user_id, "owner",
        tenant_id=user.tenant_id if user else None,
        session_id=_session_id(body, f"owner-{user_id}" if user else None),
    )
    if result.error:
        return JSONResponse(status_code=500, content={
            "error": "Failed to process request",
            "response": "I'm sorry, I'm having trouble analyzing your business data right now.",
        })
    return {
        "response": result.response,
        "insights": dashboard_service.generate_business_insights(message, business_data),
        "toolCalls": jsonable_encoder(result.tool_calls),
        "fallbackMode": result.fallback_mode,
        "timestamp": _now(),
    }


@router.post("/supplier-agent")
def supplier_agent(body: AgentRequest, user: CurrentUser = Depends(get_current_user),
                   agent: UnifiedAgent = Depends(get_agent)):
    message = _require_message(body)
    result = agent.execute(
        message, str(user.id), "supplier",
        tenant_id=user.tenant_id,
        session_id=_session_id(body, f"supplier-{user.id}"),
        supplier_id=user.supplier_id,
        email=user.email,
    )
    if result.error:
        return {"reply": SUPPLIER_FALLBACK, "timestamp": _now(), "metadata": {"error": True, "fallback": True}}
    return {
        "reply": result.response,
        "toolCalls": jsonable_encoder(result.tool_calls),
        "metadata": jsonable_encoder(result.metadata.model_dump(by_alias=True)),
        "timestamp": _now(),
    }


@router.post("/driver-chat")
def driver_chat(body: AgentRequest, user: CurrentUser = Depends(get_current_user),
                agent: UnifiedAgent = Depends(get_agent)):
    message = _require_message(body)
    result = agent.execute(
        message, str(user.id), "driver",
        tenant_id=user.tenant_id,
        session_id=_session_id(body, f"driver-{user.id}"),
        email=user.email,
    )
    if result.error:
        return {
            "reply": random.choice(DRIVER_FALLBACKS),
            "timestamp": _now(),
            "metadata": {"error": True, "fallback": True},
        }
    return {
        "reply": result.response,
        "toolCalls": jsonable_encoder(result.tool_calls),
        "metadata": jsonable_encoder(result.metadata.model_dump(by_alias=True)),
        "timestamp": _now(),
    }


def recommend_products(message: str, products: List[Dict[str, Any]], limit: int = 3) -> List[Dict[str, Any]]:
    words = [w for w in re.findall(r"[a-z]+", message.lower()) if len(w) >= 3]
    matched = [k for k in RECOMMENDATION_KEYWORDS if any(k in w or w in k for w in words)]
    if not matched:
        return []
    picks = [
        p for p in products
        if any(k in (p.get("name") or "").lower() or k in (p.get("category") or "").lower() for k in matched)
    ]
    return picks[:limit]


@router.post("/customer-agent")
def customer_agent(body: AgentRequest, db: Session = Depends(get_db),
                   agent: UnifiedAgent = Depends(get_agent)):
    message = _require_message(body)
    result = agent.execute(message, "guest", "customer", session_id=_session_id(body))
    if result.error:
        return JSONResponse(status_code=500, content={
            "error": "Failed to process request",
            "response": "I'm sorry, I'm having trouble right now. Please try browsing our products "
                        "directly or contact us for assistance.",
        })
    catalogue = body.products or product_service.search_products(db)["products"]
    return {
        "response": result.response,
        "recommendedProducts": recommend_products(message, catalogue),
        "fallbackMode": result.fallback_mode,
    }
