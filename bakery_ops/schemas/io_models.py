"""Pydantic models for API I/O and agent contracts."""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class CurrentUser(BaseModel):
    id: int
    email: str
    name: str
    role: str
    supplier_id: Optional[int] = None
    tenant_id: Optional[int] = None


# --- auth ---

class AddressIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    label: Optional[str] = "Home"
    street_address: str = Field(alias="streetAddress")
    city: Optional[str] = None
    postcode: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    delivery_instructions: Optional[str] = Field(default=None, alias="deliveryInstructions")


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = Field(default=None, alias="fullName")
    phone: Optional[str] = None
    role: Optional[str] = None
    supplier_id: Optional[int] = Field(default=None, alias="supplierId")
    tenant_id: Optional[int] = Field(default=None, alias="tenantId")
    address: Optional[AddressIn] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    user: CurrentUser


# --- products / drivers ---

class ProductPatch(BaseModel):
    action: str
    quantity: float
    notes: Optional[str] = None


class DriverCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    vehicle_registration: Optional[str] = Field(default=None, alias="vehicleRegistration")
    license_number: Optional[str] = Field(default=None, alias="licenseNumber")
    supplier_id: Optional[int] = Field(default=None, alias="supplierId")


# --- agents ---

class AgentRequest(BaseModel):
    message: Optional[str] = None
    role: Optional[str] = None
    session_id: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    products: List[Dict[str, Any]] = Field(default_factory=list)


class ToolCall(BaseModel):
    name: str
    result: Any


class AgentMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role: str
    user_id: str = Field(alias="userId")
    executed_tools: int = Field(default=0, alias="executedTools")
    fallback_mode: bool = Field(default=False, alias="fallbackMode")
    agent_id: Optional[str] = Field(default=None, alias="agentId")


class AgentResponse(BaseModel):
    """Result of one agent turn."""
    model_config = ConfigDict(populate_by_name=True)

    response: str
    tool_calls: List[ToolCall] = Field(default_factory=list, alias="toolCalls")
    fallback_mode: bool = Field(default=False, alias="fallbackMode")
    metadata: Optional[AgentMetadata] = None
    error: Optional[str] = None


class Insight(BaseModel):
    type: str
    title: str
    value: str
    description: str
    action: str
