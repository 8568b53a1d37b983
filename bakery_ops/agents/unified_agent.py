"""Unified role-aware agent.

One entry point serves every role: the role picks the system prompt and the
tool set, the model decides which tools to call, and tool results are fed
back until it answers. Without a configured model the agent answers from
keyword rules instead.
"""
import json
import time
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..app.config import Config
from ..app.errors import ApiError
from ..app.session import SessionManager
from ..data.models import User
from ..nlu.rules import rule_based_tool, search_terms
from ..schemas.io_models import AgentMetadata, AgentResponse, ToolCall
from ..utils.logger import get_logger, log_tool_execution, log_tool_result
from ..utils.security import mask_pii
from .llm_client import ChatCompletionClient, LLMUnavailable
from .tools import ToolContext, execute_tool, get_tools_for_role

logger = get_logger()

SYSTEM_PROMPTS = {
    "driver": (
        "You are an AI assistant for delivery drivers at Roni's Bagel Bakery. Help with delivery "
        "management, navigation, and earnings tracking. Use the available tools to provide accurate, "
        "real-time information."
    ),
    "admin": (
        "You are an AI assistant for system administrators managing the Roni's Bagel Bakery platform. "
        "Help with system monitoring, order oversight and delivery assignment. Use the available tools "
        "to check system health and manage orders across tenants."
    ),
    "owner": (
        "You are an AI assistant for business owners at Roni's Bagel Bakery. Help with inventory "
        "optimization, supplier management, and operational insights. Use the available tools to "
        "analyze stock and make data-driven decisions."
    ),
    "supplier": (
        "You are an AI assistant for suppliers to Roni's Bagel Bakery. Help with order management, "
        "inventory coordination, and delivery tracking. Use the available tools to manage your orders."
    ),
    "customer": (
        "You are a friendly shopping assistant for customers at Roni's Bagel Bakery. Help customers "
        "find products, make recommendations, check availability, and provide information about our "
        "fresh kosher products. Use the available tools to search products."
    ),
}
SYSTEM_PROMPTS["client"] = SYSTEM_PROMPTS["owner"]

NO_ANSWER = "I apologize, but I couldn't process your request properly."
EMPTY_ANSWER = "I'm ready to help! What would you like to know?"
ERROR_ANSWER = (
    "I encountered an error while processing your request. "
    "Please try again or contact support if the issue persists."
)

GREETINGS = {
    "driver": (
        "Hi! I'm your delivery assistant. I can help you with:\n\n"
        "- Check your delivery schedule\n- View earnings\n- Update delivery status\n\n"
        "What would you like to know?"
    ),
    "supplier": (
        "Hi! I'm your supplier assistant. I can show your purchase orders and update their status. "
        "What would you like to do?"
    ),
    "customer": (
        "Welcome to Roni's Bagel Bakery! Ask me about bagels, breads, dairy or anything else we stock."
    ),
}


def _money(value) -> str:
    return f"£{float(value or 0):.2f}"


def _format_deliveries(result: Dict[str, Any]) -> str:
    active = [d for d in result["deliveries"] if d["status"] in ("assigned", "pickup", "in_transit")]
    if not active:
        return f"You currently have {result['active_count']} active deliveries."
    lines = ["**Your Delivery Schedule:**", "", f"You have {result['active_count']} active deliveries:", ""]
    for idx, d in enumerate(active, 1):
        lines.append(f"{idx}. **{d['tenant_name'] or 'Customer'}** (delivery #{d['id']})")
        lines.append(f"   Address: {d['delivery_address'] or 'n/a'}")
        lines.append(f"   Est. earnings: {_money(d['estimated_earnings'])}")
        lines.append(f"   Status: {d['status']}")
    return "\n".join(lines)


def _format_earnings(result: Dict[str, Any]) -> str:
    return "\n".join([
        f"**Earnings ({result['period']}):**",
        "",
        f"- Completed deliveries: {result['completed_deliveries']}",
        f"- Total earnings: £{result['total_earnings']}",
        f"- Earnings per delivery: £{result['earnings_per_delivery']}",
    ])


def _format_orders(result: Dict[str, Any]) -> str:
    if not result["orders"]:
        return "There are no orders to show."
    lines = [f"**{result['count']} orders:**", ""]
    for o in result["orders"][:10]:
        lines.append(
            f"- Order #{o['id']} from {o['supplier_name'] or 'unknown supplier'}: "
            f"{o['status']}, {_money(o['total_cost'])}, expected {o['expected_delivery']}"
        )
    return "\n".join(lines)


def _format_system_status(result: Dict[str, Any]) -> str:
    return "\n".join([
        "**System status:**",
        "",
        f"- Database: {result['database']}",
        f"- Tenants: {result['tenants']}",
        f"- Suppliers: {result['suppliers']}",
        f"- Open orders: {result['open_orders']} of {result['total_orders']}",
        f"- Products at or below reorder point: {result['low_stock_products']}",
    ])


def _format_inventory(result: Dict[str, Any]) -> str:
    if not result["inventory"]:
        return "No products found in your inventory."
    lines = [f"**Inventory ({result['count']} products):**", ""]
    for p in result["inventory"]:
        lines.append(f"- {p['name']}: {p['current_stock']:g} {p['unit']} ({p['stock_status']})")
    return "\n".join(lines)


def _format_reorder(result: Dict[str, Any]) -> str:
    if not result["recommendations"]:
        return "All products are above their reorder points. Nothing needs ordering right now."
    lines = ["**Reorder recommendations:**", ""]
    for rec in result["recommendations"]:
        lines.append(f"{rec['supplier_name'] or 'Supplier #' + str(rec['supplier_id'])}:")
        for item in rec["items"]:
            lines.append(f"- {item['name']}: order {item['quantity']:g} {item['unit']} (have {item['current_stock']:g})")
    return "\n".join(lines)


def _format_search(result: Dict[str, Any]) -> str:
    if not result["products"]:
        return "Sorry, I couldn't find any matching products in stock right now."
    lines = ["Here's what we have:", ""]
    for p in result["products"][:5]:
        kosher = " (kosher)" if p["kosher_certified"] else ""
        lines.append(f"- {p['name']}{kosher}: {_money(p['price'])} per {p['unit']}")
    return "\n".join(lines)


FALLBACK_FORMATTERS = {
    "get_my_deliveries": _format_deliveries,
    "get_driver_earnings": _format_earnings,
    "get_all_orders": _format_orders,
    "get_my_orders": _format_orders,
    "get_system_status": _format_system_status,
    "get_inventory": _format_inventory,
    "get_reorder_recommendations": _format_reorder,
    "search_products": _format_search,
}


class UnifiedAgent:
    """Runs one agent turn for any role."""

    def __init__(self, db: Session, session_manager: Optional[SessionManager] = None,
                 llm_client: Optional[ChatCompletionClient] = None):
        self.db = db
        self.session_manager = session_manager
        if llm_client is None and Config.has_llm():
            llm_client = ChatCompletionClient()
        self.llm_client = llm_client

    def _context(self, user_id: str, role: str, tenant_id: Optional[int],
                 supplier_id: Optional[int], email: Optional[str]) -> ToolContext:
        """Fill in identity details from the user row when the caller did not pass them."""
        if str(user_id).isdigit() and (email is None or supplier_id is None or tenant_id is None):
            user = self.db.get(User, int(user_id))
            if user is not None:
                email = email or user.email
                supplier_id = supplier_id if supplier_id is not None else user.supplier_id
                tenant_id = tenant_id if tenant_id is not None else user.tenant_id
        return ToolContext(self.db, str(user_id), role, tenant_id=tenant_id, supplier_id=supplier_id, email=email)

    def _run_tool(self, name: str, args: Dict[str, Any], ctx: ToolContext, request_id: str):
        """Execute a tool; failures come back as ``{"error": ...}``."""
        log_ctx = {"requestId": request_id, "userId": ctx.user_id, "userRole": ctx.role}
        start = time.time()
        log_tool_execution(name, args, **log_ctx)
        try:
            result = execute_tool(name, args, ctx)
        except ApiError as e:
            self.db.rollback()
            result = {"error": e.error if e.details is None else f"{e.error}: {e.details}"}
        except (ValueError, KeyError, TypeError) as e:
            self.db.rollback()
            result = {"error": str(e)}
        duration_ms = (time.time() - start) * 1000

        if isinstance(result, dict) and set(result) == {"error"}:
            log_tool_result(name, False, 0, duration_ms, **log_ctx)
            logger.error(f"Tool execution failed: {name}: {result['error']}")
            return result, False
        log_tool_result(name, True, len(json.dumps(result, default=str)), duration_ms, **log_ctx)
        return result, True

    def execute(self, message: str, user_id: str, role: str, tenant_id: Optional[int] = None,
                session_id: Optional[str] = None, supplier_id: Optional[int] = None,
                email: Optional[str] = None) -> AgentResponse:
        request_id = f"agent-{uuid.uuid4().hex[:12]}"
        logger.info(
            f"Unified agent execution started requestId={request_id} userId={user_id} "
            f"userRole={role} input={mask_pii(message)[:200]!r}"
        )
        ctx = self._context(user_id, role, tenant_id, supplier_id, email)
        history = self.session_manager.get_conversation_context(session_id) \
            if self.session_manager and session_id else []

        fallback = self.llm_client is None
        try:
            if not fallback:
                try:
                    text, executed = self._execute_with_llm(message, ctx, history, request_id)
                except LLMUnavailable as e:
                    logger.warning(f"LLM unavailable, using fallback mode: {e}")
                    fallback = True
            if fallback:
                text, executed = self._execute_with_fallback(message, ctx, request_id)
        except Exception as e:
            logger.exception(f"Unified agent execution failed requestId={request_id}: {e}")
            return AgentResponse(
                response=ERROR_ANSWER,
                fallback_mode=True,
                error=str(e),
                metadata=AgentMetadata(role=role, user_id=str(user_id), fallback_mode=True, agent_id=request_id),
            )

        if self.session_manager and session_id:
            self.session_manager.add_message(session_id, "user", message)
            self.session_manager.add_message(session_id, "assistant", text)

        logger.info(f"Unified agent execution completed requestId={request_id} tools={len(executed)} fallback={fallback}")
        return AgentResponse(
            response=text,
            tool_calls=executed,
            fallback_mode=fallback,
            metadata=AgentMetadata(
                role=role,
                user_id=str(user_id),
                executed_tools=len(executed),
                fallback_mode=fallback,
                agent_id=request_id,
            ),
        )

    def _execute_with_llm(self, message: str, ctx: ToolContext, history: List[Dict[str, str]], request_id: str):
        tools = get_tools_for_role(ctx.role)
        system_prompt = SYSTEM_PROMPTS.get(ctx.role, SYSTEM_PROMPTS["client"])
        messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        messages.extend(history)
        messages.append({"role": "user", "content": message})

        executed: List[ToolCall] = []
        for _ in range(Config.MAX_TOOL_ITERATIONS):
            reply = self.llm_client.complete(messages, tools or None)
            tool_calls = reply.get("tool_calls") or []
            assistant = {"role": "assistant", "content": reply.get("content")}
            if tool_calls:
                assistant["tool_calls"] = tool_calls
            messages.append(assistant)

            if not tool_calls:
                break

            for call in tool_calls:
                name = call["function"]["name"]
                try:
                    args = json.loads(call["function"].get("arguments") or "{}")
                except json.JSONDecodeError:
                    args = {}
                result, ok = self._run_tool(name, args, ctx, request_id)
                if ok:
                    executed.append(ToolCall(name=name, result=result))
                messages.append({
                    "role": "tool",
                    "tool_call_id": call["id"],
                    "content": json.dumps(result, default=str),
                })

        final = messages[-1]
        if final["role"] != "assistant":
            return NO_ANSWER, executed
        return final.get("content") or EMPTY_ANSWER, executed

    def _execute_with_fallback(self, message: str, ctx: ToolContext, request_id: str):
        tool_name = rule_based_tool(message, ctx.role)
        if tool_name is None:
            greeting = GREETINGS.get(ctx.role, f"I'm ready to help with {ctx.role} tasks! What would you like to do?")
            return greeting, []

        args: Dict[str, Any] = {}
        lowered = message.lower()
        if tool_name == "get_driver_earnings":
            args["period"] = "month" if "month" in lowered else "week" if "week" in lowered else "today"
        elif tool_name == "search_products":
            args["query"] = search_terms(message)
            args["kosher_only"] = "kosher" in lowered

        result, ok = self._run_tool(tool_name, args, ctx, request_id)
        if not ok:
            return f"Error retrieving {tool_name.replace('get_', '').replace('_', ' ')}: {result['error']}", []
        return FALLBACK_FORMATTERS[tool_name](result), [ToolCall(name=tool_name, result=result)]
