#!/usr/bin/env python3
"""
Unified agent tests.

TEST COVERAGE:
    - Keyword fallback answers per role
    - Tool access is restricted by role
    - Analytics, recommendation and fresh-product tools
    - The chat-completion tool loop (results fed back, errors as {"error"}, iteration cap)
    - Switching to fallback when the model is unreachable
    - Conversation history from the session store
    - The HTTP agent endpoints
"""

import json
import unittest
from unittest import mock

import requests
from fastapi import Depends

from db_helpers import auth_header, clear_overrides, make_client, make_session_factory, seed

from bakery_ops.agents.llm_client import ChatCompletionClient, LLMUnavailable
from bakery_ops.agents.tools import ToolContext, execute_tool, get_tools_for_role
from bakery_ops.agents.unified_agent import GREETINGS, NO_ANSWER, UnifiedAgent
from bakery_ops.app.config import Config
from bakery_ops.app.errors import NotFoundError, ValidationFailed
from bakery_ops.app.main import app
from bakery_ops.app.routes import agents as agent_routes
from bakery_ops.app.session import SessionManager
from bakery_ops.data.database import get_db
from bakery_ops.data.models import DeliveryStatus, DeliveryTracking, OrderStatus, Product, PurchaseOrder


class ScriptedLLM:
    """Stands in for the chat-completion client, replaying canned assistant messages."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def complete(self, messages, tools=None):
        self.calls.append({"messages": [dict(m) for m in messages], "tools": tools})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def tool_call(call_id, name, args):
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": json.dumps(args)}}


class AgentTestCase(unittest.TestCase):

    def setUp(self):
        patcher = mock.patch.object(Config, "OPENAI_API_KEY", None)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.engine, self.Session = make_session_factory()
        self.db = self.Session()
        self.ids = seed(self.db)
        self.users = self.ids["users"]
        self.sessions = SessionManager(use_redis=False)

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def agent(self, llm=None):
        return UnifiedAgent(self.db, session_manager=self.sessions, llm_client=llm)


class TestFallbackMode(AgentTestCase):

    def test_driver_deliveries(self):
        result = self.agent().execute("what deliveries do I have?", str(self.users["driver"]), "driver")
        self.assertTrue(result.fallback_mode)
        self.assertIsNone(result.error)
        self.assertEqual([c.name for c in result.tool_calls], ["get_my_deliveries"])
        self.assertIn("Roni's Bakery - Main", result.response)
        self.assertIn("£10.00", result.response)

    def test_driver_earnings_for_the_week(self):
        tracking = self.db.get(DeliveryTracking, self.ids["tracking"])
        tracking.status = DeliveryStatus.delivered
        self.db.commit()

        result = self.agent().execute("how much have I earned this week", str(self.users["driver"]), "driver")
        earnings = result.tool_calls[0].result
        self.assertEqual(earnings["period"], "week")
        self.assertEqual(earnings["completed_deliveries"], 1)
        self.assertEqual(earnings["total_earnings"], "10.00")
        self.assertIn("Total earnings: £10.00", result.response)

    def test_customer_greeting_without_tools(self):
        result = self.agent().execute("hello there", "guest", "customer")
        self.assertEqual(result.response, GREETINGS["customer"])
        self.assertEqual(result.tool_calls, [])
        self.assertEqual(result.metadata.executed_tools, 0)

    def test_customer_search_uses_catalogue_words(self):
        result = self.agent().execute("do you have kosher bagels?", "guest", "customer")
        search = result.tool_calls[0].result
        self.assertEqual(search["query"], "bagel")
        self.assertEqual([p["name"] for p in search["products"]], ["Plain Bagel", "Sesame Bagel"])
        self.assertIn("Plain Bagel (kosher)", result.response)

    def test_admin_orders(self):
        result = self.agent().execute("show me all orders", str(self.users["admin"]), "admin")
        self.assertEqual(result.tool_calls[0].name, "get_all_orders")
        self.assertIn(f"Order #{self.ids['order']}", result.response)

    def test_supplier_orders_scoped_to_supplier(self):
        result = self.agent().execute("any pending orders?", str(self.users["supplier"]), "supplier")
        orders = result.tool_calls[0].result["orders"]
        self.assertEqual([o["supplier_id"] for o in orders], [self.ids["hjb"]])

    def test_client_reorder_recommendations(self):
        result = self.agent().execute("what is running low?", str(self.users["client"]), "client")
        self.assertEqual(result.tool_calls[0].name, "get_reorder_recommendations")
        self.assertIn("Plain Bagel: order 48", result.response)

    def test_tool_failure_is_reported_in_reply(self):
        result = self.agent().execute("show my deliveries", "demo-driver", "driver")
        self.assertIsNone(result.error)
        self.assertEqual(result.tool_calls, [])
        self.assertTrue(result.response.startswith("Error retrieving my deliveries"))

    def test_turns_are_stored_in_session(self):
        self.agent().execute("hello there", "guest", "customer", session_id="s-1")
        messages = self.sessions.get_recent_messages("s-1")
        self.assertEqual([m["role"] for m in messages], ["user", "assistant"])
        self.assertEqual(messages[0]["text"], "hello there")


class TestToolAccess(AgentTestCase):

    def test_role_tool_sets(self):
        names = [t["function"]["name"] for t in get_tools_for_role("supplier")]
        self.assertEqual(names, ["get_my_orders", "update_order_status"])
        self.assertEqual(get_tools_for_role("nobody"), [])

    def test_tool_outside_role_is_refused(self):
        ctx = ToolContext(self.db, str(self.users["client"]), "client", tenant_id=self.ids["tenant"])
        self.assertEqual(
            execute_tool("get_all_orders", {}, ctx),
            {"error": "Tool get_all_orders is not available for role client"},
        )

    def test_unknown_tool(self):
        ctx = ToolContext(self.db, "1", "admin")
        self.assertEqual(execute_tool("drop_tables", {}, ctx), {"error": "Unknown tool: drop_tables"})

    def test_supplier_cannot_update_another_suppliers_order(self):
        ctx = ToolContext(self.db, str(self.users["supplier"]), "supplier", supplier_id=self.ids["dairy"])
        with self.assertRaises(ValueError):
            execute_tool("update_order_status", {"order_id": self.ids["order"], "status": "shipped"}, ctx)

    def test_driver_marks_delivery_delivered(self):
        ctx = ToolContext(self.db, str(self.users["driver"]), "driver", email="driver@edgeai.com")
        result = execute_tool(
            "update_delivery_status", {"delivery_id": self.ids["tracking"], "status": "delivered"}, ctx
        )
        self.assertEqual(result["new_status"], "delivered")
        self.db.expire_all()
        self.assertEqual(self.db.get(PurchaseOrder, self.ids["order"]).status, OrderStatus.delivered)
        self.assertEqual(self.db.get(Product, self.ids["critical"]).current_stock, 102)

    def test_place_order_uses_callers_tenant(self):
        ctx = ToolContext(self.db, str(self.users["client"]), "client", tenant_id=self.ids["other_tenant"])
        result = execute_tool("place_order", {
            "supplier_id": self.ids["hjb"],
            "items": [{"product_id": self.ids["low"], "quantity": 10}],
        }, ctx)
        self.assertEqual(result["status"], "pending")
        self.assertEqual(self.db.get(PurchaseOrder, result["order_id"]).tenant_id, self.ids["other_tenant"])


class TestAnalyticsTools(AgentTestCase):

    def _ctx(self, role, **kwargs):
        return ToolContext(self.db, str(self.users.get(role, "guest")), role, **kwargs)

    def test_inventory_health_for_own_tenant(self):
        result = execute_tool("analyze_inventory_health", {}, self._ctx("client", tenant_id=self.ids["tenant"]))
        self.assertEqual(
            [(item["name"], item["health_status"]) for item in result["stock_analysis"]],
            [("Plain Bagel", "critical"), ("Cream Cheese", "low"), ("Sesame Bagel", "low"),
             ("Challah Loaf", "healthy")],
        )
        self.assertEqual(result["stock_analysis"][0]["days_remaining"], 0.5)
        self.assertEqual([c["category"] for c in result["category_breakdown"]], ["bagels", "dairy", "bread"])
        self.assertEqual(result["issues"], ["1 items at critical stock levels"])
        self.assertEqual(result["overall_health"], "good")

        other = execute_tool("analyze_inventory_health", {}, self._ctx("owner", tenant_id=self.ids["other_tenant"]))
        self.assertEqual(other["stock_analysis"], [])
        self.assertEqual(other["overall_health"], "excellent")

    def test_overstock_is_flagged(self):
        self.db.get(Product, self.ids["healthy"]).current_stock = 200
        self.db.commit()
        result = execute_tool("analyze_inventory_health", {}, self._ctx("client", tenant_id=self.ids["tenant"]))
        self.assertEqual(result["stock_analysis"][-1]["health_status"], "overstocked")
        self.assertIn("1 items overstocked", result["issues"])

    def test_business_analytics_is_tenant_scoped(self):
        result = execute_tool("get_business_analytics", {"period": "week"},
                              self._ctx("client", tenant_id=self.ids["tenant"]))
        self.assertEqual(result["period"], "week")
        self.assertEqual(result["metrics"]["productCount"], 4)
        self.assertEqual(
            result["summary"], "4 products, 3 low on stock, 0 pending orders, inventory worth £395.20"
        )

        other = execute_tool("get_business_analytics", {}, self._ctx("client", tenant_id=self.ids["other_tenant"]))
        self.assertEqual(other["metrics"]["productCount"], 0)
        self.assertEqual(other["metrics"]["recentOrders"], [])

    def test_supplier_performance(self):
        result = execute_tool("analyze_supplier_performance", {}, self._ctx("client", tenant_id=self.ids["tenant"]))
        stats = {p["supplier"]["name"]: p["stats"] for p in result["supplier_performance"]}
        self.assertEqual(stats["Heritage Jewish Breads"]["total_orders"], 1)
        self.assertEqual(stats["Heritage Jewish Breads"]["product_count"], 3)
        self.assertEqual(stats["Heritage Jewish Breads"]["reliability_score"], "needs_improvement")
        self.assertEqual(stats["Golders Dairy"]["total_orders"], 0)
        self.assertEqual(
            result["recommendations"],
            ["Consider discussing delivery improvements with Heritage Jewish Breads"],
        )

    def test_supplier_performance_after_delivery(self):
        order = self.db.get(PurchaseOrder, self.ids["order"])
        order.status = OrderStatus.delivered
        self.db.commit()
        result = execute_tool("analyze_supplier_performance", {"supplier_id": self.ids["hjb"]},
                              self._ctx("owner", tenant_id=self.ids["tenant"]))
        self.assertEqual(len(result["supplier_performance"]), 1)
        self.assertEqual(result["supplier_performance"][0]["stats"]["delivery_rate"], 100.0)
        self.assertEqual(result["supplier_performance"][0]["stats"]["reliability_score"], "excellent")
        self.assertEqual(result["recommendations"], [])

    def test_unknown_supplier_performance_is_not_found(self):
        with self.assertRaises(NotFoundError):
            execute_tool("analyze_supplier_performance", {"supplier_id": 999}, self._ctx("client"))

    def test_consumption_trends_tool(self):
        result = execute_tool("get_consumption_trends", {"days": 14}, self._ctx("client"))
        self.assertEqual(result, {"trends": [], "count": 0})

    def test_tenant_overview(self):
        result = execute_tool("get_tenant_overview", {}, self._ctx("admin"))
        self.assertEqual(result["summary"], {
            "total_tenants": 2, "active_tenants": 2, "total_users": 1, "total_orders": 1,
        })
        self.assertEqual(execute_tool("get_tenant_overview", {"status": "inactive"}, self._ctx("admin"))["tenants"], [])
        self.assertEqual(len(execute_tool("get_tenant_overview", {"limit": 1}, self._ctx("admin"))["tenants"]), 1)

    def test_system_analytics(self):
        result = execute_tool("get_system_analytics", {"period": "week"}, self._ctx("admin"))
        self.assertEqual(result["period"]["name"], "week")
        self.assertEqual(result["usage"]["purchase_orders"], 1)
        self.assertEqual(result["usage"]["customer_orders"], 0)
        self.assertEqual(result["orders_by_status"], {"confirmed": 1})
        with self.assertRaises(ValidationFailed):
            execute_tool("get_system_analytics", {"period": "decade"}, self._ctx("admin"))

    def test_product_recommendations(self):
        ctx = self._ctx("customer")
        result = execute_tool("get_product_recommendations", {"preferences": ["bagel"], "budget_range": "low"}, ctx)
        self.assertEqual([p["name"] for p in result["products"]], ["Plain Bagel", "Sesame Bagel"])

        by_usage = execute_tool("get_product_recommendations", {}, ctx)
        self.assertEqual([p["name"] for p in by_usage["products"]],
                         ["Challah Loaf", "Plain Bagel", "Sesame Bagel", "Cream Cheese"])
        self.assertEqual(execute_tool("get_product_recommendations", {"budget_range": "high"}, ctx)["count"], 0)
        with self.assertRaises(ValidationFailed):
            execute_tool("get_product_recommendations", {"budget_range": "luxury"}, ctx)

    def test_fresh_products(self):
        cheese = self.db.get(Product, self.ids["edge"])
        cheese.storage_temp, cheese.shelf_life_days = "refrigerated", 14
        sesame = self.db.get(Product, self.ids["low"])
        sesame.storage_temp, sesame.shelf_life_days = "frozen", 2
        challah = self.db.get(Product, self.ids["healthy"])
        challah.storage_temp, challah.shelf_life_days = "room_temp", 30
        self.db.commit()

        ctx = self._ctx("customer")
        result = execute_tool("get_fresh_products", {}, ctx)
        self.assertEqual([(p["name"], p["shelf_life_days"]) for p in result["products"]], [("Cream Cheese", 14)])
        self.assertEqual(result["products"][0]["storage_temp"], "refrigerated")
        relaxed = execute_tool("get_fresh_products", {"min_shelf_life": 1}, ctx)
        self.assertEqual([p["name"] for p in relaxed["products"]], ["Cream Cheese", "Sesame Bagel"])

    def test_analytics_tools_follow_roles(self):
        cases = [
            ("get_tenant_overview", "client"),
            ("get_system_analytics", "customer"),
            ("analyze_inventory_health", "customer"),
            ("get_business_analytics", "driver"),
            ("get_product_recommendations", "supplier"),
            ("get_fresh_products", "admin"),
        ]
        for name, role in cases:
            with self.subTest(tool=name, role=role):
                self.assertEqual(
                    execute_tool(name, {}, self._ctx(role)),
                    {"error": f"Tool {name} is not available for role {role}"},
                )


class TestModelLoop(AgentTestCase):

    def test_tool_result_is_fed_back_to_model(self):
        llm = ScriptedLLM(
            {"content": None, "tool_calls": [tool_call("call_1", "get_low_stock_products", {})]},
            {"content": "Three products need restocking."},
        )
        result = self.agent(llm).execute("what's low?", str(self.users["client"]), "client")

        self.assertEqual(result.response, "Three products need restocking.")
        self.assertFalse(result.fallback_mode)
        self.assertEqual([c.name for c in result.tool_calls], ["get_low_stock_products"])

        first = llm.calls[0]
        self.assertEqual(first["messages"][0]["role"], "system")
        self.assertEqual(
            [t["function"]["name"] for t in first["tools"]],
            [
                "get_inventory", "get_low_stock_products", "get_reorder_recommendations", "place_order",
                "get_business_analytics", "analyze_inventory_health", "analyze_supplier_performance",
                "get_consumption_trends",
            ],
        )
        tool_message = llm.calls[1]["messages"][-1]
        self.assertEqual(tool_message["role"], "tool")
        self.assertEqual(tool_message["tool_call_id"], "call_1")
        self.assertEqual(json.loads(tool_message["content"])["count"], 3)

    def test_tool_error_goes_back_as_error_object(self):
        llm = ScriptedLLM(
            {"content": None, "tool_calls": [tool_call("call_1", "place_order", {
                "supplier_id": 9999, "items": [{"product_id": self.ids["low"], "quantity": 1}],
            })]},
            {"content": "That supplier does not exist."},
        )
        result = self.agent(llm).execute("order from supplier 9999", str(self.users["client"]), "client")

        self.assertEqual(result.tool_calls, [])
        self.assertIsNone(result.error)
        self.assertEqual(json.loads(llm.calls[1]["messages"][-1]["content"]), {"error": "Supplier not found"})

    def test_forbidden_tool_request_is_answered_with_error(self):
        llm = ScriptedLLM(
            {"content": None, "tool_calls": [tool_call("call_1", "get_system_status", {})]},
            {"content": "I can't do that."},
        )
        self.agent(llm).execute("system status", str(self.users["driver"]), "driver")
        self.assertIn("not available for role driver", json.loads(llm.calls[1]["messages"][-1]["content"])["error"])

    def test_iteration_cap_returns_no_answer(self):
        replies = [
            {"content": None, "tool_calls": [tool_call(f"call_{i}", "get_inventory", {})]}
            for i in range(Config.MAX_TOOL_ITERATIONS)
        ]
        llm = ScriptedLLM(*replies)
        result = self.agent(llm).execute("loop forever", str(self.users["client"]), "client")

        self.assertEqual(result.response, NO_ANSWER)
        self.assertEqual(len(llm.calls), Config.MAX_TOOL_ITERATIONS)
        self.assertEqual(len(result.tool_calls), Config.MAX_TOOL_ITERATIONS)

    def test_malformed_arguments_are_treated_as_empty(self):
        bad_call = {"id": "call_1", "type": "function",
                    "function": {"name": "get_inventory", "arguments": "{not json"}}
        llm = ScriptedLLM({"content": None, "tool_calls": [bad_call]}, {"content": "Here you go."})
        result = self.agent(llm).execute("inventory", str(self.users["client"]), "client")
        self.assertEqual(result.tool_calls[0].result["count"], 4)

    def test_empty_final_content(self):
        result = self.agent(ScriptedLLM({"content": ""})).execute("hi", "guest", "customer")
        self.assertEqual(result.response, "I'm ready to help! What would you like to know?")

    def test_unreachable_model_switches_to_fallback(self):
        llm = ScriptedLLM(LLMUnavailable("connection refused"))
        result = self.agent(llm).execute("show me all orders", str(self.users["admin"]), "admin")
        self.assertTrue(result.fallback_mode)
        self.assertTrue(result.metadata.fallback_mode)
        self.assertEqual(result.tool_calls[0].name, "get_all_orders")

    def test_unexpected_failure_sets_error(self):
        llm = ScriptedLLM(RuntimeError("boom"))
        result = self.agent(llm).execute("anything", "guest", "customer")
        self.assertEqual(result.error, "boom")
        self.assertEqual(result.tool_calls, [])

    def test_session_history_is_sent_to_model(self):
        self.sessions.add_message("s-1", "user", "I run the Belsize Park shop")
        self.sessions.add_message("s-1", "assistant", "Noted.")
        llm = ScriptedLLM({"content": "Sure."})
        self.agent(llm).execute("which shop do I run?", "guest", "customer", session_id="s-1")

        sent = llm.calls[0]["messages"]
        self.assertEqual(sent[1], {"role": "user", "content": "I run the Belsize Park shop"})
        self.assertEqual(sent[2], {"role": "assistant", "content": "Noted."})
        self.assertEqual(sent[-1], {"role": "user", "content": "which shop do I run?"})
        self.assertEqual(len(self.sessions.get_recent_messages("s-1", 10)), 4)


class TestChatCompletionClient(unittest.TestCase):

    def test_requires_key(self):
        with mock.patch.object(Config, "OPENAI_API_KEY", None):
            with self.assertRaises(ValueError):
                ChatCompletionClient()

    @mock.patch("bakery_ops.agents.llm_client.requests.post")
    def test_posts_tools_and_returns_message(self, post):
        post.return_value.status_code = 200
        post.return_value.json.return_value = {"choices": [{"message": {"role": "assistant", "content": "ok"}}]}
        tools = get_tools_for_role("customer")

        message = ChatCompletionClient(api_key="sk-test", model="gpt-4o-mini").complete(
            [{"role": "user", "content": "hi"}], tools
        )

        self.assertEqual(message["content"], "ok")
        _, kwargs = post.call_args
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer sk-test")
        self.assertEqual(kwargs["json"]["model"], "gpt-4o-mini")
        self.assertEqual(kwargs["json"]["tool_choice"], "auto")
        self.assertEqual(len(kwargs["json"]["tools"]), 5)

    @mock.patch("bakery_ops.agents.llm_client.requests.post")
    def test_network_error_is_llm_unavailable(self, post):
        post.side_effect = requests.exceptions.ConnectionError("refused")
        with self.assertRaises(LLMUnavailable):
            ChatCompletionClient(api_key="sk-test").complete([{"role": "user", "content": "hi"}])

    @mock.patch("bakery_ops.agents.llm_client.requests.post")
    def test_response_without_choices_is_llm_unavailable(self, post):
        post.return_value.status_code = 200
        post.return_value.json.return_value = {"choices": []}
        with self.assertRaises(LLMUnavailable):
            ChatCompletionClient(api_key="sk-test").complete([{"role": "user", "content": "hi"}])


class TestAgentEndpoints(AgentTestCase):

    def setUp(self):
        super().setUp()
        self.client = make_client(self.Session)
        sessions = self.sessions

        def agent_override(db=Depends(get_db)):
            return UnifiedAgent(db, session_manager=sessions)

        app.dependency_overrides[agent_routes.get_agent] = agent_override

    def tearDown(self):
        clear_overrides()
        super().tearDown()

    def test_empty_message_is_400(self):
        response = self.client.post("/api/unified-agent", json={"message": "   "})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Message is required and must be a non-empty string")

    def test_overlong_message_is_400(self):
        response = self.client.post("/api/unified-agent", json={"message": "x" * (Config.MAX_MESSAGE_LENGTH + 1)})
        self.assertEqual(response.status_code, 400)

    def test_unknown_role_is_400(self):
        response = self.client.post("/api/unified-agent", json={"message": "hi", "role": "wizard"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid role")

    def test_anonymous_caller_may_pick_role(self):
        response = self.client.post("/api/unified-agent", json={"message": "show all orders", "role": "admin"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["fallbackMode"])
        self.assertEqual(body["toolCalls"][0]["name"], "get_all_orders")
        self.assertEqual(body["metadata"]["role"], "admin")
        self.assertEqual(body["metadata"]["userId"], "demo-admin")
        self.assertEqual(body["metadata"]["executedTools"], 1)

    def test_signed_in_user_keeps_own_role(self):
        response = self.client.post(
            "/api/unified-agent",
            json={"message": "what is running low", "role": "admin"},
            headers=auth_header(self.db, self.users["client"]),
        )
        body = response.json()
        self.assertEqual(body["metadata"]["role"], "client")
        self.assertEqual(body["metadata"]["userId"], str(self.users["client"]))
        self.assertEqual(body["toolCalls"][0]["name"], "get_reorder_recommendations")

    def test_signed_in_history_uses_default_session(self):
        headers = auth_header(self.db, self.users["client"])
        self.client.post("/api/unified-agent", json={"message": "inventory"}, headers=headers)
        stored = self.sessions.get_recent_messages(f"client-{self.users['client']}")
        self.assertEqual(len(stored), 2)

    def test_driver_chat_requires_login(self):
        self.assertEqual(self.client.post("/api/driver-chat", json={"message": "hi"}).status_code, 401)

    def test_driver_chat(self):
        response = self.client.post("/api/driver-chat", json={"message": "what's my delivery schedule"},
                                    headers=auth_header(self.db, self.users["driver"]))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertIn("Roni's Bakery - Main", body["reply"])
        self.assertEqual(body["metadata"]["role"], "driver")
        self.assertIn("timestamp", body)

    def test_supplier_agent(self):
        response = self.client.post("/api/supplier-agent", json={"message": "show my orders"},
                                    headers=auth_header(self.db, self.users["supplier"]))
        self.assertEqual(response.status_code, 200)
        self.assertIn(f"Order #{self.ids['order']}", response.json()["reply"])

    def test_owner_agent_adds_insights(self):
        response = self.client.post("/api/owner-agent", json={"message": "how is stock today?"},
                                    headers=auth_header(self.db, self.users["client"]))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual([i["title"] for i in body["insights"]], ["Inventory Value", "Low Stock Alert"])
        self.assertEqual(body["insights"][0]["value"], "£395.20")
        self.assertEqual(body["insights"][1]["value"], "3 items")
        self.assertEqual(body["toolCalls"][0]["name"], "get_inventory")

    def test_customer_agent_recommends_products(self):
        response = self.client.post("/api/customer-agent", json={"message": "Do you have fresh bagels?"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["fallbackMode"])
        self.assertEqual([p["name"] for p in body["recommendedProducts"]], ["Plain Bagel", "Sesame Bagel"])

    def test_customer_agent_uses_supplied_catalogue(self):
        response = self.client.post("/api/customer-agent", json={
            "message": "any good coffee?",
            "products": [{"name": "Flat White Beans", "category": "coffee"}, {"name": "Rye", "category": "bread"}],
        })
        self.assertEqual([p["name"] for p in response.json()["recommendedProducts"]], ["Flat White Beans"])


class TestRecommendProducts(unittest.TestCase):

    def test_no_keywords_no_recommendations(self):
        self.assertEqual(agent_routes.recommend_products("hello", [{"name": "Plain Bagel"}]), [])

    def test_limit(self):
        products = [{"name": f"Bagel {i}", "category": "bagels"} for i in range(5)]
        self.assertEqual(len(agent_routes.recommend_products("bagels please", products)), 3)


if __name__ == "__main__":
    unittest.main()
