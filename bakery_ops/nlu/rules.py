"""Rule-based keyword intents per role with tiny fuzzy matching.

Used by the agents when no chat-completion model is configured.
"""
import re
from difflib import SequenceMatcher
from typing import List, Optional

EARNINGS   = ["earning", "earnings", "earned", "paid", "income"]
DELIVERIES = ["deliver", "delivery", "deliveries", "how many", "schedule", "route", "drop"]
ORDERS     = ["order", "orders", "pending", "shipment", "purchase"]
LOW_STOCK  = ["low stock", "running low", "reorder", "restock", "shortage", "running out"]
INVENTORY  = ["inventory", "stock", "levels"]
SYSTEM     = ["system", "status", "health", "metrics", "platform", "tenants"]
SEARCH     = ["bagel", "bread", "challah", "cheese", "coffee", "milk", "kosher", "fresh",
              "pastry", "find", "search", "have", "sell", "buy"]

# Ordered: first match wins
ROLE_RULES = {
    "driver": [
        ("get_driver_earnings", EARNINGS),
        ("get_my_deliveries", DELIVERIES),
    ],
    "admin": [
        ("get_all_orders", ORDERS),
        ("get_system_status", SYSTEM),
    ],
    "supplier": [
        ("get_my_orders", ORDERS + DELIVERIES),
    ],
    "client": [
        ("get_reorder_recommendations", LOW_STOCK),
        ("get_inventory", INVENTORY),
    ],
    "customer": [
        ("search_products", SEARCH),
    ],
}
ROLE_RULES["owner"] = ROLE_RULES["client"]


def _contains_any(q: str, vocab: List[str]) -> bool:
    ql = q.lower()

    # First check for exact multi-word phrases
    for phrase in vocab:
        if phrase in ql:
            return True

    # Then check for single word matches
    tokens = re.findall(r"[a-zA-Z]+", ql)
    for t in tokens:
        for w in vocab:
            if " " not in w and SequenceMatcher(None, t, w).ratio() >= 0.84:
                return True
    return False


def rule_based_tool(query: str, role: str) -> Optional[str]:
    """Name of the tool a keyword rule picks for this role, or None."""
    for tool_name, vocab in ROLE_RULES.get(role, []):
        if _contains_any(query, vocab):
            return tool_name
    return None


def search_terms(query: str) -> str:
    """Catalogue words from a shopper's message, for a product search."""
    tokens = re.findall(r"[a-zA-Z]+", query.lower())
    for t in tokens:
        for w in SEARCH[:6]:
            if SequenceMatcher(None, t, w).ratio() >= 0.84:
                return w
    return ""
