"""Agent tools: JSON-schema definitions per role and their implementations.

Every tool delegates to the same service functions the HTTP routes use.
"""
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..data.models import PurchaseOrder, Supplier, Tenant
from ..services import dashboard_service, delivery_service, order_service, product_service, user_service

DELIVERY_STATUS_ENUM = ["assigned", "pickup", "in_transit", "delivered", "failed"]
ORDER_STATUS_ENUM = ["pending", "confirmed", "shipped", "delivered", "cancelled"]


class ToolContext:
    """Who is calling a tool, and the session to run it in."""

    def __init__(self, db: Session, user_id: str, role: str, tenant_id: Optional[int] = None,
                 supplier_id: Optional[int] = None, email: Optional[str] = None):
        self.db = db
        self.user_id = user_id
        self.role = role
        self.tenant_id = tenant_id
        self.supplier_id = supplier_id
        self.email = email


TOOL_DEFINITIONS: Dict[str, Dict[str, Any]] = {
    # driver
    "get_my_deliveries": {
        "description": "Get all deliveries assigned to the current driver",
        "parameters": {
            "type": "object",
            "properties": {
                "status": {
                    "type": "string",
                    "description": "Filter by delivery status (optional)",
                    "enum": DELIVERY_STATUS_ENUM,
                },
            },
        },
    },
    "update_delivery_status": {
        "description": "Update the status of a delivery",
        "parameters": {
            "type": "object",
            "properties": {
                "delivery_id": {"type": "number", "description": "ID of the delivery to update"},
                "status": {
                    "type": "string",
                    "description": "New status for the delivery",
                    "enum": DELIVERY_STATUS_ENUM,
                },
                "notes": {"type": "string", "description": "Optional notes about the status update"},
            },
            "required": ["delivery_id", "status"],
        },
    },
    "get_driver_earnings": {
        "description": "Get earnings summary for the current driver",
        "parameters": {
            "type": "object",
            "properties": {
                "period": {
                    "type": "string",
                    "description": "Time period for earnings",
                    "enum": ["today", "week", "month"],
                },
            },
        },
    },
    # admin
    "get_all_orders": {
        "description": "Get all purchase orders across all tenants",
        "parameters": {
            "type": "object",
            "properties": {
                "status": {"type": "string", "description": "Filter by order status", "enum": ORDER_STATUS_ENUM},
                "limit": {"type": "number", "description": "Maximum number of orders to return"},
            },
        },
    },
    "assign_delivery": {
        "description": "Assign a purchase order to a delivery driver",
        "parameters": {
            "type": "object",
            "properties": {
                "order_id": {"type": "number", "description": "ID of the order to assign"},
                "driver_id": {"type": "number", "description": "ID of the driver to assign to"},
            },
            "required": ["order_id", "driver_id"],
        },
    },
    "get_system_status": {
        "description": "Get platform health: database, tenants, users, orders and stock alerts",
        "parameters": {
            "type": "object",
            "properties": {
                "include_metrics": {
                    "type": "boolean",
                    "description": "Include detailed usage metrics (optional, default false)",
                },
            },
        },
    },
    "get_tenant_overview": {
        "description": "Get an overview of all tenants with user and order counts",
        "parameters": {
            "type": "object",
            "properties": {
                "status": {
                    "type": "string",
                    "description": "Filter by tenant status (optional)",
                    "enum": ["active", "inactive"],
                },
                "limit": {"type": "number", "description": "Maximum number of tenants to return (default 50)"},
            },
        },
    },
    "get_system_analytics": {
        "description": "Get platform usage analytics for a time period",
        "parameters": {
            "type": "object",
            "properties": {
                "period": {
                    "type": "string",
                    "description": "Time period for analytics",
                    "enum": ["today", "week", "month", "quarter"],
                },
            },
            "required": ["period"],
        },
    },
    # supplier
    "get_my_orders": {
        "description": "Get purchase orders placed with the current supplier",
        "parameters": {
            "type": "object",
            "properties": {
                "status": {"type": "string", "description": "Filter by order status", "enum": ORDER_STATUS_ENUM},
            },
        },
    },
    "update_order_status": {
        "description": "Update the status of one of the supplier's orders",
        "parameters": {
            "type": "object",
            "properties": {
                "order_id": {"type": "number", "description": "ID of the order to update"},
                "status": {"type": "string", "description": "New status for the order", "enum": ORDER_STATUS_ENUM},
                "notes": {"type": "string", "description": "Optional notes about the update"},
            },
            "required": ["order_id", "status"],
        },
    },
    # client / owner
    "get_inventory": {
        "description": "Get current inventory levels for the client's business",
        "parameters": {
            "type": "object",
            "properties": {
                "category": {"type": "string", "description": "Only products in this category (optional)"},
            },
        },
    },
    "get_low_stock_products": {
        "description": "Get products at or below their reorder point",
        "parameters": {"type": "object", "properties": {}},
    },
    "get_reorder_recommendations": {
        "description": "Get reorder quantities for low-stock products grouped by supplier",
        "parameters": {"type": "object", "properties": {}},
    },
    "place_order": {
        "description": "Place a new purchase order with a supplier",
        "parameters": {
            "type": "object",
            "properties": {
                "supplier_id": {"type": "number", "description": "ID of the supplier"},
                "items": {
                    "type": "array",
                    "description": "List of items to order",
                    "items": {
                        "type": "object",
                        "properties": {
                            "product_id": {"type": "number"},
                            "quantity": {"type": "number"},
                        },
                        "required": ["product_id", "quantity"],
                    },
                },
                "notes": {"type": "string", "description": "Special instructions or notes"},
            },
            "required": ["supplier_id", "items"],
        },
    },
    "get_business_analytics": {
        "description": "Get business metrics: product counts, low stock, pending orders and inventory value",
        "parameters": {
            "type": "object",
            "properties": {
                "period": {
                    "type": "string",
                    "description": "Time period label for the report",
                    "enum": ["today", "week", "month", "quarter"],
                },
            },
        },
    },
    "analyze_inventory_health": {
        "description": "Classify every product as critical, low, overstocked or healthy and list issues",
        "parameters": {"type": "object", "properties": {}},
    },
    "analyze_supplier_performance": {
        "description": "Analyze supplier order history and delivery reliability",
        "parameters": {
            "type": "object",
            "properties": {
                "supplier_id": {"type": "number", "description": "Specific supplier to analyze (optional)"},
            },
        },
    },
    "get_consumption_trends": {
        "description": "Compare recent daily consumption against each product's usual rate",
        "parameters": {
            "type": "object",
            "properties": {
                "days": {"type": "number", "description": "Number of days to look back (default 7)"},
            },
        },
    },
    # customer
    "search_products": {
        "description": "Search for products by name, category, or description",
        "parameters": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search query (product name, category, or keywords)"},
                "category": {"type": "string", "description": "Filter by category (optional)"},
                "kosher_only": {"type": "boolean", "description": "Show only kosher certified products"},
            },
        },
    },
    "get_product_recommendations": {
        "description": "Get product recommendations based on preferences and budget",
        "parameters": {
            "type": "object",
            "properties": {
                "preferences": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Customer preferences (e.g., kosher, fresh, bakery, dairy)",
                },
                "budget_range": {
                    "type": "string",
                    "description": "Budget range",
                    "enum": ["low", "medium", "high"],
                },
            },
        },
    },
    "check_product_availability": {
        "description": "Check if specific products are in stock",
        "parameters": {
            "type": "object",
            "properties": {
                "product_names": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "List of product names to check",
                },
            },
            "required": ["product_names"],
        },
    },
    "get_category_products": {
        "description": "Get all products in a specific category",
        "parameters": {
            "type": "object",
            "properties": {
                "category": {"type": "string", "description": "Product category"},
            },
            "required": ["category"],
        },
    },
    "get_fresh_products": {
        "description": "Get chilled or frozen products with a good shelf life",
        "parameters": {
            "type": "object",
            "properties": {
                "min_shelf_life": {"type": "number", "description": "Minimum shelf life in days (default 3)"},
            },
        },
    },
}

CLIENT_TOOLS = [
    "get_inventory", "get_low_stock_products", "get_reorder_recommendations", "place_order",
    "get_business_analytics", "analyze_inventory_health", "analyze_supplier_performance", "get_consumption_trends",
]

ROLE_TOOLS: Dict[str, List[str]] = {
    "driver": ["get_my_deliveries", "update_delivery_status", "get_driver_earnings"],
    "admin": ["get_all_orders", "assign_delivery", "get_system_status", "get_tenant_overview", "get_system_analytics"],
    "supplier": ["get_my_orders", "update_order_status"],
    "client": CLIENT_TOOLS,
    "owner": CLIENT_TOOLS,
    "customer": [
        "search_products", "get_product_recommendations", "check_product_availability",
        "get_category_products", "get_fresh_products",
    ],
}


def get_tools_for_role(role: str) -> List[Dict[str, Any]]:
    """Chat-completion ``tools`` payload for a role."""
    return [
        {"type": "function", "function": {"name": name, **TOOL_DEFINITIONS[name]}}
        for name in ROLE_TOOLS.get(role, [])
    ]


# --- implementations ---

def _driver(ctx: ToolContext):
    return delivery_service.find_driver_for_email(ctx.db, ctx.email)


def get_my_deliveries(args, ctx: ToolContext):
    return delivery_service.get_driver_deliveries(ctx.db, _driver(ctx), args.get("status"))


def update_delivery_status(args, ctx: ToolContext):
    return delivery_service.update_driver_delivery_status(
        ctx.db, _driver(ctx), int(args["delivery_id"]), args["status"], args.get("notes")
    )


def get_driver_earnings(args, ctx: ToolContext):
    return delivery_service.get_driver_earnings(ctx.db, _driver(ctx), args.get("period") or "today")


def get_all_orders(args, ctx: ToolContext):
    orders = order_service.get_all_orders(ctx.db, status=args.get("status"), limit=int(args.get("limit") or 50))
    return {"orders": orders, "count": len(orders)}


def assign_delivery(args, ctx: ToolContext):
    return delivery_service.assign_driver(ctx.db, int(args["order_id"]), int(args["driver_id"]))


def get_system_status(args, ctx: ToolContext):
    db = ctx.db
    status = {
        "database": "connected",
        "tenants": db.query(func.count(Tenant.id)).scalar() or 0,
        "suppliers": db.query(func.count(Supplier.id)).scalar() or 0,
        "open_orders": len(order_service.get_pending_orders(db)),
        "total_orders": db.query(func.count(PurchaseOrder.id)).scalar() or 0,
        "low_stock_products": len(product_service.get_low_stock_products(db)),
    }
    if args.get("include_metrics"):
        status["metrics"] = user_service.get_system_metrics(db)
    return status


def get_tenant_overview(args, ctx: ToolContext):
    return user_service.get_tenant_overview(ctx.db, status=args.get("status"), limit=int(args.get("limit") or 50))


def get_system_analytics(args, ctx: ToolContext):
    return user_service.get_system_analytics(ctx.db, args.get("period") or "week")


def _own_supplier_id(ctx: ToolContext) -> int:
    if ctx.supplier_id is None:
        raise ValueError("No supplier is linked to this account")
    return ctx.supplier_id


def get_my_orders(args, ctx: ToolContext):
    orders = order_service.get_all_orders(ctx.db, status=args.get("status"), supplier_id=_own_supplier_id(ctx))
    return {"orders": orders, "count": len(orders)}


def update_order_status(args, ctx: ToolContext):
    order_id = int(args["order_id"])
    order = order_service.get_order(ctx.db, order_id)
    if order.supplier_id != _own_supplier_id(ctx):
        raise ValueError(f"Order {order_id} does not belong to your account")
    updated = order_service.update_order_status(ctx.db, order_id, args.get("status"), args.get("notes"))
    return {
        "order_id": order_id,
        "new_status": updated["status"],
        "message": f"Order {order_id} status updated to {updated['status']}",
    }


def get_inventory(args, ctx: ToolContext):
    products = product_service.get_all_products(ctx.db, tenant_id=ctx.tenant_id)
    category = args.get("category")
    if category:
        products = [p for p in products if p["category"].lower() == category.lower()]
    return {"inventory": products, "count": len(products)}


def get_low_stock_products(args, ctx: ToolContext):
    products = product_service.get_low_stock_products(ctx.db, tenant_id=ctx.tenant_id)
    return {"products": products, "count": len(products)}


def get_reorder_recommendations(args, ctx: ToolContext):
    recommendations = []
    for supplier_id, lines in order_service.generate_recommended_order(ctx.db).items():
        supplier = lines[0]["product"]["supplier"]
        recommendations.append({
            "supplier_id": supplier_id,
            "supplier_name": supplier["name"] if supplier else None,
            "items": [
                {
                    "product_id": line["product"]["id"],
                    "name": line["product"]["name"],
                    "current_stock": line["product"]["current_stock"],
                    "unit": line["product"]["unit"],
                    "quantity": line["quantity"],
                }
                for line in lines
            ],
        })
    return {"recommendations": recommendations, "count": len(recommendations)}


def place_order(args, ctx: ToolContext):
    items = [{"product_id": int(i["product_id"]), "quantity": i["quantity"]} for i in args.get("items") or []]
    order = order_service.create_order(
        ctx.db, int(args["supplier_id"]), items, notes=args.get("notes"), tenant_id=ctx.tenant_id
    )
    return {
        "order_id": order["id"],
        "total_cost": order["total_cost"],
        "status": order["status"],
        "message": f"Order placed successfully with ID {order['id']}",
    }


def get_business_analytics(args, ctx: ToolContext):
    data = dashboard_service.get_business_data(ctx.db, tenant_id=ctx.tenant_id)
    period = args.get("period") or "today"
    return {
        "period": period,
        "metrics": data,
        "summary": (
            f"{data['productCount']} products, {data['lowStockCount']} low on stock, "
            f"{data['pendingOrders']} pending orders, inventory worth £{data['totalInventoryValue']:.2f}"
        ),
    }


def analyze_inventory_health(args, ctx: ToolContext):
    return product_service.analyze_inventory_health(ctx.db, tenant_id=ctx.tenant_id)


def analyze_supplier_performance(args, ctx: ToolContext):
    supplier_id = args.get("supplier_id")
    return order_service.get_supplier_performance(ctx.db, int(supplier_id) if supplier_id else None)


def get_consumption_trends(args, ctx: ToolContext):
    trends = product_service.get_consumption_trends(ctx.db, days=int(args.get("days") or 7))
    return {"trends": trends, "count": len(trends)}


def search_products(args, ctx: ToolContext):
    return product_service.search_products(
        ctx.db,
        query=args.get("query") or "",
        category=args.get("category"),
        kosher_only=bool(args.get("kosher_only")),
    )


def check_product_availability(args, ctx: ToolContext):
    return product_service.check_product_availability(ctx.db, args.get("product_names") or [])


def get_category_products(args, ctx: ToolContext):
    products = product_service.get_products_by_category(ctx.db, args.get("category") or "")
    return {"category": args.get("category"), "products": products, "count": len(products)}


def get_product_recommendations(args, ctx: ToolContext):
    return product_service.recommend_products(
        ctx.db, preferences=args.get("preferences"), budget_range=args.get("budget_range")
    )


def get_fresh_products(args, ctx: ToolContext):
    return product_service.get_fresh_products(ctx.db, min_shelf_life=int(args.get("min_shelf_life") or 3))


TOOL_FUNCTIONS: Dict[str, Callable[[Dict[str, Any], ToolContext], Any]] = {
    "get_my_deliveries": get_my_deliveries,
    "update_delivery_status": update_delivery_status,
    "get_driver_earnings": get_driver_earnings,
    "get_all_orders": get_all_orders,
    "assign_delivery": assign_delivery,
    "get_system_status": get_system_status,
    "get_tenant_overview": get_tenant_overview,
    "get_system_analytics": get_system_analytics,
    "get_my_orders": get_my_orders,
    "update_order_status": update_order_status,
    "get_inventory": get_inventory,
    "get_low_stock_products": get_low_stock_products,
    "get_reorder_recommendations": get_reorder_recommendations,
    "place_order": place_order,
    "get_business_analytics": get_business_analytics,
    "analyze_inventory_health": analyze_inventory_health,
    "analyze_supplier_performance": analyze_supplier_performance,
    "get_consumption_trends": get_consumption_trends,
    "search_products": search_products,
    "check_product_availability": check_product_availability,
    "get_category_products": get_category_products,
    "get_product_recommendations": get_product_recommendations,
    "get_fresh_products": get_fresh_products,
}


def execute_tool(name: str, args: Optional[Dict[str, Any]], ctx: ToolContext) -> Any:
    """Run a tool for a role.

    Unknown tools and tools outside the caller's role come back as
    ``{"error": ...}``; failures inside a tool propagate to the caller.
    """
    if name not in TOOL_FUNCTIONS:
        return {"error": f"Unknown tool: {name}"}
    if name not in ROLE_TOOLS.get(ctx.role, []):
        return {"error": f"Tool {name} is not available for role {ctx.role}"}
    return TOOL_FUNCTIONS[name](args or {}, ctx)
