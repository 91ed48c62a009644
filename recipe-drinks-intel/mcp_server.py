#!/usr/bin/env python3
"""
Recipe & Drinks Intel MCP Server
=================================
Model Context Protocol surface for agent discovery.

Tools never execute paid calls. Each one returns the exact HTTP call
(method, URL, body, price) the agent should make against the x402-metered
``/entrypoints/{key}/invoke`` route.

Run standalone:  python mcp_server.py   (stdio transport)
Mounted by main.py at /mcp (streamable HTTP).
"""

from __future__ import annotations

import json
from typing import Any, Optional

from fastmcp import FastMCP

from config import Settings
from entrypoints import ENTRYPOINT_DESCRIPTIONS
from pricing import ENTRYPOINT_PRICES, format_price, get_price

settings = Settings.from_env()
BASE_API_URL = settings.public_base_url


def call_instructions(key: str, payload: Optional[dict[str, Any]] = None) -> dict:
    """Describe how to invoke ``key`` over HTTP with x402 payment."""
    if key not in ENTRYPOINT_PRICES:
        return {"error": f"Unknown entrypoint '{key}'", "available": list(ENTRYPOINT_PRICES)}
    price = get_price(key)
    return {
        "action": "POST",
        "url": f"{BASE_API_URL}/entrypoints/{key}/invoke",
        "body": {"input": payload or {}},
        "headers": {"PAYMENT-SIGNATURE": "<base64 x402 payment payload>"},
        "description": ENTRYPOINT_DESCRIPTIONS[key],
        "payment": {
            "amount": str(price),
            "display": format_price(price),
            "currency": "USDC",
            "network": settings.x402_network,
            "recipient": settings.pay_to_address,
        },
        "x402_flow": [
            "1. POST without a payment header",
            "2. Receive HTTP 402 with a PAYMENT-REQUIRED header",
            "3. Sign the USDC authorization it describes",
            "4. Re-POST with PAYMENT-SIGNATURE",
        ],
    }


mcp = FastMCP(
    "recipe-drinks-intel",
    instructions=(
        "Recipe and cocktail intelligence for AI agents, backed by TheMealDB and "
        "TheCocktailDB. Every tool returns the HTTP call to make; calls are paid "
        "per request with x402 USDC on Base L2. Cheapest start: overview "
        f"({format_price(get_price('overview'))})."
    ),
)


@mcp.tool()
def list_entrypoints() -> str:
    """List every entrypoint with its price and description."""
    return json.dumps({
        "entrypoints": [
            {"key": key, "price": format_price(p.amount), "description": ENTRYPOINT_DESCRIPTIONS[key]}
            for key, p in ENTRYPOINT_PRICES.items()
        ],
        "catalog": f"{BASE_API_URL}/entrypoints",
    }, indent=2)


@mcp.tool()
def search_meals(query: str) -> str:
    """Search meals by name (e.g. "Arrabiata", "curry")."""
    return json.dumps(call_instructions("meal-search", {"query": query}), indent=2)


@mcp.tool()
def meals_by_category(category: str, limit: int = 20) -> str:
    """Meals in a category such as Seafood, Vegetarian or Dessert."""
    return json.dumps(call_instructions("meal-by-category", {"category": category, "limit": limit}), indent=2)


@mcp.tool()
def meals_by_ingredient(ingredient: str, limit: int = 20) -> str:
    """Meals containing an ingredient (e.g. "chicken breast", "salmon")."""
    return json.dumps(call_instructions("meal-by-ingredient", {"ingredient": ingredient, "limit": limit}), indent=2)


@mcp.tool()
def search_cocktails(query: str) -> str:
    """Search cocktails by name (e.g. "margarita", "mojito")."""
    return json.dumps(call_instructions("cocktail-search", {"query": query}), indent=2)


@mcp.tool()
def get_full_recipe(meal_id: str) -> str:
    """Full recipe with instructions and measured ingredients for a meal id."""
    return json.dumps(call_instructions("full-recipe", {"mealId": meal_id}), indent=2)


@mcp.tool()
def random_discover() -> str:
    """A random meal and a random cocktail."""
    return json.dumps(call_instructions("random-discover"), indent=2)


if __name__ == "__main__":
    mcp.run()
