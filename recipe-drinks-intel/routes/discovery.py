"""
Discovery Routes
=================
Static metadata for agent registries and crawlers.

  GET /icon.png                    — agent icon
  GET /.well-known/erc8004.json    — ERC-8004 registration file
  GET /.well-known/agent.json      — A2A agent card
  GET /health, GET /               — service summary
"""

from __future__ import annotations

import os

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, PlainTextResponse

from config import AGENT_NAME, VERSION, Settings
from entrypoints import EntrypointRegistry
from pricing import format_price

router = APIRouter(tags=["discovery"])

DESCRIPTION = (
    "Recipe and cocktail intelligence for AI agents. Search meals by name/category/ingredient, "
    "get cocktail recipes, and discover random dishes. Powered by TheMealDB and TheCocktailDB APIs."
)


@router.get("/icon.png", include_in_schema=False)
async def icon(request: Request):
    settings: Settings = request.app.state.settings
    if os.path.isfile(settings.icon_path):
        return FileResponse(settings.icon_path, media_type="image/png")
    return PlainTextResponse("Icon not found", status_code=404)


@router.get("/.well-known/erc8004.json", include_in_schema=False)
async def erc8004_registration(request: Request):
    """ERC-8004 trustless-agent registration file."""
    base_url = request.app.state.settings.public_base_url
    return {
        "type": "https://eips.ethereum.org/EIPS/eip-8004#registration-v1",
        "name": AGENT_NAME,
        "description": DESCRIPTION,
        "image": f"{base_url}/icon.png",
        "services": [
            {"name": "web", "endpoint": base_url},
            {"name": "A2A", "endpoint": f"{base_url}/.well-known/agent.json", "version": "0.3.0"},
        ],
        "x402Support": True,
        "active": True,
        "registrations": [],
        "supportedTrust": ["reputation"],
    }


@router.get("/.well-known/agent.json", include_in_schema=False)
async def agent_card(request: Request):
    """A2A agent card: one skill per entrypoint."""
    settings: Settings = request.app.state.settings
    registry: EntrypointRegistry = request.app.state.registry
    base_url = settings.public_base_url
    return {
        "name": AGENT_NAME,
        "version": VERSION,
        "description": DESCRIPTION,
        "url": base_url,
        "protocolVersion": "0.3.0",
        "defaultInputModes": ["application/json"],
        "defaultOutputModes": ["application/json"],
        "capabilities": {"streaming": False},
        "skills": [
            {
                "id": e.key,
                "name": e.key,
                "description": e.description,
                "price": format_price(e.price),
                "currency": "USDC",
                "endpoint": f"{base_url}/entrypoints/{e.key}/invoke",
            }
            for e in registry
        ],
        "payments": {"protocol": "x402", "network": settings.x402_network, "payTo": settings.pay_to_address},
    }


@router.get("/health", tags=["health"])
async def health(request: Request):
    settings: Settings = request.app.state.settings
    return {
        "status": "ok",
        "service": AGENT_NAME,
        "version": VERSION,
        "x402_network": settings.x402_network,
        "x402_test_mode": settings.x402_test_mode,
        "entrypoints": len(request.app.state.registry),
    }


@router.get("/", tags=["health"])
async def root(request: Request):
    registry: EntrypointRegistry = request.app.state.registry
    return {
        "service": AGENT_NAME,
        "version": VERSION,
        "description": DESCRIPTION,
        "docs": "/docs",
        "entrypoints": "/entrypoints",
        "agent_card": "/.well-known/agent.json",
        "mcp": "/mcp",
        "pricing": {e.key: format_price(e.price) for e in registry},
    }
