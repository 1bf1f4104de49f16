"""
Health & Discovery Routes
==========================
Server info, health check, capability summary and per-tool payment details.

No route here is priced.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from content import uptime_seconds, utc_now_iso
from models import PriceEntry, ToolName, USDC_DECIMALS
from pricing import JSONRPC_ROUTE_KEY, TOOL_PATHS, route_key
from registry import PROMPTS, RESOURCES
from settings import DOCUMENTATION_URL, SERVER_TITLE, SERVER_VERSION

router = APIRouter(tags=["health"])

# /test/payment-info/{tool} keys, e.g. "weather" -> get_weather
_TOOL_SLUGS: dict[str, ToolName] = {path.rsplit("/", 1)[1]: tool for tool, path in TOOL_PATHS.items()}


def _tool_entry(request: Request, tool: ToolName) -> Optional[PriceEntry]:
    return request.state.dispatcher.gate.price_for(route_key("GET", TOOL_PATHS[tool]))


def _display(entry: Optional[PriceEntry]) -> Optional[str]:
    return entry.display_price if entry else None


def _price_summary(request: Request) -> dict[str, Optional[str]]:
    prices = {slug: _display(_tool_entry(request, tool)) for slug, tool in _TOOL_SLUGS.items()}
    prices["jsonRpc"] = _display(request.state.dispatcher.gate.price_for(JSONRPC_ROUTE_KEY))
    return prices


@router.get("/")
async def root(request: Request):
    settings = request.state.settings
    enabled = settings.payment_enabled
    pricing = None
    if enabled:
        pricing = {**_price_summary(request), "network": settings.network}
    return {
        "name": SERVER_TITLE,
        "version": SERVER_VERSION,
        "status": "healthy",
        "paymentEnabled": enabled,
        "endpoints": {
            "initialize": "POST /mcp/initialize",
            "tools": {
                "list": "GET/POST /mcp/tools",
                **{slug: f"GET/POST {TOOL_PATHS[tool]}" for slug, tool in _TOOL_SLUGS.items()},
            },
            "prompts": {"list": "GET/POST /mcp/prompts"},
            "resources": {"list": "GET/POST /mcp/resources"},
            "jsonRpc": "POST /mcp",
            "mcpStream": "POST /mcp/stream",
            "health": "GET /health",
            "info": "GET /info",
        },
        "pricing": pricing,
        "examples": {
            "calculate": {
                "get": "/mcp/calculate?operation=add&a=10&b=5",
                "post": {"url": "/mcp/calculate", "body": {"operation": "add", "a": 10, "b": 5}},
            },
            "weather": {
                "get": "/mcp/weather?location=New York&unit=celsius",
                "post": {"url": "/mcp/weather", "body": {"location": "New York", "unit": "celsius"}},
            },
        },
        "capabilities": {
            "tools": [t.value for t in ToolName],
            "prompts": list(PROMPTS),
            "resources": [uri.split("://", 1)[1] for uri in RESOURCES],
        },
    }


@router.get("/health")
async def health():
    """Service health check."""
    return {
        "status": "healthy",
        "uptime": uptime_seconds(),
        "timestamp": utc_now_iso(),
    }


@router.get("/info")
async def info(request: Request):
    settings = request.state.settings
    registry = request.state.dispatcher.registry
    enabled = settings.payment_enabled
    pricing = None
    if enabled:
        prices = _price_summary(request)
        pricing = {"jsonRpc": prices.pop("jsonRpc"), "tools": prices}
    return {
        "name": SERVER_TITLE,
        "version": SERVER_VERSION,
        "protocol": "Model Context Protocol",
        "description": "MCP server providing tools, prompts, and resources for FluidSDK agents",
        "paymentEnabled": enabled,
        "paymentNetwork": settings.network if enabled else None,
        "capabilities": {
            "tools": {d.name: d.description for d in registry.tools()},
            "prompts": {d.name: d.description for d in registry.prompts()},
            "resources": {d.uri.split("://", 1)[1]: d.description for d in registry.resources()},
        },
        "pricing": pricing,
        "documentation": DOCUMENTATION_URL,
    }


@router.get("/test/payment-info/{tool}", tags=["test"])
async def payment_info(tool: str, request: Request):
    """Payment details an agent needs before calling ``/mcp/{tool}``."""
    if tool not in _TOOL_SLUGS:
        return JSONResponse(
            status_code=404,
            content={"error": "Tool not found", "availableTools": list(_TOOL_SLUGS)},
        )

    entry = _tool_entry(request, _TOOL_SLUGS[tool])
    details = None
    if entry is not None:
        details = {
            "x402Version": 1,
            "scheme": "exact",
            "network": entry.network,
            "payTo": entry.pay_to_address,
            "asset": entry.asset_address,
            "assetDetails": {"name": entry.currency, "version": "2", "decimals": USDC_DECIMALS},
            "priceInUSDC": entry.display_price,
            "maxAmountRequired": entry.max_amount_required,
            "maxTimeoutSeconds": entry.max_timeout_seconds,
        }
    return {
        "tool": tool,
        "paymentEnabled": entry is not None,
        "price": _display(entry),
        "network": entry.network if entry else None,
        "paymentDetails": details,
        "howToUse": {
            "step1": f"Make request to /mcp/{tool}",
            "step2": "Receive 402 error with payment details",
            "step3": "Create payment transaction",
            "step4": "Include X-PAYMENT header",
            "step5": "Retry request - success!",
        },
    }
