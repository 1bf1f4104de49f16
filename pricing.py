"""
Pricing for the FluidSDK MCP Server.

Prices are USD decimal strings settled in USDC (6 decimals) via x402.
One ``PriceEntry`` per priced route key:

  - JSON-RPC / MCP stream:  ``tools/call``           $0.005
  - REST calculate:         ``GET|POST /mcp/calculate``  $0.001
  - REST weather:           ``GET|POST /mcp/weather``    $0.002
  - REST echo:              ``GET|POST /mcp/echo``       $0.0005
  - REST timestamp:         ``GET|POST /mcp/timestamp``  $0.0005

The table is built once from ``Settings`` and never mutated. When payment is
not configured the table is empty and every route is free.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional

from models import PriceEntry, ToolName, USDC_DECIMALS
from settings import Settings

# ---------------------------------------------------------------------------
# Network configuration
# ---------------------------------------------------------------------------

USDC_ADDRESSES = {
    "base": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",          # Base mainnet
    "base-sepolia": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",  # Base Sepolia
}

CHAIN_IDS = {
    "base": 8453,
    "base-sepolia": 84532,
}

DEFAULT_NETWORK = "base-sepolia"

# ---------------------------------------------------------------------------
# Route prices (USD)
# ---------------------------------------------------------------------------

JSONRPC_ROUTE_KEY = "tools/call"
JSONRPC_PRICE = "0.005"

TOOL_PRICES: dict[ToolName, str] = {
    ToolName.CALCULATE: "0.001",
    ToolName.GET_WEATHER: "0.002",
    ToolName.ECHO: "0.0005",
    ToolName.GET_TIMESTAMP: "0.0005",
}

# REST path for each tool, mounted under /mcp
TOOL_PATHS: dict[ToolName, str] = {
    ToolName.CALCULATE: "/mcp/calculate",
    ToolName.GET_WEATHER: "/mcp/weather",
    ToolName.ECHO: "/mcp/echo",
    ToolName.GET_TIMESTAMP: "/mcp/timestamp",
}

REST_VERBS = ("GET", "POST")


def route_key(verb: str, path: str) -> str:
    """Transport-independent pricing key for a REST route."""
    return f"{verb.upper()} {path}"


def asset_address(network: str) -> str:
    return USDC_ADDRESSES.get(network, USDC_ADDRESSES[DEFAULT_NETWORK])


def _entry(settings: Settings, amount: str) -> PriceEntry:
    return PriceEntry(
        amount=amount,
        network=settings.network,
        pay_to_address=settings.pay_to_address or "",
        asset_address=asset_address(settings.network),
        max_timeout_seconds=settings.max_timeout_seconds,
    )


def build_price_table(settings: Settings) -> Mapping[str, PriceEntry]:
    """Return the read-only route-key -> PriceEntry table for this process."""
    if not settings.payment_enabled:
        return MappingProxyType({})

    table: dict[str, PriceEntry] = {JSONRPC_ROUTE_KEY: _entry(settings, JSONRPC_PRICE)}
    for tool, path in TOOL_PATHS.items():
        entry = _entry(settings, TOOL_PRICES[tool])
        for verb in REST_VERBS:
            table[route_key(verb, path)] = entry
    return MappingProxyType(table)


def tool_price(prices: Mapping[str, PriceEntry], tool: ToolName) -> Optional[PriceEntry]:
    """Price of a tool's REST route (GET and POST share one entry)."""
    return prices.get(route_key("GET", TOOL_PATHS[tool]))


def pricing_summary(entry: Optional[PriceEntry]) -> Optional[dict]:
    """Listing-friendly pricing block: price, network, accepted tokens, chain id."""
    if entry is None:
        return None
    return {
        "price": entry.display_price,
        "network": entry.network,
        "tokens": [
            {"address": entry.asset_address, "symbol": entry.currency, "decimals": USDC_DECIMALS},
        ],
        "chainId": CHAIN_IDS.get(entry.network),
    }
