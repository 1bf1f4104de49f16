#!/usr/bin/env python3
"""
FluidSDK MCP Server - streamable HTTP / stdio transport
========================================================
Native MCP transport for agents that speak the protocol directly.

Mounted at ``/mcp/stream`` by main.py, or run standalone over stdio:

    python mcp_server.py

Tools (each ``tools/call`` costs $0.005 USDC via x402 when payment is enabled):
  - calculate       -- add, subtract, multiply, divide
  - get_weather     -- simulated weather for a location
  - echo            -- echo a message back
  - get_timestamp   -- current time as iso, unix or locale

Prompts: greeting, code_review, debug_assistant.
Resources: fluidsdk://config, fluidsdk://status, fluidsdk://docs/api,
fluidsdk://docs/quickstart.

Every call goes through the same Dispatcher as the JSON-RPC and REST routes.
A payment-required outcome is raised as a ToolError whose message is the
JSON x402 challenge; the agent pays and retries with an ``X-PAYMENT`` header.
"""

from __future__ import annotations

import json
from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.server.dependencies import get_http_headers

from dispatcher import Dispatcher, build_dispatcher
from models import Failure, Invocation, PaymentRequired, RpcMethod, ToolName
from pricing import JSONRPC_PRICE, JSONRPC_ROUTE_KEY
from registry import PROMPTS, RESOURCES
from settings import SERVER_NAME, Settings

STREAM_PATH = "/mcp/stream"


def _instructions(settings: Settings) -> str:
    text = (
        "FluidSDK MCP Server: calculator, simulated weather, echo and timestamp tools, "
        "prompt templates and FluidSDK documentation resources.\n\n"
    )
    if settings.payment_enabled:
        text += (
            f"Each tool call costs ${JSONRPC_PRICE} USDC on {settings.network} (x402). "
            "When a call fails with an x402 challenge, pay the amount in "
            "accepts[0].maxAmountRequired to accepts[0].payTo, then retry with an "
            "X-PAYMENT header carrying the payment proof."
        )
    else:
        text += "Payment is not configured; every call is free."
    return text


def build_mcp(dispatcher: Dispatcher, settings: Settings) -> FastMCP:
    """Create the FastMCP server bound to ``dispatcher``."""
    mcp = FastMCP(SERVER_NAME, instructions=_instructions(settings))

    def _request_context() -> tuple[str, str | None]:
        # Empty outside an HTTP request (stdio)
        headers = get_http_headers(include_all=True)
        base = settings.public_url
        if not base:
            host = headers.get("host")
            base = f"http://{host}" if host else f"http://localhost:{settings.port}"
        proof = (headers.get("x-payment") or "").strip() or None
        return f"{base}{STREAM_PATH}", proof

    async def _dispatch(method: RpcMethod, name: str, arguments: dict[str, Any] | None = None) -> Any:
        resource, proof = _request_context()
        route = JSONRPC_ROUTE_KEY if method is RpcMethod.TOOLS_CALL else method.value
        outcome = await dispatcher.dispatch(
            Invocation(
                method=method,
                capability_name=name,
                arguments=arguments or {},
                route_key=route,
                resource_url=resource,
                payment_proof=proof,
            )
        )
        if isinstance(outcome, PaymentRequired):
            raise ToolError(json.dumps(outcome.challenge.model_dump(by_alias=True)))
        if isinstance(outcome, Failure):
            raise ToolError(outcome.message)
        return outcome

    async def _call_tool(tool: ToolName, arguments: dict[str, Any]) -> str:
        outcome = await _dispatch(RpcMethod.TOOLS_CALL, tool.value, arguments)
        return outcome.text

    # -----------------------------------------------------------------------
    # Tools
    # -----------------------------------------------------------------------

    @mcp.tool()
    async def calculate(operation: str, a: float, b: float) -> str:
        """Perform basic mathematical calculations.

        Args:
            operation: One of add, subtract, multiply, divide.
            a: First number.
            b: Second number.
        """
        return await _call_tool(ToolName.CALCULATE, {"operation": operation, "a": a, "b": b})

    @mcp.tool()
    async def get_weather(location: str, unit: str = "celsius") -> str:
        """Get simulated weather information for a location.

        Args:
            location: City name or location.
            unit: celsius or fahrenheit.
        """
        return await _call_tool(ToolName.GET_WEATHER, {"location": location, "unit": unit})

    @mcp.tool()
    async def echo(message: str) -> str:
        """Echo back the provided message."""
        return await _call_tool(ToolName.ECHO, {"message": message})

    @mcp.tool()
    async def get_timestamp(format: str = "iso") -> str:
        """Get the current timestamp as iso, unix or locale."""
        return await _call_tool(ToolName.GET_TIMESTAMP, {"format": format})

    # -----------------------------------------------------------------------
    # Prompts
    # -----------------------------------------------------------------------

    async def _prompt_text(name: str, arguments: dict[str, Any]) -> str:
        outcome = await _dispatch(RpcMethod.PROMPTS_GET, name, arguments)
        return outcome.value["messages"][0]["content"]["text"]

    @mcp.prompt(name="greeting", description=PROMPTS["greeting"][0])
    async def greeting(name: str, time_of_day: str = "day") -> str:
        return await _prompt_text("greeting", {"name": name, "time_of_day": time_of_day})

    @mcp.prompt(name="code_review", description=PROMPTS["code_review"][0])
    async def code_review(language: str, complexity: str = "medium") -> str:
        return await _prompt_text("code_review", {"language": language, "complexity": complexity})

    @mcp.prompt(name="debug_assistant", description=PROMPTS["debug_assistant"][0])
    async def debug_assistant(error_type: str) -> str:
        return await _prompt_text("debug_assistant", {"error_type": error_type})

    # -----------------------------------------------------------------------
    # Resources
    # -----------------------------------------------------------------------

    def _register_resource(uri: str, title: str, description: str, mime_type: str) -> None:
        @mcp.resource(uri, name=title, description=description, mime_type=mime_type)
        async def _read() -> str:
            outcome = await _dispatch(RpcMethod.RESOURCES_READ, uri)
            return outcome.value["contents"][0]["text"]

    for uri, (title, description, mime_type) in RESOURCES.items():
        _register_resource(uri, title, description, mime_type)

    return mcp


if __name__ == "__main__":
    settings = Settings.from_env()
    build_mcp(build_dispatcher(settings), settings).run()
