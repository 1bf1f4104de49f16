"""
Capability registry: the static catalog of tools, prompts and resources.

Built once at startup and shared read-only by every request. Listing
results are computed in ``__init__`` and handed out as copies, so repeated
listings are byte-identical for the life of the process.
"""

from __future__ import annotations

import copy
from typing import Any, Mapping, Optional

from errors import MethodNotFoundError
from models import CapabilityDescriptor, CapabilityKind, PriceEntry, ToolName
from pricing import TOOL_PATHS, pricing_summary, tool_price
from settings import PROTOCOL_VERSION, SERVER_NAME, SERVER_VERSION

# ---------------------------------------------------------------------------
# Static catalog
# ---------------------------------------------------------------------------

TOOL_SCHEMAS: dict[ToolName, tuple[str, dict[str, Any]]] = {
    ToolName.CALCULATE: (
        "Perform basic mathematical calculations (add, subtract, multiply, divide)",
        {
            "type": "object",
            "properties": {
                "operation": {
                    "type": "string",
                    "enum": ["add", "subtract", "multiply", "divide"],
                    "description": "The mathematical operation to perform",
                },
                "a": {"type": "number", "description": "First number"},
                "b": {"type": "number", "description": "Second number"},
            },
            "required": ["operation", "a", "b"],
        },
    ),
    ToolName.GET_WEATHER: (
        "Get mock weather information for a location",
        {
            "type": "object",
            "properties": {
                "location": {"type": "string", "description": "City name or coordinates"},
                "unit": {
                    "type": "string",
                    "enum": ["celsius", "fahrenheit"],
                    "description": "Temperature unit",
                },
            },
            "required": ["location"],
        },
    ),
    ToolName.ECHO: (
        "Echo back the input message",
        {
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Message to echo back"},
            },
            "required": ["message"],
        },
    ),
    ToolName.GET_TIMESTAMP: (
        "Get current timestamp in various formats",
        {
            "type": "object",
            "properties": {
                "format": {
                    "type": "string",
                    "enum": ["iso", "unix", "locale"],
                    "description": "Timestamp format",
                },
            },
            "required": [],
        },
    ),
}

# name -> (description, [(argument, description, required)])
PROMPTS: dict[str, tuple[str, list[tuple[str, str, bool]]]] = {
    "greeting": (
        "Generate a friendly greeting message",
        [
            ("name", "Name of the person to greet", True),
            ("time_of_day", "Time of day (morning, afternoon, evening)", False),
        ],
    ),
    "code_review": (
        "Generate a code review prompt template",
        [
            ("language", "Programming language", True),
            ("complexity", "Code complexity level (low, medium, high)", False),
        ],
    ),
    "debug_assistant": (
        "Generate a debugging assistance prompt",
        [("error_type", "Type of error (syntax, runtime, logical)", True)],
    ),
}

# uri -> (display name, description, mime type)
RESOURCES: dict[str, tuple[str, str, str]] = {
    "fluidsdk://config": ("Server Configuration", "Current MCP server configuration", "application/json"),
    "fluidsdk://status": ("Server Status", "Real-time server health and metrics", "application/json"),
    "fluidsdk://docs/api": ("API Documentation", "FluidSDK API reference", "text/markdown"),
    "fluidsdk://docs/quickstart": ("Quick Start Guide", "Getting started with FluidSDK", "text/markdown"),
}

SERVER_CAPABILITIES = {
    "tools": {"listChanged": False},
    "prompts": {"listChanged": False},
    "resources": {"subscribe": False, "listChanged": False},
}


def _prompt_schema(arguments: list[tuple[str, str, bool]]) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {name: {"type": "string", "description": desc} for name, desc, _ in arguments},
        "required": [name for name, _, required in arguments if required],
    }


def parse_tool_name(name: str) -> ToolName:
    """Map a wire tool name onto the closed ``ToolName`` set."""
    try:
        return ToolName(name)
    except ValueError:
        raise MethodNotFoundError(
            f"Unknown tool: {name}",
            data={"availableTools": [t.value for t in ToolName]},
        ) from None


class CapabilityRegistry:
    """Immutable catalog of everything the server advertises."""

    def __init__(self, prices: Optional[Mapping[str, PriceEntry]] = None) -> None:
        prices = prices or {}
        self._tools: dict[ToolName, CapabilityDescriptor] = {
            tool: CapabilityDescriptor(
                name=tool.value,
                kind=CapabilityKind.TOOL,
                description=description,
                input_schema=schema,
                pricing=tool_price(prices, tool),
            )
            for tool, (description, schema) in TOOL_SCHEMAS.items()
        }
        self._prompts: dict[str, CapabilityDescriptor] = {
            name: CapabilityDescriptor(
                name=name,
                kind=CapabilityKind.PROMPT,
                description=description,
                input_schema=_prompt_schema(arguments),
            )
            for name, (description, arguments) in PROMPTS.items()
        }
        self._resources: dict[str, CapabilityDescriptor] = {
            uri: CapabilityDescriptor(
                name=title,
                kind=CapabilityKind.RESOURCE,
                description=description,
                uri=uri,
                mime_type=mime_type,
            )
            for uri, (title, description, mime_type) in RESOURCES.items()
        }

        self._listings = {
            "tools": {"tools": [self._tool_entry(d) for d in self._tools.values()]},
            "prompts": {"prompts": [self._prompt_entry(d) for d in self._prompts.values()]},
            "resources": {"resources": [self._resource_entry(d) for d in self._resources.values()]},
        }

    # -- lookups ------------------------------------------------------------

    def tool(self, name: ToolName) -> CapabilityDescriptor:
        return self._tools[name]

    def tools(self) -> list[CapabilityDescriptor]:
        return list(self._tools.values())

    def prompt(self, name: str) -> CapabilityDescriptor:
        try:
            return self._prompts[name]
        except KeyError:
            raise MethodNotFoundError(
                f"Unknown prompt: {name}", data={"availablePrompts": list(self._prompts)}
            ) from None

    def prompts(self) -> list[CapabilityDescriptor]:
        return list(self._prompts.values())

    def resource(self, uri: str) -> CapabilityDescriptor:
        try:
            return self._resources[uri]
        except KeyError:
            raise MethodNotFoundError(
                f"Unknown resource: {uri}", data={"availableResources": list(self._resources)}
            ) from None

    def resources(self) -> list[CapabilityDescriptor]:
        return list(self._resources.values())

    # -- MCP listings ---------------------------------------------------------

    def list_tools(self) -> dict[str, Any]:
        return copy.deepcopy(self._listings["tools"])

    def list_prompts(self) -> dict[str, Any]:
        return copy.deepcopy(self._listings["prompts"])

    def list_resources(self) -> dict[str, Any]:
        return copy.deepcopy(self._listings["resources"])

    @staticmethod
    def initialize_result() -> dict[str, Any]:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": copy.deepcopy(SERVER_CAPABILITIES),
            "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
        }

    # -- REST (simplified) listings -----------------------------------------

    def rest_tools(self) -> list[dict[str, Any]]:
        """Flattened tool listing with REST endpoint and pricing per tool."""
        out = []
        for tool, descriptor in self._tools.items():
            schema = descriptor.input_schema
            required = set(schema.get("required", []))
            parameters = []
            for key, prop in schema.get("properties", {}).items():
                param = {
                    "name": key,
                    "type": prop.get("type"),
                    "description": prop.get("description"),
                    "required": key in required,
                }
                if "enum" in prop:
                    param["enum"] = list(prop["enum"])
                parameters.append(param)
            out.append({
                "name": descriptor.name,
                "description": descriptor.description,
                "endpoint": TOOL_PATHS[tool],
                "parameters": parameters,
                "pricing": pricing_summary(descriptor.pricing),
            })
        return out

    def rest_prompts(self) -> list[dict[str, Any]]:
        return copy.deepcopy([
            {"name": p["name"], "description": p["description"], "parameters": p["arguments"]}
            for p in self._listings["prompts"]["prompts"]
        ])

    def rest_resources(self) -> list[dict[str, Any]]:
        return copy.deepcopy([
            {"name": r["name"], "uri": r["uri"], "description": r["description"], "mimeType": r["mimeType"]}
            for r in self._listings["resources"]["resources"]
        ])

    # -- entry builders -------------------------------------------------------

    @staticmethod
    def _tool_entry(d: CapabilityDescriptor) -> dict[str, Any]:
        return {"name": d.name, "description": d.description, "inputSchema": copy.deepcopy(d.input_schema)}

    @staticmethod
    def _prompt_entry(d: CapabilityDescriptor) -> dict[str, Any]:
        props = d.input_schema.get("properties", {})
        required = set(d.required)
        return {
            "name": d.name,
            "description": d.description,
            "arguments": [
                {"name": key, "description": prop.get("description", ""), "required": key in required}
                for key, prop in props.items()
            ],
        }

    @staticmethod
    def _resource_entry(d: CapabilityDescriptor) -> dict[str, Any]:
        return {"uri": d.uri, "name": d.name, "description": d.description, "mimeType": d.mime_type}
