"""Tests for the capability registry and prompt/resource content."""

import json

import pytest

import content
from errors import MethodNotFoundError
from models import ToolName
from pricing import build_price_table
from registry import CapabilityRegistry, parse_tool_name


class TestCapabilityRegistry:
    def test_tool_listing_is_stable_and_copied(self):
        registry = CapabilityRegistry()
        first = registry.list_tools()
        first["tools"].clear()
        assert registry.list_tools() == registry.list_tools()
        assert [t["name"] for t in registry.list_tools()["tools"]] == [
            "calculate", "get_weather", "echo", "get_timestamp",
        ]

    def test_listings_have_mcp_shape(self):
        registry = CapabilityRegistry()
        tool = registry.list_tools()["tools"][0]
        assert set(tool) == {"name", "description", "inputSchema"}
        prompt = registry.list_prompts()["prompts"][0]
        assert prompt["name"] == "greeting"
        assert {"name": "name", "description": "Name of the person to greet", "required": True} in prompt["arguments"]
        uris = [r["uri"] for r in registry.list_resources()["resources"]]
        assert uris == ["fluidsdk://config", "fluidsdk://status", "fluidsdk://docs/api", "fluidsdk://docs/quickstart"]

    def test_rest_tools_without_payment(self):
        tools = CapabilityRegistry().rest_tools()
        calculate = tools[0]
        assert calculate["endpoint"] == "/mcp/calculate"
        assert calculate["pricing"] is None
        operation = calculate["parameters"][0]
        assert operation["enum"] == ["add", "subtract", "multiply", "divide"]
        assert operation["required"] is True

    def test_rest_tools_with_payment(self, paid_settings):
        tools = CapabilityRegistry(build_price_table(paid_settings)).rest_tools()
        assert tools[1]["pricing"]["price"] == "$0.002"
        assert tools[1]["pricing"]["chainId"] == 84532

    def test_initialize_result(self):
        result = CapabilityRegistry.initialize_result()
        assert result["protocolVersion"] == "2024-11-05"
        assert result["serverInfo"] == {"name": "fluidsdk-mcp-server", "version": "1.0.0"}
        assert result["capabilities"]["resources"] == {"subscribe": False, "listChanged": False}

    def test_unknown_lookups(self):
        registry = CapabilityRegistry()
        with pytest.raises(MethodNotFoundError):
            registry.prompt("nope")
        with pytest.raises(MethodNotFoundError):
            registry.resource("fluidsdk://nope")

    def test_parse_tool_name(self):
        assert parse_tool_name("echo") is ToolName.ECHO
        with pytest.raises(MethodNotFoundError) as exc:
            parse_tool_name("rm")
        assert exc.value.data["availableTools"] == ["calculate", "get_weather", "echo", "get_timestamp"]


class TestContent:
    def test_greeting_prompt(self):
        result = content.render_prompt("greeting", {"name": "Ada", "time_of_day": "morning"})
        message = result["messages"][0]
        assert message["role"] == "user"
        assert message["content"]["text"].startswith("Good morning, Ada!")

    def test_debug_prompt_unknown_type_falls_back(self):
        text = content.render_prompt("debug_assistant", {"error_type": "cosmic"})["messages"][0]["content"]["text"]
        assert "runtime error" in text

    def test_config_resource(self):
        item = content.read_resource("fluidsdk://config")["contents"][0]
        assert item["mimeType"] == "application/json"
        assert json.loads(item["text"])["serverName"] == "fluidsdk-mcp-server"

    def test_docs_resource(self):
        item = content.read_resource("fluidsdk://docs/quickstart")["contents"][0]
        assert item["mimeType"] == "text/markdown"
        assert item["text"].startswith("# FluidSDK Quick Start")
