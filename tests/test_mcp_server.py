"""Tests for the FastMCP transport (in-memory client, no HTTP)."""

import json

import pytest
from fastmcp import Client
from fastmcp.exceptions import ToolError

from mcp_server import build_mcp


@pytest.fixture
def free_mcp(free_dispatcher, free_settings):
    return build_mcp(free_dispatcher, free_settings)


@pytest.fixture
def paid_mcp(paid_dispatcher, paid_settings):
    return build_mcp(paid_dispatcher, paid_settings)


class TestMcpTools:
    async def test_lists_all_tools(self, free_mcp):
        async with Client(free_mcp) as client:
            tools = await client.list_tools()
        assert {t.name for t in tools} == {"calculate", "get_weather", "echo", "get_timestamp"}

    async def test_echo(self, free_mcp):
        async with Client(free_mcp) as client:
            result = await client.call_tool("echo", {"message": "hi"})
        assert result.content[0].text == "Echo: hi"

    async def test_calculate_returns_json_text(self, free_mcp):
        async with Client(free_mcp) as client:
            result = await client.call_tool("calculate", {"operation": "add", "a": 10, "b": 5})
        assert json.loads(result.content[0].text)["expression"] == "10 add 5 = 15"

    async def test_invalid_operation_is_tool_error(self, free_mcp):
        async with Client(free_mcp) as client:
            with pytest.raises(ToolError, match="Invalid operation"):
                await client.call_tool("calculate", {"operation": "pow", "a": 1, "b": 2})

    async def test_payment_required_carries_challenge(self, paid_mcp, verifier):
        async with Client(paid_mcp) as client:
            with pytest.raises(ToolError) as exc:
                await client.call_tool("echo", {"message": "hi"})
        assert '"x402Version": 1' in str(exc.value)
        assert '"maxAmountRequired": "5000"' in str(exc.value)
        verifier.verify.assert_not_called()


class TestMcpPromptsAndResources:
    async def test_prompt(self, free_mcp):
        async with Client(free_mcp) as client:
            result = await client.get_prompt("greeting", {"name": "Ada"})
        assert "Ada" in result.messages[0].content.text

    async def test_resource(self, free_mcp):
        async with Client(free_mcp) as client:
            contents = await client.read_resource("fluidsdk://config")
        assert json.loads(contents[0].text)["serverName"] == "fluidsdk-mcp-server"
