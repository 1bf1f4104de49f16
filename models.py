"""
Shared data models for the FluidSDK MCP Server.

Wire-facing models serialise with camelCase aliases (``model_dump(by_alias=True)``)
so the 402 challenge and capability listings match the x402 / MCP field names.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from errors import ErrorKind

USDC_DECIMALS = 6


class ToolName(str, Enum):
    """Closed set of executable tools."""

    CALCULATE = "calculate"
    GET_WEATHER = "get_weather"
    ECHO = "echo"
    GET_TIMESTAMP = "get_timestamp"


class CapabilityKind(str, Enum):
    TOOL = "tool"
    PROMPT = "prompt"
    RESOURCE = "resource"


class RpcMethod(str, Enum):
    """JSON-RPC methods understood by the dispatcher."""

    INITIALIZE = "initialize"
    TOOLS_LIST = "tools/list"
    PROMPTS_LIST = "prompts/list"
    RESOURCES_LIST = "resources/list"
    TOOLS_CALL = "tools/call"
    PROMPTS_GET = "prompts/get"
    RESOURCES_READ = "resources/read"


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Pricing / x402
# ---------------------------------------------------------------------------


class PriceEntry(_WireModel):
    """Price of one route, in USD as a decimal string."""

    amount: str
    currency: Literal["USDC"] = "USDC"
    network: str
    pay_to_address: str
    asset_address: str
    max_timeout_seconds: int = 60

    @property
    def max_amount_required(self) -> str:
        """Amount in USDC minor units (6 decimals) as a string."""
        minor = Decimal(self.amount).scaleb(USDC_DECIMALS)
        return str(int(minor.to_integral_value()))

    @property
    def display_price(self) -> str:
        return f"${self.amount}"


class PaymentRequirement(_WireModel):
    """One entry of a 402 challenge's ``accepts`` list."""

    scheme: Literal["exact"] = "exact"
    network: str
    max_amount_required: str
    resource: str
    description: str = ""
    mime_type: str = "application/json"
    pay_to: str
    max_timeout_seconds: int
    asset: str
    extra: dict[str, str] = Field(default_factory=lambda: {"name": "USDC", "version": "2"})


class PaymentChallenge(_WireModel):
    """The exact HTTP 402 body."""

    x402_version: Literal[1] = 1
    error: str = "X-PAYMENT header is required"
    accepts: list[PaymentRequirement]


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


class CapabilityDescriptor(_WireModel):
    """A tool, prompt or resource advertised by the server."""

    name: str
    kind: CapabilityKind
    description: str
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )
    pricing: Optional[PriceEntry] = None
    title: Optional[str] = None
    uri: Optional[str] = None
    mime_type: Optional[str] = None

    @property
    def required(self) -> list[str]:
        return list(self.input_schema.get("required", []))


# ---------------------------------------------------------------------------
# Per-request values
# ---------------------------------------------------------------------------


class Invocation(BaseModel):
    """A normalised request, independent of the transport it arrived on."""

    model_config = ConfigDict(frozen=True)

    method: RpcMethod
    capability_name: Optional[str] = None
    arguments: dict[str, Any] = Field(default_factory=dict)
    route_key: str
    resource_url: str = ""
    payment_proof: Optional[str] = None


class Success(BaseModel):
    """Handler result. ``text`` is the MCP text content for tool calls."""

    value: Any
    text: Optional[str] = None


class Failure(BaseModel):
    kind: ErrorKind
    message: str
    data: Optional[dict[str, Any]] = None


class PaymentRequired(BaseModel):
    challenge: PaymentChallenge


Outcome = Union[Success, Failure, PaymentRequired]
