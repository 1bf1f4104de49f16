"""
Runtime configuration for the FluidSDK MCP Server.

All environment access happens here, once, at startup. The resulting
``Settings`` value is immutable and is handed explicitly to the price table,
the payment gate, the facilitator client and the HTTP app.

Payment is enabled only when both ``FACILITATOR_URL`` and ``ADDRESS`` are
configured; otherwise every route is free.
"""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

SERVER_NAME = "fluidsdk-mcp-server"
SERVER_TITLE = "FluidSDK MCP Server"
SERVER_VERSION = "1.0.0"
PROTOCOL_VERSION = "2024-11-05"
DOCUMENTATION_URL = "https://docs.fluidsdk.io"


class Settings(BaseModel):
    """Immutable process configuration."""

    model_config = ConfigDict(frozen=True)

    facilitator_url: Optional[str] = None
    pay_to_address: Optional[str] = None
    network: str = "base-sepolia"
    public_url: Optional[str] = Field(
        default=None,
        description="Externally visible base URL used in 402 resource fields. "
        "Derived from the request when unset.",
    )
    cdp_api_key_id: str = ""
    cdp_api_key_secret: str = ""
    max_timeout_seconds: int = Field(default=60, ge=1)
    log_level: str = "INFO"
    port: int = 3000
    allowed_origins: tuple[str, ...] = ("*",)

    @property
    def payment_enabled(self) -> bool:
        return bool(self.facilitator_url and self.pay_to_address)

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "Settings":
        """Build settings from process environment (or an explicit mapping)."""
        env = os.environ if environ is None else environ
        origins = env.get("ALLOWED_ORIGINS", "*")
        return cls(
            facilitator_url=env.get("FACILITATOR_URL") or None,
            pay_to_address=env.get("ADDRESS") or None,
            network=env.get("NETWORK", "base-sepolia"),
            public_url=(env.get("PUBLIC_URL") or "").rstrip("/") or None,
            cdp_api_key_id=env.get("CDP_API_KEY_ID", ""),
            cdp_api_key_secret=env.get("CDP_API_KEY_SECRET", ""),
            max_timeout_seconds=int(env.get("PAYMENT_TIMEOUT_SECONDS", "60")),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            port=int(env.get("PORT", "3000")),
            allowed_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        )
