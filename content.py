"""
Prompt templates and readable resources.

Served by ``prompts/get`` and ``resources/read``. Neither is priced.
"""

from __future__ import annotations

import json
import os
import platform
import sys
import time
from datetime import datetime, timezone
from typing import Any, Optional

from registry import PROMPTS, RESOURCES
from models import ToolName
from settings import DOCUMENTATION_URL, SERVER_NAME, SERVER_VERSION

_STARTED = time.monotonic()

_DEBUG_PROMPTS = {
    "syntax": "I'm encountering a syntax error. Please help me identify and fix the syntax issue in my code.",
    "runtime": (
        "I'm experiencing a runtime error. Please help me debug this issue by analyzing "
        "the error message and stack trace."
    ),
    "logical": (
        "My code runs without errors but produces incorrect results. "
        "Please help me identify the logical error."
    ),
}

_CODE_REVIEW_TEMPLATE = """Please review the following {language} code with {complexity} complexity.

Focus Areas:
1. **Code Quality**: Best practices and design patterns
2. **Security**: Potential vulnerabilities or security issues
3. **Performance**: Optimization opportunities
4. **Maintainability**: Readability and documentation
5. **Testing**: Test coverage and edge cases

Provide specific, actionable feedback with examples where appropriate."""

API_DOCS = f"""# FluidSDK API Reference

## Core Classes

### FluidSDK
Main SDK class for interacting with the Agent0 protocol.

```typescript
const sdk = new FluidSDK({{
  chainId: 11155111,
  rpcUrl: "https://eth-sepolia.g.alchemy.com/v2/YOUR-API-KEY",
  signer: wallet,
  ipfs: "pinata",
  pinataJwt: "YOUR-PINATA-JWT"
}});
```

### Agent
Represents an on-chain agent with capabilities.

```typescript
const agent = sdk.createAgent("My Agent", "Description", "image-uri");
await agent.setMCP("https://your-mcp-server.com");
await agent.registerIPFS();
```

## Methods

### createAgent(name, description, image)
Create a new agent instance.

### searchAgents(params, sort, pageSize, cursor)
Search for agents with filters.

### giveFeedback(agentId, feedbackFile, feedbackAuth)
Submit feedback for an agent.

For more details, visit: {DOCUMENTATION_URL}
"""

QUICKSTART = f"""# FluidSDK Quick Start Guide

## Installation

```bash
npm install fluidsdk
```

## Setup

```typescript
import {{ FluidSDK }} from "fluidsdk";
import {{ ethers }} from "ethers";

const wallet = new ethers.Wallet("YOUR-PRIVATE-KEY");

const sdk = new FluidSDK({{
  chainId: 11155111, // Sepolia testnet
  rpcUrl: "https://eth-sepolia.g.alchemy.com/v2/YOUR-API-KEY",
  signer: wallet
}});
```

## Create and Register an Agent

```typescript
const agent = sdk.createAgent(
  "My First Agent",
  "A test agent for FluidSDK",
  "ipfs://QmYourImageHash"
);

await agent.setMCP("https://your-mcp-server.com");
await agent.registerIPFS();

console.log("Agent registered with ID:", agent.agentId);
```

## Give Feedback

```typescript
const feedbackFile = sdk.prepareFeedback(agentId, 5, ["helpful", "accurate"], "Great agent!");
await sdk.giveFeedback(agentId, feedbackFile);
```

## Next Steps

- Explore agent search and discovery
- Implement feedback collection
- Deploy your MCP server
- Join our community

Visit {DOCUMENTATION_URL} for full documentation.
"""


def uptime_seconds() -> float:
    return round(time.monotonic() - _STARTED, 3)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------


def render_prompt(name: str, arguments: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """Render a prompt to MCP ``prompts/get`` result shape."""
    args = arguments or {}
    if name == "greeting":
        who = args.get("name") or "User"
        time_of_day = args.get("time_of_day") or "day"
        text = (
            f"Good {time_of_day}, {who}! Welcome to FluidSDK. I'm your AI assistant powered "
            "by the Model Context Protocol. How can I help you today?"
        )
    elif name == "code_review":
        text = _CODE_REVIEW_TEMPLATE.format(
            language=args.get("language") or "JavaScript",
            complexity=args.get("complexity") or "medium",
        )
    elif name == "debug_assistant":
        text = _DEBUG_PROMPTS.get(args.get("error_type") or "runtime", _DEBUG_PROMPTS["runtime"])
    else:
        raise KeyError(name)

    return {
        "description": PROMPTS[name][0],
        "messages": [{"role": "user", "content": {"type": "text", "text": text}}],
    }


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


def _config_document() -> dict[str, Any]:
    return {
        "serverName": SERVER_NAME,
        "version": SERVER_VERSION,
        "capabilities": ["tools", "prompts", "resources"],
        "tools": [t.value for t in ToolName],
        "prompts": list(PROMPTS),
        "resources": [uri.split("://", 1)[1] for uri in RESOURCES],
        "timestamp": utc_now_iso(),
    }


def _status_document() -> dict[str, Any]:
    return {
        "status": "healthy",
        "uptime": uptime_seconds(),
        "pid": os.getpid(),
        "platform": sys.platform,
        "pythonVersion": platform.python_version(),
        "timestamp": utc_now_iso(),
    }


def read_resource(uri: str) -> dict[str, Any]:
    """Read a resource to MCP ``resources/read`` result shape."""
    mime_type = RESOURCES[uri][2]
    if uri == "fluidsdk://config":
        text = json.dumps(_config_document(), indent=2)
    elif uri == "fluidsdk://status":
        text = json.dumps(_status_document(), indent=2)
    elif uri == "fluidsdk://docs/api":
        text = API_DOCS
    elif uri == "fluidsdk://docs/quickstart":
        text = QUICKSTART
    else:
        raise KeyError(uri)
    return {"contents": [{"uri": uri, "mimeType": mime_type, "text": text}]}
