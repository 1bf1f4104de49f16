"""
MCP Routes
===========
JSON-RPC 2.0 endpoint plus REST mirrors of the MCP discovery methods.

  - JSON-RPC:      POST /mcp              (initialize, */list, tools/call, prompts/get, resources/read)
  - Initialize:    POST /mcp/initialize
  - Tools:         GET|POST /mcp/tools      (flattened, with endpoint + pricing)
  - Prompts:       GET|POST /mcp/prompts
  - Resources:     GET|POST /mcp/resources

Only ``tools/call`` is priced. A payment-required outcome is answered with
HTTP 402 and the x402 challenge body, not with a JSON-RPC error envelope.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from fastapi import APIRouter, Request

from errors import DispatchError
from models import Invocation, RpcMethod, Success
from pricing import route_key
from protocol import (
    failure_from,
    jsonrpc_error,
    jsonrpc_invocation,
    jsonrpc_request_id,
    parse_json_body,
    payment_proof,
    render_jsonrpc,
    render_rest,
    resource_url,
)

logger = logging.getLogger("fluid-mcp.mcp")

router = APIRouter(prefix="/mcp", tags=["mcp"])


@router.post("", summary="MCP JSON-RPC 2.0 endpoint")
async def jsonrpc_endpoint(request: Request):
    """Dispatch a JSON-RPC request. ``tools/call`` requires an X-PAYMENT proof when priced."""
    settings = request.state.settings
    dispatcher = request.state.dispatcher

    request_id: Any = None
    try:
        payload = parse_json_body(await request.body())
        request_id = jsonrpc_request_id(payload)
        invocation = jsonrpc_invocation(
            payload,
            resource=resource_url(request, settings),
            proof=payment_proof(request),
        )
    except DispatchError as e:
        logger.info("Rejected JSON-RPC request: %s", e.message)
        return jsonrpc_error(failure_from(e), request_id)

    logger.info("JSON-RPC %s id=%s", invocation.method.value, request_id)
    outcome = await dispatcher.dispatch(invocation)
    return render_jsonrpc(outcome, request_id)


async def _rest_listing(request: Request, method: RpcMethod, simplify: Callable[[], Any]):
    """Run a discovery method through the dispatcher, render the flattened REST view."""
    dispatcher = request.state.dispatcher
    outcome = await dispatcher.dispatch(
        Invocation(method=method, route_key=route_key(request.method, request.url.path))
    )
    if isinstance(outcome, Success):
        outcome = Success(value=simplify())
    return render_rest(outcome, verb=request.method, path=request.url.path, flatten=False)


@router.post("/initialize", summary="MCP initialize handshake")
async def initialize(request: Request):
    try:
        body = parse_json_body((await request.body()).strip() or b"{}")
    except DispatchError as e:
        return render_rest(failure_from(e), verb=request.method, path=request.url.path, flatten=False)
    client_info = body.get("clientInfo") if isinstance(body, dict) else None
    if isinstance(client_info, dict):
        logger.info(
            "Initialize from client %s v%s",
            client_info.get("name", "unknown"), client_info.get("version", "unknown"),
        )
    dispatcher = request.state.dispatcher
    return await _rest_listing(request, RpcMethod.INITIALIZE, dispatcher.registry.initialize_result)


@router.api_route("/tools", methods=["GET", "POST"], summary="List tools with REST endpoints and pricing")
async def list_tools(request: Request):
    return await _rest_listing(request, RpcMethod.TOOLS_LIST, request.state.dispatcher.registry.rest_tools)


@router.api_route("/prompts", methods=["GET", "POST"], summary="List prompt templates")
async def list_prompts(request: Request):
    return await _rest_listing(request, RpcMethod.PROMPTS_LIST, request.state.dispatcher.registry.rest_prompts)


@router.api_route("/resources", methods=["GET", "POST"], summary="List readable resources")
async def list_resources(request: Request):
    return await _rest_listing(
        request, RpcMethod.RESOURCES_LIST, request.state.dispatcher.registry.rest_resources
    )
