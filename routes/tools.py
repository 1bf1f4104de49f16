"""
Tool Routes
============
Flattened REST mirrors of ``tools/call``, one path per tool:

  GET|POST /mcp/calculate   operation, a, b
  GET|POST /mcp/weather     location, unit
  GET|POST /mcp/echo        message
  GET|POST /mcp/timestamp   format

GET reads the query string, POST reads a JSON body; both are coerced against
the tool's input schema, so they accept identical inputs. Each route has its
own price (see pricing.py) and answers 402 with an x402 challenge when a
payment proof is required.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request

from errors import DispatchError, InvalidRequestError
from models import ToolName
from pricing import TOOL_PATHS
from protocol import (
    failure_from,
    parse_json_body,
    payment_proof,
    render_rest,
    resource_url,
    rest_invocation,
)

logger = logging.getLogger("fluid-mcp.rest")

router = APIRouter(prefix="/mcp", tags=["tools"])


async def _json_params(request: Request) -> dict[str, Any]:
    raw = await request.body()
    if not raw.strip():
        return {}
    body = parse_json_body(raw)
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return body


async def _invoke(request: Request, tool: ToolName):
    """Normalise the request, dispatch it and render the flattened REST response."""
    settings = request.state.settings
    dispatcher = request.state.dispatcher
    path = TOOL_PATHS[tool]
    logger.debug("REST %s %s", request.method, path)

    try:
        if request.method == "GET":
            params: dict[str, Any] = dict(request.query_params)
        else:
            params = await _json_params(request)
    except DispatchError as e:
        return render_rest(failure_from(e), verb=request.method, path=path)

    invocation = rest_invocation(
        tool,
        dispatcher.registry.tool(tool).input_schema,
        params,
        verb=request.method,
        path=path,
        resource=resource_url(request, settings),
        proof=payment_proof(request),
    )
    outcome = await dispatcher.dispatch(invocation)
    return render_rest(outcome, verb=request.method, path=path)


@router.get("/calculate", summary="Perform a calculation ($0.001 via x402)")
async def calculate_get(request: Request):
    """Example: ``/mcp/calculate?operation=add&a=10&b=5``"""
    return await _invoke(request, ToolName.CALCULATE)


@router.post("/calculate", summary="Perform a calculation ($0.001 via x402)")
async def calculate_post(request: Request):
    return await _invoke(request, ToolName.CALCULATE)


@router.get("/weather", summary="Simulated weather for a location ($0.002 via x402)")
async def weather_get(request: Request):
    """Example: ``/mcp/weather?location=New%20York&unit=celsius``"""
    return await _invoke(request, ToolName.GET_WEATHER)


@router.post("/weather", summary="Simulated weather for a location ($0.002 via x402)")
async def weather_post(request: Request):
    return await _invoke(request, ToolName.GET_WEATHER)


@router.get("/echo", summary="Echo a message ($0.0005 via x402)")
async def echo_get(request: Request):
    return await _invoke(request, ToolName.ECHO)


@router.post("/echo", summary="Echo a message ($0.0005 via x402)")
async def echo_post(request: Request):
    return await _invoke(request, ToolName.ECHO)


@router.get("/timestamp", summary="Current timestamp ($0.0005 via x402)")
async def timestamp_get(request: Request):
    return await _invoke(request, ToolName.GET_TIMESTAMP)


@router.post("/timestamp", summary="Current timestamp ($0.0005 via x402)")
async def timestamp_post(request: Request):
    return await _invoke(request, ToolName.GET_TIMESTAMP)
