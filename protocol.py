"""
Protocol adapter: JSON-RPC 2.0 and flattened REST.

Inbound: normalise either wire shape into an ``Invocation``.
Outbound: render an ``Outcome`` back into the caller's shape.

  Success          JSON-RPC {jsonrpc, result, id}      REST 200 {success: true, ...value}
  Failure          JSON-RPC {jsonrpc, error, id}       REST 4xx/5xx {error, message, ...hints}
  PaymentRequired  HTTP 402 with the challenge body on every transport

Transports differ only here. Validation order and business rules live in
the dispatcher.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import JSONResponse

from errors import (
    DispatchError,
    ErrorKind,
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    ParseError,
)
from models import Failure, Invocation, Outcome, PaymentRequired, RpcMethod, ToolName
from pricing import route_key
from settings import Settings

PAYMENT_HEADER = "X-PAYMENT"
JSONRPC_VERSION = "2.0"

_INT_RE = re.compile(r"^[+-]?\d+$")

_REST_ERROR_TITLES = {
    ErrorKind.PARSE_ERROR: "Invalid JSON",
    ErrorKind.INVALID_REQUEST: "Invalid request",
    ErrorKind.INVALID_PARAMS: "Invalid parameters",
    ErrorKind.METHOD_NOT_FOUND: "Not found",
    ErrorKind.INTERNAL_ERROR: "Internal server error",
}


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


def payment_proof(request: Request) -> Optional[str]:
    """The raw X-PAYMENT header, or None when absent or blank."""
    value = request.headers.get(PAYMENT_HEADER, "").strip()
    return value or None


def resource_url(request: Request, settings: Settings) -> str:
    """Absolute URL of the requested resource, without query string."""
    base = settings.public_url or str(request.base_url).rstrip("/")
    return f"{base}{request.url.path}"


# ---------------------------------------------------------------------------
# JSON-RPC inbound
# ---------------------------------------------------------------------------


def parse_json_body(raw: bytes) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        raise ParseError("Parse error: request body is not valid JSON") from None


def jsonrpc_request_id(payload: Any) -> Any:
    if isinstance(payload, dict):
        return payload.get("id")
    return None


def _require_object(value: Any, field: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidParamsError(f"Invalid params: '{field}' must be an object")
    return value


def _require_name(params: dict[str, Any], field: str) -> str:
    value = params.get(field)
    if not isinstance(value, str) or not value:
        raise InvalidParamsError(
            f"Invalid params: '{field}' is required",
            data={"required": [field]},
        )
    return value


def jsonrpc_invocation(
    payload: Any,
    *,
    resource: str,
    proof: Optional[str] = None,
) -> Invocation:
    """Normalise a JSON-RPC request object. Raises DispatchError subclasses."""
    if not isinstance(payload, dict):
        raise InvalidRequestError("Invalid Request: expected a JSON object")
    if payload.get("jsonrpc") != JSONRPC_VERSION:
        raise InvalidRequestError("Invalid Request: jsonrpc must be '2.0'")

    method_name = payload.get("method")
    if not isinstance(method_name, str):
        raise InvalidRequestError("Invalid Request: method must be a string")
    try:
        method = RpcMethod(method_name)
    except ValueError:
        raise MethodNotFoundError(f"Method not implemented: {method_name}") from None

    params = _require_object(payload.get("params"), "params")
    name: Optional[str] = None
    arguments: dict[str, Any] = {}

    if method is RpcMethod.TOOLS_CALL:
        name = _require_name(params, "name")
        arguments = _require_object(params.get("arguments"), "arguments")
    elif method is RpcMethod.PROMPTS_GET:
        name = _require_name(params, "name")
        arguments = _require_object(params.get("arguments"), "arguments")
    elif method is RpcMethod.RESOURCES_READ:
        name = _require_name(params, "uri")

    return Invocation(
        method=method,
        capability_name=name,
        arguments=arguments,
        route_key=method.value,
        resource_url=resource,
        payment_proof=proof,
    )


# ---------------------------------------------------------------------------
# REST inbound
# ---------------------------------------------------------------------------


def _coerce(value: Any, expected: Optional[str]) -> Any:
    """Parse query-string style values according to the schema type."""
    if expected != "number" or not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return value
    if _INT_RE.match(text):
        try:
            return int(text)
        except ValueError:
            # past the int digit limit; float() gives inf, rejected on validation
            pass
    try:
        return float(text)
    except ValueError:
        return value


def coerce_arguments(schema: Mapping[str, Any], raw: Mapping[str, Any]) -> dict[str, Any]:
    """Apply schema-driven coercion so GET and POST accept identical inputs."""
    properties = schema.get("properties", {})
    return {
        key: _coerce(value, properties.get(key, {}).get("type"))
        for key, value in raw.items()
        if key in properties
    }


def rest_invocation(
    tool: ToolName,
    schema: Mapping[str, Any],
    raw_params: Mapping[str, Any],
    *,
    verb: str,
    path: str,
    resource: str,
    proof: Optional[str] = None,
) -> Invocation:
    return Invocation(
        method=RpcMethod.TOOLS_CALL,
        capability_name=tool.value,
        arguments=coerce_arguments(schema, raw_params),
        route_key=route_key(verb, path),
        resource_url=resource,
        payment_proof=proof,
    )


# ---------------------------------------------------------------------------
# Outbound
# ---------------------------------------------------------------------------


def _challenge_response(outcome: PaymentRequired) -> JSONResponse:
    return JSONResponse(status_code=402, content=outcome.challenge.model_dump(by_alias=True))


def jsonrpc_error(failure: Failure, request_id: Any = None) -> JSONResponse:
    error: dict[str, Any] = {"code": failure.kind.code, "message": failure.message}
    if failure.data is not None:
        error["data"] = failure.data
    return JSONResponse(
        status_code=failure.kind.rpc_status,
        content={"jsonrpc": JSONRPC_VERSION, "error": error, "id": request_id},
    )


def render_jsonrpc(outcome: Outcome, request_id: Any = None) -> JSONResponse:
    if isinstance(outcome, PaymentRequired):
        return _challenge_response(outcome)
    if isinstance(outcome, Failure):
        return jsonrpc_error(outcome, request_id)

    if outcome.text is not None:
        result: Any = {"content": [{"type": "text", "text": outcome.text}]}
    else:
        result = outcome.value
    return JSONResponse(content={"jsonrpc": JSONRPC_VERSION, "result": result, "id": request_id})


def _rest_example(example: Any, verb: str, path: str) -> Any:
    if verb.upper() == "GET" and isinstance(example, dict) and path:
        return f"{path}?{urlencode(example)}"
    return example


def render_rest(outcome: Outcome, *, verb: str = "GET", path: str = "", flatten: bool = True) -> JSONResponse:
    """Render for the flattened REST endpoints.

    ``flatten`` merges a dict success value under ``success: true``; listing
    endpoints pass ``flatten=False`` and return the value as-is.
    """
    if isinstance(outcome, PaymentRequired):
        return _challenge_response(outcome)

    if isinstance(outcome, Failure):
        body: dict[str, Any] = {
            "error": _REST_ERROR_TITLES[outcome.kind],
            "message": outcome.message,
        }
        if outcome.data:
            hints = dict(outcome.data)
            if "missing" in hints:
                body["error"] = "Missing parameters"
            if "example" in hints:
                hints["example"] = _rest_example(hints["example"], verb, path)
            body.update(hints)
        return JSONResponse(status_code=outcome.kind.rest_status, content=body)

    if flatten and isinstance(outcome.value, dict):
        return JSONResponse(content={"success": True, **outcome.value})
    return JSONResponse(content=outcome.value)


def failure_from(exc: DispatchError) -> Failure:
    return Failure(kind=exc.kind, message=exc.message, data=exc.data)
