"""Error taxonomy shared by the protocol adapter, dispatcher and tools."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Failure categories, each with a JSON-RPC code and HTTP statuses."""

    PARSE_ERROR = "parse_error"
    INVALID_REQUEST = "invalid_request"
    INVALID_PARAMS = "invalid_params"
    METHOD_NOT_FOUND = "method_not_found"
    INTERNAL_ERROR = "internal_error"

    @property
    def code(self) -> int:
        return _JSONRPC_CODES[self]

    @property
    def rpc_status(self) -> int:
        """HTTP status used when the failure is rendered as a JSON-RPC envelope."""
        return _RPC_HTTP_STATUS[self]

    @property
    def rest_status(self) -> int:
        """HTTP status used on the flattened REST endpoints."""
        return _REST_HTTP_STATUS[self]


_JSONRPC_CODES = {
    ErrorKind.PARSE_ERROR: -32700,
    ErrorKind.INVALID_REQUEST: -32600,
    ErrorKind.METHOD_NOT_FOUND: -32601,
    ErrorKind.INVALID_PARAMS: -32602,
    ErrorKind.INTERNAL_ERROR: -32603,
}

_RPC_HTTP_STATUS = {
    ErrorKind.PARSE_ERROR: 400,
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.METHOD_NOT_FOUND: 501,
    ErrorKind.INVALID_PARAMS: 400,
    ErrorKind.INTERNAL_ERROR: 500,
}

_REST_HTTP_STATUS = {
    ErrorKind.PARSE_ERROR: 400,
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.METHOD_NOT_FOUND: 404,
    ErrorKind.INVALID_PARAMS: 400,
    ErrorKind.INTERNAL_ERROR: 500,
}


class DispatchError(Exception):
    """Base error for request validation and execution failures.

    ``data`` is attached to the JSON-RPC error object and merged into REST
    error bodies (``required``, ``example`` and similar hints).
    """

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str, data: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.data = data
        super().__init__(message)


class ParseError(DispatchError):
    """The request body is not valid JSON."""

    kind = ErrorKind.PARSE_ERROR


class InvalidRequestError(DispatchError):
    """The envelope is malformed (wrong protocol version, missing method)."""

    kind = ErrorKind.INVALID_REQUEST


class InvalidParamsError(DispatchError):
    """Arguments are missing, of the wrong type, or out of range."""

    kind = ErrorKind.INVALID_PARAMS


class MethodNotFoundError(DispatchError):
    """Unknown JSON-RPC method, tool, prompt or resource."""

    kind = ErrorKind.METHOD_NOT_FOUND
