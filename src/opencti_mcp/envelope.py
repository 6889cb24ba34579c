"""
Message envelope validation.

Runs once per inbound body, before any transport adapter exists. Pure: the
result is either a parsed request/notification or a raised EnvelopeError.
"""

import json
import math
from typing import Any, Optional, Union

from pydantic import ValidationError

from .errors import InvalidRequestError, ParseError
from .jsonrpc import (
    JSONRPC_VERSION,
    JSONRPCMessage,
    JSONRPCNotification,
    JSONRPCRequest,
    RequestId,
)


def parse_body(raw: Union[bytes, str]) -> Any:
    """Decode a raw request body into a JSON value."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Parse error: body is not valid UTF-8 ({e.reason})")

    if not raw.strip():
        raise ParseError("Parse error: empty request body")

    try:
        return json.loads(raw, parse_constant=_reject_constant, parse_float=_parse_finite_float)
    except json.JSONDecodeError as e:
        raise ParseError(f"Parse error: {e.msg}")


def _reject_constant(token: str) -> float:
    # NaN and Infinity are not JSON and cannot be written back out
    raise ParseError(f"Parse error: {token} is not a valid JSON value")


def _parse_finite_float(literal: str) -> float:
    value = float(literal)
    if not math.isfinite(value):
        raise ParseError(f"Parse error: number {literal} is out of range")
    return value


def is_valid_id(value: Any) -> bool:
    """Request ids are strings or finite numbers; booleans and null are rejected."""
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, (str, int))


def best_effort_id(data: Any) -> Optional[RequestId]:
    """Return the body's id if it is usable for an error response, else None."""
    if isinstance(data, dict) and is_valid_id(data.get("id")):
        return data["id"]
    return None


def validate_envelope(data: Any) -> JSONRPCMessage:
    """
    Validate a decoded body as a JSON-RPC 2.0 envelope.

    Returns:
        JSONRPCRequest when the body carries an id, JSONRPCNotification otherwise

    Raises:
        ParseError: body is empty or not a JSON object
        InvalidRequestError: wrong/missing jsonrpc version, bad method, id or params
    """
    if not isinstance(data, dict):
        raise ParseError(
            f"Parse error: expected a JSON object, got {type(data).__name__}"
        )
    if not data:
        raise ParseError("Parse error: empty JSON-RPC message")

    request_id = best_effort_id(data)

    if data.get("jsonrpc") != JSONRPC_VERSION:
        raise InvalidRequestError(
            f"Invalid Request: 'jsonrpc' must be \"{JSONRPC_VERSION}\"", request_id
        )

    method = data.get("method")
    if not isinstance(method, str) or not method:
        raise InvalidRequestError("Invalid Request: 'method' must be a non-empty string", request_id)

    if "id" in data and not is_valid_id(data["id"]):
        raise InvalidRequestError("Invalid Request: 'id' must be a string or a number")

    params = data.get("params")
    if params is not None and not isinstance(params, dict):
        raise InvalidRequestError("Invalid Request: 'params' must be an object", request_id)

    try:
        if "id" in data:
            return JSONRPCRequest.model_validate(data)
        return JSONRPCNotification.model_validate(data)
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid Request: {e.errors()[0]['msg']}", request_id)
