"""Typed errors for the JSON-RPC layer and the OpenCTI upstream."""

from typing import Any, Optional, Union

from .jsonrpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
)


class MCPError(Exception):
    """An error that maps onto a JSON-RPC error object."""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str, data: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data


class EnvelopeError(MCPError):
    """Raised when an inbound body is not a usable JSON-RPC 2.0 envelope."""

    def __init__(
        self,
        message: str,
        request_id: Union[str, int, float, None] = None,
        data: Optional[Any] = None,
    ) -> None:
        super().__init__(message, data)
        self.request_id = request_id


class ParseError(EnvelopeError):
    code = PARSE_ERROR


class InvalidRequestError(EnvelopeError):
    code = INVALID_REQUEST


class MethodNotFoundError(MCPError):
    code = METHOD_NOT_FOUND


class InvalidParamsError(MCPError):
    code = INVALID_PARAMS


class InternalError(MCPError):
    code = INTERNAL_ERROR


class OpenCTIError(Exception):
    """The OpenCTI API could not be reached or returned an unusable response."""
