"""
JSON-RPC 2.0 Protocol Implementation for MCP

This module implements the JSON-RPC 2.0 message format required by the
Model Context Protocol specification. All MCP messages are wrapped in
JSON-RPC envelopes.

Reference: https://www.jsonrpc.org/specification
MCP Spec: https://spec.modelcontextprotocol.io/specification/2025-06-18/basic/
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel

# JSON-RPC version constant
JSONRPC_VERSION = "2.0"

# Standard JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

RequestId = Union[str, int, float]


class JSONRPCError(BaseModel):
    """JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Optional[Any] = None


class JSONRPCRequest(BaseModel):
    """JSON-RPC 2.0 request message (response required)."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId
    method: str
    params: Optional[Dict[str, Any]] = None


class JSONRPCNotification(BaseModel):
    """JSON-RPC 2.0 notification message (no response permitted)."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: Optional[Dict[str, Any]] = None


class JSONRPCResponse(BaseModel):
    """JSON-RPC 2.0 response message (success)."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId
    result: Any

    def to_wire(self) -> Dict[str, Any]:
        return {"jsonrpc": self.jsonrpc, "id": self.id, "result": self.result}


class JSONRPCErrorResponse(BaseModel):
    """JSON-RPC 2.0 response message (error)."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: Optional[RequestId]
    error: JSONRPCError

    def to_wire(self) -> Dict[str, Any]:
        # id stays present as null when unknown; data is dropped when empty
        return {
            "jsonrpc": self.jsonrpc,
            "id": self.id,
            "error": self.error.model_dump(exclude_none=True),
        }


# Inbound messages accepted by the server
JSONRPCMessage = Union[JSONRPCRequest, JSONRPCNotification]


class MCPMethods:
    """Standard MCP method names handled by this server."""

    # Core protocol
    INITIALIZE = "initialize"
    INITIALIZED = "notifications/initialized"
    PING = "ping"

    # Tools
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"

    # Logging
    LOGGING_SET_LEVEL = "logging/setLevel"

    # Cancellation
    CANCEL = "notifications/cancelled"


class MCPCapabilities(BaseModel):
    """MCP server capabilities."""

    logging: Optional[Dict[str, Any]] = None
    tools: Optional[Dict[str, Any]] = None


class MCPImplementation(BaseModel):
    """MCP implementation info."""

    name: str
    version: str


class MCPInitializeResult(BaseModel):
    """Result for initialize response."""

    protocolVersion: str
    capabilities: MCPCapabilities
    serverInfo: MCPImplementation
    instructions: Optional[str] = None


class MCPToolsListParams(BaseModel):
    """Parameters for tools/list request."""

    cursor: Optional[str] = None


class MCPToolsListResult(BaseModel):
    """Result for tools/list response."""

    tools: List[Dict[str, Any]]
    nextCursor: Optional[str] = None


class MCPToolsCallParams(BaseModel):
    """Parameters for tools/call request."""

    name: str
    arguments: Optional[Dict[str, Any]] = None


class MCPContentTypes:
    """Standard MCP content types."""

    TEXT = "text"


class MCPTextContent(BaseModel):
    """Text content for tool results."""

    type: str = MCPContentTypes.TEXT
    text: str


class MCPToolsCallResult(BaseModel):
    """Result for tools/call response."""

    content: List[MCPTextContent]
    isError: bool = False
    structuredContent: Optional[Dict[str, Any]] = None


class JSONRPCHandler:
    """Factory helpers for JSON-RPC messages."""

    @staticmethod
    def create_response(id: RequestId, result: Any) -> JSONRPCResponse:
        """Create a JSON-RPC success response."""
        return JSONRPCResponse(id=id, result=result)

    @staticmethod
    def create_error_response(
        id: Optional[RequestId], code: int, message: str, data: Optional[Any] = None
    ) -> JSONRPCErrorResponse:
        """Create a JSON-RPC error response."""
        error = JSONRPCError(code=code, message=message, data=data)
        return JSONRPCErrorResponse(id=id, error=error)

    @staticmethod
    def is_request(message: JSONRPCMessage) -> bool:
        """A message with an id expects exactly one response."""
        return isinstance(message, JSONRPCRequest)
