"""
MCP session engine.

Handles every method the transport adapter does not answer itself. Writes
its answer through the MessageTransport it is handed, so the same engine
serves the HTTP endpoint and the stdio loop.
"""

import json
from typing import Any, Dict

from pydantic import ValidationError

from common.logging import get_logger, set_log_level
from .errors import InvalidParamsError, MCPError, MethodNotFoundError
from .jsonrpc import (
    JSONRPCHandler,
    JSONRPCMessage,
    JSONRPCNotification,
    JSONRPCRequest,
    MCPMethods,
    MCPTextContent,
    MCPToolsCallParams,
    MCPToolsCallResult,
    MCPToolsListParams,
    MCPToolsListResult,
)
from .tool_registry import ToolRegistry
from .transport import DirectResponse, MessageTransport, WrappedResult

logger = get_logger(__name__)

# Default page size for tools/list
DEFAULT_PAGE_SIZE = 50


class SessionEngine:
    """Dispatches forwarded JSON-RPC messages to their handlers."""

    def __init__(self, tool_registry: ToolRegistry, page_size: int = DEFAULT_PAGE_SIZE):
        self.tool_registry = tool_registry
        self.page_size = page_size

    async def deliver(self, message: JSONRPCMessage, transport: MessageTransport) -> None:
        """
        Handle one message and answer it through the transport.

        Protocol errors become JSON-RPC error responses. Anything else raised
        propagates to the caller, which maps it to an Internal Error.
        """
        if not JSONRPCHandler.is_request(message):
            self._handle_notification(message)
            await transport.close()
            return

        try:
            result = await self._handle_request(message)
        except MCPError as e:
            logger.info(
                event="request_rejected",
                method=message.method,
                request_id=message.id,
                code=e.code,
                error=e.message,
            )
            response = JSONRPCHandler.create_error_response(message.id, e.code, e.message, e.data)
            await transport.send(DirectResponse(response.to_wire()))
            return

        await transport.send(WrappedResult(result))

    async def _handle_request(self, request: JSONRPCRequest) -> Any:
        logger.debug(event="jsonrpc_request", method=request.method, request_id=request.id)

        if request.method == MCPMethods.TOOLS_LIST:
            return self._handle_tools_list(request)
        elif request.method == MCPMethods.TOOLS_CALL:
            return await self._handle_tools_call(request)
        elif request.method == MCPMethods.LOGGING_SET_LEVEL:
            return self._handle_set_level(request)

        raise MethodNotFoundError(f"Method '{request.method}' not found")

    def _handle_notification(self, notification: JSONRPCNotification) -> None:
        if notification.method == MCPMethods.CANCEL:
            params = notification.params or {}
            # Calls are not cancellable once dispatched; the response is still sent
            logger.info(
                event="request_cancelled",
                request_id=params.get("requestId"),
                reason=params.get("reason"),
            )
        else:
            logger.warning(event="unknown_notification", method=notification.method)

    def _handle_tools_list(self, request: JSONRPCRequest) -> Dict[str, Any]:
        """Handle tools/list with cursor-based pagination."""
        try:
            params = MCPToolsListParams.model_validate(request.params or {})
        except ValidationError:
            raise InvalidParamsError("Invalid tools/list params")

        mcp_tools = [tool.to_mcp() for tool in self.tool_registry.list_tools()]

        start_index = 0
        if params.cursor:
            try:
                start_index = int(params.cursor)
            except ValueError:
                raise InvalidParamsError("Invalid cursor format")
            if start_index < 0:
                raise InvalidParamsError("Invalid cursor format")

        end_index = start_index + self.page_size
        page = mcp_tools[start_index:end_index]
        next_cursor = str(end_index) if end_index < len(mcp_tools) else None

        logger.debug(
            event="tools_listed",
            total_tools=len(mcp_tools),
            returned_tools=len(page),
            cursor=params.cursor,
            next_cursor=next_cursor,
        )

        return MCPToolsListResult(tools=page, nextCursor=next_cursor).model_dump(exclude_none=True)

    async def _handle_tools_call(self, request: JSONRPCRequest) -> Dict[str, Any]:
        """
        Handle tools/call.

        Only a malformed call is a protocol error. Unknown tools, bad
        arguments and upstream failures are reported in-band with isError.
        """
        if not request.params:
            raise InvalidParamsError("Tool call requires params")

        try:
            params = MCPToolsCallParams.model_validate(request.params)
        except ValidationError:
            raise InvalidParamsError("Tool call requires a 'name' string and object 'arguments'")

        try:
            result = await self.tool_registry.call_tool(params.name, params.arguments or {})
        except Exception as e:
            logger.error(
                event="tool_execution_error",
                tool_name=params.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            message = e.message if isinstance(e, MCPError) else str(e)
            return MCPToolsCallResult(
                content=[MCPTextContent(text=message)], isError=True
            ).model_dump(exclude={"structuredContent"})

        call_result = MCPToolsCallResult(
            content=[MCPTextContent(text=json.dumps(result, indent=2, default=str))]
        ).model_dump(exclude={"structuredContent"})
        # Upstream nulls are meaningful, so the object is attached as-is
        if isinstance(result, dict):
            call_result["structuredContent"] = result
        return call_result

    def _handle_set_level(self, request: JSONRPCRequest) -> Dict[str, Any]:
        params = request.params or {}
        level = params.get("level")
        if not isinstance(level, str):
            raise InvalidParamsError("logging/setLevel requires a 'level' string")

        try:
            set_log_level(level)
        except ValueError as e:
            raise InvalidParamsError(str(e))

        logger.info(event="log_level_changed", level=level)
        return {}
