"""
Per-message transport adapter for MCP over one-shot exchanges.

The session engine is written against a persistent, bidirectional channel.
Each inbound HTTP POST (or stdio line) gets one TransportAdapter that makes
the exchange look like such a channel and guarantees the response contract:

- a request (has an id) gets exactly one JSON-RPC response echoing that id
- a notification (no id) gets an empty "no content" acknowledgement
- a second response attempt is logged and dropped, never written

States: IDLE -> DISPATCHED -> RESPONDED, or IDLE -> CLOSED (no body).
Handshake methods (initialize, notifications/initialized, ping) are answered
by the adapter itself; everything else is delivered to the session engine,
which answers through send() or close().

Single event loop: the check-then-set on ``state`` is not preempted between
the check and the assignment because neither side awaits.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Union

from common.config import ServerInfoConfig
from common.logging import get_logger
from .envelope import is_valid_id
from .errors import InvalidRequestError, MCPError
from .jsonrpc import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    JSONRPC_VERSION,
    JSONRPCHandler,
    JSONRPCMessage,
    JSONRPCNotification,
    JSONRPCRequest,
    MCPCapabilities,
    MCPImplementation,
    MCPInitializeResult,
    MCPMethods,
    RequestId,
)

if TYPE_CHECKING:
    from .session import SessionEngine

logger = get_logger(__name__)


class AdapterState(str, Enum):
    """Lifecycle of a single exchange."""

    IDLE = "idle"
    DISPATCHED = "dispatched"
    RESPONDED = "responded"
    CLOSED = "closed"


TERMINAL_STATES = frozenset({AdapterState.RESPONDED, AdapterState.CLOSED})


@dataclass(frozen=True)
class DirectResponse:
    """A complete, pre-built JSON-RPC response written verbatim."""

    payload: Dict[str, Any]


@dataclass(frozen=True)
class WrappedResult:
    """A bare result value, wrapped with the originating request id on write."""

    result: Any


OutboundMessage = Union[DirectResponse, WrappedResult]

ErrorCallback = Callable[[BaseException], None]
CloseCallback = Callable[[], None]


class ResponseSink(ABC):
    """The outbound half of one exchange. Accepts exactly one write."""

    @property
    @abstractmethod
    def headers_sent(self) -> bool:
        """True once any write has been committed."""

    @abstractmethod
    def write_json(self, payload: Dict[str, Any], status_code: int = 200) -> None:
        """Serialize and commit a JSON body. Nothing is committed if serialization fails."""

    @abstractmethod
    def write_no_content(self) -> None:
        """Commit an empty acknowledgement (HTTP 204)."""

    @abstractmethod
    def write_text(self, text: str, status_code: int = 500) -> None:
        """Last-resort unstructured body."""


class MessageTransport(ABC):
    """What the session engine sees: the write side of a persistent channel."""

    @abstractmethod
    async def send(self, message: OutboundMessage) -> None:
        """Deliver the response for the current message."""

    @abstractmethod
    async def close(self) -> None:
        """Finish the exchange without a payload."""


class TransportAdapter(MessageTransport):
    """
    Binds one inbound JSON-RPC message to one response sink.

    Never shared or reused across exchanges.
    """

    def __init__(
        self,
        message: JSONRPCMessage,
        sink: ResponseSink,
        session: "SessionEngine",
        server_info: ServerInfoConfig,
        on_error: Optional[ErrorCallback] = None,
        on_close: Optional[CloseCallback] = None,
    ):
        self.message = message
        self.state = AdapterState.IDLE
        self._sink = sink
        self._session = session
        self._server_info = server_info
        self._on_error = on_error
        self._on_close = on_close
        self._completion = asyncio.Event()

    @property
    def is_notification(self) -> bool:
        return isinstance(self.message, JSONRPCNotification)

    @property
    def request_id(self) -> Optional[RequestId]:
        return getattr(self.message, "id", None)

    @property
    def responded(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def completed(self) -> bool:
        return self._completion.is_set()

    async def start(self) -> None:
        """
        Classify the message and answer it, inline or through the session engine.

        Returns once the exchange has completed. Any exception is mapped to a
        single error response (or a bare acknowledgement for notifications).
        """
        try:
            self._check_structure()
            method = self.message.method

            if method == MCPMethods.INITIALIZE:
                await self._handle_initialize()
            elif method == MCPMethods.INITIALIZED:
                await self._handle_initialized()
            elif method == MCPMethods.PING:
                await self._handle_ping()
            else:
                self.state = AdapterState.DISPATCHED
                logger.debug(
                    event="message_dispatched",
                    method=method,
                    request_id=self.request_id,
                    notification=self.is_notification,
                )
                await self._session.deliver(self.message, self)
                await self._completion.wait()

        except Exception as e:
            await self.fail(e)

    async def send(self, message: OutboundMessage) -> None:
        """
        Write the response. Only the first call reaches the sink.

        DirectResponse payloads are written verbatim; WrappedResult values are
        wrapped as {"jsonrpc", "id", "result"} with the originating id.
        """
        if self.responded:
            logger.warning(
                event="duplicate_response_suppressed",
                method=self.message.method,
                request_id=self.request_id,
                state=self.state.value,
            )
            return

        self.state = AdapterState.RESPONDED
        try:
            if self.is_notification:
                logger.warning(event="notification_response_dropped", method=self.message.method)
                self._sink.write_no_content()
                return

            self._sink.write_json(self._to_payload(message))

        except Exception as e:
            logger.error(
                event="response_write_failed",
                method=self.message.method,
                request_id=self.request_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._report_error(e)
            self._write_fallback()

        finally:
            self._completion.set()

    async def close(self) -> None:
        """
        Finish without a payload.

        A notification is acknowledged with "no content". A request that was
        never answered still gets one error response carrying its id.
        """
        try:
            if not self.responded and not self._sink.headers_sent:
                if self.is_notification:
                    self.state = AdapterState.CLOSED
                    self._sink.write_no_content()
                else:
                    logger.warning(
                        event="request_closed_without_response",
                        method=self.message.method,
                        request_id=self.request_id,
                    )
                    await self.send(
                        self._error_response(INTERNAL_ERROR, "Request closed without a response")
                    )
        finally:
            self._completion.set()
            if self._on_close is not None:
                self._on_close()

    async def fail(self, exc: BaseException) -> None:
        """Route an exception to the error callback and, if still open, answer with an error."""
        self._report_error(exc)

        try:
            if self.responded:
                return

            if self.is_notification:
                self._acknowledge_notification()
                return

            if isinstance(exc, MCPError):
                code, message = exc.code, exc.message
            else:
                code, message = INTERNAL_ERROR, f"Internal error: {exc}"

            await self.send(self._error_response(code, message))
        finally:
            self._completion.set()

    # Handshake methods answered without the session engine

    async def _handle_initialize(self) -> None:
        if self.is_notification:
            self._acknowledge_notification()
            return

        params = self.message.params or {}
        client_version = params.get("protocolVersion")
        if client_version and client_version != self._server_info.protocol_version:
            logger.warning(
                event="protocol_version_mismatch",
                client_version=client_version,
                server_version=self._server_info.protocol_version,
            )

        # The tool catalog is fixed for the process lifetime
        result = MCPInitializeResult(
            protocolVersion=self._server_info.protocol_version,
            capabilities=MCPCapabilities(tools={"listChanged": False}, logging={}),
            serverInfo=MCPImplementation(
                name=self._server_info.name, version=self._server_info.version
            ),
            instructions=self._server_info.instructions,
        )

        logger.info(
            event="client_initialized",
            client_info=params.get("clientInfo"),
            protocol_version=client_version,
        )

        response = JSONRPCHandler.create_response(
            self.message.id, result.model_dump(exclude_none=True)
        )
        await self.send(DirectResponse(response.to_wire()))

    async def _handle_initialized(self) -> None:
        if not self.is_notification:
            await self.send(
                self._error_response(
                    INVALID_REQUEST, f"'{MCPMethods.INITIALIZED}' is a notification and takes no id"
                )
            )
            return

        logger.info(event="client_ready", message="Client has completed initialization")
        self._acknowledge_notification()

    async def _handle_ping(self) -> None:
        if self.is_notification:
            self._acknowledge_notification()
            return

        response = JSONRPCHandler.create_response(self.message.id, {})
        await self.send(DirectResponse(response.to_wire()))

    # Internals

    def _check_structure(self) -> None:
        """Re-check what the envelope validator guarantees."""
        if self.message.jsonrpc != JSONRPC_VERSION:
            raise InvalidRequestError(f"Invalid Request: 'jsonrpc' must be \"{JSONRPC_VERSION}\"")
        if not isinstance(self.message.method, str) or not self.message.method:
            raise InvalidRequestError("Invalid Request: 'method' must be a non-empty string")
        if isinstance(self.message, JSONRPCRequest) and not is_valid_id(self.message.id):
            raise InvalidRequestError("Invalid Request: 'id' must be a string or a number")

    def _acknowledge_notification(self) -> None:
        """Write "no content" and finish, bypassing the JSON envelope path."""
        if self.responded:
            logger.warning(
                event="duplicate_response_suppressed",
                method=self.message.method,
                state=self.state.value,
            )
            return

        self.state = AdapterState.RESPONDED
        try:
            self._sink.write_no_content()
        finally:
            self._completion.set()

    def _to_payload(self, message: OutboundMessage) -> Dict[str, Any]:
        if isinstance(message, DirectResponse):
            return message.payload
        if isinstance(message, WrappedResult):
            return JSONRPCHandler.create_response(self.message.id, message.result).to_wire()
        raise TypeError(f"Unsupported outbound message: {type(message).__name__}")

    def _error_response(self, code: int, message: str) -> DirectResponse:
        response = JSONRPCHandler.create_error_response(self.request_id, code, message)
        return DirectResponse(response.to_wire())

    def _write_fallback(self) -> None:
        if self._sink.headers_sent:
            return

        fallback = JSONRPCHandler.create_error_response(
            self.request_id, INTERNAL_ERROR, "Internal error: response could not be serialized"
        )
        try:
            self._sink.write_json(fallback.to_wire(), status_code=500)
        except Exception as e:
            logger.error(event="fallback_response_failed", error=str(e))
            self._sink.write_text("Internal Server Error", status_code=500)

    def _report_error(self, exc: BaseException) -> None:
        logger.error(
            event="transport_error",
            method=self.message.method,
            request_id=self.request_id,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        if self._on_error is not None:
            self._on_error(exc)
