"""
Standard I/O Transport for MCP

Lets an MCP client spawn the server as a subprocess and exchange
newline-delimited JSON-RPC over stdin/stdout. Each line runs through the same
envelope validator and TransportAdapter as an HTTP POST; notifications produce
no output. Logs go to stderr.

Reference: https://modelcontextprotocol.io/specification/2025-06-18/basic/transports
"""

import asyncio
import json
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional, TextIO

from common.config import ServerInfoConfig
from common.logging import get_logger
from ..envelope import parse_body, validate_envelope
from ..errors import EnvelopeError
from ..jsonrpc import JSONRPCHandler
from ..session import SessionEngine
from ..transport import ResponseSink, TransportAdapter

logger = get_logger(__name__)


class StdioResponseSink(ResponseSink):
    """Writes at most one compact JSON line to the output stream."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream if stream is not None else sys.stdout
        self._sent = False

    @property
    def headers_sent(self) -> bool:
        return self._sent

    def write_json(self, payload: Dict[str, Any], status_code: int = 200) -> None:
        self._ensure_unsent()
        line = json.dumps(payload, separators=(",", ":"), allow_nan=False)
        self._sent = True
        self._stream.write(line + "\n")
        self._stream.flush()

    def write_no_content(self) -> None:
        # Notifications are acknowledged by silence on stdio
        self._ensure_unsent()
        self._sent = True

    def write_text(self, text: str, status_code: int = 500) -> None:
        # Free text would corrupt the protocol stream
        self._ensure_unsent()
        self._sent = True
        logger.error(event="stdio_unstructured_response_dropped", text=text, status_code=status_code)

    def _ensure_unsent(self) -> None:
        if self._sent:
            raise RuntimeError("Response already written for this message")


class StdioTransport:
    """
    Standard I/O transport for MCP communication.

    Messages are handled one at a time, in arrival order.
    """

    def __init__(
        self,
        session: SessionEngine,
        server_info: ServerInfoConfig,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
    ):
        self.session = session
        self.server_info = server_info
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="stdio")
        self.running = False

    async def run(self) -> None:
        """Read stdin until EOF."""
        self.running = True
        logger.info(event="stdio_transport_started", message="MCP server ready on stdio")

        loop = asyncio.get_running_loop()
        try:
            while self.running:
                line = await loop.run_in_executor(self.executor, self.stdin.readline)
                if not line:  # EOF
                    logger.info(event="stdio_eof", message="Received EOF, shutting down")
                    break

                line = line.strip()
                if not line:
                    continue

                await self.handle_line(line)
        finally:
            self.running = False
            self.executor.shutdown(wait=False)
            logger.info(event="stdio_transport_stopped")

    async def handle_line(self, line: str) -> None:
        """Validate one line and answer it through a fresh adapter."""
        sink = StdioResponseSink(self.stdout)

        try:
            message = validate_envelope(parse_body(line))
        except EnvelopeError as e:
            logger.warning(event="envelope_rejected", code=e.code, error=e.message, transport="stdio")
            error_response = JSONRPCHandler.create_error_response(e.request_id, e.code, e.message)
            sink.write_json(error_response.to_wire())
            return

        adapter = TransportAdapter(message, sink, self.session, self.server_info)
        await adapter.start()
