"""
HTTP gateway using FastAPI.

One POST endpoint carries JSON-RPC: every body is validated, bound to a fresh
TransportAdapter and answered with exactly one HTTP response. Malformed
envelopes are rejected with 400 before any adapter exists.
"""

import asyncio
import hmac
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from common.config import Config, get_opencti_token
from common.logging import TimedLogger, get_logger
from opencti_mcp.envelope import parse_body, validate_envelope
from opencti_mcp.errors import EnvelopeError, InternalError
from opencti_mcp.jsonrpc import JSONRPCHandler
from opencti_mcp.opencti_client import OpenCTIClient
from opencti_mcp.session import SessionEngine
from opencti_mcp.tool_registry import ToolRegistry
from opencti_mcp.tools import build_tool_registry
from opencti_mcp.transport import TransportAdapter
from opencti_mcp.transports.http import HTTPResponseSink

logger = get_logger(__name__)

AUTH_EXEMPT_PATHS = {"/health"}


class HTTPGateway:
    """FastAPI application serving MCP over HTTP POST."""

    def __init__(
        self,
        config: Config,
        tool_registry: Optional[ToolRegistry] = None,
        auth_token: Optional[str] = None,
    ):
        self.config = config
        self.auth_token = auth_token
        # Only a client built here is owned (and closed) by the gateway
        self.opencti_client: Optional[OpenCTIClient] = None

        if tool_registry is None:
            self.opencti_client = OpenCTIClient(config.opencti, token=get_opencti_token())
            tool_registry = build_tool_registry(self.opencti_client)

        self.tool_registry = tool_registry
        self.session = SessionEngine(tool_registry)

        self.app = FastAPI(
            title=config.server.name, version=config.server.version, lifespan=self._lifespan
        )
        self._setup_middleware()
        self._setup_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        """Close the OpenCTI client on shutdown."""
        yield
        if self.opencti_client is not None:
            await self.opencti_client.aclose()
            logger.info(event="opencti_client_closed")

    def _setup_middleware(self) -> None:
        """Bearer auth (when configured) inside CORS, so rejections still carry CORS headers."""
        if self.auth_token:

            @self.app.middleware("http")
            async def require_bearer_token(request: Request, call_next):
                if request.method == "OPTIONS" or request.url.path in AUTH_EXEMPT_PATHS:
                    return await call_next(request)
                rejection = self._check_auth(request)
                if rejection is not None:
                    return rejection
                return await call_next(request)

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=self.config.gateway.cors_origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )

    def _check_auth(self, request: Request) -> Optional[JSONResponse]:
        """Return an error response when the request is not authorized, else None."""
        header = request.headers.get("authorization")
        if not header or not header.startswith("Bearer "):
            logger.warning(event="auth_rejected", reason="missing_or_malformed", path=request.url.path)
            return JSONResponse(
                {"error": "Unauthorized: Missing or invalid Authorization header"}, status_code=401
            )

        token = header[len("Bearer ") :]
        if not hmac.compare_digest(token.encode("utf-8"), self.auth_token.encode("utf-8")):
            logger.warning(event="auth_rejected", reason="invalid_token", path=request.url.path)
            return JSONResponse({"error": "Forbidden: Invalid token"}, status_code=403)

        return None

    def _setup_routes(self) -> None:
        """Setup FastAPI routes."""
        server = self.config.server
        endpoint = self.config.gateway.endpoint

        @self.app.get("/health")
        async def health_check():
            """Liveness plus the identity clients will see at initialize."""
            return {
                "status": "ok",
                "server": server.name,
                "version": server.version,
                "protocolVersion": server.protocol_version,
                "tools": len(self.tool_registry),
                "openctiUrl": self.config.opencti.url,
                "authenticated": bool(self.auth_token),
            }

        @self.app.get("/")
        async def index():
            return {
                "name": server.name,
                "version": server.version,
                "protocolVersion": server.protocol_version,
                "endpoints": {"mcp": endpoint, "health": "/health"},
            }

        @self.app.post(endpoint)
        async def mcp_endpoint(request: Request):
            """JSON-RPC 2.0 over HTTP POST."""
            return await self.handle_post(await request.body())

    async def handle_post(self, body: bytes):
        try:
            message = validate_envelope(parse_body(body))
        except EnvelopeError as e:
            logger.warning(event="envelope_rejected", code=e.code, error=e.message)
            error_response = JSONRPCHandler.create_error_response(e.request_id, e.code, e.message)
            return JSONResponse(error_response.to_wire(), status_code=400)

        sink = HTTPResponseSink()
        adapter = TransportAdapter(message, sink, self.session, self.config.server)
        timeout = self.config.gateway.request_timeout

        with TimedLogger(logger, "mcp_request_handled", method=message.method):
            try:
                await asyncio.wait_for(adapter.start(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.error(event="mcp_request_timeout", method=message.method, timeout=timeout)
                await adapter.fail(InternalError(f"Request timed out after {timeout:g}s"))

        return sink.to_response()


def create_gateway_app(
    config: Config,
    tool_registry: Optional[ToolRegistry] = None,
    auth_token: Optional[str] = None,
) -> FastAPI:
    """Create and configure the FastAPI gateway application."""
    gateway = HTTPGateway(config, tool_registry=tool_registry, auth_token=auth_token)
    return gateway.app
