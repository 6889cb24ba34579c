"""Response sink that buffers one FastAPI response for a POST exchange."""

import json
from typing import Any, Dict, Optional

from fastapi import Response
from fastapi.responses import JSONResponse, PlainTextResponse

from common.logging import get_logger
from ..jsonrpc import INTERNAL_ERROR, JSONRPCHandler
from ..transport import ResponseSink

logger = get_logger(__name__)


class HTTPResponseSink(ResponseSink):
    """Holds the single response of one HTTP exchange until the route returns it."""

    def __init__(self) -> None:
        self._response: Optional[Response] = None

    @property
    def headers_sent(self) -> bool:
        return self._response is not None

    def write_json(self, payload: Dict[str, Any], status_code: int = 200) -> None:
        self._ensure_unsent()
        # Serialize before committing so a failure leaves the sink writable
        body = json.dumps(payload, separators=(",", ":"), allow_nan=False).encode("utf-8")
        self._response = Response(
            content=body, status_code=status_code, media_type="application/json"
        )

    def write_no_content(self) -> None:
        self._ensure_unsent()
        self._response = Response(status_code=204)

    def write_text(self, text: str, status_code: int = 500) -> None:
        self._ensure_unsent()
        self._response = PlainTextResponse(text, status_code=status_code)

    def to_response(self) -> Response:
        """The committed response, or a 500 JSON-RPC error if nothing was written."""
        if self._response is not None:
            return self._response

        logger.error(event="exchange_finished_without_response")
        error = JSONRPCHandler.create_error_response(
            None, INTERNAL_ERROR, "Internal error: no response was produced"
        )
        return JSONResponse(error.to_wire(), status_code=500)

    def _ensure_unsent(self) -> None:
        if self._response is not None:
            raise RuntimeError("Response already written for this exchange")
