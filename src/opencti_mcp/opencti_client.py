"""
Async GraphQL client for the OpenCTI API.

Every tool goes through execute_query(); failures are raised as OpenCTIError
so the session engine can report them in-band on the tool result.
"""

import json
from typing import Any, Dict, Optional

import httpx

from common.config import OpenCTIConfig
from common.logging import get_logger
from .errors import OpenCTIError

logger = get_logger(__name__)


class OpenCTIClient:
    """Thin wrapper around an httpx.AsyncClient bound to one OpenCTI instance."""

    def __init__(
        self,
        config: OpenCTIConfig,
        token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self.graphql_path = config.graphql_path

        if http_client is None:
            headers = {"Content-Type": "application/json"}
            if token:
                headers["Authorization"] = f"Bearer {token}"

            # Self-signed certificates are common on OpenCTI deployments
            http_client = httpx.AsyncClient(
                base_url=config.url.rstrip("/"),
                headers=headers,
                verify=config.verify_ssl,
                timeout=config.timeout,
            )

        self._client = http_client

    async def execute_query(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a GraphQL query and return its `data` object.

        Raises:
            OpenCTIError: On HTTP/transport failures or a response without `data`
        """
        try:
            response = await self._client.post(
                self.graphql_path, json={"query": query, "variables": variables}
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                event="opencti_http_error",
                status_code=e.response.status_code,
                url=str(e.request.url),
            )
            raise OpenCTIError(
                f"OpenCTI API error: {e.response.status_code} {e.response.reason_phrase}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(event="opencti_request_failed", error=str(e), error_type=type(e).__name__)
            raise OpenCTIError(f"OpenCTI API error: {e}") from e
        except ValueError as e:
            raise OpenCTIError(f"OpenCTI API error: response is not JSON ({e})") from e

        data = body.get("data") if isinstance(body, dict) else None
        if not data:
            raise OpenCTIError(f"Invalid response format from OpenCTI: {json.dumps(body)}")

        return data

    async def aclose(self) -> None:
        await self._client.aclose()
