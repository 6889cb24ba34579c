"""
Tests for the HTTP gateway.

End-to-end POST exchanges through FastAPI's TestClient, against an offline
tool catalog.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from common.config import Config, GatewayConfig
from gateway.http import create_gateway_app
from opencti_mcp.jsonrpc import INTERNAL_ERROR, INVALID_REQUEST, PARSE_ERROR
from opencti_mcp.opencti_client import OpenCTIClient
from opencti_mcp.session import SessionEngine
from opencti_mcp.tool_registry import Tool, ToolHandler, ToolRegistry
from opencti_mcp.tools import build_tool_registry


@pytest.fixture
def app(test_config, tool_registry):
    return create_gateway_app(test_config, tool_registry=tool_registry)


@pytest.fixture
def client(app):
    return TestClient(app)


class TestScenarios:
    """One POST, one response."""

    def test_initialize(self, client):
        response = client.post(
            "/mcp", json={"jsonrpc": "2.0", "id": "1", "method": "initialize", "params": {}}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["jsonrpc"] == "2.0"
        assert data["id"] == "1"
        assert isinstance(data["result"]["protocolVersion"], str)
        assert data["result"]["protocolVersion"]
        assert data["result"]["capabilities"]["tools"]["listChanged"] is False

    def test_initialized_notification(self, client):
        response = client.post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"})

        assert response.status_code == 204
        assert response.content == b""

    def test_tools_list(self, client):
        response = client.post("/mcp", json={"jsonrpc": "2.0", "id": "2", "method": "tools/list"})

        assert response.status_code == 200
        tools = response.json()["result"]["tools"]
        assert len(tools) >= 1
        for tool in tools:
            assert {"name", "description", "inputSchema"} <= set(tool)

    def test_unknown_tool_call(self, client):
        response = client.post(
            "/mcp",
            json={
                "jsonrpc": "2.0",
                "id": "3",
                "method": "tools/call",
                "params": {"name": "nonexistent_tool", "arguments": {}},
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "3"
        assert data["result"]["isError"] is True

    def test_empty_object(self, client):
        response = client.post("/mcp", json={})

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == PARSE_ERROR
        assert data["id"] is None

    def test_missing_jsonrpc_and_method(self, client):
        response = client.post("/mcp", json={"foo": "bar"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == INVALID_REQUEST

    def test_empty_body(self, client):
        response = client.post("/mcp", content=b"", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == PARSE_ERROR

    def test_invalid_json(self, client):
        response = client.post(
            "/mcp", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == PARSE_ERROR

    def test_wrong_version_echoes_id(self, client):
        response = client.post("/mcp", json={"jsonrpc": "1.0", "id": 77, "method": "ping"})

        assert response.status_code == 400
        assert response.json()["id"] == 77

    def test_ping(self, client):
        response = client.post("/mcp", json={"jsonrpc": "2.0", "id": 8, "method": "ping"})

        assert response.json() == {"jsonrpc": "2.0", "id": 8, "result": {}}

    def test_unknown_method_is_200_error(self, client):
        response = client.post("/mcp", json={"jsonrpc": "2.0", "id": 9, "method": "prompts/list"})

        assert response.status_code == 200
        assert response.json()["error"]["code"] == -32601

    def test_requests_are_isolated(self, client):
        first = client.post("/mcp", json={"jsonrpc": "2.0", "id": "a", "method": "ping"})
        second = client.post("/mcp", json={"jsonrpc": "2.0", "id": "b", "method": "ping"})

        assert first.json()["id"] == "a"
        assert second.json()["id"] == "b"


class TestMalformedEnvelopes:
    """Rejected before any adapter exists."""

    @pytest.mark.parametrize(
        "body",
        [
            b'{"jsonrpc":"1.0","id":NaN,"method":"x"}',
            b'{"jsonrpc":"2.0","id":Infinity,"method":"ping"}',
            b'{"jsonrpc":"2.0","id":-Infinity,"method":"ping"}',
            b'{"jsonrpc":"2.0","id":1e999,"method":"ping"}',
        ],
    )
    def test_non_finite_number_is_json_parse_error(self, client, body):
        response = client.post("/mcp", content=body, headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("application/json")
        data = response.json()
        assert data["error"]["code"] == PARSE_ERROR
        assert data["id"] is None

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"foo": "bar"},
            {"jsonrpc": "1.0", "id": 1, "method": "ping"},
            {"jsonrpc": "2.0", "id": True, "method": "ping"},
        ],
    )
    def test_no_adapter_is_built(self, client, payload):
        with patch("gateway.http.TransportAdapter") as adapter_class:
            response = client.post("/mcp", json=payload)

        assert response.status_code == 400
        adapter_class.assert_not_called()

    def test_session_never_sees_rejected_body(self, test_config, tool_registry):
        app = create_gateway_app(test_config, tool_registry=tool_registry)
        client = TestClient(app)

        with patch.object(SessionEngine, "deliver", new_callable=AsyncMock) as deliver:
            client.post("/mcp", content=b"{oops", headers={"Content-Type": "application/json"})
            client.post("/mcp", json={"jsonrpc": "2.0", "method": ""})

        deliver.assert_not_called()


class HangingTool(ToolHandler):
    def get_tool_definition(self) -> Tool:
        return Tool(name="hang", description="Never finishes")

    async def execute(self, arguments):
        await asyncio.sleep(3600)


class TestTimeout:
    def test_hung_request_gets_internal_error(self):
        registry = ToolRegistry()
        registry.register_tool_handler(HangingTool())
        config = Config(gateway=GatewayConfig(request_timeout=0.05))
        client = TestClient(create_gateway_app(config, tool_registry=registry))

        response = client.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": "slow", "method": "tools/call", "params": {"name": "hang"}},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "slow"
        assert data["error"]["code"] == INTERNAL_ERROR
        assert "timed out" in data["error"]["message"]


class TestInfoRoutes:
    def test_health(self, client, tool_registry):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["server"] == "opencti-server"
        assert data["version"] == "0.1.0"
        assert data["tools"] == len(tool_registry)
        assert data["authenticated"] is False

    def test_index(self, client):
        data = client.get("/").json()
        assert data["endpoints"] == {"mcp": "/mcp", "health": "/health"}

    def test_get_on_endpoint_not_allowed(self, client):
        assert client.get("/mcp").status_code == 405

    def test_cors_preflight(self, client):
        response = client.options(
            "/mcp",
            headers={"Origin": "https://copilot.example", "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 200
        assert "access-control-allow-origin" in response.headers


class TestLifecycle:
    def test_owned_client_closed_on_shutdown(self, test_config):
        with patch.object(OpenCTIClient, "aclose", new_callable=AsyncMock) as aclose:
            with TestClient(create_gateway_app(test_config)) as client:
                assert client.get("/health").json()["tools"] == 11
                aclose.assert_not_awaited()

            aclose.assert_awaited_once()

    def test_injected_registry_is_left_alone(self, test_config, tool_registry):
        with patch.object(OpenCTIClient, "aclose", new_callable=AsyncMock) as aclose:
            with TestClient(create_gateway_app(test_config, tool_registry=tool_registry)):
                pass

        aclose.assert_not_awaited()


class TestAuth:
    @pytest.fixture
    def client(self, test_config, tool_registry):
        app = create_gateway_app(test_config, tool_registry=tool_registry, auth_token="s3cret")
        return TestClient(app)

    def test_health_is_exempt(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["authenticated"] is True

    def test_missing_header(self, client):
        response = client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "ping"})
        assert response.status_code == 401
        assert "error" in response.json()

    def test_malformed_header(self, client):
        response = client.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": 1, "method": "ping"},
            headers={"Authorization": "Token s3cret"},
        )
        assert response.status_code == 401

    def test_wrong_token(self, client):
        response = client.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": 1, "method": "ping"},
            headers={"Authorization": "Bearer wrong"},
        )
        assert response.status_code == 403

    def test_valid_token(self, client):
        response = client.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": 1, "method": "ping"},
            headers={"Authorization": "Bearer s3cret"},
        )
        assert response.status_code == 200
        assert response.json()["result"] == {}


class TestOpenCTIRoundTrip:
    """tools/call through the real catalog with a mocked OpenCTI."""

    def test_get_malware_by_name(self, test_config):
        def graphql(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"data": {"malwares": {"edges": [{"node": {"name": "Emotet"}}]}}}
            )

        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(graphql), base_url="https://opencti.test"
        )
        registry = build_tool_registry(OpenCTIClient(test_config.opencti, http_client=http_client))
        client = TestClient(create_gateway_app(test_config, tool_registry=registry))

        response = client.post(
            "/mcp",
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "method": "tools/call",
                "params": {"name": "get_malware_by_name", "arguments": {"search": "Emotet"}},
            },
        )

        result = response.json()["result"]
        assert result["isError"] is False
        assert result["structuredContent"]["malwares"]["edges"][0]["node"]["name"] == "Emotet"

    def test_upstream_down_is_in_band_error(self, test_config):
        def graphql(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="maintenance")

        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(graphql), base_url="https://opencti.test"
        )
        registry = build_tool_registry(OpenCTIClient(test_config.opencti, http_client=http_client))
        client = TestClient(create_gateway_app(test_config, tool_registry=registry))

        response = client.post(
            "/mcp",
            json={
                "jsonrpc": "2.0",
                "id": 2,
                "method": "tools/call",
                "params": {"name": "list_sectors"},
            },
        )

        assert response.status_code == 200
        result = response.json()["result"]
        assert result["isError"] is True
        assert result["content"][0]["text"].startswith("OpenCTI API error: 503")
